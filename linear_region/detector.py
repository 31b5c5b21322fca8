"""
linear_region.detector
~~~~~~~~~~~~~~~~~~~~~~
Find where the initially linear trend of a point set breaks down.

The detector sorts the points by x, fits a robust seed line on a leading
block, then grows the candidate region one point at a time.  The region
ends only when BOTH the residual gate (largest residual of the prefix fit)
and the slope-drift gate (slope of a trailing window vs. the seed slope)
are exceeded.
"""

from __future__ import annotations

import dataclasses
import logging
import math
import numbers
from dataclasses import dataclass
from typing import Optional, Union

import numpy as np

from .errors import ConfigurationError, InputValidationError
from .robust import ROBUST_METHODS, LineFit, robust_line

logger = logging.getLogger(__name__)

MIN_POINTS = 8

_EPS = np.finfo(float).eps


# ------------------------------------------------------------------
# Configuration
# ------------------------------------------------------------------


@dataclass(frozen=True)
class RegionConfig:
    """Tunables of the linear-region search.

    Parameters
    ----------
    min_pts_frac : float
        Seed length as a fraction of the number of points (default 0.25).
    min_pts_abs : int
        Minimum absolute seed length (default 10).
    win_frac : float
        Trailing window length as a fraction of the points (default 0.20).
    win_min, win_max : int
        Bounds on the trailing window length (default 6 and 10).
    slope_tol_abs, slope_tol_rel : float
        Slope-drift gate, absolute and relative to the seed slope.
    res_k : float
        Residual gate as a multiple of the seed scale (default 3.0).
    res_min_abs : float
        Absolute floor of the residual gate (default 0.15).
    robust_method : {"huber", "bisquare"}
    robust_c : float
        Tuning constant of the weighting function (default 1.345).
    max_iter : int
    tol : float
        IRLS iteration cap and convergence tolerance.
    """

    min_pts_frac: float = 0.25
    min_pts_abs: int = 10
    win_frac: float = 0.20
    win_min: int = 6
    win_max: int = 10
    slope_tol_abs: float = 0.03
    slope_tol_rel: float = 0.20
    res_k: float = 3.0
    res_min_abs: float = 0.15
    robust_method: str = "huber"
    robust_c: float = 1.345
    max_iter: int = 25
    tol: float = 1e-10

    _POSITIVE = ("min_pts_frac", "win_frac", "res_k", "robust_c", "tol")
    _NON_NEGATIVE = ("slope_tol_abs", "slope_tol_rel", "res_min_abs")
    _COUNTS = {"min_pts_abs": 0, "win_min": 0, "win_max": 0, "max_iter": 1}

    def __post_init__(self) -> None:
        for name in self._POSITIVE + self._NON_NEGATIVE:
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, numbers.Real):
                raise ConfigurationError(f"{name} must be a number (got {value!r})")
            if not math.isfinite(value):
                raise ConfigurationError(f"{name} must be finite (got {value!r})")
            if name in self._POSITIVE and value <= 0:
                raise ConfigurationError(f"{name} must be positive (got {value!r})")
            if value < 0:
                raise ConfigurationError(f"{name} must be non-negative (got {value!r})")
        for name, lower in self._COUNTS.items():
            value = getattr(self, name)
            if (
                isinstance(value, bool)
                or not isinstance(value, numbers.Real)
                or not math.isfinite(value)
                or int(value) != value
            ):
                raise ConfigurationError(f"{name} must be an integer (got {value!r})")
            if value < lower:
                raise ConfigurationError(f"{name} must be >= {lower} (got {value!r})")
            object.__setattr__(self, name, int(value))
        if self.robust_method not in ROBUST_METHODS:
            raise ConfigurationError(
                f"robust_method must be one of {ROBUST_METHODS} "
                f"(got {self.robust_method!r})"
            )

    @classmethod
    def option_names(cls) -> tuple[str, ...]:
        return tuple(f.name for f in dataclasses.fields(cls))

    @classmethod
    def _check_names(cls, options: dict) -> None:
        unknown = sorted(set(options) - set(cls.option_names()))
        if unknown:
            raise ConfigurationError(f"unrecognized option(s): {', '.join(unknown)}")

    @classmethod
    def from_options(cls, **options) -> "RegionConfig":
        """Build a config from keyword options, rejecting unknown names."""
        cls._check_names(options)
        return cls(**options)

    def replace(self, **options) -> "RegionConfig":
        """Return a copy with *options* overridden."""
        self._check_names(options)
        return dataclasses.replace(self, **options)


# ------------------------------------------------------------------
# Results
# ------------------------------------------------------------------


@dataclass(frozen=True)
class BoundaryFound:
    """Both gates fired at prefix length ``index``; the linear region keeps
    the first ``cutoff`` points."""

    index: int
    cutoff: int
    residual_gate: float
    slope_deviation: float


@dataclass(frozen=True)
class NoBoundary:
    """The growth loop reached the last point without both gates firing."""


GrowthOutcome = Union[BoundaryFound, NoBoundary]


@dataclass(frozen=True)
class RegionFit:
    """Final line over the accepted linear region.

    ``mask``, ``x`` and ``y`` refer to the x-sorted copy of the input.
    ``cutoff_idx`` counts the accepted leading points (1-based end index).
    """

    slope: float
    intercept: float
    mask: np.ndarray
    cutoff_idx: int
    slope_ref: float
    config: RegionConfig
    x: np.ndarray
    y: np.ndarray
    seed_size: int
    window_size: int
    max_error: float
    slope_tol: float
    boundary: GrowthOutcome

    @property
    def n_points(self) -> int:
        return int(self.x.size)

    @property
    def x_cutoff(self) -> float:
        """x value of the last accepted point."""
        return float(self.x[self.cutoff_idx - 1])


@dataclass(frozen=True)
class RegionDiagnostics:
    """Goodness of fit over the accepted region only."""

    residuals: np.ndarray
    weights: np.ndarray
    sigma: float
    r2: float
    sse: float
    sst: float


# ------------------------------------------------------------------
# Detector
# ------------------------------------------------------------------


class LinearRegionDetector:
    """Detect the leading linear region of a point set and fit it robustly.

    Parameters
    ----------
    config : RegionConfig, optional
        Search tunables.  Defaults to ``RegionConfig()``.
    **options
        Individual overrides applied on top of *config*
        (e.g. ``robust_method="bisquare"``).  Unknown names raise
        :class:`ConfigurationError`.
    """

    def __init__(self, config: Optional[RegionConfig] = None, **options) -> None:
        base = config if config is not None else RegionConfig()
        if not isinstance(base, RegionConfig):
            raise ConfigurationError(
                f"config must be a RegionConfig (got {type(base).__name__})"
            )
        self.config = base.replace(**options) if options else base

    # ------------------------------------------------------------------
    # Static helpers
    # ------------------------------------------------------------------

    @staticmethod
    def resolve_sizes(n: int, config: RegionConfig) -> tuple[int, int]:
        """Seed size and trailing-window size for *n* points.

        The window is clamped so it never exceeds the room left after the
        seed (but is never shorter than 3 points).
        """
        min_pts = max(config.min_pts_abs, math.ceil(config.min_pts_frac * n))
        window = max(config.win_min, min(config.win_max, math.floor(config.win_frac * n)))
        min_pts = min(max(3, min_pts), n)
        window = max(3, min(window, max(3, n - min_pts)))
        return int(min_pts), int(window)

    @staticmethod
    def calculate_r2(sse: float, sst: float) -> float:
        """Coefficient of determination with an eps-floored denominator."""
        return float(1.0 - sse / max(_EPS, sst))

    @staticmethod
    def _validate_points(x, y) -> tuple[np.ndarray, np.ndarray]:
        try:
            x = np.asarray(x, dtype=float)
            y = np.asarray(y, dtype=float)
        except (TypeError, ValueError) as exc:
            raise InputValidationError(f"x and y must be numeric: {exc}") from exc
        if x.ndim > 1 and max(x.shape) != x.size:
            raise InputValidationError(f"x must be a vector (got shape {x.shape})")
        if y.ndim > 1 and max(y.shape) != y.size:
            raise InputValidationError(f"y must be a vector (got shape {y.shape})")
        x, y = x.ravel(), y.ravel()
        if x.size != y.size:
            raise InputValidationError(
                f"x and y must have the same length (got {x.size} and {y.size})"
            )
        if x.size < MIN_POINTS:
            raise InputValidationError(
                f"at least {MIN_POINTS} points are required (got {x.size})"
            )
        if not (np.all(np.isfinite(x)) and np.all(np.isfinite(y))):
            raise InputValidationError("x and y must contain only finite values")
        return x, y

    # ------------------------------------------------------------------
    # Internal steps
    # ------------------------------------------------------------------

    def _line(self, x: np.ndarray, y: np.ndarray) -> LineFit:
        cfg = self.config
        return robust_line(
            x, y, cfg.robust_method, cfg.robust_c, cfg.max_iter, cfg.tol
        )

    def _grow(
        self,
        x: np.ndarray,
        y: np.ndarray,
        min_pts: int,
        window: int,
        slope_ref: float,
        max_error: float,
        slope_tol: float,
    ) -> GrowthOutcome:
        """Extend the prefix until both gates fire or the data runs out."""
        for j in range(min_pts + window, x.size + 1):
            prefix = self._line(x[:j], y[:j])
            trailing = self._line(x[j - window:j], y[j - window:j])

            residual_gate = float(np.max(np.abs(prefix.residuals)))
            slope_deviation = abs(trailing.slope - slope_ref)
            if residual_gate > max_error and slope_deviation > slope_tol:
                return BoundaryFound(
                    index=j,
                    cutoff=max(min_pts, j - window),
                    residual_gate=residual_gate,
                    slope_deviation=slope_deviation,
                )
        return NoBoundary()

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def fit(
        self, x: "array-like", y: "array-like"
    ) -> tuple[RegionFit, RegionDiagnostics]:
        """Find the linear region of ``(x, y)`` and fit a robust line to it.

        Parameters
        ----------
        x, y : array-like
            Equal-length finite samples, at least 8 points.  Neither is
            modified; the search runs on copies sorted by *x* (stable).

        Returns
        -------
        tuple[RegionFit, RegionDiagnostics]

        Raises
        ------
        InputValidationError
            Length mismatch, non-finite values or fewer than 8 points.
        NumericalFitError
            A fitted subset has no spread in *x*.
        """
        x, y = self._validate_points(x, y)
        order = np.argsort(x, kind="stable")
        x, y = x[order], y[order]
        n = x.size
        cfg = self.config

        min_pts, window = self.resolve_sizes(n, cfg)

        seed = self._line(x[:min_pts], y[:min_pts])
        slope_ref = seed.slope
        max_error = max(cfg.res_min_abs, cfg.res_k * seed.scale)
        slope_tol = max(cfg.slope_tol_abs, cfg.slope_tol_rel * abs(slope_ref))
        logger.debug(
            "n=%d seed=%d window=%d slope_ref=%.6g max_error=%.6g slope_tol=%.6g",
            n, min_pts, window, slope_ref, max_error, slope_tol,
        )

        outcome = self._grow(x, y, min_pts, window, slope_ref, max_error, slope_tol)
        if isinstance(outcome, BoundaryFound):
            cutoff = outcome.cutoff
            logger.debug(
                "boundary at j=%d (residual %.6g, slope deviation %.6g) -> cutoff %d",
                outcome.index, outcome.residual_gate, outcome.slope_deviation, cutoff,
            )
        else:
            cutoff = n
            logger.debug("no boundary found; accepting all %d points", n)

        mask = np.zeros(n, dtype=bool)
        mask[:cutoff] = True
        final = self._line(x[mask], y[mask])

        y_lin = y[mask]
        yhat = final.intercept + final.slope * x[mask]
        sse = float(np.sum((y_lin - yhat) ** 2))
        sst = float(np.sum((y_lin - np.mean(y_lin)) ** 2))

        fit = RegionFit(
            slope=final.slope,
            intercept=final.intercept,
            mask=mask,
            cutoff_idx=int(cutoff),
            slope_ref=float(slope_ref),
            config=cfg,
            x=x,
            y=y,
            seed_size=min_pts,
            window_size=window,
            max_error=float(max_error),
            slope_tol=float(slope_tol),
            boundary=outcome,
        )
        diagnostics = RegionDiagnostics(
            residuals=final.residuals,
            weights=final.weights,
            sigma=final.scale,
            r2=self.calculate_r2(sse, sst),
            sse=sse,
            sst=sst,
        )
        return fit, diagnostics


def fit_linear_region(
    x: "array-like",
    y: "array-like",
    config: Optional[RegionConfig] = None,
    **options,
) -> tuple[RegionFit, RegionDiagnostics]:
    """Functional shortcut for ``LinearRegionDetector(config, **options).fit(x, y)``."""
    return LinearRegionDetector(config, **options).fit(x, y)
