"""
linear_region.understeer
~~~~~~~~~~~~~~~~~~~~~~~~
Understeer gradient (Ku, deg/g) from skidpad data.

Steering angle (deg) is fitted against lateral acceleration (g) over the
linear region found by :class:`~linear_region.detector.LinearRegionDetector`;
Ku is the slope of that fit.
"""

from __future__ import annotations

from typing import Any, Optional

import numpy as np

from .detector import (
    LinearRegionDetector,
    RegionConfig,
    RegionDiagnostics,
    RegionFit,
)
from .errors import InputValidationError
from .records import SKIDPAD_PATH, get_nested

SLOPE_NAME = "Ku"
SLOPE_UNIT = "deg/g"


def estimate_understeer_gradient(
    ay: "array-like",
    steer: "array-like",
    config: Optional[RegionConfig] = None,
    **options,
) -> tuple[float, RegionFit, RegionDiagnostics]:
    """Robust Ku from lateral acceleration and steering angle samples.

    Parameters
    ----------
    ay : array-like
        Lateral acceleration in g (independent variable).
    steer : array-like
        Steering angle in deg, same length as *ay*.
    config : RegionConfig, optional
    **options
        Overrides forwarded to :class:`LinearRegionDetector`.

    Returns
    -------
    tuple[float, RegionFit, RegionDiagnostics]
        ``(ku, fit, diagnostics)`` with ``ku`` in deg/g.
    """
    fit, diagnostics = LinearRegionDetector(config, **options).fit(ay, steer)
    return fit.slope, fit, diagnostics


def fetch_skidpad(record: Any) -> tuple[np.ndarray, np.ndarray]:
    """Return ``(ay, steer)`` from ``record.comp.skidpad``.

    Raises
    ------
    InputValidationError
        If the record lacks the skidpad fields.
    """
    ok, skidpad = get_nested(record, SKIDPAD_PATH)
    if not ok:
        raise InputValidationError(
            f"record.comp.skidpad required (got {type(record).__name__})"
        )
    ok_ay, ay = get_nested(skidpad, ("ay",))
    ok_st, steer = get_nested(skidpad, ("steer",))
    if not (ok_ay and ok_st):
        raise InputValidationError("skidpad.ay and skidpad.steer required")
    return ay, steer


def compute_understeer_gradient(
    record: Any,
    config: Optional[RegionConfig] = None,
    **options,
) -> tuple[float, RegionFit, RegionDiagnostics]:
    """Same as :func:`estimate_understeer_gradient`, reading the skidpad
    channels from a vehicle record (mapping or object)."""
    ay, steer = fetch_skidpad(record)
    return estimate_understeer_gradient(ay, steer, config, **options)


class UndersteerEstimator:
    """Bundle skidpad samples with a detector and expose the results.

    Parameters
    ----------
    ay : array-like
        Lateral acceleration in g.
    steer : array-like
        Steering angle in deg aligned with *ay*.
    detector : LinearRegionDetector, optional
        Custom detector instance.  A default :class:`LinearRegionDetector`
        is used when not provided.

    Examples
    --------
    >>> import numpy as np
    >>> from linear_region import UndersteerEstimator
    >>> ay = np.linspace(0.0, 1.0, 40)
    >>> steer = 0.5 + 3.2 * ay
    >>> round(UndersteerEstimator(ay, steer).get_gradient(), 6)
    3.2
    """

    def __init__(
        self,
        ay: "array-like",
        steer: "array-like",
        detector: LinearRegionDetector | None = None,
    ) -> None:
        self.ay = np.asarray(ay, dtype=float)
        self.steer = np.asarray(steer, dtype=float)
        self.detector = detector if detector is not None else LinearRegionDetector()
        self._result: Optional[tuple[RegionFit, RegionDiagnostics]] = None

    # ------------------------------------------------------------------
    # Individual results
    # ------------------------------------------------------------------

    def get_region_fit(self) -> tuple[RegionFit, RegionDiagnostics]:
        """Run the detector once and return ``(fit, diagnostics)``."""
        if self._result is None:
            self._result = self.detector.fit(self.ay, self.steer)
        return self._result

    def get_gradient(self) -> float:
        """Understeer gradient Ku in deg/g."""
        fit, _ = self.get_region_fit()
        return fit.slope

    # ------------------------------------------------------------------
    # Convenience bundle
    # ------------------------------------------------------------------

    def summary(self) -> dict:
        """Return the headline numbers as a single flat dictionary.

        Keys
        ----
        ku_deg_per_g, intercept_deg, slope_ref : float
        r2 : float
            R² over the linear region.
        cutoff_idx, n_points : int
        ay_cutoff_g : float
            Lateral acceleration of the last point in the linear region.
        linear_to_end : bool
            True when no boundary was found.
        """
        fit, diagnostics = self.get_region_fit()
        return {
            "ku_deg_per_g": fit.slope,
            "intercept_deg": fit.intercept,
            "slope_ref": fit.slope_ref,
            "r2": diagnostics.r2,
            "cutoff_idx": fit.cutoff_idx,
            "n_points": fit.n_points,
            "ay_cutoff_g": fit.x_cutoff,
            "linear_to_end": fit.cutoff_idx == fit.n_points,
        }
