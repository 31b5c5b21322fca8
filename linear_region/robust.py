"""
linear_region.robust
~~~~~~~~~~~~~~~~~~~~
Iteratively re-weighted least squares (IRLS) for a straight line
``y ~ a + b * x`` with Huber or Tukey-bisquare weights.

The estimator knows nothing about linear regions; the detector calls it
on prefixes and trailing windows of the sorted point set.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

import numpy as np
from scipy.stats import median_abs_deviation

from .errors import InputValidationError, NumericalFitError

logger = logging.getLogger(__name__)

# ------------------------------------------------------------------
# Constants
# ------------------------------------------------------------------

MAD_TO_SIGMA = 1.4826
WEIGHT_FLOOR = 1e-6
ROBUST_METHODS = ("huber", "bisquare")

_EPS = np.finfo(float).eps


@dataclass(frozen=True)
class LineFit:
    """Result of :func:`robust_line`.

    ``residuals`` are always computed against the final ``intercept`` and
    ``slope``; ``weights`` and ``scale`` come from the last IRLS step.
    """

    intercept: float
    slope: float
    weights: np.ndarray
    residuals: np.ndarray
    scale: float
    n_iter: int
    converged: bool


# ------------------------------------------------------------------
# Weighting functions
# ------------------------------------------------------------------


def huber_weights(z: np.ndarray) -> np.ndarray:
    """Huber weights: 1 inside the unit band, ``1/|z|`` outside."""
    az = np.abs(np.asarray(z, dtype=float))
    w = np.ones_like(az)
    outside = az > 1.0
    w[outside] = 1.0 / az[outside]
    return w


def bisquare_weights(z: np.ndarray) -> np.ndarray:
    """Tukey bisquare weights: ``(1 - z^2)^2`` for ``|z| < 1``, else 0."""
    az = np.abs(np.asarray(z, dtype=float))
    w = np.zeros_like(az)
    inside = az < 1.0
    w[inside] = (1.0 - az[inside] ** 2) ** 2
    return w


_WEIGHT_FUNCTIONS = {
    "huber": huber_weights,
    "bisquare": bisquare_weights,
}


# ------------------------------------------------------------------
# Scale estimate
# ------------------------------------------------------------------


def robust_scale(residuals: np.ndarray) -> float:
    """Normalized MAD of *residuals* with a std-dev and 1.0 fallback.

    Returns
    -------
    float
        ``1.4826 * median(|r - median(r)|)``; the sample standard deviation
        when that is not a positive finite number; ``1.0`` when neither is.
    """
    r = np.asarray(residuals, dtype=float)
    s = MAD_TO_SIGMA * float(median_abs_deviation(r, scale=1.0))
    if not np.isfinite(s) or s <= 0:
        s = float(np.std(r, ddof=1)) if r.size > 1 else float("nan")
    if not np.isfinite(s) or s <= 0:
        s = 1.0
    return s


def _resolved_scale(residuals: np.ndarray, resolution: float) -> float:
    s = robust_scale(residuals)
    # below the round-off of an n-row least-squares solve
    if s < resolution:
        s = 1.0
    return s


# ------------------------------------------------------------------
# Least squares
# ------------------------------------------------------------------


def _weighted_lstsq(X: np.ndarray, y: np.ndarray, w: np.ndarray) -> np.ndarray:
    """Solve the weighted least-squares problem for ``[a, b]``.

    Raises
    ------
    NumericalFitError
        When the weighted design matrix is rank deficient.
    """
    sw = np.sqrt(w)
    Xw = X * sw[:, None]
    if np.linalg.matrix_rank(Xw) < X.shape[1]:
        raise NumericalFitError(
            "weighted normal equations are singular "
            f"(n={len(y)}, x range={np.ptp(X[:, 1]):.3g})"
        )
    beta, *_ = np.linalg.lstsq(Xw, y * sw, rcond=None)
    return beta


def _validate_line_inputs(x, y, method, tuning_constant, max_iter, tol):
    try:
        x = np.asarray(x, dtype=float).ravel()
        y = np.asarray(y, dtype=float).ravel()
    except (TypeError, ValueError) as exc:
        raise InputValidationError(f"x and y must be numeric: {exc}") from exc
    if x.size != y.size:
        raise InputValidationError(
            f"x and y must have the same length (got {x.size} and {y.size})"
        )
    if x.size < 2:
        raise InputValidationError(f"at least 2 points are required (got {x.size})")
    if not (np.all(np.isfinite(x)) and np.all(np.isfinite(y))):
        raise InputValidationError("x and y must contain only finite values")
    if method not in _WEIGHT_FUNCTIONS:
        raise InputValidationError(
            f"unknown robust method {method!r}; expected one of {ROBUST_METHODS}"
        )
    if not tuning_constant > 0:
        raise InputValidationError(f"tuning_constant must be positive (got {tuning_constant})")
    if int(max_iter) != max_iter or max_iter < 1:
        raise InputValidationError(f"max_iter must be an integer >= 1 (got {max_iter})")
    if not tol > 0:
        raise InputValidationError(f"tol must be positive (got {tol})")
    return x, y


def robust_line(
    x: "array-like",
    y: "array-like",
    method: str = "huber",
    tuning_constant: float = 1.345,
    max_iter: int = 25,
    tol: float = 1e-10,
) -> LineFit:
    """Robust straight-line fit by IRLS.

    Parameters
    ----------
    x, y : array-like
        Equal-length finite samples, at least two points.
    method : {"huber", "bisquare"}
        Weighting function applied to standardized residuals.
    tuning_constant : float
        Residuals are standardized by ``scale * tuning_constant``.
    max_iter : int
        Maximum number of re-weighting steps.
    tol : float
        Stop when the parameter step is below ``tol * max(1, |params|)``.

    Returns
    -------
    LineFit

    Raises
    ------
    InputValidationError
        On malformed inputs or options.
    NumericalFitError
        When the weighted system is singular (e.g. all ``x`` equal).
    """
    x, y = _validate_line_inputs(x, y, method, tuning_constant, max_iter, tol)
    weight_fn = _WEIGHT_FUNCTIONS[method]
    resolution = y.size * _EPS * max(1.0, float(np.max(np.abs(y))))

    X = np.column_stack([np.ones_like(x), x])
    w = np.ones_like(y)
    beta = _weighted_lstsq(X, y, w)
    r = y - X @ beta
    s = _resolved_scale(r, resolution)

    converged = False
    n_iter = 0
    for n_iter in range(1, int(max_iter) + 1):
        z = r / (s * tuning_constant)
        w = np.maximum(weight_fn(z), WEIGHT_FLOOR)
        beta_new = _weighted_lstsq(X, y, w)
        step = np.linalg.norm(beta_new - beta, 2)
        if step < tol * max(1.0, np.linalg.norm(beta, 2)):
            beta = beta_new
            converged = True
            break
        beta = beta_new
        r = y - X @ beta
        s = _resolved_scale(r, resolution)

    r = y - X @ beta
    if not converged:
        logger.debug("IRLS stopped at max_iter=%d without converging", max_iter)

    return LineFit(
        intercept=float(beta[0]),
        slope=float(beta[1]),
        weights=w,
        residuals=r,
        scale=float(s),
        n_iter=n_iter,
        converged=converged,
    )
