"""
linear_region.narrative
~~~~~~~~~~~~~~~~~~~~~~~
Turn a linear-region fit summary into a short plain-English report.

Two calling paths are supported:

  Path 1 – precomputed summary (e.g. stored alongside a vehicle record):
      get_gradient_narrative(summary=row["ku_summary"])

  Path 2 – raw skidpad data:
      get_gradient_narrative(ay=ay, steer=steer)
"""

from __future__ import annotations

from typing import Optional

from .understeer import SLOPE_NAME, SLOPE_UNIT

# ------------------------------------------------------------------
# Constants
# ------------------------------------------------------------------

R2_STRONG_THRESHOLD = 0.98
R2_ACCEPTABLE_THRESHOLD = 0.90

_REQUIRED_KEYS = ("ku_deg_per_g", "r2", "cutoff_idx", "n_points", "ay_cutoff_g")


def fit_quality(r2: float) -> str:
    """Qualitative label for an R² value."""
    if r2 >= R2_STRONG_THRESHOLD:
        return "strong"
    if r2 >= R2_ACCEPTABLE_THRESHOLD:
        return "acceptable"
    return "weak"


def describe_fit(
    summary: dict,
    slope_name: str = SLOPE_NAME,
    slope_unit: str = SLOPE_UNIT,
    x_unit: str = "g",
) -> str:
    """Render a fit summary as text.

    Parameters
    ----------
    summary : dict
        As returned by :meth:`UndersteerEstimator.summary`.  Must contain
        ``ku_deg_per_g``, ``r2``, ``cutoff_idx``, ``n_points`` and
        ``ay_cutoff_g``.
    slope_name, slope_unit, x_unit : str
        Labels used in the text.

    Returns
    -------
    str

    Raises
    ------
    KeyError
        If *summary* lacks one of the required keys.
    """
    missing = [k for k in _REQUIRED_KEYS if k not in summary]
    if missing:
        raise KeyError(f"summary is missing {', '.join(missing)}")

    slope = summary["ku_deg_per_g"]
    r2 = summary["r2"]
    cutoff = int(summary["cutoff_idx"])
    n = int(summary["n_points"])

    parts = [
        f"Estimated {slope_name} = {slope:.3f} {slope_unit} "
        f"({fit_quality(r2)} linear fit, R^2 = {r2:.3f})."
    ]
    if cutoff >= n:
        parts.append(f"All {n} points lie in the linear region.")
    else:
        parts.append(
            f"The linear region ends at point {cutoff} of {n} "
            f"(x ~ {summary['ay_cutoff_g']:.2f} {x_unit})."
        )
    return " ".join(parts)


def get_gradient_narrative(
    summary: Optional[dict] = None,
    ay=None,
    steer=None,
    detector_kwargs: Optional[dict] = None,
) -> str:
    """Generate the report from a precomputed summary or from raw data.

    Parameters
    ----------
    summary : dict, optional
        Precomputed summary (Path 1).
    ay, steer : array-like, optional
        Raw skidpad samples (Path 2).  Take precedence over *summary*.
    detector_kwargs : dict, optional
        Options forwarded to :class:`LinearRegionDetector` for Path 2
        (e.g. ``{"robust_method": "bisquare"}``).

    Raises
    ------
    ValueError
        If neither *summary* nor (*ay*, *steer*) is provided.
    """
    if ay is not None and steer is not None:
        from .detector import LinearRegionDetector
        from .understeer import UndersteerEstimator

        detector = LinearRegionDetector(**(detector_kwargs or {}))
        summary = UndersteerEstimator(ay, steer, detector=detector).summary()
    elif summary is None:
        raise ValueError(
            "Provide either (ay, steer) for raw data, or summary for precomputed data."
        )
    return describe_fit(summary)
