"""
linear_region
~~~~~~~~~~~~~
Robust slope estimation over the leading linear region of a noisy,
outlier-contaminated point set, with an understeer-gradient front end.

Core path:

    from linear_region import fit_linear_region

    fit, diagnostics = fit_linear_region(x, y, robust_method="bisquare")
    fit.slope, fit.cutoff_idx, diagnostics.r2

Skidpad path (steer in deg vs. lateral acceleration in g):

    from linear_region import estimate_understeer_gradient

    ku, fit, diagnostics = estimate_understeer_gradient(ay, steer)
"""

from .detector import (
    BoundaryFound,
    LinearRegionDetector,
    NoBoundary,
    RegionConfig,
    RegionDiagnostics,
    RegionFit,
    fit_linear_region,
)
from .errors import (
    ConfigurationError,
    InputValidationError,
    LinearRegionError,
    NumericalFitError,
)
from .narrative import describe_fit, get_gradient_narrative
from .records import RecordCheck, get_nested, set_nested, validate_records
from .robust import LineFit, bisquare_weights, huber_weights, robust_line, robust_scale
from .understeer import (
    UndersteerEstimator,
    compute_understeer_gradient,
    estimate_understeer_gradient,
)

__all__ = [
    "BoundaryFound",
    "LinearRegionDetector",
    "NoBoundary",
    "RegionConfig",
    "RegionDiagnostics",
    "RegionFit",
    "fit_linear_region",
    "ConfigurationError",
    "InputValidationError",
    "LinearRegionError",
    "NumericalFitError",
    "describe_fit",
    "get_gradient_narrative",
    "RecordCheck",
    "get_nested",
    "set_nested",
    "validate_records",
    "LineFit",
    "bisquare_weights",
    "huber_weights",
    "robust_line",
    "robust_scale",
    "UndersteerEstimator",
    "compute_understeer_gradient",
    "estimate_understeer_gradient",
]

__version__ = "0.1.0"
