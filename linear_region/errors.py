"""
linear_region.errors
~~~~~~~~~~~~~~~~~~~~
Exception hierarchy shared by the estimator, the detector and the
record helpers.
"""

from __future__ import annotations


class LinearRegionError(Exception):
    """Base class for every error raised by this package."""


class InputValidationError(LinearRegionError, ValueError):
    """Raised when inputs fail a precondition before any fitting happens
    (length mismatch, non-finite values, too few points, bad records)."""


class ConfigurationError(InputValidationError):
    """Raised for an invalid or unrecognized configuration option."""


class NumericalFitError(LinearRegionError, RuntimeError):
    """Raised when the (weighted) least-squares system is singular, e.g.
    when every x value in the fitted subset is identical."""
