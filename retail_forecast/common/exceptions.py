"""
Pipeline Exceptions
===================

Error types raised by the loading, fitting and evaluation steps.
"""

from typing import Optional


class ParseError(ValueError):
    """Raised when an input table has a missing column or a malformed field."""


class FitError(RuntimeError):
    """Raised when a forecasting model fails to fit or does not converge."""

    def __init__(self, message: str, model: Optional[str] = None):
        self.model = model
        self.reason = message
        if model:
            message = f"[{model}] {message}"
        super().__init__(message)


class ForecastAlignmentError(ValueError):
    """Raised when forecast dates do not line up with the held-out actuals."""
