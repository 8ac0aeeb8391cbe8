"""
Exception hierarchy for volcube.

Every library error derives from VolCubeError, so one except clause
catches any failure while building or querying a cube. Validation errors
also derive from ValueError and index errors from IndexError, matching
what the lower-level utilities raise.
"""

from typing import Optional


class VolCubeError(Exception):
    """Base exception for all library errors."""


# ==============================================================================
# Input validation
# ==============================================================================

class ValidationError(VolCubeError, ValueError):
    """Invalid input data entering a grid or cube."""


class InvalidGridError(ValidationError):
    """Grid axes are too short, or a grid lies outside the bounds it must stay within."""


class NonMonotonicInputError(ValidationError):
    """Expiries, tenors or strike spreads are not strictly increasing."""


class DimensionMismatchError(ValidationError):
    """Layer, matrix or point shape is inconsistent with the grid axes."""


class IndexOutOfRangeError(VolCubeError, IndexError):
    """Direct element access beyond the current grid bounds."""


# ==============================================================================
# Numerical issues
# ==============================================================================

class NumericalError(VolCubeError):
    """Base for errors arising from numerical computation."""


class CalibrationAccuracyError(NumericalError):
    """
    A SABR fit did not reach the required accuracy.

    Attributes:
        error: RMS volatility residual of the fit
        tolerance: Accuracy threshold the fit had to beat
        expiry: Expiry of the failed node, when known
        tenor: Tenor of the failed node, when known
    """

    def __init__(
        self,
        message: str,
        error: float,
        tolerance: float,
        expiry: Optional[float] = None,
        tenor: Optional[float] = None
    ):
        super().__init__(message)
        self.error = error
        self.tolerance = tolerance
        self.expiry = expiry
        self.tenor = tenor


__all__ = [
    "VolCubeError",
    "ValidationError",
    "InvalidGridError",
    "NonMonotonicInputError",
    "DimensionMismatchError",
    "IndexOutOfRangeError",
    "NumericalError",
    "CalibrationAccuracyError",
]
