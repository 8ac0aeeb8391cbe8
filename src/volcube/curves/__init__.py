"""
Curves package - discount/projection curves for the ATM forward swap rate.

Provides:
- Curve: Curve object with discount factors and interpolation
- Interpolators used by curves and vol grids
"""

from .curve import Curve, create_flat_curve
from .interpolation import (
    Interpolator,
    LinearInterpolator,
    CubicSplineInterpolator,
    BilinearInterpolator,
    create_interpolator,
)

__all__ = [
    "Curve",
    "create_flat_curve",
    "Interpolator",
    "LinearInterpolator",
    "CubicSplineInterpolator",
    "BilinearInterpolator",
    "create_interpolator",
]
