"""
Interpolation schemes shared by curves, smiles and vol grids.

Provides:
- LinearInterpolator: piecewise linear, flat or linear beyond the ends
- CubicSplineInterpolator: natural cubic spline, flat beyond the ends
- BilinearInterpolator: (expiry, tenor) grid interpolation
"""

from abc import ABC, abstractmethod
from typing import Optional, Tuple
import numpy as np
from scipy.interpolate import CubicSpline


def _sorted_knots(times, values) -> Tuple[np.ndarray, np.ndarray]:
    times = np.asarray(times, dtype=np.float64)
    values = np.asarray(values, dtype=np.float64)
    if times.shape != values.shape:
        raise ValueError("Times and values must have same length")
    if len(times) < 2:
        raise ValueError("Need at least 2 points for interpolation")
    order = np.argsort(times)
    return times[order], values[order]


def _segment(knots: np.ndarray, x: float) -> int:
    """Left knot of the segment used for x; end segments cover the outside."""
    i = int(np.searchsorted(knots, x, side='right')) - 1
    return min(max(i, 0), len(knots) - 2)


class Interpolator(ABC):
    """One-dimensional interpolator fitted on knot points."""

    @abstractmethod
    def fit(self, times: np.ndarray, values: np.ndarray) -> None:
        pass

    @abstractmethod
    def interpolate(self, t: float) -> float:
        pass

    def __call__(self, t: float) -> float:
        return self.interpolate(t)


class LinearInterpolator(Interpolator):
    """
    Piecewise linear interpolation.

    Values beyond the knots are held flat, or, with ``extrapolate=True``,
    continue along the first/last segment.
    """

    def __init__(self, extrapolate: bool = False):
        self.extrapolate = extrapolate
        self.times: Optional[np.ndarray] = None
        self.values: Optional[np.ndarray] = None

    def fit(self, times: np.ndarray, values: np.ndarray) -> None:
        self.times, self.values = _sorted_knots(times, values)

    def interpolate(self, t: float) -> float:
        if self.times is None:
            raise RuntimeError("Interpolator not fitted")

        if not self.extrapolate:
            t = min(max(t, self.times[0]), self.times[-1])

        i = _segment(self.times, t)
        x0, x1 = self.times[i], self.times[i + 1]
        y0, y1 = self.values[i], self.values[i + 1]
        if x1 == x0:
            return float(y0)
        return float(y0 + (y1 - y0) * (t - x0) / (x1 - x0))


class CubicSplineInterpolator(Interpolator):
    """
    Natural cubic spline (zero curvature at both ends), flat outside
    the knots.
    """

    def __init__(self):
        self.times: Optional[np.ndarray] = None
        self._spline: Optional[CubicSpline] = None

    def fit(self, times: np.ndarray, values: np.ndarray) -> None:
        self.times, values = _sorted_knots(times, values)
        self._spline = CubicSpline(self.times, values, bc_type='natural')

    def interpolate(self, t: float) -> float:
        if self._spline is None:
            raise RuntimeError("Interpolator not fitted")
        t = min(max(t, self.times[0]), self.times[-1])
        return float(self._spline(t))


class BilinearInterpolator:
    """
    Bilinear interpolation on a rectangular grid.

    Rows of the value matrix run along x (expiry), columns along y
    (tenor). With ``extrapolate=True`` the boundary cells are extended
    linearly; otherwise a query outside the grid raises ValueError.
    Grid nodes return their stored value exactly.
    """

    def __init__(self, extrapolate: bool = True):
        self.extrapolate = extrapolate
        self.x: Optional[np.ndarray] = None
        self.y: Optional[np.ndarray] = None
        self.z: Optional[np.ndarray] = None

    def fit(self, x: np.ndarray, y: np.ndarray, z: np.ndarray) -> None:
        """
        Args:
            x: Strictly increasing row coordinates
            y: Strictly increasing column coordinates
            z: Values, shape (len(x), len(y))
        """
        x = np.array(x, dtype=np.float64)
        y = np.array(y, dtype=np.float64)
        z = np.array(z, dtype=np.float64)
        if len(x) < 2 or len(y) < 2:
            raise ValueError("Need at least 2 points on each axis for bilinear interpolation")
        if z.shape != (len(x), len(y)):
            raise ValueError(f"Value matrix shape {z.shape} does not match axes ({len(x)}, {len(y)})")
        self.x, self.y, self.z = x, y, z

    def interpolate(self, x: float, y: float) -> float:
        if self.z is None:
            raise RuntimeError("Interpolator not fitted")

        inside = self.x[0] <= x <= self.x[-1] and self.y[0] <= y <= self.y[-1]
        if not (inside or self.extrapolate):
            raise ValueError(f"Point ({x}, {y}) outside interpolation range")

        i = _segment(self.x, x)
        j = _segment(self.y, y)
        wx = (x - self.x[i]) / (self.x[i + 1] - self.x[i])
        wy = (y - self.y[j]) / (self.y[j + 1] - self.y[j])

        cell = self.z[i:i + 2, j:j + 2]
        return float(
            (1.0 - wx) * (1.0 - wy) * cell[0, 0]
            + wx * (1.0 - wy) * cell[1, 0]
            + (1.0 - wx) * wy * cell[0, 1]
            + wx * wy * cell[1, 1]
        )

    def __call__(self, x: float, y: float) -> float:
        return self.interpolate(x, y)


_METHODS = {
    "linear": LinearInterpolator,
    "lin": LinearInterpolator,
    "cubic_spline": CubicSplineInterpolator,
    "cubic": CubicSplineInterpolator,
    "spline": CubicSplineInterpolator,
}


def create_interpolator(method: str) -> Interpolator:
    """Build a 1-D interpolator by name ("linear" or "cubic_spline")."""
    try:
        return _METHODS[method.lower()]()
    except KeyError:
        raise ValueError(f"Unknown interpolation method: {method}") from None


__all__ = [
    "Interpolator",
    "LinearInterpolator",
    "CubicSplineInterpolator",
    "BilinearInterpolator",
    "create_interpolator",
]
