"""
Layered expiry x tenor grid.

A Cube holds one matrix per named layer (SABR parameters, or vols per
strike spread) on shared expiry and tenor axes, plus one bilinear
interpolator per layer.

Invariants:
- Axes are strictly increasing with at least 2 points each.
- Every layer matrix has shape (len(expiries), len(tenors)).
- Interpolators are derived state: any mutation marks them stale, and they
  are rebuilt by update_interpolators() or on the next read.
- The grid never shrinks; set_point inserts new axis values in place and
  shifts the tail of every layer by one row/column.
"""

from bisect import bisect_left
from typing import List, Optional, Sequence

import numpy as np
import pandas as pd

from ..curves.interpolation import BilinearInterpolator
from ..exceptions import (
    DimensionMismatchError,
    IndexOutOfRangeError,
    InvalidGridError,
    NonMonotonicInputError,
)


def check_strictly_increasing(values: Sequence[float], name: str) -> None:
    """Raise NonMonotonicInputError unless values are strictly increasing."""
    values = np.asarray(values, dtype=np.float64)
    if np.any(np.diff(values) <= 0):
        raise NonMonotonicInputError(f"{name} must be strictly increasing, got {values.tolist()}")


def on_axis(axis: Sequence[float], value: float) -> bool:
    """Exact-match ordered search."""
    i = bisect_left(axis, value)
    return i < len(axis) and axis[i] == value


class Cube:
    """
    Multi-layer 2-D grid with node insertion and bilinear interpolation.

    Attributes:
        expiries: Expiry axis (year fractions)
        tenors: Tenor axis (year fractions)
        n_layers: Number of layers
        layer_names: Optional layer labels
    """

    def __init__(
        self,
        expiries: Sequence[float],
        tenors: Sequence[float],
        n_layers: int,
        layer_names: Optional[Sequence[str]] = None
    ):
        if len(expiries) < 2:
            raise InvalidGridError(f"Cube needs at least 2 expiries, got {len(expiries)}")
        if len(tenors) < 2:
            raise InvalidGridError(f"Cube needs at least 2 tenors, got {len(tenors)}")
        if n_layers < 1:
            raise InvalidGridError(f"Cube needs at least 1 layer, got {n_layers}")
        check_strictly_increasing(expiries, "expiries")
        check_strictly_increasing(tenors, "tenors")
        if layer_names is not None and len(layer_names) != n_layers:
            raise DimensionMismatchError(
                f"{len(layer_names)} layer names for {n_layers} layers"
            )

        self._expiries = [float(x) for x in expiries]
        self._tenors = [float(x) for x in tenors]
        self.n_layers = n_layers
        self.layer_names = tuple(layer_names) if layer_names is not None else None

        self._points = np.zeros((n_layers, len(self._expiries), len(self._tenors)))
        self._interpolators: List[BilinearInterpolator] = []
        self._dirty = True
        self.update_interpolators()

    # ==============================================================================
    # Accessors

    @property
    def expiries(self) -> np.ndarray:
        return np.array(self._expiries)

    @property
    def tenors(self) -> np.ndarray:
        return np.array(self._tenors)

    @property
    def shape(self):
        """(n_layers, n_expiries, n_tenors)"""
        return self._points.shape

    @property
    def points(self) -> np.ndarray:
        """Copy of all layers, shape (n_layers, n_expiries, n_tenors)."""
        return self._points.copy()

    def layer(self, index: int) -> np.ndarray:
        """Copy of one layer matrix."""
        self._check_layer(index)
        return self._points[index].copy()

    def layer_index(self, name: str) -> int:
        """Position of a named layer."""
        if self.layer_names is None or name not in self.layer_names:
            raise KeyError(f"Unknown layer: {name}")
        return self.layer_names.index(name)

    def layer_frame(self, layer) -> pd.DataFrame:
        """
        One layer as a DataFrame (expiries as index, tenors as columns).

        Args:
            layer: Layer index or name
        """
        index = self.layer_index(layer) if isinstance(layer, str) else layer
        return pd.DataFrame(
            self.layer(index),
            index=pd.Index(self._expiries, name="expiry"),
            columns=pd.Index(self._tenors, name="tenor"),
        )

    def contains(self, expiry: float, tenor: float) -> bool:
        """True if both coordinates are already on their axes."""
        return on_axis(self._expiries, expiry) and on_axis(self._tenors, tenor)

    # ==============================================================================
    # Mutation

    def set_element(self, layer: int, row: int, col: int, value: float) -> None:
        """Overwrite one stored value. Never resizes the grid."""
        self._check_layer(layer)
        if not 0 <= row < len(self._expiries):
            raise IndexOutOfRangeError(
                f"Row {row} outside expiry axis of size {len(self._expiries)}"
            )
        if not 0 <= col < len(self._tenors):
            raise IndexOutOfRangeError(
                f"Column {col} outside tenor axis of size {len(self._tenors)}"
            )
        self._points[layer, row, col] = value
        self._dirty = True

    def set_layer(self, layer: int, matrix) -> None:
        """Replace one layer matrix."""
        self._check_layer(layer)
        matrix = np.asarray(matrix, dtype=np.float64)
        expected = (len(self._expiries), len(self._tenors))
        if matrix.shape != expected:
            raise DimensionMismatchError(
                f"Layer shape {matrix.shape} does not match grid shape {expected}"
            )
        self._points[layer] = matrix
        self._dirty = True

    def set_points(self, layers) -> None:
        """Replace all layers at once."""
        layers = np.asarray(layers, dtype=np.float64)
        if layers.shape != self._points.shape:
            raise DimensionMismatchError(
                f"Points shape {layers.shape} does not match cube shape {self._points.shape}"
            )
        self._points = layers.copy()
        self._dirty = True

    def set_point(self, expiry: float, tenor: float, values: Sequence[float]) -> None:
        """
        Write one value per layer at (expiry, tenor).

        Existing coordinates are overwritten. A coordinate missing from its
        axis is inserted at its ordered position, every layer gaining a zero
        row (or column) there before the values are written.
        """
        values = np.asarray(values, dtype=np.float64)
        if values.shape != (self.n_layers,):
            raise DimensionMismatchError(
                f"Got {values.size} values for {self.n_layers} layers"
            )
        expiry = float(expiry)
        tenor = float(tenor)

        row = bisect_left(self._expiries, expiry)
        col = bisect_left(self._tenors, tenor)

        new_expiry = None if on_axis(self._expiries, expiry) else expiry
        new_tenor = None if on_axis(self._tenors, tenor) else tenor
        if new_expiry is not None or new_tenor is not None:
            self.expand_layers(row, col, new_expiry, new_tenor)

        self._points[:, row, col] = values
        self._dirty = True

    def expand_layers(
        self,
        row: int,
        col: int,
        expiry: Optional[float] = None,
        tenor: Optional[float] = None
    ) -> None:
        """
        Insert a zero row for ``expiry`` at ``row`` and/or a zero column for
        ``tenor`` at ``col`` in every layer.

        Values at indices >= the insertion point shift by one; indices before
        it are untouched. The inserted coordinate must fit strictly between
        its neighbours.
        """
        if expiry is not None:
            self._check_insertion(self._expiries, row, expiry, "expiry")
        if tenor is not None:
            self._check_insertion(self._tenors, col, tenor, "tenor")

        points = self._points
        if expiry is not None:
            points = np.insert(points, row, 0.0, axis=1)
            self._expiries.insert(row, float(expiry))
        if tenor is not None:
            points = np.insert(points, col, 0.0, axis=2)
            self._tenors.insert(col, float(tenor))

        self._points = points
        self._dirty = True

    @staticmethod
    def _check_insertion(axis: List[float], index: int, value: float, name: str) -> None:
        if not 0 <= index <= len(axis):
            raise IndexOutOfRangeError(
                f"{name} insertion index {index} outside [0, {len(axis)}]"
            )
        if (index > 0 and axis[index - 1] >= value) or (index < len(axis) and axis[index] <= value):
            raise NonMonotonicInputError(
                f"Inserting {name} {value} at index {index} breaks the axis ordering"
            )

    # ==============================================================================
    # Interpolation

    def update_interpolators(self) -> None:
        """Rebuild every layer interpolator from the current matrices."""
        interpolators = []
        for k in range(self.n_layers):
            interp = BilinearInterpolator(extrapolate=True)
            interp.fit(self._expiries, self._tenors, self._points[k])
            interpolators.append(interp)
        self._interpolators = interpolators
        self._dirty = False

    def __call__(self, expiry: float, tenor: float) -> np.ndarray:
        """
        Per-layer bilinear values at (expiry, tenor).

        Points outside the grid are extrapolated linearly.
        """
        if self._dirty:
            self.update_interpolators()
        return np.array([interp(expiry, tenor) for interp in self._interpolators])

    # ==============================================================================

    def copy(self) -> "Cube":
        """Deep copy with fresh interpolators."""
        new = Cube(self._expiries, self._tenors, self.n_layers, self.layer_names)
        new.set_points(self._points)
        new.update_interpolators()
        return new

    def _check_layer(self, layer: int) -> None:
        if not 0 <= layer < self.n_layers:
            raise IndexOutOfRangeError(f"Layer {layer} outside [0, {self.n_layers})")

    def __repr__(self) -> str:
        return (f"Cube(expiries={len(self._expiries)}, tenors={len(self._tenors)}, "
                f"layers={self.n_layers})")


__all__ = ["Cube", "check_strictly_increasing", "on_axis"]
