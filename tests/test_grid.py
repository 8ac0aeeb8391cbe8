"""
Tests for the layered expiry x tenor grid.
"""

import numpy as np
import pandas as pd
import pytest

from volcube.exceptions import (
    DimensionMismatchError,
    IndexOutOfRangeError,
    InvalidGridError,
    NonMonotonicInputError,
)
from volcube.vol.grid import Cube


@pytest.fixture
def cube():
    """2 layers on a 3x2 grid, layer 1 = 10 x layer 0."""
    grid = Cube([1.0, 2.0, 5.0], [2.0, 10.0], 2, layer_names=("a", "b"))
    base = np.array([[1.0, 2.0], [3.0, 4.0], [5.0, 6.0]])
    grid.set_layer(0, base)
    grid.set_layer(1, 10 * base)
    return grid


class TestConstruction:
    """Tests for grid construction checks."""

    def test_zero_filled(self):
        """Test a new grid holds zeros."""
        grid = Cube([1.0, 2.0], [1.0, 2.0], 3)
        assert grid.shape == (3, 2, 2)
        assert np.all(grid.points == 0.0)
        np.testing.assert_array_equal(grid(1.5, 1.5), np.zeros(3))

    def test_too_few_expiries(self):
        """Test a single expiry is rejected."""
        with pytest.raises(InvalidGridError):
            Cube([1.0], [1.0, 2.0], 1)

    def test_too_few_tenors(self):
        """Test a single tenor is rejected."""
        with pytest.raises(InvalidGridError):
            Cube([1.0, 2.0], [1.0], 1)

    def test_no_layers(self):
        """Test at least one layer is required."""
        with pytest.raises(InvalidGridError):
            Cube([1.0, 2.0], [1.0, 2.0], 0)

    def test_non_monotonic_axis(self):
        """Test axes must be strictly increasing."""
        with pytest.raises(NonMonotonicInputError):
            Cube([1.0, 1.0, 2.0], [1.0, 2.0], 1)
        with pytest.raises(NonMonotonicInputError):
            Cube([1.0, 2.0], [3.0, 2.0], 1)

    def test_layer_names_length(self):
        """Test one name per layer."""
        with pytest.raises(DimensionMismatchError):
            Cube([1.0, 2.0], [1.0, 2.0], 2, layer_names=("a",))

    def test_validation_errors_are_value_errors(self):
        """Test grid errors can be caught as ValueError."""
        with pytest.raises(ValueError):
            Cube([1.0], [1.0, 2.0], 1)


class TestMutation:
    """Tests for element, layer and point writes."""

    def test_set_element(self, cube):
        """Test single value write."""
        cube.set_element(1, 2, 0, -1.0)
        assert cube.layer(1)[2, 0] == -1.0
        assert cube(5.0, 2.0)[1] == -1.0

    @pytest.mark.parametrize("layer, row, col", [(2, 0, 0), (0, 3, 0), (0, 0, 2), (0, -1, 0)])
    def test_set_element_out_of_range(self, cube, layer, row, col):
        """Test out-of-bounds indices raise without resizing."""
        with pytest.raises(IndexOutOfRangeError):
            cube.set_element(layer, row, col, 1.0)
        assert cube.shape == (2, 3, 2)

    def test_index_errors_are_index_errors(self, cube):
        """Test out-of-range access can be caught as IndexError."""
        with pytest.raises(IndexError):
            cube.layer(5)

    def test_set_layer_shape(self, cube):
        """Test a layer must match the axis sizes."""
        with pytest.raises(DimensionMismatchError):
            cube.set_layer(0, np.zeros((2, 2)))

    def test_set_points_shape(self, cube):
        """Test bulk replacement must match the cube shape."""
        with pytest.raises(DimensionMismatchError):
            cube.set_points(np.zeros((1, 3, 2)))

    def test_set_point_overwrites_existing_node(self, cube):
        """Test an existing coordinate is overwritten in place."""
        cube.set_point(2.0, 10.0, [7.0, 70.0])

        assert cube.shape == (2, 3, 2)
        np.testing.assert_array_equal(cube(2.0, 10.0), [7.0, 70.0])

    def test_set_point_value_count(self, cube):
        """Test one value per layer is required."""
        with pytest.raises(DimensionMismatchError):
            cube.set_point(3.0, 5.0, [1.0])

    def test_set_point_inserts_expiry(self, cube):
        """Test a new expiry inserts a row in every layer."""
        before = cube.points
        cube.set_point(3.0, 2.0, [9.0, 90.0])

        assert cube.shape == (2, 4, 2)
        np.testing.assert_array_equal(cube.expiries, [1.0, 2.0, 3.0, 5.0])
        np.testing.assert_array_equal(cube.points[:, 2, 0], [9.0, 90.0])
        # New row is zero apart from the written node
        np.testing.assert_array_equal(cube.points[:, 2, 1], [0.0, 0.0])
        # Rows before the insertion are untouched, rows after shift by one
        np.testing.assert_array_equal(cube.points[:, :2, :], before[:, :2, :])
        np.testing.assert_array_equal(cube.points[:, 3, :], before[:, 2, :])

    def test_set_point_inserts_both_axes(self, cube):
        """Test a point new on both axes grows both axes by one."""
        before = cube.points
        cube.set_point(0.5, 5.0, [1.5, 15.0])

        assert cube.shape == (2, 4, 3)
        np.testing.assert_array_equal(cube.expiries, [0.5, 1.0, 2.0, 5.0])
        np.testing.assert_array_equal(cube.tenors, [2.0, 5.0, 10.0])
        np.testing.assert_array_equal(cube(0.5, 5.0), [1.5, 15.0])
        np.testing.assert_array_equal(cube.points[:, 1:, 0], before[:, :, 0])
        np.testing.assert_array_equal(cube.points[:, 1:, 2], before[:, :, 1])

    def test_set_point_appends_at_end(self, cube):
        """Test insertion after the last axis value."""
        cube.set_point(10.0, 30.0, [1.0, 2.0])

        np.testing.assert_array_equal(cube.expiries, [1.0, 2.0, 5.0, 10.0])
        np.testing.assert_array_equal(cube.tenors, [2.0, 10.0, 30.0])
        np.testing.assert_array_equal(cube(10.0, 30.0), [1.0, 2.0])

    def test_round_trip_many_points(self):
        """Test every inserted point reads back exactly."""
        grid = Cube([1.0, 10.0], [1.0, 10.0], 1)
        points = {(4.0, 7.0): 0.3, (2.5, 1.0): 0.1, (7.5, 3.0): 0.7, (4.0, 3.0): 0.2}
        for (e, t), v in points.items():
            grid.set_point(e, t, [v])

        assert grid.shape == (1, 5, 4)
        for (e, t), v in points.items():
            assert grid(e, t)[0] == v


class TestExpandLayers:
    """Tests for the explicit insert-row/column primitive."""

    def test_insert_row(self, cube):
        """Test a zero row is inserted and the tail shifts."""
        before = cube.points
        cube.expand_layers(1, 0, expiry=1.5)

        np.testing.assert_array_equal(cube.expiries, [1.0, 1.5, 2.0, 5.0])
        np.testing.assert_array_equal(cube.points[:, 1, :], np.zeros((2, 2)))
        np.testing.assert_array_equal(cube.points[:, 0, :], before[:, 0, :])
        np.testing.assert_array_equal(cube.points[:, 2:, :], before[:, 1:, :])

    def test_insert_column(self, cube):
        """Test a zero column is inserted."""
        cube.expand_layers(0, 2, tenor=20.0)

        np.testing.assert_array_equal(cube.tenors, [2.0, 10.0, 20.0])
        np.testing.assert_array_equal(cube.points[:, :, 2], np.zeros((2, 3)))

    def test_insert_breaking_order(self, cube):
        """Test the inserted coordinate must fit between its neighbours."""
        with pytest.raises(NonMonotonicInputError):
            cube.expand_layers(0, 0, expiry=3.0)
        with pytest.raises(NonMonotonicInputError):
            cube.expand_layers(1, 0, expiry=2.0)

    def test_insert_index_out_of_range(self, cube):
        """Test the insertion index must lie within the axis."""
        with pytest.raises(IndexOutOfRangeError):
            cube.expand_layers(5, 0, expiry=9.0)


class TestInterpolation:
    """Tests for per-layer bilinear interpolation."""

    def test_nodes_reproduced(self, cube):
        """Test stored values are returned exactly at nodes."""
        points = cube.points
        for j, e in enumerate(cube.expiries):
            for k, t in enumerate(cube.tenors):
                np.testing.assert_array_equal(cube(e, t), points[:, j, k])

    def test_midpoint(self, cube):
        """Test bilinear value inside a cell."""
        np.testing.assert_allclose(cube(1.5, 6.0), [2.5, 25.0])

    def test_extrapolation_is_linear(self, cube):
        """Test points beyond the grid extend the boundary cells."""
        # Layer 0 along expiry between 2 and 5 rises 2 per 3 years
        value = cube(8.0, 2.0)[0]
        assert value == pytest.approx(7.0)
        assert np.all(np.isfinite(cube(20.0, 40.0)))

    def test_mutation_refreshes_interpolators(self, cube):
        """Test reads after a write see the new value."""
        cube(1.5, 6.0)
        cube.set_element(0, 0, 0, 101.0)
        assert cube(1.0, 2.0)[0] == 101.0

    def test_copy_is_independent(self, cube):
        """Test a copy does not share storage."""
        clone = cube.copy()
        clone.set_element(0, 0, 0, -5.0)
        assert cube(1.0, 2.0)[0] == 1.0
        assert clone.layer_names == cube.layer_names


class TestViews:
    """Tests for layer accessors."""

    def test_layer_index(self, cube):
        """Test layers can be looked up by name."""
        assert cube.layer_index("b") == 1
        with pytest.raises(KeyError):
            cube.layer_index("c")

    def test_layer_frame(self, cube):
        """Test DataFrame view of a layer."""
        frame = cube.layer_frame("a")

        assert isinstance(frame, pd.DataFrame)
        assert list(frame.index) == [1.0, 2.0, 5.0]
        assert list(frame.columns) == [2.0, 10.0]
        assert frame.loc[2.0, 10.0] == 4.0

    def test_contains(self, cube):
        """Test exact node membership."""
        assert cube.contains(2.0, 10.0)
        assert not cube.contains(2.0, 5.0)
