"""
Tests for core.image.geometry module.

Covers rotated bounding boxes, the proportional size rule, crop matrices and
rounded-rectangle masks.
"""

import math

import numpy as np
import pytest

from api.exceptions import InvalidGeometry, InvalidScaleFactor, SurfaceAllocationError
from core.image.geometry import (
    build_crop_matrix,
    calculate_rotated_size,
    calculate_scaled_size,
    corner_radius,
    round_half_up,
    rounded_rect_mask,
    validate_geometry,
    validate_surface_size,
)
from schemas import CropGeometry


class TestCalculateRotatedSize:
    """Tests for calculate_rotated_size function."""

    @pytest.mark.parametrize("width,height", [(100, 50), (1, 1), (640, 480), (37, 1001)])
    def test_zero_rotation_is_identity(self, width, height):
        assert calculate_rotated_size(width, height, 0) == (width, height)

    @pytest.mark.parametrize("width,height", [(100, 50), (640, 480), (37, 1001)])
    def test_quarter_turn_swaps_sides(self, width, height):
        assert calculate_rotated_size(width, height, 90) == (height, width)
        assert calculate_rotated_size(width, height, -90) == (height, width)
        assert calculate_rotated_size(width, height, 270) == (height, width)

    def test_half_turn_keeps_size(self):
        assert calculate_rotated_size(200, 100, 180) == (200, 100)

    def test_diagonal_rounds_up(self):
        # 100 * sqrt(2) = 141.42...
        assert calculate_rotated_size(100, 100, 45) == (142, 142)

    def test_fractional_input(self):
        width, height = calculate_rotated_size(10.2, 20.7, 0)
        assert (width, height) == (11, 21)


class TestCalculateScaledSize:
    """Tests for calculate_scaled_size function."""

    def test_large_square(self):
        assert calculate_scaled_size(3000, 3000, 1.5) == (2000, 2000)

    def test_rounds_to_nearest(self):
        # 1001 / 2 = 500.5 -> 501, 999 / 2 = 499.5 -> 500
        assert calculate_scaled_size(1001, 999, 2) == (501, 500)

    def test_scale_up(self):
        assert calculate_scaled_size(100, 50, 0.5) == (200, 100)

    def test_floored_at_one(self):
        assert calculate_scaled_size(3, 1, 10) == (1, 1)

    def test_monotonic(self):
        factors = [0.25, 0.5, 1.0, 1.1, 1.5, 2.0, 3.7, 10.0]
        sizes = [calculate_scaled_size(1234, 567, f) for f in factors]
        for bigger, smaller in zip(sizes, sizes[1:]):
            assert smaller[0] <= bigger[0]
            assert smaller[1] <= bigger[1]

    @pytest.mark.parametrize("factor", [0, -1, -0.5, math.nan, math.inf, None])
    def test_invalid_factor(self, factor):
        with pytest.raises(InvalidScaleFactor):
            calculate_scaled_size(100, 100, factor)


class TestRoundHalfUp:
    def test_halves_round_up(self):
        assert round_half_up(2.5) == 3
        assert round_half_up(3.5) == 4
        assert round_half_up(2.4999) == 2


class TestValidation:
    """Tests for surface and geometry validation."""

    def test_valid_surface(self):
        validate_surface_size(1, 1)
        validate_surface_size(1000, 1000)

    @pytest.mark.parametrize("width,height", [(0, 10), (10, 0), (-5, 10)])
    def test_non_positive_surface(self, width, height):
        with pytest.raises(SurfaceAllocationError):
            validate_surface_size(width, height)

    def test_surface_over_ceiling(self):
        with pytest.raises(SurfaceAllocationError) as exc_info:
            validate_surface_size(2000, 2000, max_pixels=1_000_000)
        assert exc_info.value.status_code == 413

    def test_geometry_radius_out_of_range(self):
        geometry = CropGeometry()
        geometry.border_radius = 1.5
        with pytest.raises(InvalidGeometry):
            validate_geometry(geometry)

    def test_geometry_not_finite(self):
        geometry = CropGeometry()
        geometry.rotation = math.inf
        with pytest.raises(InvalidGeometry):
            validate_geometry(geometry)


class TestBuildCropMatrix:
    """Tests for build_crop_matrix function."""

    def test_identity(self):
        geometry = CropGeometry(x=0, y=0, width=100, height=50)
        matrix = build_crop_matrix(geometry, 100, 50)
        np.testing.assert_allclose(matrix, [[1, 0, 0], [0, 1, 0]])

    def test_offset_translates(self):
        geometry = CropGeometry(x=10, y=20, width=100, height=50)
        matrix = build_crop_matrix(geometry, 100, 50)
        np.testing.assert_allclose(matrix, [[1, 0, -10], [0, 1, -20]])

    def test_scaled_canvas(self):
        geometry = CropGeometry(x=0, y=0, width=100, height=100)
        matrix = build_crop_matrix(geometry, 50, 50)
        np.testing.assert_allclose(matrix[:, :2], [[0.5, 0], [0, 0.5]])

    def test_quarter_turn_snaps_to_grid(self):
        geometry = CropGeometry(x=0, y=0, width=100, height=100, rotation=90)
        matrix = build_crop_matrix(geometry, 100, 100)
        assert matrix[0, 0] == 0.0
        assert matrix[1, 1] == 0.0
        np.testing.assert_allclose(matrix, [[0, -1, 99], [1, 0, 0]])

    def test_horizontal_flip(self):
        geometry = CropGeometry(x=0, y=0, width=100, height=100, flip_horizontal=True)
        matrix = build_crop_matrix(geometry, 100, 100)
        np.testing.assert_allclose(matrix, [[-1, 0, 99], [0, 1, 0]])


class TestRoundedRectMask:
    """Tests for rounded_rect_mask function."""

    def test_zero_radius_is_opaque(self):
        mask = rounded_rect_mask(40, 20, 0)
        assert mask.shape == (20, 40)
        assert np.all(mask == 1.0)

    def test_corners_cleared(self):
        mask = rounded_rect_mask(100, 100, 50)
        assert mask[0, 0] == 0.0
        assert mask[0, 99] == 0.0
        assert mask[99, 0] == 0.0
        assert mask[99, 99] == 0.0
        assert mask[50, 50] == 1.0
        # Edge midpoints stay inside the circle
        assert mask[0, 50] > 0.5
        assert mask[50, 0] > 0.5

    def test_values_in_range(self):
        mask = rounded_rect_mask(64, 32, 10)
        assert mask.min() >= 0.0
        assert mask.max() <= 1.0

    def test_corner_radius_clamped(self):
        assert corner_radius(100, 40, 1.0) == 20.0
        assert corner_radius(100, 40, 0.5) == 10.0
        assert corner_radius(100, 40, 0) == 0.0
