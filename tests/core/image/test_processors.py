"""
Tests for core.image.processors module.

Runs the crop, proportional resize and preview pipelines on synthetic images.
"""

import cv2
import numpy as np
import pytest

from api.exceptions import InvalidScaleFactor, SurfaceAllocationError
from core.image.converters import decode_image
from core.image.processors import (
    crop,
    generate_preview,
    preview_size,
    render_crop,
    resample,
    resize_proportional,
)
from schemas import CropGeometry, ResizeTarget


def _decode(data: bytes) -> np.ndarray:
    return cv2.imdecode(np.frombuffer(data, np.uint8), cv2.IMREAD_UNCHANGED)


class TestCrop:
    """Tests for the crop pipeline."""

    @pytest.mark.parametrize(
        "x,y,width,height",
        [(0, 0, 100, 200), (10, 20, 50, 50), (350, 250, 120, 80), (-30, -30, 60, 40)],
    )
    def test_identity_geometry_dimensions(self, gradient_image, x, y, width, height):
        geometry = CropGeometry(x=x, y=y, width=width, height=height)

        result = _decode(crop(gradient_image, geometry))

        assert result.shape == (height, width, 4)

    def test_top_left_crop_matches_source(self, gradient_image):
        geometry = CropGeometry(
            x=0, y=0, width=100, height=200, rotationDegrees=0, borderRadiusFraction=0
        )

        result = _decode(crop(gradient_image, geometry))

        assert result.shape == (200, 100, 4)
        np.testing.assert_array_equal(result[:, :, :3], gradient_image[:200, :100])
        assert np.all(result[:, :, 3] == 255)

    def test_offset_crop_matches_source(self, gradient_image):
        geometry = CropGeometry(x=37, y=11, width=64, height=48)

        result = _decode(crop(gradient_image, geometry))

        np.testing.assert_array_equal(result[:, :, :3], gradient_image[11:59, 37:101])

    def test_quarter_turn(self, gradient_image):
        geometry = CropGeometry(x=0, y=0, width=100, height=100, rotation=90)

        result = _decode(crop(gradient_image, geometry))

        expected = np.rot90(gradient_image[:100, :100], k=-1)
        np.testing.assert_array_equal(result[:, :, :3], expected)

    def test_horizontal_flip(self, gradient_image):
        geometry = CropGeometry(x=0, y=0, width=100, height=80, flip_horizontal=True)

        result = _decode(crop(gradient_image, geometry))

        np.testing.assert_array_equal(result[:, :, :3], gradient_image[:80, :100][:, ::-1])

    def test_vertical_flip(self, gradient_image):
        geometry = CropGeometry(x=0, y=0, width=100, height=80, flip_vertical=True)

        result = _decode(crop(gradient_image, geometry))

        np.testing.assert_array_equal(result[:, :, :3], gradient_image[:80, :100][::-1, :])

    def test_out_of_bounds_is_transparent(self, gradient_image):
        geometry = CropGeometry(x=-50, y=-50, width=100, height=100)

        result = _decode(crop(gradient_image, geometry))

        assert result[10, 10, 3] == 0
        assert result[90, 90, 3] == 255

    def test_fully_outside_source(self, gradient_image):
        geometry = CropGeometry(x=5000, y=5000, width=40, height=30)

        result = _decode(crop(gradient_image, geometry))

        assert result.shape == (30, 40, 4)
        assert np.all(result[:, :, 3] == 0)

    def test_rounded_corners(self, gradient_image):
        geometry = CropGeometry(x=0, y=0, width=100, height=100, border_radius=1.0)

        result = _decode(crop(gradient_image, geometry))

        assert result[0, 0, 3] == 0
        assert result[99, 99, 3] == 0
        assert result[50, 50, 3] == 255

    def test_resize_target(self, gradient_image):
        geometry = CropGeometry(x=0, y=0, width=200, height=100)
        target = ResizeTarget(enabled=True, width=64, height=32)

        result = _decode(crop(gradient_image, geometry, target))

        assert result.shape == (32, 64, 4)

    def test_disabled_resize_target_ignored(self, gradient_image):
        geometry = CropGeometry(x=0, y=0, width=200, height=100)
        target = ResizeTarget(enabled=False, width=64, height=32)

        result = _decode(crop(gradient_image, geometry, target))

        assert result.shape == (100, 200, 4)

    def test_deterministic(self, gradient_image):
        geometry = CropGeometry(x=12.5, y=7.25, width=90, height=60, rotation=33, border_radius=0.4)

        assert crop(gradient_image, geometry) == crop(gradient_image, geometry)

    def test_zero_size_rejected(self, gradient_image):
        with pytest.raises(SurfaceAllocationError):
            crop(gradient_image, CropGeometry(width=0, height=10))

    def test_pixel_ceiling(self, gradient_image):
        with pytest.raises(SurfaceAllocationError):
            crop(gradient_image, CropGeometry(width=100, height=100), max_pixels=5000)

    def test_grayscale_source(self):
        gray = np.full((50, 50), 77, dtype=np.uint8)

        surface = render_crop(gray, CropGeometry(x=0, y=0, width=50, height=50), 50, 50)

        assert surface.shape == (50, 50, 4)
        assert np.all(surface[:, :, :3] == 77)


class TestResizeProportional:
    """Tests for the proportional resize pipeline."""

    def test_large_square(self):
        source = np.zeros((3000, 3000, 3), dtype=np.uint8)

        result = _decode(resize_proportional(source, 1.5))

        assert result.shape[:2] == (2000, 2000)

    def test_monotonic(self, gradient_image):
        sizes = []
        for factor in [0.8, 1.0, 1.5, 2.0, 4.5]:
            result = _decode(resize_proportional(gradient_image, factor))
            sizes.append(result.shape[:2])

        for bigger, smaller in zip(sizes, sizes[1:]):
            assert smaller[0] <= bigger[0]
            assert smaller[1] <= bigger[1]

    def test_factor_one_keeps_pixels(self, gradient_image):
        result = _decode(resize_proportional(gradient_image, 1.0))

        np.testing.assert_array_equal(result, gradient_image)

    @pytest.mark.parametrize("factor", [0, -2])
    def test_invalid_factor(self, gradient_image, factor):
        with pytest.raises(InvalidScaleFactor):
            resize_proportional(gradient_image, factor)


class TestResample:
    def test_same_size_returns_copy(self, gradient_image):
        result = resample(gradient_image, 400, 300)

        assert result is not gradient_image
        np.testing.assert_array_equal(result, gradient_image)

    def test_upscale(self, gradient_image):
        assert resample(gradient_image, 800, 600).shape == (600, 800, 3)


class TestPreview:
    """Tests for crop previews."""

    def test_preview_size_scales_down(self):
        assert preview_size(600, 400) == (300, 200)
        assert preview_size(400, 1200) == (100, 300)

    def test_preview_size_never_upscales(self):
        assert preview_size(120, 80) == (120, 80)

    def test_preview_is_jpeg(self, gradient_image):
        geometry = CropGeometry(x=0, y=0, width=400, height=300)

        data = generate_preview(gradient_image, geometry)

        assert data[:2] == b"\xff\xd8"
        preview = decode_image(data)
        assert preview.shape == (225, 300, 3)

    def test_small_preview_keeps_size(self, gradient_image):
        geometry = CropGeometry(x=10, y=10, width=80, height=60)

        preview = decode_image(generate_preview(gradient_image, geometry))

        assert preview.shape[:2] == (60, 80)
