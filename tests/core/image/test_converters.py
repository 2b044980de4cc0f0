"""
Tests for core.image.converters module.

Tests decoding, lossless intermediate encoding, final format encoding and
base64 helpers.
"""

import base64

import cv2
import numpy as np
import pytest

from api.exceptions import DecodeError, EncodeError
from core.image.converters import (
    decode_image,
    encode,
    encode_image,
    encode_surface,
    ensure_bgra,
    flatten_alpha,
    from_base64,
    mime_type_for,
    to_base64,
    to_data_url,
)
from schemas import OutputFormat, OutputSettings


@pytest.fixture
def transparent_surface():
    """White BGRA surface that is fully transparent on its left half"""
    surface = np.full((40, 40, 4), 255, dtype=np.uint8)
    surface[:, :20, 3] = 0
    return surface


class TestDecodeImage:
    """Tests for decode_image function."""

    def test_decode_png(self, png_bytes):
        image = decode_image(png_bytes)
        assert image.shape == (240, 320, 3)
        assert image.dtype == np.uint8

    def test_decode_keeps_alpha(self, png_factory):
        image = decode_image(png_factory(20, 10, channels=4))
        assert image.shape == (10, 20, 4)

    def test_decode_16_bit(self):
        image16 = np.full((8, 8, 3), 65535, dtype=np.uint16)
        _, buffer = cv2.imencode(".png", image16)

        image = decode_image(buffer.tobytes())

        assert image.dtype == np.uint8
        assert np.all(image == 255)

    def test_empty_data(self):
        with pytest.raises(DecodeError):
            decode_image(b"")

    def test_corrupt_data(self):
        with pytest.raises(DecodeError) as exc_info:
            decode_image(b"definitely not an image")
        assert exc_info.value.status_code == 400


class TestChannels:
    """Tests for channel conversions."""

    def test_ensure_bgra_from_bgr(self, test_image):
        result = ensure_bgra(test_image)
        assert result.shape == (480, 640, 4)
        assert np.all(result[:, :, 3] == 255)

    def test_ensure_bgra_copies(self):
        image = np.zeros((5, 5, 4), dtype=np.uint8)
        result = ensure_bgra(image)
        result[0, 0, 0] = 9
        assert image[0, 0, 0] == 0

    def test_flatten_alpha_over_black(self, transparent_surface):
        result = flatten_alpha(transparent_surface)
        assert result.shape == (40, 40, 3)
        assert np.all(result[:, :20] == 0)
        assert np.all(result[:, 20:] == 255)

    def test_flatten_alpha_custom_background(self, transparent_surface):
        result = flatten_alpha(transparent_surface, background=(255, 255, 255))
        assert np.all(result == 255)


class TestEncode:
    """Tests for final format encoding."""

    def test_intermediate_is_lossless(self, transparent_surface):
        data = encode_surface(transparent_surface)
        assert data[:8] == b"\x89PNG\r\n\x1a\n"
        np.testing.assert_array_equal(decode_image(data), transparent_surface)

    def test_encode_jpg_drops_alpha(self, transparent_surface):
        data = encode(encode_surface(transparent_surface), OutputSettings(format="jpg"))

        assert data[:2] == b"\xff\xd8"
        image = decode_image(data)
        assert image.shape == (40, 40, 3)
        # Transparent half is flattened to black
        assert image[:, :16].max() <= 8
        assert image[:, 24:].min() >= 247

    def test_encode_png_keeps_alpha(self, transparent_surface):
        data = encode(encode_surface(transparent_surface), OutputSettings(format="png", quality=9))

        image = decode_image(data)
        np.testing.assert_array_equal(image, transparent_surface)

    def test_encode_webp(self, test_image):
        data = encode_image(test_image, OutputSettings(format="webp", quality=80))

        assert data[:4] == b"RIFF"
        assert data[8:12] == b"WEBP"

    def test_jpg_quality_affects_size(self, test_image):
        noisy = test_image.copy()
        noisy[::2, ::3] = 200

        high = encode_image(noisy, OutputSettings(format="jpg", quality=95))
        low = encode_image(noisy, OutputSettings(format="jpg", quality=10))

        assert len(high) > len(low)

    def test_unreadable_intermediate(self):
        with pytest.raises(EncodeError) as exc_info:
            encode(b"garbage", OutputSettings())
        assert exc_info.value.status_code == 500


class TestHelpers:
    """Tests for MIME types and base64 helpers."""

    @pytest.mark.parametrize(
        "output_format,expected",
        [("jpg", "image/jpeg"), ("png", "image/png"), (OutputFormat.WEBP, "image/webp")],
    )
    def test_mime_type_for(self, output_format, expected):
        assert mime_type_for(output_format) == expected

    def test_base64_roundtrip(self, png_bytes):
        assert from_base64(to_base64(png_bytes)) == png_bytes

    def test_from_base64_data_uri(self, png_bytes):
        uri = "data:image/png;base64," + base64.b64encode(png_bytes).decode()
        assert from_base64(uri) == png_bytes

    def test_from_base64_invalid(self):
        with pytest.raises(DecodeError):
            from_base64("not base64 at all!")

    def test_to_data_url(self):
        assert to_data_url(b"abc", "image/jpeg") == "data:image/jpeg;base64,YWJj"
