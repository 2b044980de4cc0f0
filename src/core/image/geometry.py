"""
Geometric calculations for the transform pipeline.

Handles geometric operations:
- Rotated bounding boxes and proportional size rules
- Affine matrix composition for crop/rotate/flip sampling
- Rounded-rectangle coverage masks
- Surface and geometry validation
"""

import logging
import math
from typing import Tuple

import numpy as np

from api.exceptions import InvalidGeometry, InvalidScaleFactor, SurfaceAllocationError
from common.constants import EngineConstants, GeometryConstants
from schemas.geometry import CropGeometry

logger = logging.getLogger(__name__)

# Matrix entries closer to zero than this are snapped to exactly zero so that
# right-angle rotations and flips sample on the pixel grid.
_SNAP_EPSILON = 1e-12


def round_half_up(value: float) -> int:
    """Round to the nearest integer, halves away from zero for positive values."""
    return int(math.floor(value + 0.5))


def calculate_rotated_size(width: float, height: float, rotation: float) -> Tuple[int, int]:
    """
    Bounding box of a ``width`` x ``height`` rectangle rotated by ``rotation`` degrees.

    Args:
        width: Rectangle width
        height: Rectangle height
        rotation: Rotation angle in degrees

    Returns:
        Tuple of (width, height), both rounded up
    """
    radians = math.radians(rotation)
    cos = abs(math.cos(radians))
    sin = abs(math.sin(radians))

    rotated_width = width * cos + height * sin
    rotated_height = width * sin + height * cos

    # Trim floating point noise (cos(90deg) != 0) before rounding up
    return (math.ceil(round(rotated_width, 9)), math.ceil(round(rotated_height, 9)))


def calculate_scaled_size(width: int, height: int, scale_factor: float) -> Tuple[int, int]:
    """
    Output size of a proportional resize: ``round(dim / scale_factor)``, at least 1.

    Args:
        width: Source width
        height: Source height
        scale_factor: Divisor applied to both dimensions

    Returns:
        Tuple of (width, height)

    Raises:
        InvalidScaleFactor: If scale_factor is not a finite positive number
    """
    if scale_factor is None or not math.isfinite(scale_factor) or scale_factor <= 0:
        raise InvalidScaleFactor(scale_factor)

    minimum = GeometryConstants.MIN_SCALED_DIMENSION
    return (
        max(minimum, round_half_up(width / scale_factor)),
        max(minimum, round_half_up(height / scale_factor)),
    )


def validate_surface_size(
    width: int, height: int, max_pixels: int = EngineConstants.MAX_SURFACE_PIXELS
) -> None:
    """
    Check that a surface of the given size may be allocated.

    Raises:
        SurfaceAllocationError: If a dimension is not positive or the area exceeds max_pixels
    """
    minimum = EngineConstants.MIN_SURFACE_DIMENSION
    if width < minimum or height < minimum:
        raise SurfaceAllocationError(width, height, max_pixels)
    if width * height > max_pixels:
        raise SurfaceAllocationError(width, height, max_pixels)


def validate_geometry(geometry: CropGeometry) -> None:
    """
    Validate numeric ranges of a crop geometry.

    Raises:
        InvalidGeometry: If a coordinate is not finite or the corner radius is outside [0, 1]
    """
    for field in ("x", "y", "rotation"):
        value = getattr(geometry, field)
        if not math.isfinite(value):
            raise InvalidGeometry(field, value, "must be finite")

    if not math.isfinite(geometry.border_radius) or not 0.0 <= geometry.border_radius <= 1.0:
        raise InvalidGeometry("border_radius", geometry.border_radius, "must be within [0, 1]")


def build_crop_matrix(
    geometry: CropGeometry, output_width: int, output_height: int
) -> np.ndarray:
    """
    Compose the source-to-output affine matrix of a crop.

    The sampled rectangle is scaled onto the output surface, centered on the
    output center, rotated around it and finally mirrored per axis. The
    returned matrix follows OpenCV's pixel-center convention and can be
    passed directly to ``cv2.warpAffine``.

    Args:
        geometry: Crop geometry (sampling rectangle, rotation, flips)
        output_width: Output surface width
        output_height: Output surface height

    Returns:
        2x3 float64 affine matrix
    """
    radians = math.radians(geometry.rotation)
    cos, sin = math.cos(radians), math.sin(radians)
    rotate = np.array([[cos, -sin], [sin, cos]], dtype=np.float64)
    flip = np.diag(
        [-1.0 if geometry.flip_horizontal else 1.0, -1.0 if geometry.flip_vertical else 1.0]
    )
    scale = np.diag([output_width / geometry.width, output_height / geometry.height])

    rotate_flip = rotate @ flip
    linear = rotate_flip @ scale
    linear[np.abs(linear) < _SNAP_EPSILON] = 0.0

    center = np.array([output_width / 2.0, output_height / 2.0])
    origin = np.array([geometry.x, geometry.y], dtype=np.float64)
    translation = center - linear @ origin - rotate_flip @ center

    # Shift from continuous coordinates (pixel centers at +0.5) to OpenCV's
    half = np.array([0.5, 0.5])
    translation = translation + linear @ half - half
    translation[np.abs(translation) < _SNAP_EPSILON] = 0.0

    return np.hstack([linear, translation.reshape(2, 1)])


def rounded_rect_mask(width: int, height: int, radius: float) -> np.ndarray:
    """
    Coverage mask of a rounded rectangle filling a ``width`` x ``height`` surface.

    Args:
        width: Surface width
        height: Surface height
        radius: Corner radius, clamped to half the shorter side

    Returns:
        float32 array of shape (height, width) with values in [0, 1]
    """
    radius = min(radius, width / 2.0, height / 2.0)
    if radius <= 0:
        return np.ones((height, width), dtype=np.float32)

    xs = np.arange(width, dtype=np.float64) + 0.5
    ys = np.arange(height, dtype=np.float64) + 0.5
    dx = np.maximum(np.maximum(radius - xs, xs - (width - radius)), 0.0)
    dy = np.maximum(np.maximum(radius - ys, ys - (height - radius)), 0.0)

    distance = np.sqrt(dx[np.newaxis, :] ** 2 + dy[:, np.newaxis] ** 2)
    coverage = np.where(distance > 0, np.clip(radius - distance + 0.5, 0.0, 1.0), 1.0)

    return coverage.astype(np.float32)


def corner_radius(width: int, height: int, fraction: float) -> float:
    """Pixel corner radius for a fractional border radius on a ``width`` x ``height`` surface."""
    radius = min(width, height) * fraction / 2.0
    return min(radius, width / 2.0, height / 2.0)
