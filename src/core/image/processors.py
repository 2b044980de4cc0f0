"""
Image transform operations.

Handles the crop and resize pipelines using OpenCV:
- Crop with rotation, flips and rounded corners, optional absolute resize
- Proportional (scale factor) resize
- Low resolution crop previews

Every operation is a pure function of its inputs. Results are returned as
lossless PNG bytes; conversion to the final output format is done
separately by ``core.image.converters.encode``.
"""

import logging
from typing import Optional, Tuple

import cv2
import numpy as np

from common.constants import EngineConstants
from schemas.geometry import CropGeometry, ResizeTarget
from schemas.output import OutputSettings

from .converters import encode_image, encode_surface, ensure_bgra
from .geometry import (
    build_crop_matrix,
    calculate_scaled_size,
    corner_radius,
    rounded_rect_mask,
    validate_geometry,
    validate_surface_size,
)

logger = logging.getLogger(__name__)


def resample(
    image: np.ndarray,
    width: int,
    height: int,
    max_pixels: int = EngineConstants.MAX_SURFACE_PIXELS,
) -> np.ndarray:
    """
    Resample an image to an exact size with a high-quality filter.

    Area interpolation is used when shrinking, bicubic when enlarging.

    Args:
        image: Input image
        width: Target width
        height: Target height
        max_pixels: Surface size ceiling

    Returns:
        Resampled image

    Raises:
        SurfaceAllocationError: If the target size is invalid
    """
    validate_surface_size(width, height, max_pixels)

    src_height, src_width = image.shape[:2]
    if (width, height) == (src_width, src_height):
        return image.copy()

    if width <= src_width and height <= src_height:
        interpolation = cv2.INTER_AREA
    else:
        interpolation = cv2.INTER_CUBIC

    return cv2.resize(image, (width, height), interpolation=interpolation)


def render_crop(
    source: np.ndarray,
    geometry: CropGeometry,
    output_width: int,
    output_height: int,
    max_pixels: int = EngineConstants.MAX_SURFACE_PIXELS,
) -> np.ndarray:
    """
    Render a crop geometry onto a transparent BGRA surface.

    The sampled source rectangle is drawn centered on the output surface,
    rotated around the center and mirrored per the flip flags. Areas that
    fall outside the source are left transparent. With a border radius the
    surface is restricted to a rounded rectangle of the output bounds.

    Args:
        source: Source raster
        geometry: Crop geometry
        output_width: Width of the surface to draw on
        output_height: Height of the surface to draw on
        max_pixels: Surface size ceiling

    Returns:
        BGRA surface of shape (output_height, output_width, 4)

    Raises:
        SurfaceAllocationError: If either surface size is invalid
        InvalidGeometry: If geometry values are out of range
    """
    validate_surface_size(geometry.width, geometry.height, max_pixels)
    validate_surface_size(output_width, output_height, max_pixels)
    validate_geometry(geometry)

    matrix = build_crop_matrix(geometry, output_width, output_height)

    surface = cv2.warpAffine(
        ensure_bgra(source),
        matrix,
        (output_width, output_height),
        flags=cv2.INTER_LINEAR,
        borderMode=cv2.BORDER_CONSTANT,
        borderValue=(0, 0, 0, 0),
    )

    if geometry.border_radius > 0:
        radius = corner_radius(output_width, output_height, geometry.border_radius)
        mask = rounded_rect_mask(output_width, output_height, radius)
        alpha = surface[:, :, 3].astype(np.float32) * mask
        surface[:, :, 3] = np.clip(np.rint(alpha), 0, 255).astype(np.uint8)

    return surface


def crop(
    source: np.ndarray,
    geometry: CropGeometry,
    resize_target: Optional[ResizeTarget] = None,
    max_pixels: int = EngineConstants.MAX_SURFACE_PIXELS,
) -> bytes:
    """
    Crop, rotate, flip and round-corner an image, optionally resizing it.

    Args:
        source: Source raster
        geometry: Crop geometry; its width/height define the output size
        resize_target: Optional absolute resize applied to the cropped surface
        max_pixels: Surface size ceiling

    Returns:
        PNG bytes of the final surface

    Raises:
        SurfaceAllocationError: If a surface size is invalid
        InvalidGeometry: If geometry values are out of range
    """
    surface = render_crop(source, geometry, geometry.width, geometry.height, max_pixels)

    if resize_target is not None and resize_target.enabled:
        surface = resample(surface, resize_target.width, resize_target.height, max_pixels)

    logger.debug(
        f"Cropped {source.shape[1]}x{source.shape[0]} -> "
        f"{surface.shape[1]}x{surface.shape[0]} (rotation={geometry.rotation})"
    )
    return encode_surface(surface)


def resize_proportional(
    source: np.ndarray,
    scale_factor: float,
    max_pixels: int = EngineConstants.MAX_SURFACE_PIXELS,
) -> bytes:
    """
    Resize an image by dividing both dimensions by ``scale_factor``.

    Args:
        source: Source raster
        scale_factor: Divisor, must be > 0
        max_pixels: Surface size ceiling

    Returns:
        PNG bytes of the resized image

    Raises:
        InvalidScaleFactor: If scale_factor <= 0
        SurfaceAllocationError: If the resulting surface is too large
    """
    height, width = source.shape[:2]
    new_width, new_height = calculate_scaled_size(width, height, scale_factor)

    resized = resample(source, new_width, new_height, max_pixels)

    logger.debug(f"Resized {width}x{height} -> {new_width}x{new_height} (factor {scale_factor})")
    return encode_surface(resized)


def preview_size(
    width: int, height: int, max_dimension: int = EngineConstants.PREVIEW_MAX_DIMENSION
) -> Tuple[int, int]:
    """Canvas size of a preview: longest side at most ``max_dimension``, never enlarged."""
    longest = max(width, height)
    scale = min(max_dimension, longest) / longest
    return max(1, int(round(width * scale))), max(1, int(round(height * scale)))


def generate_preview(
    source: np.ndarray,
    geometry: CropGeometry,
    max_dimension: int = EngineConstants.PREVIEW_MAX_DIMENSION,
    quality: int = EngineConstants.PREVIEW_JPEG_QUALITY,
) -> bytes:
    """
    Render a small JPEG preview of a crop.

    The same crop pipeline runs on a canvas scaled down so that its longest
    side is at most ``max_dimension``. The sampled source rectangle and the
    rotation are unchanged.

    Args:
        source: Source raster
        geometry: Crop geometry
        max_dimension: Longest preview side
        quality: JPEG quality

    Returns:
        JPEG bytes
    """
    validate_surface_size(geometry.width, geometry.height)
    preview_width, preview_height = preview_size(geometry.width, geometry.height, max_dimension)

    surface = render_crop(source, geometry, preview_width, preview_height)

    return encode_image(surface, OutputSettings(format="jpg", quality=quality))
