"""
Image codec utilities.

Handles conversions between encoded bytes and raster surfaces using OpenCV:
- Decoding uploaded bytes into NumPy arrays (BGR/BGRA)
- Lossless intermediate encoding of transform surfaces
- Final re-encoding to JPG / PNG / WebP with format-specific quality
- Base64 helpers for the API layer
"""

import base64
import logging
from typing import Union

import cv2
import numpy as np

from api.exceptions import DecodeError, EncodeError
from common.constants import EngineConstants, OutputConstants
from common.enums import OutputFormat
from schemas.output import OutputSettings, clamp_quality

logger = logging.getLogger(__name__)


def decode_image(data: bytes) -> np.ndarray:
    """
    Decode encoded image bytes into a NumPy array.

    The alpha channel is kept when present. 16-bit images are reduced to 8 bit.

    Args:
        data: Encoded image bytes (PNG, JPEG, WebP, BMP, ...)

    Returns:
        Image as NumPy array (grayscale, BGR or BGRA)

    Raises:
        DecodeError: If the bytes are empty or not a readable image
    """
    if not data:
        raise DecodeError("empty image data")

    buffer = np.frombuffer(data, np.uint8)
    image = cv2.imdecode(buffer, cv2.IMREAD_UNCHANGED)

    if image is None:
        raise DecodeError(f"unsupported or corrupt image ({len(data)} bytes)")

    if image.dtype == np.uint16:
        image = (image / 257).astype(np.uint8)

    return image


def ensure_bgra(image: np.ndarray) -> np.ndarray:
    """
    Ensure image has 4 channels (BGRA).

    Args:
        image: Input image (grayscale, BGR or BGRA)

    Returns:
        BGRA copy of the image
    """
    if image.ndim == 2:
        return cv2.cvtColor(image, cv2.COLOR_GRAY2BGRA)
    if image.shape[2] == 1:
        return cv2.cvtColor(image[:, :, 0], cv2.COLOR_GRAY2BGRA)
    if image.shape[2] == 3:
        return cv2.cvtColor(image, cv2.COLOR_BGR2BGRA)
    return image.copy()


def flatten_alpha(image: np.ndarray, background=EngineConstants.JPEG_BACKGROUND) -> np.ndarray:
    """
    Composite a BGRA image over a solid background.

    Args:
        image: Input image; returned unchanged (as BGR) when it has no alpha
        background: BGR background color

    Returns:
        BGR image
    """
    if image.ndim == 2:
        return cv2.cvtColor(image, cv2.COLOR_GRAY2BGR)
    if image.shape[2] != 4:
        return image

    alpha = image[:, :, 3:4].astype(np.float32) / 255.0
    color = image[:, :, :3].astype(np.float32)
    bg = np.array(background, dtype=np.float32).reshape(1, 1, 3)
    blended = color * alpha + bg * (1.0 - alpha)
    return np.clip(np.rint(blended), 0, 255).astype(np.uint8)


def encode_surface(surface: np.ndarray) -> bytes:
    """
    Encode a transform surface losslessly (PNG).

    Args:
        surface: BGRA surface

    Returns:
        PNG bytes

    Raises:
        EncodeError: If OpenCV fails to encode the surface
    """
    params = [cv2.IMWRITE_PNG_COMPRESSION, EngineConstants.INTERMEDIATE_PNG_COMPRESSION]
    success, buffer = cv2.imencode(EngineConstants.INTERMEDIATE_FORMAT, surface, params)
    if not success:
        raise EncodeError("png", "intermediate encoding failed")
    return buffer.tobytes()


def encode_image(image: np.ndarray, settings: OutputSettings) -> bytes:
    """
    Encode a raster into the final output format.

    Quality semantics follow the format: PNG uses it as a 0-9 compression
    level, JPG and WebP as a 1-100 percentage. JPG output has no alpha, so
    transparent pixels are flattened onto the background color.

    Args:
        image: Raster (BGR or BGRA)
        settings: Output settings

    Returns:
        Encoded bytes

    Raises:
        EncodeError: If encoding fails
    """
    output_format = OutputFormat(settings.format)
    quality = clamp_quality(output_format, settings.quality)

    if output_format == OutputFormat.JPG:
        image = flatten_alpha(image)
        params = [cv2.IMWRITE_JPEG_QUALITY, quality]
    elif output_format == OutputFormat.PNG:
        params = [cv2.IMWRITE_PNG_COMPRESSION, quality]
    else:
        params = [cv2.IMWRITE_WEBP_QUALITY, quality]

    ext = OutputConstants.FILE_EXTENSIONS[output_format.value]
    try:
        success, buffer = cv2.imencode(ext, image, params)
    except cv2.error as e:
        raise EncodeError(output_format.value, str(e)) from e

    if not success:
        raise EncodeError(output_format.value, "encoder returned no data")

    return buffer.tobytes()


def encode(surface_bytes: bytes, settings: OutputSettings) -> bytes:
    """
    Re-encode an intermediate surface to the requested output format.

    Args:
        surface_bytes: Lossless intermediate bytes produced by the engine
        settings: Output settings (format and quality)

    Returns:
        Final encoded bytes

    Raises:
        EncodeError: If the intermediate cannot be read back or encoding fails
    """
    try:
        surface = decode_image(surface_bytes)
    except DecodeError as e:
        raise EncodeError(OutputFormat(settings.format).value, e.message) from e

    return encode_image(surface, settings)


def mime_type_for(output_format: Union[OutputFormat, str]) -> str:
    """Get the MIME type of an output format."""
    return OutputConstants.MIME_TYPES[OutputFormat(output_format).value]


def to_base64(data: bytes) -> str:
    """Encode bytes to a base64 string."""
    return base64.b64encode(data).decode("utf-8")


def from_base64(base64_string: str) -> bytes:
    """
    Decode a base64 string, accepting an optional data URI prefix.

    Raises:
        DecodeError: If the string is not valid base64
    """
    if base64_string.startswith("data:") and "," in base64_string:
        base64_string = base64_string.split(",", 1)[1]

    try:
        return base64.b64decode(base64_string, validate=True)
    except (ValueError, TypeError) as e:
        raise DecodeError(f"invalid base64 data: {e}") from e


def to_data_url(data: bytes, mime_type: str) -> str:
    """Wrap encoded bytes in a data URI."""
    return f"data:{mime_type};base64,{to_base64(data)}"
