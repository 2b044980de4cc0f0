"""
Transform engine - functional architecture.

This package provides the image transform pipeline as pure functions:
- converters: Decoding, lossless intermediate and final format encoding
- geometry: Rotated sizes, scale rules, affine matrices, rounded-rect masks
- processors: Crop, proportional resize and preview pipelines

All utilities are re-exported from this module for convenient access.
"""

# Converter functions
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

# Geometry functions
from core.image.geometry import (
    build_crop_matrix,
    calculate_rotated_size,
    calculate_scaled_size,
    rounded_rect_mask,
    validate_geometry,
    validate_surface_size,
)

# Processor functions
from core.image.processors import (
    crop,
    generate_preview,
    preview_size,
    render_crop,
    resample,
    resize_proportional,
)

__all__ = [
    # Converter functions
    "decode_image",
    "encode",
    "encode_image",
    "encode_surface",
    "ensure_bgra",
    "flatten_alpha",
    "from_base64",
    "mime_type_for",
    "to_base64",
    "to_data_url",
    # Geometry functions
    "build_crop_matrix",
    "calculate_rotated_size",
    "calculate_scaled_size",
    "rounded_rect_mask",
    "validate_geometry",
    "validate_surface_size",
    # Processor functions
    "crop",
    "generate_preview",
    "preview_size",
    "render_crop",
    "resample",
    "resize_proportional",
]
