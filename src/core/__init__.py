"""
Core modules for Cropify
"""

from .batch_processor import (
    BatchProcessor,
    CancellationToken,
    resolve_crop_params,
    resolve_scale_factor,
)
from .image_manager import ImageManager

__all__ = [
    "BatchProcessor",
    "CancellationToken",
    "ImageManager",
    "resolve_crop_params",
    "resolve_scale_factor",
]
