"""
Geometry and resize parameter models.

This module contains the plain-data inputs of the transform engine:
- CropGeometry: sampling rectangle plus rotation/flip/corner radius
- ResizeTarget: absolute post-crop resize
- ProportionalResizeSettings: scale-factor driven resize
"""

import math

from pydantic import Field, field_validator

from common.constants import GeometryConstants
from common.enums import ResizeMode
from schemas.base import BaseParams


class CropGeometry(BaseParams):
    """
    One crop operation.

    ``x``, ``y``, ``width`` and ``height`` describe the sampling rectangle in
    source pixel space. The rectangle may extend past the source bounds.
    """

    x: float = Field(default=0.0, description="Left edge of the sampling rectangle")
    y: float = Field(default=0.0, description="Top edge of the sampling rectangle")
    width: int = Field(
        default=GeometryConstants.DEFAULT_CROP_WIDTH, description="Output width in pixels"
    )
    height: int = Field(
        default=GeometryConstants.DEFAULT_CROP_HEIGHT, description="Output height in pixels"
    )
    rotation: float = Field(
        default=0.0, alias="rotationDegrees", description="Rotation in degrees (clockwise)"
    )
    flip_horizontal: bool = Field(default=False, alias="flipHorizontal")
    flip_vertical: bool = Field(default=False, alias="flipVertical")
    border_radius: float = Field(
        default=0.0,
        ge=0.0,
        le=1.0,
        alias="borderRadiusFraction",
        description="Corner radius as a fraction of min(width, height) / 2",
    )

    @field_validator("x", "y", "rotation")
    @classmethod
    def validate_finite(cls, v):
        """Reject NaN and infinite coordinates."""
        if not math.isfinite(v):
            raise ValueError("value must be finite")
        return v


class ResizeTarget(BaseParams):
    """Absolute resize applied after cropping."""

    enabled: bool = False
    width: int = Field(default=GeometryConstants.DEFAULT_RESIZE_WIDTH, description="Target width")
    height: int = Field(
        default=GeometryConstants.DEFAULT_RESIZE_HEIGHT, description="Target height"
    )


class ProportionalResizeSettings(BaseParams):
    """Resize-only pipeline settings: new size = round(old / scale_factor)."""

    scale_factor: float = Field(
        default=GeometryConstants.DEFAULT_SCALE_FACTOR,
        gt=0,
        alias="scaleFactor",
        description="Divisor applied to both source dimensions",
    )
    mode: ResizeMode = Field(default=ResizeMode.SCALE_DOWN)

    @field_validator("scale_factor")
    @classmethod
    def validate_scale_factor(cls, v):
        """Scale factor must be a finite positive number."""
        if not math.isfinite(v):
            raise ValueError("scale_factor must be finite")
        return v
