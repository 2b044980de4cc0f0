"""
Image API models.

This module contains models for image operations:
- Stored image records and their per-image saved settings
- Upload / import requests
- Single-image crop, resize and preview requests
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from .geometry import CropGeometry, ResizeTarget
from .output import OutputSettings


class ImageRecord(BaseModel):
    """Metadata of a stored source image plus its saved settings"""

    model_config = ConfigDict(populate_by_name=True)

    image_id: str = Field(..., alias="id")
    name: str
    width: int
    height: int
    size_bytes: int
    crop_params: Optional[CropGeometry] = Field(default=None, alias="cropParams")
    resize_target: Optional[ResizeTarget] = Field(default=None, alias="resizeTarget")
    batch_resize_scale_factor: Optional[float] = Field(
        default=None, gt=0, alias="batchResizeScaleFactor"
    )


class ImageUploadRequest(BaseModel):
    """Upload an encoded image as base64"""

    name: str = Field(..., description="Original file name")
    data: str = Field(..., description="Base64 encoded image bytes (data URI prefix allowed)")


class ImageImportRequest(BaseModel):
    """Request to import image from file system"""

    file_path: str = Field(..., description="Path to image file (JPG, PNG, WebP, etc.)")


class ImageSettingsUpdate(BaseModel):
    """
    Per-image saved settings.

    Fields left out keep their current value; ``clear_*`` flags reset them.
    """

    crop_params: Optional[CropGeometry] = Field(default=None, alias="cropParams")
    resize_target: Optional[ResizeTarget] = Field(default=None, alias="resizeTarget")
    batch_resize_scale_factor: Optional[float] = Field(
        default=None, gt=0, alias="batchResizeScaleFactor"
    )
    clear_crop_params: bool = False
    clear_resize_target: bool = False
    clear_scale_factor: bool = False

    model_config = ConfigDict(populate_by_name=True)


class CropRequest(BaseModel):
    """Crop one image and encode it"""

    geometry: Optional[CropGeometry] = Field(
        default=None, description="Crop geometry (defaults to the image's saved geometry)"
    )
    resize_target: Optional[ResizeTarget] = None
    output_settings: OutputSettings = Field(default_factory=OutputSettings)


class ResizeRequest(BaseModel):
    """Proportionally resize one image and encode it"""

    scale_factor: Optional[float] = Field(
        default=None, gt=0, description="Defaults to the image's saved override"
    )
    output_settings: OutputSettings = Field(default_factory=OutputSettings)


class PreviewRequest(BaseModel):
    """Render a low-resolution preview of a crop"""

    geometry: Optional[CropGeometry] = None


class PreviewResponse(BaseModel):
    """Preview image as a JPEG data URI"""

    image_id: str
    width: int
    height: int
    data_url: str


class RotatedSizeRequest(BaseModel):
    """Bounding box query for a rotated rectangle"""

    width: float = Field(..., ge=0)
    height: float = Field(..., ge=0)
    rotation: float = 0.0


class Size(BaseModel):
    """Image size"""

    width: int
    height: int
