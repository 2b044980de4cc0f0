"""
Batch API models.
"""

from typing import List, Optional

from pydantic import BaseModel, Field

from .geometry import CropGeometry, ProportionalResizeSettings
from .output import OutputSettings
from .task import BatchSummary


class CropBatchRequest(BaseModel):
    """Start a crop batch over stored images"""

    image_ids: Optional[List[str]] = Field(
        default=None, description="Images to include (defaults to all stored images)"
    )
    crop_params: CropGeometry = Field(
        default_factory=CropGeometry, description="Default geometry for images without their own"
    )
    output_settings: OutputSettings = Field(default_factory=OutputSettings)


class ResizeBatchRequest(BaseModel):
    """Start a proportional resize batch over stored images"""

    image_ids: Optional[List[str]] = None
    resize_settings: Optional[ProportionalResizeSettings] = Field(
        default=None, description="Defaults to the configured batch scale factor"
    )
    output_settings: OutputSettings = Field(default_factory=OutputSettings)


class BatchStartResponse(BaseModel):
    """Accepted batch"""

    task_ids: List[str]
    summary: BatchSummary
