"""
Batch task models.

This module contains models for the batch orchestrator:
- ProcessTask: one (image, operation) unit of work
- ErrorEvent: non-fatal error report delivered to observers
- BatchSummary: per-status counts of the current task list
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from common.enums import ProcessStatus, ProcessType
from schemas.geometry import CropGeometry, ProportionalResizeSettings, ResizeTarget
from schemas.output import OutputSettings


class ProcessTask(BaseModel):
    """
    One unit of batch work.

    ``error`` is set only while the task is failed; ``result`` and
    ``mime_type`` only once it is completed. The task references its image
    by id and does not own it.
    """

    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(..., description="Unique task ID")
    image_id: str = Field(..., alias="imageId")
    image_name: Optional[str] = Field(default=None, description="Original file name")
    process_type: ProcessType = Field(..., alias="processType")
    status: ProcessStatus = ProcessStatus.PENDING
    progress: int = Field(default=0, ge=0, le=100)
    crop_params: Optional[CropGeometry] = Field(default=None, alias="cropParams")
    resize_target: Optional[ResizeTarget] = Field(default=None, alias="resizeTarget")
    resize_settings: Optional[ProportionalResizeSettings] = Field(
        default=None, alias="resizeSettings"
    )
    output_settings: OutputSettings = Field(default_factory=OutputSettings, alias="outputSettings")
    error: Optional[str] = None
    result: Optional[bytes] = Field(default=None, exclude=True, repr=False)
    mime_type: Optional[str] = None

    @property
    def is_live(self) -> bool:
        """Pending or processing."""
        return self.status in (ProcessStatus.PENDING, ProcessStatus.PROCESSING)

    @property
    def result_size(self) -> int:
        return len(self.result) if self.result is not None else 0


class ErrorEvent(BaseModel):
    """Error report passed to the error callback"""

    id: str
    category: str = Field(default="processing", description="Error source; always processing")
    message: str
    details: Optional[str] = None
    timestamp: int = Field(..., description="Milliseconds since the epoch")


class BatchSummary(BaseModel):
    """Task counts by status"""

    total: int = 0
    pending: int = 0
    processing: int = 0
    completed: int = 0
    failed: int = 0
    cancelled: int = 0
    is_processing: bool = False
