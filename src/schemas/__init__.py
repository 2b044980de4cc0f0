"""
Schemas Package

This package contains all Pydantic schemas for data validation and serialization,
organized by domain for better maintainability.

These schemas are shared across all application layers:
- API (routers, dependencies)
- Services (business logic)
- Core (transform engine, batch orchestrator, image storage)
"""

# Re-export enums for convenience
from common.enums import OutputFormat, ProcessStatus, ProcessType, ResizeMode

# Base schemas
from .base import BaseParams

# Batch request models
from .batch import BatchStartResponse, CropBatchRequest, ResizeBatchRequest

# Geometry models
from .geometry import CropGeometry, ProportionalResizeSettings, ResizeTarget

# Image models
from .image import (
    CropRequest,
    ImageImportRequest,
    ImageRecord,
    ImageSettingsUpdate,
    ImageUploadRequest,
    PreviewRequest,
    PreviewResponse,
    ResizeRequest,
    RotatedSizeRequest,
    Size,
)

# Output models
from .output import OutputSettings, clamp_quality

# System models
from .system import SystemStatus

# Task models
from .task import BatchSummary, ErrorEvent, ProcessTask

__all__ = [
    # Enums
    "OutputFormat",
    "ProcessStatus",
    "ProcessType",
    "ResizeMode",
    # Base
    "BaseParams",
    # Geometry
    "CropGeometry",
    "ProportionalResizeSettings",
    "ResizeTarget",
    # Output
    "OutputSettings",
    "clamp_quality",
    # Tasks
    "BatchSummary",
    "ErrorEvent",
    "ProcessTask",
    # Image
    "CropRequest",
    "ImageImportRequest",
    "ImageRecord",
    "ImageSettingsUpdate",
    "ImageUploadRequest",
    "PreviewRequest",
    "PreviewResponse",
    "ResizeRequest",
    "RotatedSizeRequest",
    "Size",
    # Batch
    "BatchStartResponse",
    "CropBatchRequest",
    "ResizeBatchRequest",
    # System
    "SystemStatus",
]
