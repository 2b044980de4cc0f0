"""
Centralized enums for the Cropify core.

This module contains all enumeration types used throughout the system,
providing a single source of truth for enum definitions.
"""

from enum import Enum


# Output encoding enums
class OutputFormat(str, Enum):
    """Final output image formats."""

    JPG = "jpg"
    PNG = "png"
    WEBP = "webp"


# Task enums
class ProcessType(str, Enum):
    """Kind of operation a batch task performs."""

    CROP = "crop"
    RESIZE = "resize"


class ProcessStatus(str, Enum):
    """Lifecycle state of a batch task."""

    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"


# Resize enums
class ResizeMode(str, Enum):
    """Proportional resize direction."""

    SCALE_DOWN = "scale_down"
    SCALE_UP = "scale_up"
