"""
Constants and configuration values for the Cropify core.
Centralizes all magic numbers and configuration constants.
"""


# Transform Engine Constants
class EngineConstants:
    """Constants related to the image transform pipeline."""

    # Surface limits (width * height of any single allocated surface)
    MAX_SURFACE_PIXELS = 100_000_000
    MIN_SURFACE_DIMENSION = 1

    # Intermediate (lossless) encoding
    INTERMEDIATE_FORMAT = ".png"
    INTERMEDIATE_PNG_COMPRESSION = 1

    # Preview rendering
    PREVIEW_MAX_DIMENSION = 300
    PREVIEW_JPEG_QUALITY = 80

    # Flattening color for formats without alpha (BGR)
    JPEG_BACKGROUND = (0, 0, 0)


# Output Encoding Constants
class OutputConstants:
    """Constants related to final output encoding."""

    DEFAULT_FORMAT = "jpg"
    DEFAULT_QUALITY = 90

    # PNG compression level range
    PNG_QUALITY_MIN = 0
    PNG_QUALITY_MAX = 9

    # JPG / WebP percentage range
    LOSSY_QUALITY_MIN = 1
    LOSSY_QUALITY_MAX = 100

    MIME_TYPES = {
        "jpg": "image/jpeg",
        "png": "image/png",
        "webp": "image/webp",
    }

    FILE_EXTENSIONS = {
        "jpg": ".jpg",
        "png": ".png",
        "webp": ".webp",
    }


# Geometry Defaults
class GeometryConstants:
    """Defaults for crop geometry and resize settings."""

    DEFAULT_CROP_WIDTH = 100
    DEFAULT_CROP_HEIGHT = 100

    DEFAULT_RESIZE_WIDTH = 1024
    DEFAULT_RESIZE_HEIGHT = 1024

    DEFAULT_SCALE_FACTOR = 1.5
    MIN_SCALED_DIMENSION = 1


# Batch Processing Constants
class BatchConstants:
    """Constants for the batch orchestrator."""

    # Courtesy delay between tasks
    INTER_TASK_DELAY_MS = 50
    MAX_INTER_TASK_DELAY_MS = 5000

    # Coarse progress milestones
    PROGRESS_START = 0
    PROGRESS_DECODED = 25
    PROGRESS_TRANSFORMING = 50
    PROGRESS_TRANSFORMED = 75
    PROGRESS_DONE = 100

    # Error event history kept for observers
    MAX_ERROR_EVENTS = 100

    ERROR_CATEGORY_PROCESSING = "processing"


# Image Storage Constants
class StorageConstants:
    """Constants related to in-memory image storage."""

    DEFAULT_MAX_IMAGES = 500
    DEFAULT_MAX_MEMORY_MB = 1000
    MIN_IMAGES = 1
    MAX_IMAGES = 10000


# API Constants
class APIConstants:
    """Constants for API endpoints."""

    # File uploads
    MAX_UPLOAD_SIZE_MB = 50

    # API versions
    API_VERSION = "v1"


# System Constants
class SystemConstants:
    """Constants for system operations."""

    # Logging
    LOG_LEVEL_DEFAULT = "INFO"
    LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
