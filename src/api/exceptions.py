"""
Custom exceptions and error handlers for the Cropify core.
Provides consistent error handling across the engine, the batch
orchestrator and all API endpoints.
"""

import asyncio
import logging
import traceback
from functools import wraps
from typing import Dict, Optional

from fastapi import HTTPException, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import ValidationError

logger = logging.getLogger(__name__)


# Custom exception classes
class CropifyException(Exception):
    """Base exception for the Cropify core."""

    def __init__(self, message: str, status_code: int = 500, details: Optional[Dict] = None):
        self.message = message
        self.status_code = status_code
        self.details = details or {}
        super().__init__(message)


class DecodeError(CropifyException):
    """Exception raised when source image bytes cannot be decoded."""

    def __init__(self, reason: str = "unreadable image data"):
        super().__init__(
            message=f"Failed to decode image: {reason}",
            status_code=400,
            details={"reason": reason},
        )


class InvalidScaleFactor(CropifyException):
    """Exception raised when a proportional resize factor is not positive."""

    def __init__(self, scale_factor: float):
        super().__init__(
            message=f"Invalid scale factor: {scale_factor} (must be > 0)",
            status_code=400,
            details={"scale_factor": scale_factor},
        )


class InvalidGeometry(CropifyException):
    """Exception raised when crop geometry holds out-of-range values."""

    def __init__(self, field: str, value, reason: str):
        super().__init__(
            message=f"Invalid geometry {field}={value}: {reason}",
            status_code=400,
            details={"field": field, "value": value, "reason": reason},
        )


class SurfaceAllocationError(CropifyException):
    """Exception raised when a requested surface is empty or too large."""

    def __init__(self, width: int, height: int, max_pixels: Optional[int] = None):
        if width <= 0 or height <= 0:
            reason = "dimensions must be positive"
        else:
            reason = f"exceeds limit of {max_pixels} pixels"
        super().__init__(
            message=f"Cannot allocate {width}x{height} surface: {reason}",
            status_code=413,
            details={"width": width, "height": height, "max_pixels": max_pixels},
        )


class EncodeError(CropifyException):
    """Exception raised when final format conversion fails."""

    def __init__(self, output_format: str, reason: str):
        super().__init__(
            message=f"Failed to encode image as {output_format}: {reason}",
            status_code=500,
            details={"format": output_format, "reason": reason},
        )


class ImageNotFoundException(CropifyException):
    """Exception raised when image is not found."""

    def __init__(self, image_id: str):
        super().__init__(
            message=f"Image not found: {image_id}", status_code=404, details={"image_id": image_id}
        )


class TaskNotFoundException(CropifyException):
    """Exception raised when a batch task is not found."""

    def __init__(self, task_id: str):
        super().__init__(
            message=f"Task not found: {task_id}", status_code=404, details={"task_id": task_id}
        )


class TaskNotCompletedException(CropifyException):
    """Exception raised when a task result is requested before completion."""

    def __init__(self, task_id: str, task_status: str):
        super().__init__(
            message=f"Task {task_id} has no result (status: {task_status})",
            status_code=409,
            details={"task_id": task_id, "status": task_status},
        )


class BatchInProgressException(CropifyException):
    """Exception raised when a batch is started while another one runs."""

    def __init__(self):
        super().__init__(message="A batch is already being processed", status_code=409)


class ConfigurationException(CropifyException):
    """Exception raised when configuration is invalid."""

    def __init__(self, config_key: str, reason: str):
        super().__init__(
            message=f"Invalid configuration for {config_key}: {reason}",
            status_code=500,
            details={"config_key": config_key, "reason": reason},
        )


# Exception handlers for FastAPI
def _error_response(status_code: int, error: str, details, error_type: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"error": error, "details": details, "type": error_type},
    )


async def cropify_exception_handler(request: Request, exc: CropifyException) -> JSONResponse:
    """Render a CropifyException as ``{error, details, type}``."""
    log = logger.warning if exc.status_code < 500 else logger.error
    log(f"{request.method} {request.url.path}: {exc.message}", extra={"details": exc.details})

    return _error_response(exc.status_code, exc.message, exc.details, exc.__class__.__name__)


async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """
    Flatten request validation errors into ``field`` / ``message`` pairs.

    The first location element (body, query, path) is dropped from the field name.
    """
    errors = [
        {
            "field": ".".join(str(loc) for loc in error["loc"][1:]),
            "message": error["msg"],
            "type": error["type"],
        }
        for error in exc.errors()
    ]

    logger.warning(f"Validation error on {request.url.path}: {errors}")

    return _error_response(
        status.HTTP_422_UNPROCESSABLE_ENTITY, "Validation failed", errors, "ValidationError"
    )


async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Last resort handler; exposes the traceback only in debug mode."""
    logger.error(f"Unhandled error on {request.url.path}: {exc}", exc_info=True)

    details = {}
    if getattr(request.app.state, "debug", False):
        details = {
            "exception": str(exc),
            "type": exc.__class__.__name__,
            "traceback": traceback.format_exc(),
        }

    return _error_response(500, "Internal server error", details, "InternalError")


# Maps exception types to (status_code, error_message, log_level, detail_builder).
# Lookup follows the exception's MRO, so subclasses share their parent's entry.
EXCEPTION_MAPPING = {
    ValidationError: (400, "Validation failed", "warning", lambda e: {"details": e.errors()}),
    KeyError: (400, "Missing required field", "error", lambda e: {"field": str(e)}),
    ValueError: (400, "Invalid value", "error", lambda e: {"details": str(e)}),
    FileNotFoundError: (404, "File not found", "error", lambda e: {"details": str(e)}),
    PermissionError: (403, "Permission denied", "error", lambda e: {"details": str(e)}),
    MemoryError: (507, "Insufficient storage", "error", lambda e: {"details": str(e)}),
}


def _lookup_mapping(exc: Exception):
    for klass in type(exc).__mro__:
        if klass in EXCEPTION_MAPPING:
            return EXCEPTION_MAPPING[klass]
    return None


def safe_endpoint(func):
    """
    Wrap an endpoint so common Python exceptions become HTTP errors.

    CropifyException and HTTPException pass through to the registered
    handlers. Exceptions listed in EXCEPTION_MAPPING become the mapped
    HTTPException; anything else becomes a 500.
    """

    @wraps(func)
    async def wrapper(*args, **kwargs):
        try:
            if asyncio.iscoroutinefunction(func):
                return await func(*args, **kwargs)
            return func(*args, **kwargs)

        except (CropifyException, HTTPException):
            raise

        except Exception as e:
            mapping = _lookup_mapping(e)
            if mapping is None:
                logger.error(f"Unexpected error in {func.__name__}: {e}", exc_info=True)
                raise HTTPException(
                    status_code=500, detail={"error": "Internal server error", "details": str(e)}
                ) from e

            status_code, error_msg, log_level, detail_builder = mapping
            getattr(logger, log_level)(f"{type(e).__name__} in {func.__name__}: {e}")

            detail = {"error": error_msg}
            detail.update(detail_builder(e))
            raise HTTPException(status_code=status_code, detail=detail) from e

    return wrapper


def register_exception_handlers(app):
    """Register the Cropify exception handlers on a FastAPI app."""
    app.add_exception_handler(CropifyException, cropify_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(Exception, generic_exception_handler)

    logger.info("Exception handlers registered")


class ErrorMessages:
    """Texts of batch error events."""

    PROCESSING_FAILED = "Image processing failed"
    BATCH_FAILED = "An error occurred during batch processing"
    UNKNOWN_ERROR = "Unknown error"
    FILE_DETAILS = "File: {name}"
