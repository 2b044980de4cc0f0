"""
Shared FastAPI dependencies for Cropify.
Centralizes access to the managers kept in the application state.
"""

import logging

from fastapi import Depends, HTTPException, Request

from config import Settings, get_settings
from core.batch_processor import BatchProcessor
from core.image_manager import ImageManager
from services.image_service import ImageService

logger = logging.getLogger(__name__)


class Managers:
    """Container for all manager instances."""

    def __init__(self, image_manager: ImageManager, batch_processor: BatchProcessor):
        self.image_manager = image_manager
        self.batch_processor = batch_processor


def get_managers(request: Request) -> Managers:
    """
    Get all manager instances from app state.

    Args:
        request: FastAPI request object

    Returns:
        Managers container with all manager instances

    Raises:
        HTTPException: If managers not initialized
    """
    try:
        return Managers(
            image_manager=request.app.state.image_manager,
            batch_processor=request.app.state.batch_processor,
        )
    except AttributeError as e:
        logger.error(f"Managers not initialized in app state: {e}")
        raise HTTPException(
            status_code=500, detail="Internal server error: Managers not initialized"
        )


def get_image_manager(managers: Managers = Depends(get_managers)) -> ImageManager:
    """Get ImageManager instance."""
    return managers.image_manager


def get_batch_processor(managers: Managers = Depends(get_managers)) -> BatchProcessor:
    """Get BatchProcessor instance."""
    return managers.batch_processor


def get_config(request: Request) -> Settings:
    """
    Get application settings.

    Falls back to the cached global settings when the app state has none.
    """
    settings = getattr(request.app.state, "settings", None)
    if settings is None:
        logger.warning("Settings not found in app state, using defaults")
        return get_settings()
    return settings


def get_image_service(
    image_manager: ImageManager = Depends(get_image_manager),
    batch_processor: BatchProcessor = Depends(get_batch_processor),
    settings: Settings = Depends(get_config),
) -> ImageService:
    """
    Get image service instance.

    Args:
        image_manager: Image manager dependency
        batch_processor: Batch processor dependency
        settings: Application settings

    Returns:
        ImageService instance
    """
    return ImageService(
        image_manager=image_manager,
        batch_processor=batch_processor,
        max_surface_pixels=settings.engine.max_surface_pixels,
        preview_max_dimension=settings.engine.preview_max_dimension,
        preview_quality=settings.engine.preview_quality,
    )
