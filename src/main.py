"""
Cropify - FastAPI application

Run with ``python main.py`` from ``src`` or ``uvicorn main:app``.
"""

import logging
from contextlib import asynccontextmanager
from typing import Tuple

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from api.exceptions import register_exception_handlers
from api.routers import batch, image, system
from config import Settings, get_settings
from core.batch_processor import BatchProcessor
from core.image_manager import ImageManager
from schemas import ErrorEvent

settings = get_settings()

logging.basicConfig(
    level=getattr(logging, settings.system.log_level),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

APP_VERSION = "1.0.0"


def log_batch_error(event: ErrorEvent):
    logger.warning(f"Batch error event: {event.message} ({event.details})")


def build_managers(config: Settings) -> Tuple[ImageManager, BatchProcessor]:
    """Create the image store and the batch orchestrator from settings"""
    image_manager = ImageManager(
        max_size_mb=config.storage.max_memory_mb,
        max_images=config.storage.max_images,
    )
    batch_processor = BatchProcessor(
        image_source=image_manager,
        on_error=log_batch_error,
        inter_task_delay_ms=config.batch.inter_task_delay_ms,
        max_surface_pixels=config.engine.max_surface_pixels,
    )
    # Tasks of evicted images are dropped like those of deleted ones
    image_manager.on_evict = batch_processor.invalidate_image
    return image_manager, batch_processor


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Create managers on startup, stop the batch and drop images on shutdown"""
    config: Settings = app.state.settings
    logger.info(f"Starting Cropify ({config.environment}, debug={config.system.debug})")

    image_manager, batch_processor = build_managers(config)
    app.state.image_manager = image_manager
    app.state.batch_processor = batch_processor

    yield

    logger.info("Shutting down Cropify...")
    if batch_processor.is_processing:
        logger.info("Cancelling running batch")
        batch_processor.cancel()
    image_manager.cleanup()
    logger.info("Shutdown complete")


def create_app(config: Settings) -> FastAPI:
    """Assemble the FastAPI application"""
    application = FastAPI(
        title="Cropify",
        description="Batch image crop, rotate, round-corner, resize and re-encode service",
        version=APP_VERSION,
        lifespan=lifespan,
    )
    application.state.settings = config
    application.state.debug = config.system.debug

    if config.api.cors_enabled:
        application.add_middleware(
            CORSMiddleware,
            allow_origins=config.api.cors_origins,
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )

    register_exception_handlers(application)

    application.include_router(image.router, prefix="/api/image", tags=["Image"])
    application.include_router(batch.router, prefix="/api/batch", tags=["Batch"])
    application.include_router(system.router, prefix="/api/system", tags=["System"])

    @application.get("/")
    async def root():
        return {
            "name": "Cropify",
            "status": "running",
            "version": APP_VERSION,
            "endpoints": {
                "image": "/api/image",
                "batch": "/api/batch",
                "system": "/api/system",
                "docs": "/docs",
            },
        }

    @application.get("/health")
    async def health_check():
        state = application.state
        return {
            "status": "healthy",
            "services": {
                "image_manager": getattr(state, "image_manager", None) is not None,
                "batch_processor": getattr(state, "batch_processor", None) is not None,
            },
        }

    return application


app = create_app(settings)


if __name__ == "__main__":
    try:
        uvicorn.run(
            "main:app",
            host=settings.api.host,
            port=settings.api.port,
            reload=settings.system.debug,
            log_level=settings.system.log_level.lower(),
        )
    except KeyboardInterrupt:
        logger.info("Interrupted")
