"""
System API Router - Status and configuration
"""

import logging
import time
from datetime import datetime

from fastapi import APIRouter, Depends

from api.dependencies import get_batch_processor, get_config, get_image_manager
from api.exceptions import safe_endpoint
from schemas import SystemStatus

logger = logging.getLogger(__name__)

router = APIRouter()

# Track start time
START_TIME = time.time()


@router.get("/status")
@safe_endpoint
async def get_status(
    image_manager=Depends(get_image_manager), batch_processor=Depends(get_batch_processor)
) -> SystemStatus:
    """Get storage usage and batch state"""
    return SystemStatus(
        status="healthy",
        uptime=time.time() - START_TIME,
        storage=image_manager.get_stats(),
        batch=batch_processor.summary(),
    )


@router.get("/config")
@safe_endpoint
async def get_configuration(settings=Depends(get_config)) -> dict:
    """Get current configuration"""
    return settings.to_dict()


@router.get("/health")
async def health_check() -> dict:
    """Simple health check"""
    return {"status": "healthy", "timestamp": datetime.now().isoformat()}
