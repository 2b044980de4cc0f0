"""
Image API Router - Upload, per-image settings and single-image processing
"""

import asyncio
import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Response

from api.dependencies import get_config, get_image_service
from api.exceptions import safe_endpoint
from core.image import from_base64
from schemas import (
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
from services.image_service import count_active_filters, generate_file_name

logger = logging.getLogger(__name__)

router = APIRouter()


def _file_response(data: bytes, mime_type: str, filename: str) -> Response:
    return Response(
        content=data,
        media_type=mime_type,
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.post("/upload")
@safe_endpoint
async def upload_image(
    request: ImageUploadRequest,
    image_service=Depends(get_image_service),
    settings=Depends(get_config),
) -> ImageRecord:
    """
    Store an image uploaded as base64.

    Raises:
        HTTPException 413: If the decoded data exceeds the upload limit
        DecodeError: If the data is not a readable image
    """
    data = from_base64(request.data)

    max_bytes = settings.api.max_upload_size_mb * 1024 * 1024
    if len(data) > max_bytes:
        raise HTTPException(
            status_code=413,
            detail=f"Upload of {len(data)} bytes exceeds limit of {settings.api.max_upload_size_mb}MB",
        )

    record = image_service.store_bytes(data, request.name)
    logger.info(f"Image uploaded: {record.image_id} ({request.name})")
    return record


@router.post("/import")
@safe_endpoint
async def import_image(
    request: ImageImportRequest, image_service=Depends(get_image_service)
) -> ImageRecord:
    """
    Import image from file system.

    Raises:
        HTTPException 404: If file not found
        DecodeError: If file cannot be loaded as image
    """
    return image_service.import_from_file(request.file_path)


@router.get("/list")
@safe_endpoint
async def list_images(
    min_width: Optional[int] = Query(default=None, description="Keep images wider than this"),
    min_height: Optional[int] = Query(default=None, description="Keep images taller than this"),
    image_service=Depends(get_image_service),
):
    """List stored images, optionally filtered by minimum size"""
    images = image_service.list_images(min_width, min_height)
    return {
        "images": [image.model_dump(by_alias=True) for image in images],
        "total": len(images),
        "active_filters": count_active_filters(min_width, min_height),
    }


@router.post("/rotated-size")
@safe_endpoint
async def rotated_size(request: RotatedSizeRequest, image_service=Depends(get_image_service)) -> Size:
    """Bounding box of a rectangle after rotation"""
    return image_service.rotated_size(request.width, request.height, request.rotation)


@router.get("/{image_id}")
@safe_endpoint
async def get_image(image_id: str, image_service=Depends(get_image_service)) -> ImageRecord:
    return image_service.get_record(image_id)


@router.delete("/{image_id}")
@safe_endpoint
async def delete_image(image_id: str, image_service=Depends(get_image_service)):
    """Delete an image; batch tasks referencing it are removed"""
    image_service.delete_image(image_id)
    return {"success": True, "image_id": image_id}


@router.put("/{image_id}/settings")
@safe_endpoint
async def update_settings(
    image_id: str, update: ImageSettingsUpdate, image_service=Depends(get_image_service)
) -> ImageRecord:
    """Save the image's own crop geometry, resize target and scale factor"""
    return image_service.update_settings(image_id, update)


@router.post("/{image_id}/crop")
@safe_endpoint
async def crop_image(
    image_id: str, request: CropRequest, image_service=Depends(get_image_service)
) -> Response:
    """Crop one image and return the encoded result"""
    data, mime_type = await asyncio.to_thread(
        image_service.crop_image,
        image_id,
        geometry=request.geometry,
        resize_target=request.resize_target,
        output_settings=request.output_settings,
    )
    record = image_service.get_record(image_id)
    filename = generate_file_name(record.name, image_id, request.output_settings)
    return _file_response(data, mime_type, filename)


@router.post("/{image_id}/resize")
@safe_endpoint
async def resize_image(
    image_id: str, request: ResizeRequest, image_service=Depends(get_image_service)
) -> Response:
    """Proportionally resize one image and return the encoded result"""
    data, mime_type = await asyncio.to_thread(
        image_service.resize_image,
        image_id,
        scale_factor=request.scale_factor,
        output_settings=request.output_settings,
    )
    record = image_service.get_record(image_id)
    filename = generate_file_name(record.name, image_id, request.output_settings)
    return _file_response(data, mime_type, filename)


@router.post("/{image_id}/preview")
@safe_endpoint
async def preview_image(
    image_id: str, request: PreviewRequest, image_service=Depends(get_image_service)
) -> PreviewResponse:
    """Low resolution JPEG preview of a crop"""
    return await asyncio.to_thread(image_service.preview, image_id, request.geometry)
