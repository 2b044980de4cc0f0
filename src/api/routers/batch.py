"""
Batch API Router - Start, control and observe crop / resize batches
"""

import logging
from typing import List, Optional

from fastapi import APIRouter, BackgroundTasks, Depends, Response

from api.dependencies import get_batch_processor, get_config, get_image_service
from api.exceptions import (
    BatchInProgressException,
    TaskNotCompletedException,
    TaskNotFoundException,
    safe_endpoint,
)
from common.enums import ProcessStatus, ProcessType
from core.batch_processor import summarize
from schemas import (
    BatchStartResponse,
    BatchSummary,
    CropBatchRequest,
    ErrorEvent,
    ImageRecord,
    ProcessTask,
    ProportionalResizeSettings,
    ResizeBatchRequest,
)
from services.image_service import generate_file_name

logger = logging.getLogger(__name__)

router = APIRouter()


def _select_images(image_service, image_ids: Optional[List[str]]) -> List[ImageRecord]:
    """Records of the requested images, or all stored images"""
    if image_ids is None:
        return image_service.list_images()
    return [image_service.get_record(image_id) for image_id in image_ids]


@router.post("/crop")
@safe_endpoint
async def start_crop_batch(
    request: CropBatchRequest,
    background_tasks: BackgroundTasks,
    batch_processor=Depends(get_batch_processor),
    image_service=Depends(get_image_service),
) -> BatchStartResponse:
    """
    Start a crop batch in the background.

    Images with a saved crop geometry use it; the others use ``crop_params``.

    Raises:
        BatchInProgressException: If a batch is already running
        ImageNotFoundException: If a requested image does not exist
    """
    if batch_processor.is_processing:
        raise BatchInProgressException()

    images = _select_images(image_service, request.image_ids)
    tasks = batch_processor.build_batch(
        images, ProcessType.CROP, request.crop_params, request.output_settings
    )
    background_tasks.add_task(batch_processor.run, tasks)

    logger.info(f"Crop batch accepted: {len(tasks)} tasks")
    return BatchStartResponse(task_ids=[t.id for t in tasks], summary=summarize(tasks))


@router.post("/resize")
@safe_endpoint
async def start_resize_batch(
    request: ResizeBatchRequest,
    background_tasks: BackgroundTasks,
    batch_processor=Depends(get_batch_processor),
    image_service=Depends(get_image_service),
    settings=Depends(get_config),
) -> BatchStartResponse:
    """
    Start a proportional resize batch in the background.

    Images with a saved scale factor override use it; the others use the
    request's scale factor, or the configured default when omitted.
    """
    if batch_processor.is_processing:
        raise BatchInProgressException()

    resize_settings = request.resize_settings or ProportionalResizeSettings(
        scale_factor=settings.batch.default_scale_factor
    )
    images = _select_images(image_service, request.image_ids)
    tasks = batch_processor.build_batch(
        images, ProcessType.RESIZE, resize_settings, request.output_settings
    )
    background_tasks.add_task(batch_processor.run, tasks)

    logger.info(f"Resize batch accepted: {len(tasks)} tasks")
    return BatchStartResponse(task_ids=[t.id for t in tasks], summary=summarize(tasks))


@router.post("/pause")
@safe_endpoint
async def pause_batch(batch_processor=Depends(get_batch_processor)) -> BatchSummary:
    """Stop starting new tasks; completed results are kept"""
    batch_processor.pause()
    return batch_processor.summary()


@router.post("/cancel")
@safe_endpoint
async def cancel_batch(batch_processor=Depends(get_batch_processor)) -> BatchSummary:
    """Stop the batch and clear the task list"""
    batch_processor.cancel()
    return batch_processor.summary()


@router.post("/retry")
@safe_endpoint
async def retry_failed(
    background_tasks: BackgroundTasks, batch_processor=Depends(get_batch_processor)
) -> BatchSummary:
    """Re-run failed tasks in the background"""
    if batch_processor.is_processing:
        raise BatchInProgressException()

    summary = batch_processor.summary()
    if summary.failed:
        background_tasks.add_task(batch_processor.retry_failed)
    return summary


@router.get("/tasks")
@safe_endpoint
async def list_tasks(
    status: Optional[ProcessStatus] = None, batch_processor=Depends(get_batch_processor)
) -> List[ProcessTask]:
    """Snapshot of the task list, optionally filtered by status"""
    tasks = batch_processor.tasks
    if status is not None:
        tasks = [t for t in tasks if t.status == status]
    return tasks


@router.get("/summary")
@safe_endpoint
async def get_summary(batch_processor=Depends(get_batch_processor)) -> BatchSummary:
    return batch_processor.summary()


@router.get("/errors")
@safe_endpoint
async def get_errors(batch_processor=Depends(get_batch_processor)) -> List[ErrorEvent]:
    """Recent non-fatal error events"""
    return batch_processor.errors


@router.delete("/errors")
@safe_endpoint
async def clear_errors(batch_processor=Depends(get_batch_processor)):
    batch_processor.clear_errors()
    return {"success": True}


@router.get("/tasks/{task_id}")
@safe_endpoint
async def get_task(task_id: str, batch_processor=Depends(get_batch_processor)) -> ProcessTask:
    task = batch_processor.get_task(task_id)
    if task is None:
        raise TaskNotFoundException(task_id)
    return task


@router.get("/tasks/{task_id}/result")
@safe_endpoint
async def get_task_result(
    task_id: str, batch_processor=Depends(get_batch_processor)
) -> Response:
    """
    Encoded result of a completed task, named for export.

    Raises:
        TaskNotFoundException: If the task does not exist
        TaskNotCompletedException: If the task has no result yet
    """
    task = batch_processor.get_task(task_id)
    if task is None:
        raise TaskNotFoundException(task_id)
    if task.status != ProcessStatus.COMPLETED or task.result is None:
        raise TaskNotCompletedException(task_id, ProcessStatus(task.status).value)

    filename = generate_file_name(task.image_name, task.image_id, task.output_settings)
    return Response(
        content=task.result,
        media_type=task.mime_type,
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )
