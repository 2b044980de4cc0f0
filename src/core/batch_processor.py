"""
Batch Processor - Sequential task orchestrator for crop and resize batches
"""

import asyncio
import logging
import threading
import time
import uuid
from collections import deque
from typing import Callable, Dict, Iterable, List, Optional, Union

import numpy as np

from api.exceptions import (
    ConfigurationException,
    CropifyException,
    ErrorMessages,
    ImageNotFoundException,
)
from common.constants import BatchConstants, EngineConstants
from common.enums import ProcessStatus, ProcessType
from core.image.converters import decode_image, encode, mime_type_for
from core.image.processors import crop, resize_proportional
from schemas import (
    BatchSummary,
    CropGeometry,
    ErrorEvent,
    ImageRecord,
    OutputSettings,
    ProcessTask,
    ProportionalResizeSettings,
    ResizeTarget,
)

logger = logging.getLogger(__name__)

ErrorCallback = Callable[[ErrorEvent], None]


def resolve_crop_params(image: ImageRecord, default: CropGeometry) -> CropGeometry:
    """Effective crop geometry of an image: its saved geometry, else the batch default."""
    source = image.crop_params if image.crop_params is not None else default
    return source.model_copy(deep=True)


def resolve_scale_factor(image: ImageRecord, default: float) -> float:
    """Effective scale factor of an image: its saved override, else the batch default."""
    if image.batch_resize_scale_factor:
        return image.batch_resize_scale_factor
    return default


def summarize(tasks: Iterable[ProcessTask], is_processing: bool = False) -> BatchSummary:
    """Task counts by status"""
    counts: Dict[str, int] = {status.value: 0 for status in ProcessStatus}
    total = 0
    for task in tasks:
        counts[ProcessStatus(task.status).value] += 1
        total += 1
    return BatchSummary(total=total, is_processing=is_processing, **counts)


class CancellationToken:
    """Cooperative cancellation flag shared by one run"""

    def __init__(self):
        self._event = threading.Event()

    def cancel(self):
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()


class BatchProcessor:
    """
    Owns the batch task list and runs it against the transform engine.

    Tasks are processed one at a time in list order. Engine work runs in a
    worker thread so the event loop stays responsive; the task list itself
    is only written from the event loop. Readers get deep-copied snapshots.
    """

    def __init__(
        self,
        image_source,
        on_error: Optional[ErrorCallback] = None,
        inter_task_delay_ms: int = BatchConstants.INTER_TASK_DELAY_MS,
        max_surface_pixels: int = EngineConstants.MAX_SURFACE_PIXELS,
    ):
        """
        Initialize Batch Processor

        Args:
            image_source: Provider of encoded image bytes (``get_bytes``/``has_image``),
                normally the ImageManager
            on_error: Called once per failed task and per unexpected batch error
            inter_task_delay_ms: Pause between two tasks
            max_surface_pixels: Surface size ceiling passed to the engine

        Raises:
            ConfigurationException: If a limit is out of range
        """
        if inter_task_delay_ms < 0:
            raise ConfigurationException("inter_task_delay_ms", "must be >= 0")
        if max_surface_pixels <= 0:
            raise ConfigurationException("max_surface_pixels", "must be > 0")

        self.image_source = image_source
        self.on_error = on_error
        self.inter_task_delay_ms = inter_task_delay_ms
        self.max_surface_pixels = max_surface_pixels

        self._tasks: List[ProcessTask] = []
        self._token: Optional[CancellationToken] = None
        self._running = False
        self._errors: deque = deque(maxlen=BatchConstants.MAX_ERROR_EVENTS)

        logger.info("Batch Processor initialized")

    # ------------------------------------------------------------------
    # Observation
    # ------------------------------------------------------------------

    @property
    def is_processing(self) -> bool:
        return self._running

    @property
    def tasks(self) -> List[ProcessTask]:
        """Snapshot of the task list"""
        return [task.model_copy(deep=True) for task in self._tasks]

    def get_task(self, task_id: str) -> Optional[ProcessTask]:
        task = self._find_task(task_id)
        return task.model_copy(deep=True) if task is not None else None

    def completed_tasks(self) -> List[ProcessTask]:
        return [t for t in self.tasks if t.status == ProcessStatus.COMPLETED]

    def summary(self) -> BatchSummary:
        return summarize(self._tasks, self._running)

    @property
    def errors(self) -> List[ErrorEvent]:
        """Most recent error events, oldest first"""
        return [event.model_copy() for event in self._errors]

    def clear_errors(self):
        self._errors.clear()

    # ------------------------------------------------------------------
    # Batch construction
    # ------------------------------------------------------------------

    def build_batch(
        self,
        images: Iterable[ImageRecord],
        process_type: Union[ProcessType, str],
        params: Union[CropGeometry, ProportionalResizeSettings],
        output_settings: OutputSettings,
    ) -> List[ProcessTask]:
        """
        Build the task list of a batch over ``images``.

        A completed task for the same (image, process type) is reused
        unchanged. A non-completed one is reset to pending with fresh
        parameters, keeping its id. Other images get a new pending task.

        Args:
            images: Image records; duplicates are ignored
            process_type: crop or resize
            params: Batch default geometry (crop) or resize settings (resize)
            output_settings: Output format settings applied to every task

        Returns:
            New task list (not yet installed; pass it to ``run``)
        """
        process_type = ProcessType(process_type)
        existing = {(t.image_id, ProcessType(t.process_type)): t for t in self._tasks}

        tasks: List[ProcessTask] = []
        seen = set()
        for image in images:
            if image.image_id in seen:
                continue
            seen.add(image.image_id)

            previous = existing.get((image.image_id, process_type))
            if previous is not None and previous.status == ProcessStatus.COMPLETED:
                tasks.append(previous.model_copy(deep=True))
                continue

            task = ProcessTask(
                id=previous.id if previous is not None else str(uuid.uuid4()),
                image_id=image.image_id,
                image_name=image.name,
                process_type=process_type,
                output_settings=output_settings.model_copy(deep=True),
            )

            if process_type == ProcessType.CROP:
                task.crop_params = resolve_crop_params(image, params)
                if image.resize_target is not None:
                    task.resize_target = image.resize_target.model_copy(deep=True)
            else:
                scale_factor = resolve_scale_factor(image, params.scale_factor)
                task.resize_settings = params.model_copy(update={"scale_factor": scale_factor})

            tasks.append(task)

        logger.debug(f"Built {process_type.value} batch of {len(tasks)} tasks")
        return tasks

    # ------------------------------------------------------------------
    # Control
    # ------------------------------------------------------------------

    async def start_batch(
        self,
        images: Iterable[ImageRecord],
        crop_params: CropGeometry,
        output_settings: OutputSettings,
    ) -> BatchSummary:
        """Build and run a crop batch; no-op while a run is in progress"""
        if self._running:
            logger.warning("Batch already running, ignoring crop batch request")
            return self.summary()
        tasks = self.build_batch(images, ProcessType.CROP, crop_params, output_settings)
        return await self.run(tasks)

    async def start_resize_batch(
        self,
        images: Iterable[ImageRecord],
        resize_settings: ProportionalResizeSettings,
        output_settings: OutputSettings,
    ) -> BatchSummary:
        """Build and run a proportional resize batch; no-op while a run is in progress"""
        if self._running:
            logger.warning("Batch already running, ignoring resize batch request")
            return self.summary()
        tasks = self.build_batch(images, ProcessType.RESIZE, resize_settings, output_settings)
        return await self.run(tasks)

    async def retry_failed(self) -> BatchSummary:
        """Reset failed tasks to pending and run only those"""
        if self._running:
            logger.warning("Batch already running, ignoring retry request")
            return self.summary()

        retry_ids = []
        for task in self._tasks:
            if task.status == ProcessStatus.FAILED:
                self._reset(task)
                retry_ids.append(task.id)

        if not retry_ids:
            logger.info("No failed tasks to retry")
            return self.summary()

        logger.info(f"Retrying {len(retry_ids)} failed tasks")
        return await self._run_loop(retry_ids)

    async def run(self, tasks: Optional[List[ProcessTask]] = None) -> BatchSummary:
        """
        Process pending and failed tasks in list order.

        Args:
            tasks: Task list to install before running; the current list is
                used when omitted

        Returns:
            Summary after the run ends
        """
        if self._running:
            logger.warning("Batch already running, ignoring run request")
            return self.summary()

        if tasks is not None:
            self._tasks = [task.model_copy(deep=True) for task in tasks]

        runnable = [
            t.id for t in self._tasks if t.status in (ProcessStatus.PENDING, ProcessStatus.FAILED)
        ]
        return await self._run_loop(runnable)

    def pause(self):
        """Stop starting tasks; the task list and results are kept"""
        if self._token is not None:
            logger.info("Pausing batch")
            self._token.cancel()

    def cancel(self):
        """Stop the run and clear the task list"""
        if self._token is not None:
            self._token.cancel()
        self._tasks = []
        logger.info("Batch cancelled and task list cleared")

    def invalidate_image(self, image_id: str) -> int:
        """
        Remove every task that references an image.

        Returns:
            Number of removed tasks
        """
        before = len(self._tasks)
        self._tasks = [t for t in self._tasks if t.image_id != image_id]
        removed = before - len(self._tasks)
        if removed:
            logger.info(f"Removed {removed} tasks of deleted image {image_id}")
        return removed

    # ------------------------------------------------------------------
    # Execution
    # ------------------------------------------------------------------

    async def _run_loop(self, task_ids: List[str]) -> BatchSummary:
        self._running = True
        token = CancellationToken()
        self._token = token
        started = time.time()
        logger.info(f"Batch started: {len(task_ids)} tasks")

        try:
            for task_id in task_ids:
                if token.cancelled:
                    logger.info("Batch stopped by cancellation")
                    break

                task = self._find_task(task_id)
                if task is None:
                    continue

                if not self.image_source.has_image(task.image_id):
                    logger.warning(f"Image {task.image_id} no longer available, removing its tasks")
                    self.invalidate_image(task.image_id)
                    continue

                await self._process_task(task.model_copy(deep=True), token)

                if self.inter_task_delay_ms > 0:
                    await asyncio.sleep(self.inter_task_delay_ms / 1000.0)

        except Exception as e:
            logger.exception("Batch processing error")
            self._report_error(ErrorMessages.BATCH_FAILED, str(e) or ErrorMessages.UNKNOWN_ERROR)

        finally:
            self._running = False
            if self._token is token:
                self._token = None
            logger.info(f"Batch finished in {time.time() - started:.2f}s: {self.summary()}")

        return self.summary()

    async def _process_task(self, task: ProcessTask, token: CancellationToken):
        """Run one task through decode, transform and encode"""
        task_id = task.id
        try:
            if token.cancelled:
                self._update_task(task_id, status=ProcessStatus.CANCELLED)
                return

            self._update_task(
                task_id,
                status=ProcessStatus.PROCESSING,
                progress=BatchConstants.PROGRESS_START,
                error=None,
            )

            data = self.image_source.get_bytes(task.image_id)
            if data is None:
                raise ImageNotFoundException(task.image_id)
            source = await asyncio.to_thread(decode_image, data)

            if token.cancelled:
                self._update_task(task_id, status=ProcessStatus.CANCELLED)
                return

            self._update_task(task_id, progress=BatchConstants.PROGRESS_DECODED)
            self._update_task(task_id, progress=BatchConstants.PROGRESS_TRANSFORMING)

            surface = await asyncio.to_thread(self._transform, task, source)

            self._update_task(task_id, progress=BatchConstants.PROGRESS_TRANSFORMED)

            if token.cancelled:
                self._update_task(task_id, status=ProcessStatus.CANCELLED)
                return

            result = await asyncio.to_thread(encode, surface, task.output_settings)

            self._update_task(
                task_id,
                status=ProcessStatus.COMPLETED,
                progress=BatchConstants.PROGRESS_DONE,
                result=result,
                mime_type=mime_type_for(task.output_settings.format),
            )
            logger.debug(f"Task {task_id} completed ({len(result)} bytes)")

        except Exception as e:
            message = e.message if isinstance(e, CropifyException) else str(e)
            logger.error(f"Task {task_id} failed: {message}")
            self._update_task(
                task_id,
                status=ProcessStatus.FAILED,
                error=message or ErrorMessages.PROCESSING_FAILED,
                progress=BatchConstants.PROGRESS_START,
            )
            self._report_error(
                ErrorMessages.PROCESSING_FAILED,
                ErrorMessages.FILE_DETAILS.format(name=task.image_name or task.image_id),
            )

    def _transform(self, task: ProcessTask, source: np.ndarray) -> bytes:
        """Engine step of a task; runs in a worker thread"""
        if ProcessType(task.process_type) == ProcessType.RESIZE:
            scale_factor = task.resize_settings.scale_factor if task.resize_settings else None
            return resize_proportional(source, scale_factor, self.max_surface_pixels)

        geometry = task.crop_params or CropGeometry()
        resize_target = task.resize_target or ResizeTarget()
        return crop(source, geometry, resize_target, self.max_surface_pixels)

    # ------------------------------------------------------------------
    # Task list helpers
    # ------------------------------------------------------------------

    def _find_task(self, task_id: str) -> Optional[ProcessTask]:
        for task in self._tasks:
            if task.id == task_id:
                return task
        return None

    def _update_task(self, task_id: str, **updates) -> bool:
        """Apply updates to a task by id; dropped if the task is gone"""
        task = self._find_task(task_id)
        if task is None:
            return False

        for field, value in updates.items():
            setattr(task, field, value)

        if task.status != ProcessStatus.COMPLETED:
            task.result = None
            task.mime_type = None
        if task.status != ProcessStatus.FAILED:
            task.error = None

        logger.debug(f"Task {task_id}: {task.status} {task.progress}%")
        return True

    @staticmethod
    def _reset(task: ProcessTask):
        task.status = ProcessStatus.PENDING
        task.progress = 0
        task.error = None
        task.result = None
        task.mime_type = None

    def _report_error(self, message: str, details: Optional[str] = None):
        event = ErrorEvent(
            id=str(uuid.uuid4()),
            category=BatchConstants.ERROR_CATEGORY_PROCESSING,
            message=message,
            details=details,
            timestamp=int(time.time() * 1000),
        )
        self._errors.append(event)

        if self.on_error is not None:
            try:
                self.on_error(event)
            except Exception:
                logger.exception("Error callback raised")
