"""
Image Manager - Holds uploaded source images in an LRU cache
"""

import logging
import time
import uuid
from collections import OrderedDict
from threading import Lock
from typing import Callable, Dict, List, Optional

from common.constants import StorageConstants
from core.image.converters import decode_image
from schemas import CropGeometry, ImageRecord, ResizeTarget

logger = logging.getLogger(__name__)

# Sentinel for "leave this setting unchanged"
_UNSET = object()


class ImageManager:
    """
    Stores encoded source images and their per-image saved settings.

    Images are kept encoded; callers decode on demand. Least recently used
    images are evicted when the count or memory limit would be exceeded.
    """

    def __init__(
        self,
        max_size_mb: int = StorageConstants.DEFAULT_MAX_MEMORY_MB,
        max_images: int = StorageConstants.DEFAULT_MAX_IMAGES,
        on_evict: Optional[Callable[[str], None]] = None,
    ):
        """
        Initialize Image Manager

        Args:
            max_size_mb: Maximum total size of stored bytes in megabytes
            max_images: Maximum number of images to store
            on_evict: Called with the id of each image dropped by eviction
        """
        self.max_size_bytes = max_size_mb * 1024 * 1024
        self.max_images = max_images
        self.current_size = 0
        self.on_evict = on_evict

        # LRU cache: image_id -> {"data": bytes, "record": ImageRecord, "timestamp": float}
        self.cache: OrderedDict = OrderedDict()

        # Upload order, kept separately from the LRU order
        self._insertion_order: Dict[str, int] = {}
        self._sequence = 0

        # Thread safety
        self.lock = Lock()

        logger.info(f"Image Manager initialized: {max_size_mb}MB, max {max_images} images")

    def store(self, data: bytes, name: str) -> ImageRecord:
        """
        Decode-check and store encoded image bytes

        Args:
            data: Encoded image bytes
            name: Original file name

        Returns:
            Record of the stored image

        Raises:
            DecodeError: If the bytes are not a readable image
            MemoryError: If the image does not fit even after eviction
        """
        image = decode_image(data)
        height, width = image.shape[:2]

        with self.lock:
            image_id = str(uuid.uuid4())
            evicted = self._ensure_space(len(data))

            record = ImageRecord(
                image_id=image_id,
                name=name,
                width=width,
                height=height,
                size_bytes=len(data),
            )
            self.cache[image_id] = {"data": data, "record": record, "timestamp": time.time()}
            self.current_size += len(data)
            self._sequence += 1
            self._insertion_order[image_id] = self._sequence
            self.cache.move_to_end(image_id)

            logger.debug(f"Stored image {image_id}: {name} {width}x{height}, {len(data)} bytes")
            stored = record.model_copy(deep=True)

        # Outside the lock: the callback may call back into the manager
        if self.on_evict is not None:
            for evicted_id in evicted:
                self.on_evict(evicted_id)

        return stored

    def get_bytes(self, image_id: str) -> Optional[bytes]:
        """
        Retrieve encoded image bytes

        Args:
            image_id: Image identifier

        Returns:
            Encoded bytes or None if not found
        """
        with self.lock:
            entry = self.cache.get(image_id)
            if entry is None:
                logger.warning(f"Image {image_id} not found")
                return None

            entry["timestamp"] = time.time()
            self.cache.move_to_end(image_id)
            return entry["data"]

    def get_record(self, image_id: str) -> Optional[ImageRecord]:
        """Get image record (metadata and saved settings) without the bytes"""
        with self.lock:
            entry = self.cache.get(image_id)
            if entry is None:
                return None
            return entry["record"].model_copy(deep=True)

    def has_image(self, image_id: str) -> bool:
        with self.lock:
            return image_id in self.cache

    def list_records(self) -> List[ImageRecord]:
        """All stored image records in insertion order"""
        with self.lock:
            records = [entry["record"] for entry in self.cache.values()]
            records.sort(key=lambda r: self._insertion_order.get(r.image_id, 0))
            return [record.model_copy(deep=True) for record in records]

    def update_settings(
        self,
        image_id: str,
        crop_params=_UNSET,
        resize_target=_UNSET,
        batch_resize_scale_factor=_UNSET,
    ) -> Optional[ImageRecord]:
        """
        Update the saved per-image settings.

        Arguments left unset keep their value; passing None clears a setting.

        Returns:
            Updated record or None if the image is not found
        """
        with self.lock:
            entry = self.cache.get(image_id)
            if entry is None:
                return None

            record: ImageRecord = entry["record"]
            if crop_params is not _UNSET:
                record.crop_params = (
                    CropGeometry.model_validate(crop_params) if crop_params is not None else None
                )
            if resize_target is not _UNSET:
                record.resize_target = (
                    ResizeTarget.model_validate(resize_target)
                    if resize_target is not None
                    else None
                )
            if batch_resize_scale_factor is not _UNSET:
                record.batch_resize_scale_factor = batch_resize_scale_factor

            logger.debug(f"Updated settings of image {image_id}")
            return record.model_copy(deep=True)

    def delete(self, image_id: str) -> bool:
        """
        Delete image from cache

        Args:
            image_id: Image identifier

        Returns:
            True if deleted, False if not found
        """
        with self.lock:
            if image_id not in self.cache:
                return False
            return self._delete_image(image_id)

    def _delete_image(self, image_id: str) -> bool:
        """Internal method to delete image"""
        entry = self.cache.pop(image_id)
        self._insertion_order.pop(image_id, None)
        self.current_size -= len(entry["data"])
        logger.debug(f"Deleted image {image_id}")
        return True

    def _ensure_space(self, required_size: int) -> List[str]:
        """
        Ensure enough space by removing old images if necessary

        Returns:
            Ids of the evicted images
        """
        if required_size > self.max_size_bytes:
            raise MemoryError(
                f"Image of {required_size} bytes exceeds storage limit of {self.max_size_bytes}"
            )

        evicted = []
        while self.cache and len(self.cache) >= self.max_images:
            evicted.append(self._evict_oldest())

        while self.current_size + required_size > self.max_size_bytes:
            image_id = self._evict_oldest()
            if image_id is None:
                raise MemoryError("Cannot free enough space")
            evicted.append(image_id)
        return evicted

    def _evict_oldest(self) -> Optional[str]:
        """Evict least recently used image and return its id"""
        if not self.cache:
            return None
        image_id = next(iter(self.cache))
        logger.info(f"Evicting least recently used image {image_id}")
        self._delete_image(image_id)
        return image_id

    def get_stats(self) -> Dict:
        """Get cache statistics"""
        with self.lock:
            return {
                "total_images": len(self.cache),
                "total_size_mb": self.current_size / (1024 * 1024),
                "max_size_mb": self.max_size_bytes / (1024 * 1024),
                "usage_percent": (self.current_size / self.max_size_bytes) * 100,
            }

    def cleanup(self):
        """Drop all stored images"""
        with self.lock:
            logger.info("Cleaning up Image Manager...")
            self.cache.clear()
            self._insertion_order.clear()
            self.current_size = 0
            logger.info("Image Manager cleanup complete")
