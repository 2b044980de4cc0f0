"""
Image Service - Business logic for single-image operations.

This service provides high-level image operations including import,
per-image settings, crop / resize / preview and export naming.
"""

import logging
import os
from typing import Dict, Iterable, List, Optional, Tuple

from api.exceptions import ImageNotFoundException
from common.constants import EngineConstants, GeometryConstants, OutputConstants
from common.enums import OutputFormat
from core.batch_processor import BatchProcessor, resolve_crop_params, resolve_scale_factor
from core.image import (
    calculate_rotated_size,
    crop,
    decode_image,
    encode,
    from_base64,
    generate_preview,
    mime_type_for,
    preview_size,
    resize_proportional,
    to_data_url,
)
from core.image_manager import ImageManager
from schemas import (
    CropGeometry,
    ImageRecord,
    ImageSettingsUpdate,
    OutputSettings,
    PreviewResponse,
    ResizeTarget,
    Size,
)

logger = logging.getLogger(__name__)


def filter_images(
    images: Iterable[ImageRecord],
    min_width: Optional[int] = None,
    min_height: Optional[int] = None,
) -> List[ImageRecord]:
    """
    Keep images strictly larger than the given minimum sizes.

    A limit that is None or not positive is ignored.
    """
    result = []
    for image in images:
        if min_width is not None and min_width > 0 and image.width <= min_width:
            continue
        if min_height is not None and min_height > 0 and image.height <= min_height:
            continue
        result.append(image)
    return result


def count_active_filters(min_width: Optional[int] = None, min_height: Optional[int] = None) -> int:
    return sum(1 for limit in (min_width, min_height) if limit is not None and limit > 0)


def generate_file_name(
    original_name: Optional[str], image_id: str, output_settings: OutputSettings
) -> str:
    """
    Export file name of a processed image.

    The base name is the original file name without its extension, or
    ``image_<id>`` when unknown. Unless the original name is kept, prefix and
    suffix are added around the base. The extension follows the output format.
    """
    base = os.path.splitext(original_name)[0] if original_name else f"image_{image_id}"
    if not output_settings.maintain_original_name:
        prefix = output_settings.filename_prefix or ""
        suffix = output_settings.filename_suffix or ""
        base = f"{prefix}{base}{suffix}"

    extension = OutputConstants.FILE_EXTENSIONS[OutputFormat(output_settings.format).value]
    return f"{base}{extension}"


class ImageService:
    """
    Service for single-image operations.

    Wraps the ImageManager (storage) and the transform engine. When a batch
    processor is attached, deleting an image also drops its batch tasks.
    """

    def __init__(
        self,
        image_manager: ImageManager,
        batch_processor: Optional[BatchProcessor] = None,
        max_surface_pixels: int = EngineConstants.MAX_SURFACE_PIXELS,
        preview_max_dimension: int = EngineConstants.PREVIEW_MAX_DIMENSION,
        preview_quality: int = EngineConstants.PREVIEW_JPEG_QUALITY,
    ):
        """
        Initialize image service.

        Args:
            image_manager: Image manager instance
            batch_processor: Batch processor whose tasks are invalidated on delete
            max_surface_pixels: Surface size ceiling for engine calls
            preview_max_dimension: Longest side of crop previews
            preview_quality: JPEG quality of crop previews
        """
        self.image_manager = image_manager
        self.batch_processor = batch_processor
        self.max_surface_pixels = max_surface_pixels
        self.preview_max_dimension = preview_max_dimension
        self.preview_quality = preview_quality

    def get_record(self, image_id: str) -> ImageRecord:
        """
        Get image record by ID.

        Raises:
            ImageNotFoundException: If image not found
        """
        record = self.image_manager.get_record(image_id)
        if record is None:
            raise ImageNotFoundException(image_id)
        return record

    def get_bytes(self, image_id: str) -> bytes:
        data = self.image_manager.get_bytes(image_id)
        if data is None:
            raise ImageNotFoundException(image_id)
        return data

    def list_images(
        self, min_width: Optional[int] = None, min_height: Optional[int] = None
    ) -> List[ImageRecord]:
        """Stored images in upload order, optionally filtered by minimum size"""
        return filter_images(self.image_manager.list_records(), min_width, min_height)

    def store_bytes(self, data: bytes, name: str) -> ImageRecord:
        """
        Store encoded image bytes.

        Raises:
            DecodeError: If the bytes are not a readable image
        """
        record = self.image_manager.store(data, name)
        logger.info(f"Image stored: {record.image_id} ({record.width}x{record.height})")
        return record

    def import_base64(self, data: str, name: str) -> ImageRecord:
        """Store an image uploaded as a base64 string or data URI"""
        return self.store_bytes(from_base64(data), name)

    def import_from_file(self, file_path: str) -> ImageRecord:
        """
        Import image from file system.

        Args:
            file_path: Path to image file

        Returns:
            Record of the stored image

        Raises:
            FileNotFoundError: If file does not exist
            DecodeError: If file cannot be loaded as image
        """
        if not os.path.exists(file_path):
            raise FileNotFoundError(f"Image file not found: {file_path}")

        with open(file_path, "rb") as f:
            data = f.read()

        record = self.store_bytes(data, os.path.basename(file_path))
        logger.info(f"Imported image from {file_path}: {record.image_id} ({len(data)} bytes)")
        return record

    def update_settings(self, image_id: str, update: ImageSettingsUpdate) -> ImageRecord:
        """
        Save per-image settings.

        Raises:
            ImageNotFoundException: If image not found
        """
        changes: Dict = {}
        if update.clear_crop_params:
            changes["crop_params"] = None
        elif update.crop_params is not None:
            changes["crop_params"] = update.crop_params

        if update.clear_resize_target:
            changes["resize_target"] = None
        elif update.resize_target is not None:
            changes["resize_target"] = update.resize_target

        if update.clear_scale_factor:
            changes["batch_resize_scale_factor"] = None
        elif update.batch_resize_scale_factor is not None:
            changes["batch_resize_scale_factor"] = update.batch_resize_scale_factor

        record = self.image_manager.update_settings(image_id, **changes)
        if record is None:
            raise ImageNotFoundException(image_id)
        return record

    def delete_image(self, image_id: str) -> bool:
        """
        Delete an image and every batch task that references it.

        Raises:
            ImageNotFoundException: If image not found
        """
        if not self.image_manager.delete(image_id):
            raise ImageNotFoundException(image_id)

        if self.batch_processor is not None:
            self.batch_processor.invalidate_image(image_id)

        logger.info(f"Image deleted: {image_id}")
        return True

    def crop_image(
        self,
        image_id: str,
        geometry: Optional[CropGeometry] = None,
        resize_target: Optional[ResizeTarget] = None,
        output_settings: Optional[OutputSettings] = None,
    ) -> Tuple[bytes, str]:
        """
        Crop one image and encode it.

        Geometry and resize target default to the image's saved settings.

        Returns:
            Tuple of (encoded bytes, MIME type)
        """
        record = self.get_record(image_id)
        output_settings = output_settings or OutputSettings()
        geometry = geometry or resolve_crop_params(record, CropGeometry())
        resize_target = resize_target or record.resize_target

        source = decode_image(self.get_bytes(image_id))
        surface = crop(source, geometry, resize_target, self.max_surface_pixels)
        return encode(surface, output_settings), mime_type_for(output_settings.format)

    def resize_image(
        self,
        image_id: str,
        scale_factor: Optional[float] = None,
        output_settings: Optional[OutputSettings] = None,
    ) -> Tuple[bytes, str]:
        """
        Proportionally resize one image and encode it.

        Returns:
            Tuple of (encoded bytes, MIME type)
        """
        record = self.get_record(image_id)
        output_settings = output_settings or OutputSettings()
        if scale_factor is None:
            scale_factor = resolve_scale_factor(record, GeometryConstants.DEFAULT_SCALE_FACTOR)

        source = decode_image(self.get_bytes(image_id))
        surface = resize_proportional(source, scale_factor, self.max_surface_pixels)
        return encode(surface, output_settings), mime_type_for(output_settings.format)

    def preview(self, image_id: str, geometry: Optional[CropGeometry] = None) -> PreviewResponse:
        """Low resolution JPEG preview of a crop as a data URI"""
        record = self.get_record(image_id)
        geometry = geometry or resolve_crop_params(record, CropGeometry())

        source = decode_image(self.get_bytes(image_id))
        data = generate_preview(source, geometry, self.preview_max_dimension, self.preview_quality)
        width, height = preview_size(geometry.width, geometry.height, self.preview_max_dimension)

        return PreviewResponse(
            image_id=image_id,
            width=width,
            height=height,
            data_url=to_data_url(data, mime_type_for(OutputFormat.JPG)),
        )

    @staticmethod
    def rotated_size(width: float, height: float, rotation: float) -> Size:
        rotated_width, rotated_height = calculate_rotated_size(width, height, rotation)
        return Size(width=rotated_width, height=rotated_height)

    def get_stats(self) -> Dict:
        """Get image manager statistics."""
        return self.image_manager.get_stats()
