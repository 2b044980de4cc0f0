"""
Tests for ImageManager
"""

import pytest

from api.exceptions import DecodeError
from core.image_manager import ImageManager
from schemas import CropGeometry, ResizeTarget


class TestImageManager:
    def test_store_and_get(self, image_manager, png_bytes):
        record = image_manager.store(png_bytes, "photo.png")

        assert record.name == "photo.png"
        assert (record.width, record.height) == (320, 240)
        assert record.size_bytes == len(png_bytes)
        assert image_manager.get_bytes(record.image_id) == png_bytes
        assert image_manager.has_image(record.image_id)

    def test_store_rejects_invalid(self, image_manager):
        with pytest.raises(DecodeError):
            image_manager.store(b"not an image", "broken.png")
        assert image_manager.get_stats()["total_images"] == 0

    def test_get_missing(self, image_manager):
        assert image_manager.get_bytes("missing") is None
        assert image_manager.get_record("missing") is None
        assert not image_manager.has_image("missing")

    def test_list_in_upload_order(self, image_manager, png_factory):
        first = image_manager.store(png_factory(10, 10), "a.png")
        second = image_manager.store(png_factory(20, 20), "b.png")

        # Access reorders the LRU cache but not the listing
        image_manager.get_bytes(first.image_id)

        names = [r.name for r in image_manager.list_records()]
        assert names == ["a.png", "b.png"]
        assert second.image_id in [r.image_id for r in image_manager.list_records()]

    def test_lru_eviction_by_count(self, png_factory):
        manager = ImageManager(max_size_mb=10, max_images=2)
        first = manager.store(png_factory(10, 10), "a.png")
        second = manager.store(png_factory(10, 10), "b.png")

        manager.get_bytes(first.image_id)
        third = manager.store(png_factory(10, 10), "c.png")

        assert manager.has_image(first.image_id)
        assert not manager.has_image(second.image_id)
        assert manager.has_image(third.image_id)

    def test_eviction_callback(self, png_factory):
        evicted = []
        manager = ImageManager(max_size_mb=10, max_images=1, on_evict=evicted.append)
        first = manager.store(png_factory(10, 10), "a.png")

        manager.store(png_factory(10, 10), "b.png")

        assert evicted == [first.image_id]

    def test_delete_does_not_call_eviction_callback(self, png_factory):
        evicted = []
        manager = ImageManager(max_size_mb=10, max_images=5, on_evict=evicted.append)
        record = manager.store(png_factory(10, 10), "a.png")

        manager.delete(record.image_id)

        assert evicted == []

    def test_too_large_for_storage(self, png_factory):
        manager = ImageManager(max_size_mb=0, max_images=5)
        with pytest.raises(MemoryError):
            manager.store(png_factory(10, 10), "a.png")

    def test_update_settings(self, image_manager, png_bytes):
        record = image_manager.store(png_bytes, "photo.png")
        geometry = CropGeometry(x=5, y=5, width=50, height=40)

        updated = image_manager.update_settings(
            record.image_id,
            crop_params=geometry,
            resize_target=ResizeTarget(enabled=True, width=10, height=10),
        )
        assert updated.crop_params == geometry
        assert updated.resize_target.enabled

        updated = image_manager.update_settings(record.image_id, batch_resize_scale_factor=2.0)
        # Unspecified settings are kept
        assert updated.crop_params == geometry
        assert updated.batch_resize_scale_factor == 2.0

        updated = image_manager.update_settings(record.image_id, crop_params=None)
        assert updated.crop_params is None

    def test_update_settings_missing(self, image_manager):
        assert image_manager.update_settings("missing", crop_params=None) is None

    def test_records_are_copies(self, image_manager, png_bytes):
        record = image_manager.store(png_bytes, "photo.png")
        record.name = "changed.png"

        assert image_manager.get_record(record.image_id).name == "photo.png"

    def test_delete(self, image_manager, png_bytes):
        record = image_manager.store(png_bytes, "photo.png")

        assert image_manager.delete(record.image_id) is True
        assert image_manager.delete(record.image_id) is False
        assert image_manager.get_stats()["total_images"] == 0
        assert image_manager.list_records() == []

    def test_stats_and_cleanup(self, image_manager, png_bytes):
        image_manager.store(png_bytes, "a.png")
        image_manager.store(png_bytes, "b.png")

        stats = image_manager.get_stats()
        assert stats["total_images"] == 2
        assert stats["total_size_mb"] > 0

        image_manager.cleanup()
        assert image_manager.get_stats()["total_images"] == 0
