"""
Pytest configuration and fixtures for Cropify tests
"""

from unittest.mock import MagicMock

import cv2
import numpy as np
import pytest

from core.batch_processor import BatchProcessor
from core.image_manager import ImageManager
from services.image_service import ImageService


def make_png(width: int = 320, height: int = 240, channels: int = 3) -> bytes:
    """Encode a synthetic test image as PNG"""
    image = np.zeros((height, width, channels), dtype=np.uint8)
    # Horizontal and vertical gradients so every pixel is distinct enough to compare
    image[:, :, 0] = np.linspace(0, 255, width, dtype=np.uint8)[np.newaxis, :]
    image[:, :, 1] = np.linspace(0, 255, height, dtype=np.uint8)[:, np.newaxis]
    if channels == 4:
        image[:, :, 3] = 255
    success, buffer = cv2.imencode(".png", image)
    assert success
    return buffer.tobytes()


@pytest.fixture
def test_image():
    """Create a test image for testing"""
    image = np.zeros((480, 640, 3), dtype=np.uint8)
    # Add some content
    cv2.rectangle(image, (100, 100), (300, 300), (255, 255, 255), -1)
    cv2.circle(image, (450, 350), 50, (128, 128, 128), -1)
    return image


@pytest.fixture
def gradient_image():
    """BGR image whose pixels encode their own coordinates"""
    height, width = 300, 400
    image = np.zeros((height, width, 3), dtype=np.uint8)
    xs = np.arange(width)
    ys = np.arange(height)
    image[:, :, 0] = (xs % 256)[np.newaxis, :]
    image[:, :, 1] = (ys % 256)[:, np.newaxis]
    image[:, :, 2] = 200
    return image


@pytest.fixture
def png_bytes():
    """320x240 PNG image"""
    return make_png()


@pytest.fixture
def png_factory():
    """Factory for PNG images of a given size"""
    return make_png


@pytest.fixture
def image_manager():
    """Create ImageManager instance for testing"""
    manager = ImageManager(max_size_mb=100, max_images=10)
    yield manager
    # Cleanup
    manager.cleanup()


@pytest.fixture
def batch_processor(image_manager):
    """BatchProcessor without inter-task delay, recording error events"""
    events = []
    processor = BatchProcessor(
        image_source=image_manager, on_error=events.append, inter_task_delay_ms=0
    )
    processor.reported_events = events
    return processor


@pytest.fixture
def image_service(image_manager, batch_processor):
    """Create ImageService instance for testing"""
    return ImageService(image_manager=image_manager, batch_processor=batch_processor)


@pytest.fixture
def mock_image_manager():
    """Create mock ImageManager for unit testing"""
    mock = MagicMock()
    mock.get_bytes.return_value = make_png()
    mock.has_image.return_value = True
    mock.delete.return_value = True
    mock.list_records.return_value = []
    mock.get_record.return_value = None
    return mock
