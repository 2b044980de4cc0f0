"""
Pytest configuration for API integration tests
"""

import base64

import pytest
from fastapi.testclient import TestClient


@pytest.fixture(scope="function")
def client():
    """
    Create a test client with properly initialized app state.
    Each test gets a fresh client to avoid state contamination.
    """
    from config import Settings
    from main import app, build_managers

    # Initialize managers (lightweight for testing)
    settings = Settings(
        environment="test",
        batch={"inter_task_delay_ms": 0},
        storage={"max_images": 10, "max_memory_mb": 100},
    )
    image_manager, batch_processor = build_managers(settings)

    app.state.image_manager = image_manager
    app.state.batch_processor = batch_processor
    app.state.settings = settings
    app.state.debug = False

    # Create test client (no context manager so the lifespan does not replace the state)
    test_client = TestClient(app, raise_server_exceptions=False)

    yield test_client

    image_manager.cleanup()


@pytest.fixture
def upload(client, png_factory):
    """Upload a synthetic PNG and return its JSON record"""

    def _upload(width=320, height=240, name="photo.png"):
        data = base64.b64encode(png_factory(width, height)).decode()
        response = client.post("/api/image/upload", json={"name": name, "data": data})
        assert response.status_code == 200, response.text
        return response.json()

    return _upload
