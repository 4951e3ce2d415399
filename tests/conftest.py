"""
Test Configuration
==================

Pytest configuration with fixtures for all test types.
Provides isolated settings, scene stores, sample scenes and mock services.
"""

import os
import tempfile
from pathlib import Path
from typing import Generator

# Settings are read on first import of the package (logging initializes then)
os.environ.setdefault("OPEN_IMAGE_ENVIRONMENT", "testing")
os.environ.setdefault("OPEN_IMAGE_STORAGE_PATH", tempfile.mkdtemp(prefix="open_image_test_"))

import pytest
from unittest.mock import AsyncMock, MagicMock
from fastapi.testclient import TestClient
from pydantic_settings import SettingsConfigDict

import openimage.config.settings as settings_module
from openimage.config.settings import Settings
from openimage.api.routes import editor as editor_routes
from openimage.core.scene.controller import InteractionController
from openimage.core.scene.elements import create_element
from openimage.core.scene.scene import Scene
from openimage.core.scene.store import MemorySceneStore
from openimage.models.schemas import ElementKind

from tests.utils.data_generators import SceneDataGenerator


# Test settings override
class TestSettings(Settings):
    """Test-specific settings."""

    environment: str = "testing"
    debug: bool = True
    browser_pool_size: int = 1  # Smaller pool for tests
    playwright_headless: bool = True
    render_timeout: float = 5.0
    image_fetch_timeout: float = 1.0
    log_level: str = "DEBUG"

    model_config = SettingsConfigDict(env_file=".env.test", env_prefix="OPEN_IMAGE_")


@pytest.fixture
def test_settings(tmp_path: Path) -> Generator[TestSettings, None, None]:
    """Install isolated settings with a per-test storage directory."""
    original = settings_module.settings
    settings = TestSettings(storage_path=tmp_path / "storage")
    settings_module.settings = settings
    editor_routes.reset_editor_controller()
    yield settings
    editor_routes.reset_editor_controller()
    settings_module.settings = original


@pytest.fixture(autouse=True)
def override_settings(test_settings: TestSettings) -> TestSettings:
    """Every test runs against the isolated settings."""
    return test_settings


@pytest.fixture
def memory_store() -> MemorySceneStore:
    return MemorySceneStore()


@pytest.fixture
def controller(memory_store: MemorySceneStore) -> InteractionController:
    """Controller over an empty in-memory store."""
    return InteractionController(memory_store)


@pytest.fixture
def empty_scene() -> Scene:
    return Scene()


@pytest.fixture
def sample_scene() -> Scene:
    """A text, a box and an image, in that paint order."""
    return SceneDataGenerator.mixed_scene()


@pytest.fixture
def blue_box_scene() -> Scene:
    """Single 100x50 blue box at the canvas origin."""
    return Scene().append(
        create_element(
            ElementKind.BOX,
            {"left": 0, "top": 0, "width": 100, "height": 50, "backgroundColor": "#3498db"},
        )
    )


@pytest.fixture
def fastapi_client(test_settings: TestSettings) -> Generator[TestClient, None, None]:
    """FastAPI test client."""
    from openimage.api.main import create_app

    with TestClient(create_app()) as client:
        yield client


@pytest.fixture
def mock_browser_pool() -> MagicMock:
    """Mock browser pool whose page returns a fixed screenshot."""
    from tests.utils.data_generators import ImageDataGenerator

    page = MagicMock()
    page.set_default_timeout = MagicMock()
    page.set_content = AsyncMock()
    page.wait_for_load_state = AsyncMock()
    locator = MagicMock()
    locator.screenshot = AsyncMock(
        return_value=ImageDataGenerator.png_bytes((5400, 2400), (0, 0, 0, 0))
    )
    page.locator = MagicMock(return_value=locator)

    context = MagicMock()
    context.new_page = AsyncMock(return_value=page)
    context.close = AsyncMock()

    browser = MagicMock()
    browser.new_context = AsyncMock(return_value=context)

    pool = MagicMock()
    pool.get_browser.return_value.__aenter__ = AsyncMock(return_value=browser)
    pool.get_browser.return_value.__aexit__ = AsyncMock(return_value=None)

    pool.page = page
    pool.context = context
    pool.browser = browser
    return pool
