"""
Test Configuration
==================

Pytest configuration with fixtures for unit and integration tests.
Provides test settings, application instances and ZPL samples.
"""

import os

# Must be set before zpl_render configures logging on import
os.environ.setdefault("ZPL_RENDER_ENVIRONMENT", "testing")

from typing import Generator

import pytest
from fastapi.testclient import TestClient
from pydantic_settings import SettingsConfigDict

from zpl_render.api.main import create_app
from zpl_render.config.settings import Settings
from zpl_render.core.rendering.png_generator import PillowRasterizer
from zpl_render.core.zpl.parser import ZPLParser

from tests.data import sample_zpl_documents as samples


# Test settings override
class TestSettings(Settings):
    """Test-specific settings."""

    __test__ = False

    environment: str = "testing"
    debug: bool = True
    log_level: str = "DEBUG"
    max_image_pixels: int = 4_000_000

    model_config = SettingsConfigDict(env_file=".env.test", env_prefix="ZPL_RENDER_", frozen=True)


@pytest.fixture(scope="session")
def test_settings() -> TestSettings:
    """Test settings fixture."""
    return TestSettings()


@pytest.fixture
def parser() -> ZPLParser:
    return ZPLParser()


@pytest.fixture
def rasterizer(test_settings: TestSettings) -> PillowRasterizer:
    return PillowRasterizer(settings=test_settings)


@pytest.fixture
def app(test_settings: TestSettings):
    """Application wired with the real parser and rasterizer."""
    return create_app(
        settings=test_settings,
        rasterizer=PillowRasterizer(max_image_pixels=test_settings.max_image_pixels),
    )


@pytest.fixture
def client(app) -> Generator[TestClient, None, None]:
    """FastAPI test client."""
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def simple_label() -> bytes:
    return samples.SIMPLE_LABEL


@pytest.fixture
def multi_label() -> bytes:
    return samples.MULTI_LABEL
