"""Pytest configuration for Circuitboard."""
import os

import pytest

from engine.config import EngineConfig, get_config
from engine.editor import Editor
from engine.models import Bounds


def pytest_configure():
    # Headless pygame for the renderer and export tests.
    os.environ.setdefault("SDL_VIDEODRIVER", "dummy")
    os.environ.setdefault("SDL_AUDIODRIVER", "dummy")


@pytest.fixture(autouse=True)
def clear_config_cache():
    get_config.cache_clear()
    yield
    get_config.cache_clear()


@pytest.fixture
def config() -> EngineConfig:
    return EngineConfig()


@pytest.fixture
def editor(config) -> Editor:
    """800x600 canvas, zoom 1, pan 0, trash zone in the bottom-right corner"""
    return Editor(config, viewport_size=(800, 600), trash_zone=Bounds(700, 500, 780, 580))
