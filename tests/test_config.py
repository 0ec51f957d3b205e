import pytest

from engine.config import EngineConfig, get_config, load_config
from engine.errors import ConfigError
from engine.transform import Viewport


def test_defaults_without_environment():
    config = load_config()
    assert (config.zoom_min, config.zoom_max, config.zoom_step) == (0.5, 2.0, 0.1)
    assert config.drag_epsilon == 3.0
    assert config.pan_limit is None
    assert config.history_capacity == 50


def test_environment_overrides(monkeypatch):
    monkeypatch.setenv("CIRCUITBOARD_DRAG_EPSILON", "5")
    monkeypatch.setenv("CIRCUITBOARD_HISTORY_CAPACITY", "10")
    monkeypatch.setenv("CIRCUITBOARD_BOX_SELECT_CONTAINMENT", "yes")
    monkeypatch.setenv("CIRCUITBOARD_PAN_LIMIT", "-100, -100, 100, 100")
    config = get_config()
    assert config.drag_epsilon == 5.0
    assert config.history_capacity == 10
    assert config.box_select_containment is True
    assert config.pan_limit == (-100, -100, 100, 100)
    assert get_config() is config


@pytest.mark.parametrize("key,value", [
    ("DRAG_EPSILON", "far"),
    ("HISTORY_CAPACITY", "2.5"),
    ("HISTORY_CAPACITY", "0"),
    ("ZOOM_MIN", "3"),
    ("PAN_LIMIT", "1,2"),
    ("PAN_LIMIT", "a,b,c,d"),
])
def test_bad_values_raise(monkeypatch, key, value):
    monkeypatch.setenv(f"CIRCUITBOARD_{key}", value)
    with pytest.raises(ConfigError):
        load_config()


def test_clamps():
    config = EngineConfig()
    assert config.clamp_zoom(5) == 2.0
    assert config.clamp_zoom(0.1) == 0.5
    assert config.clamp_node_size(500) == 200
    assert config.clamp_node_size(10) == 24
    assert config.clamp_node_size(63.6) == 64


def test_pan_limit_is_applied_by_viewport():
    viewport = Viewport(config=EngineConfig(pan_limit=(0, 0, 10, 10)))
    viewport.pan = (50, -5)
    assert tuple(viewport.pan) == (10, 0)
