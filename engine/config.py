"""
Circuitboard Engine Configuration
=================================

Scene limits, gesture tuning constants and the palette shared by the engine
and the pygame front end.

Every tunable in EngineConfig can be overridden from the environment with a
CIRCUITBOARD_ prefix, e.g. CIRCUITBOARD_DRAG_EPSILON=5.
"""

import os
from dataclasses import dataclass
from functools import lru_cache
from typing import Optional, Tuple

from .errors import ConfigError


# ==============================================================================
# Palette and Vocabulary
# ==============================================================================

COLORS = [
    '#1e90ff',  # blue (default)
    '#ff4d4f',  # red
    '#fadb14',  # yellow
    '#52c41a',  # green
    '#ffffff',  # white
    '#000000',  # black
]
DEFAULT_NODE_COLOR = COLORS[0]

KEYWORD_OPTIONS = ('increases', 'decreases')

SCENE_CODE_VERSION = 2


# ==============================================================================
# Engine Configuration
# ==============================================================================

@dataclass
class EngineConfig:
    """Tunable limits for the viewport, gestures and history"""
    # Viewport
    zoom_min: float = 0.5
    zoom_max: float = 2.0
    zoom_step: float = 0.1
    pan_limit: Optional[Tuple[float, float, float, float]] = None  # (min_x, min_y, max_x, max_y)

    # Gestures
    drag_epsilon: float = 3.0          # scene units, per axis
    trash_expand: float = 6.0          # screen px added around the drop-zone
    handle_radius: float = 8.0         # link handles and resize corners, scene units
    edge_hit_tolerance: float = 6.0    # distance from an edge path that still hits it
    box_select_containment: bool = False

    # Items
    node_size_min: int = 24
    node_size_max: int = 200
    node_size_default: int = 64
    sticky_min_width: float = 100.0
    sticky_min_height: float = 80.0
    sticky_default_width: float = 240.0
    sticky_default_height: float = 160.0

    # History
    history_capacity: int = 50

    def __post_init__(self):
        if self.zoom_min <= 0 or self.zoom_min > self.zoom_max:
            raise ConfigError(
                f"zoom_min ({self.zoom_min}) must be positive and not above "
                f"zoom_max ({self.zoom_max})"
            )
        if self.history_capacity < 1:
            raise ConfigError("history_capacity must be at least 1")

    def clamp_zoom(self, value: float) -> float:
        return max(self.zoom_min, min(self.zoom_max, value))

    def clamp_node_size(self, value: float) -> int:
        return int(max(self.node_size_min, min(self.node_size_max, round(value))))


def _read_env(key: str, default: Optional[str] = None) -> Optional[str]:
    return os.getenv(f"CIRCUITBOARD_{key}", default)


def _parse_float(key: str, default: float) -> float:
    raw = _read_env(key)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError:
        raise ConfigError(f"CIRCUITBOARD_{key} must be a number, got {raw!r}")


def _parse_int(key: str, default: int) -> int:
    raw = _read_env(key)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        raise ConfigError(f"CIRCUITBOARD_{key} must be an integer, got {raw!r}")


def _parse_bool(key: str, default: bool) -> bool:
    raw = _read_env(key)
    if raw is None or raw.strip() == "":
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


def _parse_pan_limit(key: str) -> Optional[Tuple[float, float, float, float]]:
    raw = _read_env(key)
    if raw is None or raw.strip() == "":
        return None
    parts = [p.strip() for p in raw.split(",")]
    if len(parts) != 4:
        raise ConfigError(f"CIRCUITBOARD_{key} must be 'min_x,min_y,max_x,max_y'")
    try:
        min_x, min_y, max_x, max_y = (float(p) for p in parts)
    except ValueError:
        raise ConfigError(f"CIRCUITBOARD_{key} must contain four numbers, got {raw!r}")
    return (min_x, min_y, max_x, max_y)


def load_config() -> EngineConfig:
    """Build an EngineConfig from CIRCUITBOARD_* environment variables."""
    defaults = EngineConfig()
    return EngineConfig(
        zoom_min=_parse_float("ZOOM_MIN", defaults.zoom_min),
        zoom_max=_parse_float("ZOOM_MAX", defaults.zoom_max),
        zoom_step=_parse_float("ZOOM_STEP", defaults.zoom_step),
        pan_limit=_parse_pan_limit("PAN_LIMIT"),
        drag_epsilon=_parse_float("DRAG_EPSILON", defaults.drag_epsilon),
        trash_expand=_parse_float("TRASH_EXPAND", defaults.trash_expand),
        box_select_containment=_parse_bool(
            "BOX_SELECT_CONTAINMENT", defaults.box_select_containment
        ),
        history_capacity=_parse_int("HISTORY_CAPACITY", defaults.history_capacity),
    )


@lru_cache(maxsize=1)
def get_config() -> EngineConfig:
    """Load and cache the process-wide configuration."""
    return load_config()
