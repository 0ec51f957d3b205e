"""
Circuitboard Coordinate Transform
=================================

Maps between screen space (pixels relative to the canvas origin) and scene
space (where nodes and notes live):

    scene  = screen / zoom - pan
    screen = (scene + pan) * zoom

Zoom changes made through set_zoom_anchored keep the scene point under the
viewport center where it is.
"""

import logging
from contextlib import contextmanager
from typing import Optional, Tuple

from .config import EngineConfig, get_config
from .models import Point

logger = logging.getLogger(__name__)


class Viewport:
    """
    Zoom and pan of the canvas, plus the measured canvas size.

    The size is optional: until the canvas has been measured, anchored zoom
    falls back to setting the zoom without repositioning.
    """

    def __init__(
        self,
        zoom: float = 1.0,
        pan: Tuple[float, float] = (0.0, 0.0),
        size: Optional[Tuple[float, float]] = None,
        config: Optional[EngineConfig] = None
    ):
        self._config = config or get_config()
        self.size = size
        self._zoom = self._config.clamp_zoom(zoom)
        self._pan = self._clamp_pan(Point(*pan))

    @property
    def zoom(self) -> float:
        return self._zoom

    @zoom.setter
    def zoom(self, value: float):
        self._zoom = self._config.clamp_zoom(value)

    @property
    def pan(self) -> Point:
        return self._pan

    @pan.setter
    def pan(self, value: Tuple[float, float]):
        self._pan = self._clamp_pan(Point(*value))

    def _clamp_pan(self, pan: Point) -> Point:
        limit = self._config.pan_limit
        if limit is None:
            return pan
        min_x, min_y, max_x, max_y = limit
        return Point(
            max(min_x, min(max_x, pan.x)),
            max(min_y, min(max_y, pan.y))
        )

    # --------------------------------------------------------------------------
    # Conversions
    # --------------------------------------------------------------------------

    def to_scene(self, sx: float, sy: float) -> Point:
        """Convert a screen point to scene space"""
        return Point(sx / self._zoom - self._pan.x, sy / self._zoom - self._pan.y)

    def to_screen(self, x: float, y: float) -> Point:
        """Convert a scene point to screen space"""
        return Point((x + self._pan.x) * self._zoom, (y + self._pan.y) * self._zoom)

    def screen_center(self) -> Optional[Point]:
        if self.size is None:
            return None
        width, height = self.size
        return Point(width / 2, height / 2)

    def scene_center(self) -> Point:
        """
        Scene point under the viewport center.

        Before the canvas is measured this is (200, 200), where new nodes land.
        """
        center = self.screen_center()
        if center is None:
            return Point(200.0, 200.0)
        return self.to_scene(*center)

    # --------------------------------------------------------------------------
    # Zoom
    # --------------------------------------------------------------------------

    def set_zoom_anchored(self, new_zoom: float):
        """
        Change zoom while keeping the scene point under the viewport center.

        Args:
            new_zoom: Requested zoom, clamped to the configured range
        """
        center = self.screen_center()
        if center is None:
            self.zoom = new_zoom
            return

        anchor = self.to_scene(*center)
        self.zoom = new_zoom
        self.pan = (center.x / self._zoom - anchor.x, center.y / self._zoom - anchor.y)
        logger.debug(f"Zoom anchored at {anchor} -> {self._zoom:.2f}")

    def zoom_in(self) -> bool:
        """Step zoom up. Returns False when already at the maximum."""
        step = self._config.zoom_step
        target = min(self._config.zoom_max, round(self._zoom + step, 2))
        if target == self._zoom:
            return False
        self.set_zoom_anchored(target)
        return True

    def zoom_out(self) -> bool:
        """Step zoom down. Returns False when already at the minimum."""
        step = self._config.zoom_step
        target = max(self._config.zoom_min, round(self._zoom - step, 2))
        if target == self._zoom:
            return False
        self.set_zoom_anchored(target)
        return True

    # --------------------------------------------------------------------------
    # Snapshots
    # --------------------------------------------------------------------------

    def snapshot(self) -> Tuple[float, Point]:
        return (self._zoom, self._pan)

    def restore(self, snapshot: Tuple[float, Point]):
        # Written directly: a transient value may sit outside the clamped range
        self._zoom, self._pan = snapshot

    def reset(self):
        self._zoom = self._config.clamp_zoom(1.0)
        self._pan = self._clamp_pan(Point(0.0, 0.0))

    @contextmanager
    def transient(self, zoom: float, pan: Tuple[float, float]):
        """
        Temporarily apply zoom/pan, restoring the previous values on exit.

        The restore happens whether or not the body raises. The transient
        values are applied unclamped so export framing can zoom out further
        than a user can.
        """
        saved = self.snapshot()
        self._zoom = zoom
        self._pan = Point(*pan)
        try:
            yield self
        finally:
            self.restore(saved)
