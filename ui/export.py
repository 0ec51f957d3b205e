"""
Circuitboard PNG Export
=======================

Rasterizes the scene to a PNG file.

When any color has a topic, the export carries a legend and the viewport is
temporarily re-framed so all content fits beside a reserved legend column,
never zooming in past the current zoom. The previous zoom and pan are
restored afterwards whether or not the write succeeds.
"""

import asyncio
import logging
from datetime import datetime
from typing import Optional, Sequence, Tuple

import pygame

from engine.editor import Editor
from engine.geometry import content_bounds
from engine.models import Node, Point, StickyNote

from .canvas import SceneRenderer

logger = logging.getLogger(__name__)

LEGEND_WIDTH = 220
EXPORT_PADDING = 50
DEFAULT_EXPORT_SIZE = (1200, 800)


def export_framing(
    nodes: Sequence[Node],
    notes: Sequence[StickyNote],
    canvas_size: Tuple[float, float],
    zoom: float
) -> Optional[Tuple[float, Point]]:
    """
    Zoom and pan that fit all content left of the legend column.

    Returns:
        (zoom, pan), or None for an empty scene or a canvas too small to fit
    """
    bounds = content_bounds(nodes, notes)
    if bounds is None:
        return None

    width, height = canvas_size
    available_w = width - LEGEND_WIDTH - EXPORT_PADDING * 3
    available_h = height - EXPORT_PADDING * 2
    scale_x = available_w / bounds.width if bounds.width > 0 else 1
    scale_y = available_h / bounds.height if bounds.height > 0 else 1
    new_zoom = min(scale_x, scale_y, zoom)
    if new_zoom <= 0:
        logger.debug("Export framing skipped: canvas too small for the legend column")
        return None

    center_x = (bounds.left + bounds.right) / 2
    center_y = (bounds.top + bounds.bottom) / 2
    view_x = (width - LEGEND_WIDTH) / 2
    view_y = height / 2
    return new_zoom, Point(view_x / new_zoom - center_x, view_y / new_zoom - center_y)


def default_export_name(now: Optional[datetime] = None) -> str:
    now = now or datetime.now()
    return f"circuitboard-{now:%Y%m%d-%H%M%S}.png"


async def export_png(
    editor: Editor,
    path: Optional[str] = None,
    renderer: Optional[SceneRenderer] = None,
    size: Optional[Tuple[int, int]] = None
) -> str:
    """
    Write the scene to a PNG file.

    Args:
        editor: Scene and viewport to export
        path: Output file; a timestamped name when omitted
        renderer: Renderer to reuse; a fresh one when omitted
        size: Image size; the viewport's measured size by default

    Returns:
        The written path
    """
    path = path or default_export_name()
    renderer = renderer or SceneRenderer()
    width, height = size or editor.viewport.size or DEFAULT_EXPORT_SIZE
    size = (int(width), int(height))

    legend = editor.legend_entries()
    framing = None
    if legend:
        framing = export_framing(editor.nodes, editor.sticky_notes, size, editor.viewport.zoom)
    zoom, pan = framing or editor.viewport.snapshot()

    with editor.viewport.transient(zoom, pan):
        surface = pygame.Surface(size)
        renderer.draw(surface, editor, legend=legend, overlays=False)
        await asyncio.to_thread(pygame.image.save, surface, path)

    logger.info(f"Exported {path} ({size[0]}x{size[1]}, legend rows: {len(legend)})")
    return path
