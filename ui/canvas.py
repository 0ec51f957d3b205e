"""
Circuitboard Canvas Renderer
============================

Draws an editor's scene onto any pygame Surface: the window in main.py, or
an off-screen surface for PNG export.

Draw order (bottom to top):
    grid -> sticky notes -> edges -> nodes -> gesture overlays -> trash zone -> legend

Everything is positioned through the editor's Viewport, so a transient zoom
or pan (export framing) is picked up without any extra plumbing.
"""

import math
from typing import List, Optional, Sequence, Tuple

import pygame

from engine.editor import Editor
from engine.geometry import arrowhead, corner_point, edge_path, quadratic_points
from engine.models import Bounds, Corner, Direction, Edge, Node, Point, Side, StickyNote
from engine.transform import Viewport


# Colors (RGB)
UI_COLORS = {
    'background': (245, 246, 250),
    'grid': (225, 228, 236),
    'edge': (90, 100, 120),
    'edge_selected': (30, 144, 255),
    'edge_label': (60, 64, 72),
    'node_outline': (40, 44, 52),
    'node_selected': (255, 170, 0),
    'handle': (255, 255, 255),
    'sticky': (255, 244, 170),
    'sticky_border': (220, 200, 100),
    'sticky_text': (60, 56, 40),
    'link_preview': (255, 170, 0),
    'selection_box': (30, 144, 255),
    'trash': (255, 77, 79),
    'trash_hot': (200, 30, 30),
    'legend_bg': (255, 255, 255),
    'legend_text': (40, 44, 52),
}

GRID_SPACING = 40


def hex_to_rgb(value: str) -> Tuple[int, int, int]:
    """'#1e90ff' -> (30, 144, 255); anything unparseable renders grey"""
    text = value.lstrip('#')
    if len(text) == 3:
        text = ''.join(c * 2 for c in text)
    try:
        return tuple(int(text[i:i + 2], 16) for i in (0, 2, 4))
    except ValueError:
        return (128, 128, 128)


def _unit(dx: float, dy: float) -> Point:
    length = math.hypot(dx, dy) or 1.0
    return Point(dx / length, dy / length)


class SceneRenderer:
    """Stateless scene painter; only fonts are cached"""

    def __init__(self, font_size: int = 20):
        if not pygame.font.get_init():
            pygame.font.init()
        self.font = pygame.font.Font(None, font_size)
        self.small_font = pygame.font.Font(None, max(12, font_size - 4))

    def draw(
        self,
        surface: pygame.Surface,
        editor: Editor,
        legend: Optional[Sequence[Tuple[str, str]]] = None,
        overlays: bool = True
    ):
        """
        Paint the whole scene.

        Args:
            surface: Target surface
            editor: Scene, viewport and gesture state to draw
            legend: (color, topic) rows; drawn in a right-hand column when given
            overlays: Whether to draw live gesture feedback and the trash zone
        """
        viewport = editor.viewport
        store = editor.store
        selection = store.selection

        surface.fill(UI_COLORS['background'])
        self.draw_grid(surface, viewport)

        for note in store.sticky_notes:
            selected = note.id == selection.active_id or note.id in selection.ids
            self.draw_sticky(surface, viewport, note, selected)

        for edge in store.edges:
            source = store.get_node(edge.source_id)
            target = store.get_node(edge.target_id)
            if source is None or target is None:
                continue
            self.draw_edge(surface, viewport, edge, source, target,
                           selected=edge.id == selection.active_id)

        for node in store.nodes:
            selected = node.id == selection.active_id or node.id in selection.ids
            self.draw_node(surface, viewport, node, selected)

        if overlays:
            preview = editor.gestures.link_preview()
            if preview is not None:
                start = viewport.to_screen(*preview[0])
                end = viewport.to_screen(*preview[1])
                pygame.draw.line(surface, UI_COLORS['link_preview'], start, end, 3)
                pygame.draw.circle(surface, UI_COLORS['link_preview'],
                                   (int(end.x), int(end.y)), 5)

            box = editor.gestures.selection_box()
            if box is not None:
                self.draw_selection_box(surface, viewport, box)

            zone = editor.gestures.trash_zone
            if zone is not None:
                self.draw_trash(surface, zone, editor.gestures.is_over_trash)

        if legend:
            self.draw_legend(surface, legend)

    # --------------------------------------------------------------------------
    # Scene items
    # --------------------------------------------------------------------------

    def draw_grid(self, surface: pygame.Surface, viewport: Viewport):
        width, height = surface.get_size()
        step = GRID_SPACING * viewport.zoom
        origin = viewport.to_screen(0, 0)
        x = origin.x % step
        while x < width:
            pygame.draw.line(surface, UI_COLORS['grid'], (x, 0), (x, height))
            x += step
        y = origin.y % step
        while y < height:
            pygame.draw.line(surface, UI_COLORS['grid'], (0, y), (width, y))
            y += step

    def draw_node(self, surface: pygame.Surface, viewport: Viewport, node: Node, selected: bool):
        center = viewport.to_screen(*node.center)
        radius = max(1, int(node.radius * viewport.zoom))
        pos = (int(center.x), int(center.y))

        pygame.draw.circle(surface, hex_to_rgb(node.color), pos, radius)
        outline = UI_COLORS['node_selected'] if selected else UI_COLORS['node_outline']
        pygame.draw.circle(surface, outline, pos, radius, 3 if selected else 1)

        if node.title:
            text_surf = self.font.render(node.title, True, hex_to_rgb(node.text_color))
            surface.blit(text_surf, text_surf.get_rect(center=pos))

        # Link handles and resize corners are live on every node
        for side in Side:
            anchor = viewport.to_screen(*node.anchor_for_side(side))
            pygame.draw.circle(surface, UI_COLORS['handle'], (int(anchor.x), int(anchor.y)), 5)
            pygame.draw.circle(surface, outline, (int(anchor.x), int(anchor.y)), 5, 1)
        self._draw_corners(surface, viewport, node.get_bounds(), outline)

    def _draw_corners(self, surface: pygame.Surface, viewport: Viewport, bounds: Bounds, color):
        for corner in Corner:
            p = viewport.to_screen(*corner_point(bounds, corner))
            pygame.draw.rect(surface, color, pygame.Rect(int(p.x) - 3, int(p.y) - 3, 6, 6), 1)

    def draw_edge(
        self,
        surface: pygame.Surface,
        viewport: Viewport,
        edge: Edge,
        source: Node,
        target: Node,
        selected: bool = False
    ):
        start, control, end = edge_path(source, target, edge.control)
        points: List[Point] = [viewport.to_screen(x, y) for x, y in quadratic_points(start, control, end)]
        color = UI_COLORS['edge_selected'] if selected else UI_COLORS['edge']
        pygame.draw.lines(surface, color, False, points, 3 if selected else 2)

        if edge.direction is Direction.SOURCE_TO_TARGET:
            self._draw_arrow(surface, points[-1], points[-2], color)
        elif edge.direction is Direction.TARGET_TO_SOURCE:
            self._draw_arrow(surface, points[0], points[1], color)

        if edge.control is not None and selected:
            handle = viewport.to_screen(*edge.control)
            pygame.draw.circle(surface, color, (int(handle.x), int(handle.y)), 5)

        label = edge.label
        if label:
            mid = points[len(points) // 2]
            text_surf = self.small_font.render(label, True, UI_COLORS['edge_label'])
            rect = text_surf.get_rect(center=(int(mid.x), int(mid.y) - 12))
            pygame.draw.rect(surface, UI_COLORS['background'], rect.inflate(6, 2))
            surface.blit(text_surf, rect)

    def _draw_arrow(self, surface: pygame.Surface, tip: Point, toward: Point, color):
        tangent = _unit(tip.x - toward.x, tip.y - toward.y)
        perpendicular = Point(-tangent.y, tangent.x)
        wing_a, apex, wing_b = arrowhead(tip, toward, perpendicular)
        pygame.draw.lines(surface, color, False, [wing_a, apex, wing_b], 3)

    def draw_sticky(self, surface: pygame.Surface, viewport: Viewport, note: StickyNote, selected: bool):
        top_left = viewport.to_screen(note.x, note.y)
        rect = pygame.Rect(
            int(top_left.x), int(top_left.y),
            max(1, int(note.width * viewport.zoom)), max(1, int(note.height * viewport.zoom))
        )
        pygame.draw.rect(surface, UI_COLORS['sticky'], rect, border_radius=6)
        border = UI_COLORS['node_selected'] if selected else UI_COLORS['sticky_border']
        pygame.draw.rect(surface, border, rect, 3 if selected else 1, border_radius=6)
        self._draw_corners(surface, viewport, note.get_bounds(), border)

        # Markdown source shown as plain lines, clipped to the note
        line_height = self.small_font.get_linesize()
        y = rect.top + 8
        for line in note.content.splitlines():
            if y + line_height > rect.bottom - 4:
                break
            text_surf = self.small_font.render(line, True, UI_COLORS['sticky_text'])
            surface.blit(text_surf, (rect.left + 8, y), area=pygame.Rect(0, 0, rect.width - 16, line_height))
            y += line_height

    # --------------------------------------------------------------------------
    # Overlays
    # --------------------------------------------------------------------------

    def draw_selection_box(self, surface: pygame.Surface, viewport: Viewport, box: Bounds):
        a = viewport.to_screen(box.left, box.top)
        b = viewport.to_screen(box.right, box.bottom)
        rect = pygame.Rect(int(a.x), int(a.y), int(b.x - a.x), int(b.y - a.y))
        if rect.width < 1 or rect.height < 1:
            return
        overlay = pygame.Surface(rect.size, pygame.SRCALPHA)
        overlay.fill((*UI_COLORS['selection_box'], 40))
        surface.blit(overlay, rect.topleft)
        pygame.draw.rect(surface, UI_COLORS['selection_box'], rect, 1)

    def draw_trash(self, surface: pygame.Surface, zone: Bounds, hot: bool):
        rect = pygame.Rect(int(zone.left), int(zone.top), int(zone.width), int(zone.height))
        color = UI_COLORS['trash_hot'] if hot else UI_COLORS['trash']
        pygame.draw.rect(surface, color, rect, 0 if hot else 2, border_radius=8)
        text_surf = self.small_font.render("Trash", True, (255, 255, 255) if hot else color)
        surface.blit(text_surf, text_surf.get_rect(center=rect.center))

    def draw_legend(self, surface: pygame.Surface, entries: Sequence[Tuple[str, str]], width: int = 200):
        row = 30
        height = 40 + row * len(entries)
        left = surface.get_width() - width - 10
        rect = pygame.Rect(left, 10, width, height)
        pygame.draw.rect(surface, UI_COLORS['legend_bg'], rect, border_radius=8)
        pygame.draw.rect(surface, UI_COLORS['node_outline'], rect, 1, border_radius=8)

        title = self.font.render("Legend", True, UI_COLORS['legend_text'])
        surface.blit(title, (rect.left + 12, rect.top + 10))
        for i, (color, topic) in enumerate(entries):
            y = rect.top + 40 + i * row
            pygame.draw.rect(surface, hex_to_rgb(color), (rect.left + 12, y, 18, 18), border_radius=3)
            text_surf = self.small_font.render(topic, True, UI_COLORS['legend_text'])
            surface.blit(text_surf, (rect.left + 40, y + 2))
