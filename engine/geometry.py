"""
Circuitboard Geometry
=====================

Hit-testing, edge anchoring and resize math. Everything here works in scene
space and is recomputed from live positions on every call.
"""

import math
from typing import Iterable, List, Optional, Sequence, Tuple

import numpy as np

from .models import Bounds, Corner, Node, Point, StickyNote


# ==============================================================================
# Nodes
# ==============================================================================

def point_in_node(p: Point, node: Node) -> bool:
    """True if p lies inside the node's circle (boundary included)"""
    cx, cy = node.center
    r = node.radius
    dx = p.x - cx
    dy = p.y - cy
    return dx * dx + dy * dy <= r * r


def find_topmost_node_at(
    p: Point,
    nodes: Sequence[Node],
    exclude: Optional[str] = None
) -> Optional[Node]:
    """
    Find the topmost node containing p.

    Nodes are ordered bottom to top (last added is topmost), so the search runs
    in reverse.

    Args:
        p: Scene point
        nodes: Nodes in z-order
        exclude: Optional node id to skip (the origin of a link)

    Returns:
        The hit node or None
    """
    for node in reversed(nodes):
        if node.id == exclude:
            continue
        if point_in_node(p, node):
            return node
    return None


def edge_anchors(a: Node, b: Node) -> Tuple[Point, Point]:
    """
    Points where a segment between two nodes meets both circles.

    Each anchor is its node's center offset by its own radius along the unit
    vector between centers. Coincident centers use the +x direction.
    """
    ca = np.array(a.center, dtype=float)
    cb = np.array(b.center, dtype=float)
    v = cb - ca
    length = float(np.hypot(v[0], v[1]))
    unit = v / length if length > 0 else np.array([1.0, 0.0])
    pa = ca + unit * a.radius
    pb = cb - unit * b.radius
    return Point(float(pa[0]), float(pa[1])), Point(float(pb[0]), float(pb[1]))


def midpoint(a: Point, b: Point) -> Point:
    return Point((a.x + b.x) / 2, (a.y + b.y) / 2)


# ==============================================================================
# Edge Paths
# ==============================================================================

def quadratic_points(start: Point, control: Point, end: Point, segments: int = 24) -> np.ndarray:
    """
    Sample a quadratic Bezier curve.

    Returns:
        (segments + 1, 2) array of points from start to end
    """
    t = np.linspace(0.0, 1.0, segments + 1)[:, None]
    p0 = np.array(start, dtype=float)
    p1 = np.array(control, dtype=float)
    p2 = np.array(end, dtype=float)
    return (1 - t) ** 2 * p0 + 2 * (1 - t) * t * p1 + t ** 2 * p2


def distance_to_polyline(p: Point, points: np.ndarray) -> float:
    """Shortest distance from p to a polyline given as an (n, 2) array"""
    if len(points) == 1:
        return float(np.hypot(*(points[0] - np.array(p))))
    a = points[:-1]
    b = points[1:]
    ab = b - a
    ap = np.array(p, dtype=float) - a
    denom = np.einsum('ij,ij->i', ab, ab)
    safe = np.where(denom == 0, 1.0, denom)
    t = np.clip(np.einsum('ij,ij->i', ap, ab) / safe, 0.0, 1.0)
    closest = a + ab * t[:, None]
    d = np.hypot(*(closest - np.array(p, dtype=float)).T)
    return float(d.min())


def edge_path(source: Node, target: Node, control: Optional[Point]) -> Tuple[Point, Point, Point]:
    """Start anchor, control point and end anchor for drawing an edge"""
    start, end = edge_anchors(source, target)
    return start, control if control is not None else midpoint(start, end), end


# ==============================================================================
# Rectangles
# ==============================================================================

def rect_overlap(a: Bounds, b: Bounds) -> bool:
    """Strict interval overlap on both axes; touching edges do not count"""
    return a.left < b.right and a.right > b.left and a.top < b.bottom and a.bottom > b.top


def rect_contains(outer: Bounds, inner: Bounds) -> bool:
    return (
        outer.left <= inner.left and inner.right <= outer.right
        and outer.top <= inner.top and inner.bottom <= outer.bottom
    )


def content_bounds(nodes: Iterable[Node], notes: Iterable[StickyNote]) -> Optional[Bounds]:
    """Smallest rectangle holding every node and note, or None for an empty scene"""
    boxes = [n.get_bounds() for n in nodes] + [s.get_bounds() for s in notes]
    if not boxes:
        return None
    arr = np.array(boxes, dtype=float)
    return Bounds(
        float(arr[:, 0].min()), float(arr[:, 1].min()),
        float(arr[:, 2].max()), float(arr[:, 3].max())
    )


# ==============================================================================
# Resize Math
# ==============================================================================

def resize_node(
    corner: Corner,
    orig_x: float,
    orig_y: float,
    orig_size: int,
    dx: float,
    dy: float,
    size_min: int = 24,
    size_max: int = 200
) -> Tuple[float, float, int]:
    """
    Resize a node from a corner, holding the opposite corner fixed.

    The size follows whichever axis moved further outward, rounded to an
    integer and clamped. Position is derived from the clamped size so the
    fixed corner never moves.

    Returns:
        (x, y, size)
    """
    grow_x = dx if corner in (Corner.NE, Corner.SE) else -dx
    grow_y = dy if corner in (Corner.SW, Corner.SE) else -dy
    raw = max(orig_size + grow_x, orig_size + grow_y)
    size = int(max(size_min, min(size_max, round(raw))))

    x = orig_x
    y = orig_y
    if corner in (Corner.NW, Corner.SW):
        x = orig_x + (orig_size - size)
    if corner in (Corner.NW, Corner.NE):
        y = orig_y + (orig_size - size)
    return x, y, size


def resize_sticky(
    corner: Corner,
    orig_x: float,
    orig_y: float,
    orig_w: float,
    orig_h: float,
    dx: float,
    dy: float,
    min_w: float = 100.0,
    min_h: float = 80.0
) -> Tuple[float, float, float, float]:
    """
    Resize a sticky note from a corner, holding the opposite corner fixed.

    Returns:
        (x, y, width, height)
    """
    if corner in (Corner.NE, Corner.SE):
        width = max(min_w, orig_w + dx)
        x = orig_x
    else:
        width = max(min_w, orig_w - dx)
        x = orig_x + orig_w - width

    if corner in (Corner.SW, Corner.SE):
        height = max(min_h, orig_h + dy)
        y = orig_y
    else:
        height = max(min_h, orig_h - dy)
        y = orig_y + orig_h - height

    return x, y, width, height


def corner_point(bounds: Bounds, corner: Corner) -> Point:
    left, top, right, bottom = bounds
    return {
        Corner.NW: Point(left, top),
        Corner.NE: Point(right, top),
        Corner.SW: Point(left, bottom),
        Corner.SE: Point(right, bottom),
    }[corner]


def within(p: Point, q: Point, radius: float) -> bool:
    return math.hypot(p.x - q.x, p.y - q.y) <= radius


def arrowhead(tip: Point, toward: Point, perpendicular: Point,
              length: float = 12.0, width: float = 10.0) -> List[Point]:
    """
    Open V arrowhead at tip, pointing away from `toward`.

    Returns:
        [wing_a, tip, wing_b]
    """
    tx = tip.x - toward.x
    ty = tip.y - toward.y
    tlen = math.hypot(tx, ty) or 1.0
    bx = tip.x - tx / tlen * length
    by = tip.y - ty / tlen * length
    half = width / 2
    return [
        Point(bx + perpendicular.x * half, by + perpendicular.y * half),
        tip,
        Point(bx - perpendicular.x * half, by - perpendicular.y * half),
    ]
