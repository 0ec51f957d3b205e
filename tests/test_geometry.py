import math

import pytest

from engine.geometry import (
    content_bounds,
    distance_to_polyline,
    edge_anchors,
    edge_path,
    find_topmost_node_at,
    point_in_node,
    quadratic_points,
    rect_contains,
    rect_overlap,
    resize_node,
    resize_sticky,
)
from engine.models import Bounds, Corner, Node, Point, StickyNote


def make_node(node_id, x, y, size=64):
    return Node(id=node_id, x=x, y=y, size=size)


def test_point_in_node_uses_circle_not_box():
    node = make_node("a", 0, 0, 100)
    assert point_in_node(Point(50, 50), node)
    assert point_in_node(Point(0, 50), node)   # on the boundary
    assert not point_in_node(Point(2, 2), node)  # bbox corner, outside the circle


def test_topmost_node_wins_and_exclude_skips():
    bottom = make_node("bottom", 0, 0)
    top = make_node("top", 10, 10)
    p = Point(40, 40)
    assert find_topmost_node_at(p, [bottom, top]).id == "top"
    assert find_topmost_node_at(p, [bottom, top], exclude="top").id == "bottom"
    assert find_topmost_node_at(Point(500, 500), [bottom, top]) is None


@pytest.mark.parametrize("b_pos,b_size", [((200, 0), 64), ((-150, 90), 40), ((30, -300), 200)])
def test_edge_anchors_lie_on_boundaries(b_pos, b_size):
    a = make_node("a", 0, 0, 80)
    b = make_node("b", *b_pos, b_size)
    pa, pb = edge_anchors(a, b)
    assert math.dist(pa, a.center) == pytest.approx(a.radius)
    assert math.dist(pb, b.center) == pytest.approx(b.radius)


def test_edge_anchors_coincident_centers_fall_back_to_x_axis():
    a = make_node("a", 0, 0, 64)
    b = make_node("b", 0, 0, 64)
    pa, pb = edge_anchors(a, b)
    assert pa == pytest.approx((64, 32))
    assert pb == pytest.approx((0, 32))


def test_rect_overlap_is_strict():
    a = Bounds(0, 0, 10, 10)
    assert rect_overlap(a, Bounds(5, 5, 15, 15))
    assert not rect_overlap(a, Bounds(10, 0, 20, 10))  # touching only
    assert rect_contains(Bounds(0, 0, 100, 100), Bounds(10, 10, 20, 20))
    assert not rect_contains(a, Bounds(5, 5, 15, 15))


@pytest.mark.parametrize("corner", list(Corner))
@pytest.mark.parametrize("dx,dy", [(-1000, -1000), (1000, 1000), (-1000, 1000), (37.4, -12.6), (0, 0)])
def test_resize_node_stays_in_range(corner, dx, dy):
    x, y, size = resize_node(corner, 100, 100, 64, dx, dy)
    assert 24 <= size <= 200
    assert isinstance(size, int)


def test_resize_node_holds_opposite_corner():
    # Dragging NW outward by 20 keeps the SE corner at (164, 164)
    x, y, size = resize_node(Corner.NW, 100, 100, 64, -20, -10)
    assert size == 84
    assert (x + size, y + size) == (164, 164)

    x, y, size = resize_node(Corner.SE, 100, 100, 64, 10, 30)
    assert (x, y, size) == (100, 100, 94)


@pytest.mark.parametrize("corner", list(Corner))
def test_resize_sticky_minimums_and_fixed_corner(corner):
    x, y, w, h = resize_sticky(corner, 0, 0, 240, 160, -500 if corner in (Corner.NE, Corner.SE) else 500,
                               -500 if corner in (Corner.SW, Corner.SE) else 500)
    assert w == 100 and h == 80
    opposite = {
        Corner.NW: (240, 160),
        Corner.NE: (0, 160),
        Corner.SW: (240, 0),
        Corner.SE: (0, 0),
    }[corner]
    corners = {(x, y), (x + w, y), (x, y + h), (x + w, y + h)}
    assert opposite in corners


def test_quadratic_points_and_distance():
    pts = quadratic_points(Point(0, 0), Point(50, 0), Point(100, 0), segments=10)
    assert pts.shape == (11, 2)
    assert tuple(pts[0]) == (0, 0) and tuple(pts[-1]) == (100, 0)
    assert distance_to_polyline(Point(50, 5), pts) == pytest.approx(5)
    assert distance_to_polyline(Point(-3, 4), pts) == pytest.approx(5)


def test_edge_path_defaults_control_to_midpoint():
    a = make_node("a", 0, 0, 64)
    b = make_node("b", 200, 0, 64)
    start, control, end = edge_path(a, b, None)
    assert control == pytest.approx(((start.x + end.x) / 2, (start.y + end.y) / 2))
    assert edge_path(a, b, Point(5, 5))[1] == Point(5, 5)


def test_content_bounds():
    assert content_bounds([], []) is None
    bounds = content_bounds([make_node("a", 10, 20, 40)], [StickyNote(id="s", x=-50, y=100)])
    assert bounds == Bounds(-50, 20, 190, 260)
