import base64
import json

import pytest

from engine.codec import EMPTY_CODE, INVALID_CODE, decode, encode
from engine.errors import SceneCodeError
from engine.models import Direction, Edge, Keyword, Node, Point, StickyNote


def to_code(data) -> str:
    return base64.b64encode(json.dumps(data).encode("utf-8")).decode("ascii")


def sample_scene():
    nodes = [
        Node(id="a", x=10, y=20, size=80, color="#ff4d4f", title="Über", tags=["x", "x"]),
        Node(id="b", x=300, y=40, title="B", description="second"),
    ]
    edges = [Edge(id="e", source_id="a", target_id="b", direction=Direction.SOURCE_TO_TARGET,
                  keywords=[Keyword.DECREASES], note="slows", control=Point(150, -60))]
    notes = [StickyNote(id="s", x=-40, y=300, width=180, height=120, content="# hi ✓")]
    return nodes, edges, notes


def test_round_trip_preserves_scene_and_viewport():
    nodes, edges, notes = sample_scene()
    code = encode(nodes, edges, notes, zoom=1.4, pan=(12.5, -3), color_topics={"#ff4d4f": "Risk"})
    scene = decode(code)

    assert scene.version == 2
    assert scene.nodes == nodes
    assert scene.edges == edges
    assert scene.sticky_notes == notes
    assert scene.zoom == 1.4
    assert scene.pan == Point(12.5, -3)
    assert scene.color_topics == {"#ff4d4f": "Risk"}


def test_code_matches_browser_encoding_of_unicode():
    nodes = [Node(id="a", x=0, y=0, title="café")]
    code = encode(nodes, [], [])
    payload = json.loads(base64.b64decode(code).decode("utf-8"))
    assert payload["nodes"][0]["title"] == "café"
    assert "textColor" not in payload["nodes"][0]
    assert "controlX" not in json.dumps(payload)


def test_missing_optional_fields_default():
    scene = decode(to_code({"nodes": [{"id": "a", "x": 1, "y": 2}], "edges": []}))
    node = scene.nodes[0]
    assert (node.size, node.color, node.title, node.tags) == (64, "#1e90ff", "", [])
    assert scene.zoom == 1.0
    assert scene.pan == Point(0, 0)
    assert scene.sticky_notes == []
    assert scene.color_topics == {}
    assert scene.version == 1


def test_mistyped_optional_fields_default():
    scene = decode(to_code({
        "nodes": [], "edges": [],
        "zoom": "big", "pan": {"x": "1", "y": 2}, "stickyNotes": {}, "colorTopics": ["x"],
    }))
    assert scene.zoom == 1.0
    assert scene.pan == Point(0, 0)
    assert scene.sticky_notes == []
    assert scene.color_topics == {}


def test_values_are_clamped():
    scene = decode(to_code({
        "nodes": [{"id": "a", "x": 0, "y": 0, "size": 999}],
        "edges": [],
        "zoom": 10,
        "stickyNotes": [{"id": "s", "x": 0, "y": 0, "width": 5, "height": 5}],
    }))
    assert scene.nodes[0].size == 200
    assert scene.zoom == 2.0
    assert (scene.sticky_notes[0].width, scene.sticky_notes[0].height) == (100, 80)


def test_edge_fields_are_sanitized():
    scene = decode(to_code({
        "nodes": [],
        "edges": [{"id": "e", "sourceId": "a", "targetId": "b", "direction": "sideways",
                   "keywords": ["increases", "teleports", "increases"], "controlX": 5}],
    }))
    edge = scene.edges[0]
    assert edge.direction is Direction.NONE
    assert edge.keywords == [Keyword.INCREASES]
    assert edge.control is None


@pytest.mark.parametrize("code", ["", "   ", "\n"])
def test_empty_code(code):
    with pytest.raises(SceneCodeError) as exc:
        decode(code)
    assert exc.value.code == EMPTY_CODE


@pytest.mark.parametrize("code", [
    "not base64!!",
    base64.b64encode(b"\xff\xfe").decode(),
    base64.b64encode(b"not json").decode(),
    to_code([1, 2, 3]),
    to_code({"edges": []}),
    to_code({"nodes": [], "edges": {}}),
    to_code({"nodes": [{"id": "a", "x": 0}], "edges": []}),
    to_code({"nodes": ["a"], "edges": []}),
    to_code({"nodes": [], "edges": [{"id": "e", "sourceId": "a"}]}),
])
def test_invalid_code(code):
    with pytest.raises(SceneCodeError) as exc:
        decode(code)
    assert exc.value.code == INVALID_CODE


def test_surrounding_whitespace_is_ignored():
    code = encode([Node(id="a", x=0, y=0)], [], [])
    assert len(decode(f"  {code}\n").nodes) == 1


@pytest.mark.parametrize("text", [
    '{"v": Infinity, "nodes": [], "edges": []}',
    '{"v": NaN, "nodes": [], "edges": []}',
    '{"nodes": [], "edges": [], "zoom": -Infinity}',
    '{"nodes": [{"id": "a", "x": 0, "y": 0, "size": Infinity}], "edges": []}',
    '{"nodes": [{"id": "a", "x": 0, "y": 0, "size": 1e400}], "edges": []}',
])
def test_non_finite_numbers_are_invalid(text):
    code = base64.b64encode(text.encode("utf-8")).decode("ascii")
    with pytest.raises(SceneCodeError) as exc:
        decode(code)
    assert exc.value.code == INVALID_CODE


def test_integers_beyond_float_range_are_ignored():
    huge = "1" + "0" * 400
    text = f'{{"v": {huge}, "nodes": [{{"id": "a", "x": 0, "y": 0, "size": {huge}}}], "edges": []}}'
    scene = decode(base64.b64encode(text.encode("utf-8")).decode("ascii"))
    assert scene.version == 1
    assert scene.nodes[0].size == 64
