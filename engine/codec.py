"""
Circuitboard Scene Codec
========================

Scene <-> scene code, the portable text form of a diagram.

A scene code is compact JSON, UTF-8 encoded, then base64 encoded. That is
byte-for-byte what a browser produces with
btoa(unescape(encodeURIComponent(json))), so codes move freely between the
web app and this engine.

Decoding is defensive: only `nodes` and `edges` are required (and must be
arrays). Every other top-level field is optional and individually
type-checked, so codes written by older versions still load with defaults.
"""

import base64
import binascii
import json
import logging
import math
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from .config import DEFAULT_NODE_COLOR, SCENE_CODE_VERSION, EngineConfig, get_config
from .errors import SceneCodeError
from .models import Direction, Edge, Keyword, Node, Point, StickyNote

logger = logging.getLogger(__name__)

INVALID_CODE = "invalid_code"
EMPTY_CODE = "empty_code"


@dataclass
class DecodedScene:
    """Everything a scene code carries"""
    nodes: List[Node] = field(default_factory=list)
    edges: List[Edge] = field(default_factory=list)
    sticky_notes: List[StickyNote] = field(default_factory=list)
    zoom: float = 1.0
    pan: Point = Point(0.0, 0.0)
    color_topics: Dict[str, str] = field(default_factory=dict)
    version: int = 1


# ==============================================================================
# Encoding
# ==============================================================================

def node_to_dict(node: Node) -> Dict[str, Any]:
    # text_color is derived and never written
    return {
        "id": node.id,
        "x": node.x,
        "y": node.y,
        "color": node.color,
        "title": node.title,
        "description": node.description,
        "tags": list(node.tags),
        "size": node.size,
    }


def edge_to_dict(edge: Edge) -> Dict[str, Any]:
    data = {
        "id": edge.id,
        "sourceId": edge.source_id,
        "targetId": edge.target_id,
        "direction": edge.direction.value,
        "keywords": [k.value for k in edge.keywords],
        "note": edge.note,
    }
    if edge.control is not None:
        data["controlX"] = edge.control.x
        data["controlY"] = edge.control.y
    return data


def sticky_to_dict(note: StickyNote) -> Dict[str, Any]:
    return {
        "id": note.id,
        "x": note.x,
        "y": note.y,
        "width": note.width,
        "height": note.height,
        "content": note.content,
    }


def scene_to_dict(
    nodes: List[Node],
    edges: List[Edge],
    sticky_notes: List[StickyNote],
    zoom: float,
    pan: Tuple[float, float],
    color_topics: Optional[Dict[str, str]] = None
) -> Dict[str, Any]:
    data = {
        "v": SCENE_CODE_VERSION,
        "nodes": [node_to_dict(n) for n in nodes],
        "edges": [edge_to_dict(e) for e in edges],
        "zoom": zoom,
        "pan": {"x": pan[0], "y": pan[1]},
        "stickyNotes": [sticky_to_dict(s) for s in sticky_notes],
    }
    if color_topics:
        data["colorTopics"] = dict(color_topics)
    return data


def encode(
    nodes: List[Node],
    edges: List[Edge],
    sticky_notes: List[StickyNote],
    zoom: float = 1.0,
    pan: Tuple[float, float] = (0.0, 0.0),
    color_topics: Optional[Dict[str, str]] = None
) -> str:
    """
    Produce a scene code.

    Returns:
        ASCII base64 string
    """
    data = scene_to_dict(nodes, edges, sticky_notes, zoom, pan, color_topics)
    text = json.dumps(data, ensure_ascii=False, separators=(",", ":"))
    return base64.b64encode(text.encode("utf-8")).decode("ascii")


# ==============================================================================
# Decoding
# ==============================================================================

def _is_number(value: Any) -> bool:
    if not isinstance(value, (int, float)) or isinstance(value, bool):
        return False
    try:
        return math.isfinite(value)
    except OverflowError:
        # Integers too large for a float
        return False


def _reject_constant(token: str):
    raise ValueError(f"non-finite number {token} in scene code")


def _finite_float(token: str) -> float:
    value = float(token)
    if not math.isfinite(value):
        raise ValueError(f"number {token} out of range in scene code")
    return value


def _require(item: Any, keys: Tuple[str, ...], what: str) -> Dict[str, Any]:
    if not isinstance(item, dict):
        raise SceneCodeError(INVALID_CODE, f"{what} entry is not an object")
    for key in keys:
        if key not in item:
            raise SceneCodeError(INVALID_CODE, f"{what} entry missing '{key}'")
    return item


def _string(value: Any, default: str = "") -> str:
    return value if isinstance(value, str) else default


def _parse_node(item: Any, config: EngineConfig) -> Node:
    data = _require(item, ("id", "x", "y"), "node")
    if not isinstance(data["id"], str) or not _is_number(data["x"]) or not _is_number(data["y"]):
        raise SceneCodeError(INVALID_CODE, "node entry has a malformed id or position")
    size = data.get("size")
    tags = data.get("tags")
    return Node(
        id=data["id"],
        x=data["x"],
        y=data["y"],
        size=config.clamp_node_size(size) if _is_number(size) else config.node_size_default,
        color=_string(data.get("color"), DEFAULT_NODE_COLOR),
        title=_string(data.get("title")),
        description=_string(data.get("description")),
        tags=[t for t in tags if isinstance(t, str)] if isinstance(tags, list) else [],
    )


def _parse_edge(item: Any) -> Edge:
    data = _require(item, ("id", "sourceId", "targetId"), "edge")
    if not all(isinstance(data[k], str) for k in ("id", "sourceId", "targetId")):
        raise SceneCodeError(INVALID_CODE, "edge entry has a malformed id")

    try:
        direction = Direction(data.get("direction", "none"))
    except ValueError:
        direction = Direction.NONE

    keywords: List[Keyword] = []
    raw_keywords = data.get("keywords")
    if isinstance(raw_keywords, list):
        for raw in raw_keywords:
            try:
                keyword = Keyword(raw)
            except ValueError:
                # Unknown keywords from newer versions are skipped
                continue
            if keyword not in keywords:
                keywords.append(keyword)

    control = None
    if _is_number(data.get("controlX")) and _is_number(data.get("controlY")):
        control = Point(data["controlX"], data["controlY"])

    return Edge(
        id=data["id"],
        source_id=data["sourceId"],
        target_id=data["targetId"],
        direction=direction,
        keywords=keywords,
        note=_string(data.get("note")),
        control=control,
    )


def _parse_sticky(item: Any, config: EngineConfig) -> StickyNote:
    data = _require(item, ("id", "x", "y"), "sticky note")
    if not isinstance(data["id"], str) or not _is_number(data["x"]) or not _is_number(data["y"]):
        raise SceneCodeError(INVALID_CODE, "sticky note entry has a malformed id or position")
    width = data.get("width")
    height = data.get("height")
    return StickyNote(
        id=data["id"],
        x=data["x"],
        y=data["y"],
        width=max(config.sticky_min_width, width) if _is_number(width) else config.sticky_default_width,
        height=max(config.sticky_min_height, height) if _is_number(height) else config.sticky_default_height,
        content=_string(data.get("content")),
    )


def _load_payload(code: str) -> Dict[str, Any]:
    trimmed = code.strip() if isinstance(code, str) else ""
    if not trimmed:
        raise SceneCodeError(EMPTY_CODE, "no code given")
    try:
        raw = base64.b64decode(trimmed, validate=True)
        data = json.loads(
            raw.decode("utf-8"), parse_constant=_reject_constant, parse_float=_finite_float
        )
    except (binascii.Error, UnicodeDecodeError, ValueError) as e:
        raise SceneCodeError(INVALID_CODE, str(e))
    if not isinstance(data, dict):
        raise SceneCodeError(INVALID_CODE, "payload is not an object")
    if not isinstance(data.get("nodes"), list) or not isinstance(data.get("edges"), list):
        raise SceneCodeError(INVALID_CODE, "'nodes' and 'edges' must be arrays")
    return data


def decode(code: str, config: Optional[EngineConfig] = None) -> DecodedScene:
    """
    Parse a scene code.

    Args:
        code: Scene code, surrounding whitespace allowed
        config: Limits used to clamp sizes and zoom

    Returns:
        DecodedScene with defaults for every missing optional field

    Raises:
        SceneCodeError: code is 'empty_code' or 'invalid_code'
    """
    config = config or get_config()
    data = _load_payload(code)

    scene = DecodedScene()
    version = data.get("v", data.get("version"))
    if _is_number(version):
        scene.version = int(version)

    scene.nodes = [_parse_node(item, config) for item in data["nodes"]]
    scene.edges = [_parse_edge(item) for item in data["edges"]]

    if _is_number(data.get("zoom")):
        scene.zoom = config.clamp_zoom(data["zoom"])

    pan = data.get("pan")
    if isinstance(pan, dict) and _is_number(pan.get("x")) and _is_number(pan.get("y")):
        scene.pan = Point(pan["x"], pan["y"])

    if isinstance(data.get("stickyNotes"), list):
        scene.sticky_notes = [_parse_sticky(item, config) for item in data["stickyNotes"]]

    topics = data.get("colorTopics")
    if isinstance(topics, dict):
        scene.color_topics = {
            k: v for k, v in topics.items() if isinstance(k, str) and isinstance(v, str)
        }

    logger.debug(
        f"Decoded scene v{scene.version}: {len(scene.nodes)} nodes, "
        f"{len(scene.edges)} edges, {len(scene.sticky_notes)} notes"
    )
    return scene
