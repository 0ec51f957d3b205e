"""
Circuitboard Scene Model
========================

Plain data records for everything that lives on the canvas.

    - Node: circular item, positioned by the top-left of its bounding box
    - Edge: link between two nodes, optionally curved through a control point
    - StickyNote: rectangular markdown note
    - Selection: either one active item or a box-selected set, never both
"""

import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import List, NamedTuple, Optional, Set

from .config import DEFAULT_NODE_COLOR


class Point(NamedTuple):
    """A 2-D point or vector"""
    x: float
    y: float


class Bounds(NamedTuple):
    """Axis-aligned rectangle as (left, top, right, bottom)"""
    left: float
    top: float
    right: float
    bottom: float

    @property
    def width(self) -> float:
        return self.right - self.left

    @property
    def height(self) -> float:
        return self.bottom - self.top

    @classmethod
    def from_corners(cls, a: Point, b: Point) -> "Bounds":
        """Normalize two arbitrary corners into a rectangle."""
        return cls(min(a.x, b.x), min(a.y, b.y), max(a.x, b.x), max(a.y, b.y))

    def contains(self, p: Point) -> bool:
        return self.left <= p.x <= self.right and self.top <= p.y <= self.bottom

    def expanded(self, amount: float) -> "Bounds":
        return Bounds(
            self.left - amount, self.top - amount,
            self.right + amount, self.bottom + amount
        )


class Direction(Enum):
    """Which end of an edge carries the arrowhead"""
    NONE = "none"
    SOURCE_TO_TARGET = "source-to-target"
    TARGET_TO_SOURCE = "target-to-source"


class Keyword(Enum):
    """Causal keywords that can be attached to an edge"""
    INCREASES = "increases"
    DECREASES = "decreases"


class Corner(Enum):
    """Resize corners"""
    NW = "nw"
    NE = "ne"
    SW = "sw"
    SE = "se"


class Side(Enum):
    """Link handle placement around a node"""
    LEFT = "left"
    RIGHT = "right"
    TOP = "top"
    BOTTOM = "bottom"


class ItemKind(Enum):
    NODE = "node"
    EDGE = "edge"
    STICKY = "sticky"


def new_id() -> str:
    """Opaque unique token for scene items."""
    return uuid.uuid4().hex


@dataclass
class Node:
    """A circular diagram node"""
    id: str
    x: float
    y: float
    size: int = 64
    color: str = DEFAULT_NODE_COLOR
    title: str = ""
    description: str = ""
    tags: List[str] = field(default_factory=list)

    @property
    def position(self) -> Point:
        return Point(self.x, self.y)

    @property
    def radius(self) -> float:
        return self.size / 2

    @property
    def center(self) -> Point:
        r = self.radius
        return Point(self.x + r, self.y + r)

    @property
    def text_color(self) -> str:
        """Label color, derived from the fill and never stored"""
        return '#ffffff' if self.color.lower() == '#000000' else '#000000'

    def get_bounds(self) -> Bounds:
        return Bounds(self.x, self.y, self.x + self.size, self.y + self.size)

    def anchor_for_side(self, side: Side) -> Point:
        """Point on the circle where a link handle sits"""
        cx, cy = self.center
        r = self.radius
        if side is Side.LEFT:
            return Point(cx - r, cy)
        if side is Side.RIGHT:
            return Point(cx + r, cy)
        if side is Side.TOP:
            return Point(cx, cy - r)
        return Point(cx, cy + r)


@dataclass
class Edge:
    """A link between two nodes"""
    id: str
    source_id: str
    target_id: str
    direction: Direction = Direction.NONE
    keywords: List[Keyword] = field(default_factory=list)
    note: str = ""
    control: Optional[Point] = None

    def touches(self, node_id: str) -> bool:
        return self.source_id == node_id or self.target_id == node_id

    def connects(self, a: str, b: str) -> bool:
        """True if this edge joins a and b in either direction"""
        return {self.source_id, self.target_id} == {a, b}

    @property
    def label(self) -> str:
        keywords = ", ".join(k.value for k in self.keywords)
        return " • ".join(part for part in (keywords, self.note) if part)


@dataclass
class StickyNote:
    """A freeform markdown note"""
    id: str
    x: float
    y: float
    width: float = 240.0
    height: float = 160.0
    content: str = ""

    @property
    def position(self) -> Point:
        return Point(self.x, self.y)

    def get_bounds(self) -> Bounds:
        return Bounds(self.x, self.y, self.x + self.width, self.y + self.height)


@dataclass
class Selection:
    """
    Current selection.

    Holds either a single active item (shown in the property editor) or a set
    of box-selected ids. Setting one form always clears the other.
    """
    active_id: Optional[str] = None
    active_kind: Optional[ItemKind] = None
    ids: Set[str] = field(default_factory=set)

    def set_active(self, kind: ItemKind, item_id: str):
        self.ids = set()
        self.active_kind = kind
        self.active_id = item_id

    def set_many(self, ids):
        self.active_id = None
        self.active_kind = None
        self.ids = set(ids)

    def clear(self):
        self.active_id = None
        self.active_kind = None
        self.ids = set()

    def clear_active(self):
        self.active_id = None
        self.active_kind = None

    def discard(self, item_id: str):
        self.ids.discard(item_id)
        if self.active_id == item_id:
            self.clear_active()

    def is_empty(self) -> bool:
        return self.active_id is None and not self.ids
