"""
Circuitboard Editor
===================

The command surface a front end drives: one object owning the scene store,
viewport, undo history and gesture machine.

Every mutating command snapshots the scene into history first, so a single
undo() reverts it. Commands that address a missing item raise
ItemNotFoundError before anything is recorded.
"""

import logging
import math
import random
from typing import Any, Dict, Iterable, List, Optional, Tuple, Union

from .actions import apply_actions, parse_actions
from .analysis import AnalysisReport, analyze, legend_entries, topic_for_color
from .codec import DecodedScene, decode, encode
from .config import DEFAULT_NODE_COLOR, EngineConfig, get_config
from .errors import ActionError, ItemNotFoundError, SceneCodeError
from .gestures import (
    GestureMachine,
    GestureResult,
    GestureState,
    HitTarget,
    InteractionMode,
    PointerEvent,
)
from .history import HistoryManager, HistorySnapshot
from .models import (
    Bounds,
    Direction,
    Edge,
    ItemKind,
    Keyword,
    Node,
    Point,
    StickyNote,
    new_id,
)
from .store import SceneStore
from .transform import Viewport

logger = logging.getLogger(__name__)

_NODE_FIELDS = ("title", "description", "tags", "color", "size")


class Editor:
    """
    Scene editor facade.

    Args:
        config: Engine limits; the environment-derived config by default
        viewport_size: Measured canvas size in pixels, if known
        trash_zone: Screen-space drop-zone for trash-drop deletion
    """

    def __init__(
        self,
        config: Optional[EngineConfig] = None,
        viewport_size: Optional[Tuple[float, float]] = None,
        trash_zone: Optional[Bounds] = None
    ):
        self.config = config or get_config()
        self.store = SceneStore()
        self.viewport = Viewport(size=viewport_size, config=self.config)
        self.history = HistoryManager(self.config.history_capacity)
        self.gestures = GestureMachine(
            self.store, self.viewport, self.history, self.config, trash_zone
        )
        self.selected_color = DEFAULT_NODE_COLOR
        self.color_topics: Dict[str, str] = {}

    # --------------------------------------------------------------------------
    # Read-only views
    # --------------------------------------------------------------------------

    @property
    def nodes(self) -> List[Node]:
        return self.store.nodes

    @property
    def edges(self) -> List[Edge]:
        return self.store.edges

    @property
    def sticky_notes(self) -> List[StickyNote]:
        return self.store.sticky_notes

    @property
    def selection(self):
        return self.store.selection

    @property
    def state(self) -> GestureState:
        return self.gestures.state

    @property
    def mode(self) -> InteractionMode:
        return self.gestures.mode

    # --------------------------------------------------------------------------
    # Creation
    # --------------------------------------------------------------------------

    def add_node(self, at: Optional[Tuple[float, float]] = None, color: Optional[str] = None) -> Node:
        """
        Add a default node centered on a scene point.

        Args:
            at: Scene point; the viewport center when omitted
            color: Fill; the currently selected palette color when omitted
        """
        center = Point(*at) if at is not None else self.viewport.scene_center()
        size = self.config.node_size_default
        self.history.record(self.store)
        node = self.store.add_node(Node(
            id=new_id(),
            x=center.x - size / 2,
            y=center.y - size / 2,
            size=size,
            color=color or self.selected_color,
            title=f"Node {self.store.node_count + 1}",
        ))
        logger.info(f"Added {node.title} at ({node.x:.0f}, {node.y:.0f})")
        return node

    def add_sticky(self, at: Optional[Tuple[float, float]] = None) -> StickyNote:
        """Add an empty sticky note centered on a scene point and make it active"""
        center = Point(*at) if at is not None else self.viewport.scene_center()
        width = self.config.sticky_default_width
        height = self.config.sticky_default_height
        self.history.record(self.store)
        note = self.store.add_sticky(StickyNote(
            id=new_id(),
            x=center.x - width / 2,
            y=center.y - height / 2,
            width=width,
            height=height,
        ))
        self.store.selection.set_active(ItemKind.STICKY, note.id)
        logger.info(f"Added sticky note at ({note.x:.0f}, {note.y:.0f})")
        return note

    # --------------------------------------------------------------------------
    # Deletion
    # --------------------------------------------------------------------------

    def delete_node(self, node_id: str) -> List[Edge]:
        """Delete a node and its incident edges. Returns the removed edges."""
        self.store.require_node(node_id)
        self.history.record(self.store)
        removed = self.store.remove_node(node_id)
        logger.info(f"Deleted node {node_id} and {len(removed)} edges")
        return removed

    def delete_sticky(self, note_id: str):
        self.store.require_sticky(note_id)
        self.history.record(self.store)
        self.store.remove_sticky(note_id)
        logger.info(f"Deleted sticky note {note_id}")

    def delete_edge(self, edge_id: str):
        self.store.require_edge(edge_id)
        self.history.record(self.store)
        self.store.remove_edge(edge_id)
        logger.info(f"Deleted edge {edge_id}")

    def delete_selection(self) -> Tuple[int, int, int]:
        """
        Delete the box-selected set, or the active item when there is no set.

        Returns:
            (nodes, edges, notes) removed; all zero when nothing is selected
        """
        selection = self.store.selection
        ids = set(selection.ids)
        if not ids and selection.active_id is not None:
            ids = {selection.active_id}
        if not ids:
            logger.debug("Delete ignored: nothing selected")
            return 0, 0, 0
        self.history.record(self.store)
        counts = self.store.remove_items(ids)
        selection.clear()
        logger.info(f"Deleted selection: {counts[0]} nodes, {counts[1]} edges, {counts[2]} notes")
        return counts

    # --------------------------------------------------------------------------
    # Item properties
    # --------------------------------------------------------------------------

    def update_node(self, node_id: str, **fields: Any) -> Node:
        """
        Commit editor fields to a node.

        Args:
            node_id: Node to update
            **fields: Any of title, description, tags, color, size

        Raises:
            ItemNotFoundError: unknown node
            ValueError: unknown field name or a malformed value
        """
        node = self.store.require_node(node_id)
        unknown = set(fields) - set(_NODE_FIELDS)
        if unknown:
            raise ValueError(f"Unknown node fields: {', '.join(sorted(unknown))}")

        # Coerce everything up front so a bad field leaves the node untouched
        changes: Dict[str, Any] = {}
        for name in ("title", "description", "color"):
            if name in fields:
                changes[name] = str(fields[name])
        if "tags" in fields:
            tags = fields["tags"]
            if isinstance(tags, str) or not isinstance(tags, (list, tuple)):
                raise ValueError("tags must be a list of strings")
            changes["tags"] = [str(t) for t in tags]
        if "size" in fields:
            size = fields["size"]
            if not isinstance(size, (int, float)) or isinstance(size, bool) or not math.isfinite(size):
                raise ValueError(f"size must be a finite number, got {size!r}")
            changes["size"] = self.config.clamp_node_size(size)

        self.history.record(self.store)
        for name, value in changes.items():
            setattr(node, name, value)
        return node

    def update_sticky(self, note_id: str, content: str) -> StickyNote:
        note = self.store.require_sticky(note_id)
        self.history.record(self.store)
        note.content = content
        return note

    def set_edge_direction(self, edge_id: str, direction: Union[Direction, str]) -> Edge:
        edge = self.store.require_edge(edge_id)
        direction = Direction(direction)
        self.history.record(self.store)
        edge.direction = direction
        return edge

    def set_edge_keywords(self, edge_id: str, keywords: Iterable[Union[Keyword, str]]) -> Edge:
        edge = self.store.require_edge(edge_id)
        parsed: List[Keyword] = []
        for raw in keywords:
            keyword = Keyword(raw)
            if keyword not in parsed:
                parsed.append(keyword)
        self.history.record(self.store)
        edge.keywords = parsed
        return edge

    def toggle_edge_keyword(self, edge_id: str, keyword: Union[Keyword, str]) -> Edge:
        """Add the keyword if absent, otherwise remove it"""
        edge = self.store.require_edge(edge_id)
        keyword = Keyword(keyword)
        self.history.record(self.store)
        if keyword in edge.keywords:
            edge.keywords = [k for k in edge.keywords if k is not keyword]
        else:
            edge.keywords = edge.keywords + [keyword]
        return edge

    def set_edge_note(self, edge_id: str, note: str) -> Edge:
        edge = self.store.require_edge(edge_id)
        self.history.record(self.store)
        edge.note = note
        return edge

    def set_edge_control_point(self, edge_id: str, point: Optional[Tuple[float, float]]) -> Edge:
        """Curve an edge through a scene point, or straighten it with None"""
        edge = self.store.require_edge(edge_id)
        self.history.record(self.store)
        edge.control = Point(*point) if point is not None else None
        return edge

    # --------------------------------------------------------------------------
    # History and persistence
    # --------------------------------------------------------------------------

    def undo(self) -> bool:
        return self.history.undo(self.store)

    def encode(self) -> str:
        """Scene code for the current scene and viewport"""
        return encode(
            self.store.nodes,
            self.store.edges,
            self.store.sticky_notes,
            self.viewport.zoom,
            self.viewport.pan,
            self.color_topics,
        )

    def load_code(self, code: str) -> DecodedScene:
        """
        Replace the scene with a decoded scene code.

        Raises:
            SceneCodeError: the code is empty or invalid; nothing changes
        """
        try:
            scene = decode(code, self.config)
        except SceneCodeError as e:
            logger.warning(f"Scene code rejected ({e.code}): {e.detail}")
            raise
        self.history.record(self.store)
        self.store.replace(scene.nodes, scene.edges, scene.sticky_notes)
        self.viewport.zoom = scene.zoom
        self.viewport.pan = scene.pan
        self.color_topics = dict(scene.color_topics)
        logger.info(f"Loaded scene: {self.store.node_count} nodes, {self.store.edge_count} edges")
        return scene

    def reset(self):
        """Empty the scene and return the viewport to zoom 1, pan 0"""
        self.history.record(self.store)
        self.store.clear()
        self.viewport.reset()
        self.color_topics.clear()
        logger.info("Scene reset")

    # --------------------------------------------------------------------------
    # Viewport and mode
    # --------------------------------------------------------------------------

    def zoom_in(self) -> bool:
        return self.viewport.zoom_in()

    def zoom_out(self) -> bool:
        return self.viewport.zoom_out()

    def set_zoom(self, zoom: float):
        self.viewport.set_zoom_anchored(zoom)

    def set_mode(self, mode: Union[InteractionMode, str]):
        self.gestures.mode = InteractionMode(mode)
        logger.debug(f"Interaction mode: {self.gestures.mode.value}")

    def toggle_mode(self) -> InteractionMode:
        if self.gestures.mode is InteractionMode.PAN:
            self.set_mode(InteractionMode.SELECT)
        else:
            self.set_mode(InteractionMode.PAN)
        return self.gestures.mode

    # --------------------------------------------------------------------------
    # Property editor
    # --------------------------------------------------------------------------

    def open_editor(self, item_id: str) -> ItemKind:
        kind = self.store.kind_of(item_id)
        if kind is None:
            raise ItemNotFoundError("item", item_id)
        self.store.selection.set_active(kind, item_id)
        return kind

    def close_editor(self):
        self.store.selection.clear_active()

    # --------------------------------------------------------------------------
    # Color topics and analysis
    # --------------------------------------------------------------------------

    def assign_color_topic(self, color: str, topic: str):
        self.color_topics[color] = topic

    def remove_color_topic(self, color: str):
        self.color_topics.pop(color, None)

    def topic_for_color(self, color: str) -> str:
        return topic_for_color(color, self.store.nodes, self.color_topics)

    def legend_entries(self) -> List[Tuple[str, str]]:
        return legend_entries(self.store.nodes, self.color_topics)

    def analyze(self) -> AnalysisReport:
        return analyze(self.store.nodes, self.store.edges, self.store.sticky_notes)

    def apply_actions(self, payload: Any, rng: Optional[random.Random] = None) -> List[str]:
        """
        Validate and apply a scene action payload as one undo step.

        Raises:
            ActionError: the payload is malformed; nothing changes
        """
        try:
            actions = parse_actions(payload)
        except ActionError as e:
            logger.warning(f"Action payload rejected: {e}")
            raise

        snapshot = HistorySnapshot.capture(self.store)
        try:
            added = apply_actions(self.store, actions, rng, self.config)
        except Exception:
            # Roll back the partial batch; history only gets the step on success
            self.store.replace(snapshot.nodes, snapshot.edges, snapshot.sticky_notes)
            raise
        self.history.push(snapshot)
        return added

    # --------------------------------------------------------------------------
    # Pointer input
    # --------------------------------------------------------------------------

    def pointer_down(self, pointer_id: int, x: float, y: float,
                     target: Optional[HitTarget] = None) -> GestureState:
        return self.gestures.pointer_down(PointerEvent(pointer_id, x, y), target)

    def pointer_move(self, pointer_id: int, x: float, y: float):
        self.gestures.pointer_move(PointerEvent(pointer_id, x, y))

    def pointer_up(self, pointer_id: int, x: float, y: float) -> Optional[GestureResult]:
        return self.gestures.pointer_up(PointerEvent(pointer_id, x, y))

    def pointer_cancel(self, pointer_id: int, x: float = 0.0, y: float = 0.0):
        self.gestures.pointer_cancel(PointerEvent(pointer_id, x, y))
