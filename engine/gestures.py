"""
Circuitboard Gesture State Machine
==================================

Turns raw pointer events into exactly one active gesture at a time.

State Transitions (all on pointer-down from IDLE):

    link handle      ──▶ LINKING
    resize corner    ──▶ RESIZING_NODE | RESIZING_STICKY
    node / note body ──▶ DRAGGING_NODES | DRAGGING_STICKIES
    edge path        ──▶ EDGE_PRESSED ──(moved past epsilon)──▶ DRAGGING_EDGE_CONTROL
    background       ──▶ PANNING | BOX_SELECTING   (by interaction mode)

    ANY ──(pointer-up | pointer-cancel)──▶ IDLE

A gesture belongs to the pointer that started it. Events from any other
pointer are ignored until the gesture ends, which is what keeps two touches
from driving the same node.

Click semantics (open an editor, create a sticky note on the background) run
on pointer-up only if the gesture never moved past the drag epsilon. The
has_dragged flag is gesture-scoped and consumed exactly once.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Callable, Dict, List, Optional, Tuple

from .config import EngineConfig, get_config
from .geometry import (
    corner_point,
    distance_to_polyline,
    edge_path,
    find_topmost_node_at,
    quadratic_points,
    rect_contains,
    rect_overlap,
    resize_node,
    resize_sticky,
    within,
)
from .history import HistoryManager, HistorySnapshot
from .models import Bounds, Corner, ItemKind, Point, Side, StickyNote, new_id
from .store import SceneStore
from .transform import Viewport

logger = logging.getLogger(__name__)


# ==============================================================================
# State Definitions
# ==============================================================================

class GestureState(Enum):
    """Mutually exclusive pointer gestures"""
    IDLE = auto()
    PANNING = auto()
    BOX_SELECTING = auto()
    DRAGGING_NODES = auto()
    DRAGGING_STICKIES = auto()
    RESIZING_NODE = auto()
    RESIZING_STICKY = auto()
    LINKING = auto()
    EDGE_PRESSED = auto()           # maybe-curving, not yet past the epsilon
    DRAGGING_EDGE_CONTROL = auto()


class InteractionMode(Enum):
    """What a background drag does. Persistent, not part of a gesture."""
    PAN = "pan"
    SELECT = "select"


class TargetKind(Enum):
    LINK_HANDLE = auto()
    RESIZE_NODE = auto()
    RESIZE_STICKY = auto()
    NODE = auto()
    STICKY = auto()
    EDGE = auto()
    BACKGROUND = auto()


@dataclass(frozen=True)
class HitTarget:
    """What lies under the pointer"""
    kind: TargetKind
    item_id: Optional[str] = None
    corner: Optional[Corner] = None
    side: Optional[Side] = None


BACKGROUND = HitTarget(TargetKind.BACKGROUND)


@dataclass(frozen=True)
class PointerEvent:
    """A pointer sample in screen space, relative to the canvas origin"""
    pointer_id: int
    x: float
    y: float


class ResultKind(Enum):
    EDGE_CREATED = auto()
    STICKY_CREATED = auto()
    NODE_OPENED = auto()
    STICKY_OPENED = auto()
    EDGE_OPENED = auto()
    SELECTION_REPLACED = auto()
    ITEMS_TRASHED = auto()


@dataclass(frozen=True)
class GestureResult:
    """Completion side effect of a finished gesture"""
    kind: ResultKind
    ids: Tuple[str, ...] = ()


@dataclass
class Gesture:
    """Everything the active gesture needs; reset to a fresh record on IDLE"""
    state: GestureState = GestureState.IDLE
    pointer_id: Optional[int] = None
    origin: Point = Point(0.0, 0.0)
    origin_screen: Point = Point(0.0, 0.0)
    current: Point = Point(0.0, 0.0)
    has_dragged: bool = False
    target_id: Optional[str] = None
    corner: Optional[Corner] = None
    side: Optional[Side] = None
    start_pan: Point = Point(0.0, 0.0)
    start_positions: Dict[str, Point] = field(default_factory=dict)
    start_geometry: Tuple[float, ...] = ()
    in_group: bool = False
    over_trash: bool = False
    pending_snapshot: Optional[HistorySnapshot] = None


# States whose first real movement is recorded as one undo step
_RECORDED_STATES = (
    GestureState.DRAGGING_NODES,
    GestureState.DRAGGING_STICKIES,
    GestureState.RESIZING_NODE,
    GestureState.RESIZING_STICKY,
    GestureState.EDGE_PRESSED,
)

_DRAG_STATES = (GestureState.DRAGGING_NODES, GestureState.DRAGGING_STICKIES)


# ==============================================================================
# State Machine
# ==============================================================================

class GestureMachine:
    """
    Pointer gesture arbiter for one canvas.

    Args:
        store: Scene store to mutate
        viewport: Viewport used for screen/scene conversion and panning
        history: Undo stack; snapshots are pushed before mutations
        config: Engine limits and tuning
        trash_zone: Screen-space drop-zone that deletes dragged items
    """

    def __init__(
        self,
        store: SceneStore,
        viewport: Viewport,
        history: HistoryManager,
        config: Optional[EngineConfig] = None,
        trash_zone: Optional[Bounds] = None
    ):
        self._store = store
        self._viewport = viewport
        self._history = history
        self._config = config or get_config()
        self.trash_zone = trash_zone
        self.mode = InteractionMode.PAN
        self._gesture = Gesture()

        # Transition callback
        self.on_state_change: Optional[Callable[[GestureState, GestureState], None]] = None

    @property
    def state(self) -> GestureState:
        return self._gesture.state

    @property
    def gesture(self) -> Gesture:
        return self._gesture

    @property
    def is_over_trash(self) -> bool:
        return self._gesture.over_trash

    def _transition(self, gesture: Gesture):
        previous = self._gesture.state
        self._gesture = gesture
        if previous is gesture.state:
            return
        logger.debug(f"[FSM] {previous.name} → {gesture.state.name}")
        if self.on_state_change:
            self.on_state_change(previous, gesture.state)

    def _reset(self):
        self._transition(Gesture())

    # --------------------------------------------------------------------------
    # Hit Testing
    # --------------------------------------------------------------------------

    def hit_test(self, p: Point) -> HitTarget:
        """
        Topmost interactive target at a scene point.

        Priority: link handle > resize corner > node/sticky body > edge > background.
        """
        nodes = self._store.nodes
        notes = self._store.sticky_notes
        radius = self._config.handle_radius

        for node in reversed(nodes):
            for side in Side:
                if within(p, node.anchor_for_side(side), radius):
                    return HitTarget(TargetKind.LINK_HANDLE, node.id, side=side)

        for node in reversed(nodes):
            for corner in Corner:
                if within(p, corner_point(node.get_bounds(), corner), radius):
                    return HitTarget(TargetKind.RESIZE_NODE, node.id, corner=corner)
        for note in reversed(notes):
            for corner in Corner:
                if within(p, corner_point(note.get_bounds(), corner), radius):
                    return HitTarget(TargetKind.RESIZE_STICKY, note.id, corner=corner)

        node = find_topmost_node_at(p, nodes)
        if node is not None:
            return HitTarget(TargetKind.NODE, node.id)
        for note in reversed(notes):
            if note.get_bounds().contains(p):
                return HitTarget(TargetKind.STICKY, note.id)

        for edge in reversed(self._store.edges):
            source = self._store.get_node(edge.source_id)
            target = self._store.get_node(edge.target_id)
            if source is None or target is None:
                continue
            start, control, end = edge_path(source, target, edge.control)
            if edge.control is not None and within(p, control, radius):
                return HitTarget(TargetKind.EDGE, edge.id)
            points = quadratic_points(start, control, end)
            if distance_to_polyline(p, points) <= self._config.edge_hit_tolerance:
                return HitTarget(TargetKind.EDGE, edge.id)

        return BACKGROUND

    # --------------------------------------------------------------------------
    # Pointer Down
    # --------------------------------------------------------------------------

    def pointer_down(self, event: PointerEvent, target: Optional[HitTarget] = None) -> GestureState:
        """
        Start a gesture for this pointer.

        Args:
            event: The pointer-down sample
            target: Pre-computed hit target; hit-tested here when omitted

        Returns:
            The state entered (unchanged if another pointer owns a gesture)
        """
        if self._gesture.state is not GestureState.IDLE:
            logger.debug(f"Pointer {event.pointer_id} ignored: "
                         f"pointer {self._gesture.pointer_id} holds {self._gesture.state.name}")
            return self._gesture.state

        p = self._viewport.to_scene(event.x, event.y)
        if target is None:
            target = self.hit_test(p)

        g = Gesture(
            pointer_id=event.pointer_id,
            origin=p,
            origin_screen=Point(event.x, event.y),
            current=p,
            target_id=target.item_id,
        )
        store = self._store

        if target.kind is TargetKind.LINK_HANDLE and store.get_node(target.item_id):
            g.state = GestureState.LINKING
            g.side = target.side or Side.RIGHT

        elif target.kind is TargetKind.RESIZE_NODE and store.get_node(target.item_id):
            node = store.get_node(target.item_id)
            g.state = GestureState.RESIZING_NODE
            g.corner = target.corner or Corner.SE
            g.start_geometry = (node.x, node.y, node.size)

        elif target.kind is TargetKind.RESIZE_STICKY and store.get_sticky(target.item_id):
            note = store.get_sticky(target.item_id)
            g.state = GestureState.RESIZING_STICKY
            g.corner = target.corner or Corner.SE
            g.start_geometry = (note.x, note.y, note.width, note.height)

        elif target.kind is TargetKind.NODE and store.get_node(target.item_id):
            g.state = GestureState.DRAGGING_NODES
            self._prepare_drag(g)

        elif target.kind is TargetKind.STICKY and store.get_sticky(target.item_id):
            g.state = GestureState.DRAGGING_STICKIES
            self._prepare_drag(g)

        elif target.kind is TargetKind.EDGE and store.get_edge(target.item_id):
            g.state = GestureState.EDGE_PRESSED

        else:
            g.target_id = None
            if self.mode is InteractionMode.SELECT:
                g.state = GestureState.BOX_SELECTING
            else:
                g.state = GestureState.PANNING
                g.start_pan = self._viewport.pan

        if g.state in _RECORDED_STATES:
            g.pending_snapshot = HistorySnapshot.capture(store)

        self._transition(g)
        return g.state

    def _prepare_drag(self, g: Gesture):
        """Record start positions for the dragged item or the whole selection"""
        selection = self._store.selection
        if g.target_id in selection.ids:
            g.in_group = True
            for item_id in selection.ids:
                item = self._store.get_node(item_id) or self._store.get_sticky(item_id)
                if item is not None:
                    g.start_positions[item_id] = item.position
        else:
            if selection.ids:
                selection.set_many(())
            item = self._store.get_node(g.target_id) or self._store.get_sticky(g.target_id)
            g.start_positions[g.target_id] = item.position

    # --------------------------------------------------------------------------
    # Pointer Move
    # --------------------------------------------------------------------------

    def pointer_move(self, event: PointerEvent):
        """Stream the active gesture's mutation for a new pointer sample"""
        g = self._gesture
        if g.state is GestureState.IDLE or event.pointer_id != g.pointer_id:
            return

        p = self._viewport.to_scene(event.x, event.y)
        g.current = p
        self._track_drag(event)

        if g.state in _DRAG_STATES:
            dx = p.x - g.origin.x
            dy = p.y - g.origin.y
            for item_id, start in g.start_positions.items():
                item = self._store.get_node(item_id) or self._store.get_sticky(item_id)
                if item is not None:
                    item.x = start.x + dx
                    item.y = start.y + dy
            g.over_trash = self._pointer_over_trash(event)

        elif g.state is GestureState.RESIZING_NODE:
            node = self._store.get_node(g.target_id)
            if node is not None:
                x, y, size = resize_node(
                    g.corner, *g.start_geometry,
                    p.x - g.origin.x, p.y - g.origin.y,
                    self._config.node_size_min, self._config.node_size_max
                )
                node.x, node.y, node.size = x, y, size

        elif g.state is GestureState.RESIZING_STICKY:
            note = self._store.get_sticky(g.target_id)
            if note is not None:
                x, y, w, h = resize_sticky(
                    g.corner, *g.start_geometry,
                    p.x - g.origin.x, p.y - g.origin.y,
                    self._config.sticky_min_width, self._config.sticky_min_height
                )
                note.x, note.y, note.width, note.height = x, y, w, h

        elif g.state is GestureState.PANNING:
            zoom = self._viewport.zoom
            self._viewport.pan = (
                g.start_pan.x + (event.x - g.origin_screen.x) / zoom,
                g.start_pan.y + (event.y - g.origin_screen.y) / zoom,
            )

        elif g.state is GestureState.EDGE_PRESSED:
            if g.has_dragged:
                promoted = Gesture(**{**g.__dict__, "state": GestureState.DRAGGING_EDGE_CONTROL})
                self._transition(promoted)
                self._set_control(promoted.target_id, p)

        elif g.state is GestureState.DRAGGING_EDGE_CONTROL:
            self._set_control(g.target_id, p)

    def _track_drag(self, event: PointerEvent):
        """Raise has_dragged once displacement passes the epsilon"""
        g = self._gesture
        if g.has_dragged:
            return
        zoom = self._viewport.zoom
        dx = (event.x - g.origin_screen.x) / zoom
        dy = (event.y - g.origin_screen.y) / zoom
        epsilon = self._config.drag_epsilon
        if abs(dx) > epsilon or abs(dy) > epsilon:
            g.has_dragged = True
            if g.pending_snapshot is not None:
                self._history.push(g.pending_snapshot)
                g.pending_snapshot = None

    def _pointer_over_trash(self, event: PointerEvent) -> bool:
        if self.trash_zone is None:
            return False
        return self.trash_zone.expanded(self._config.trash_expand).contains(Point(event.x, event.y))

    def _set_control(self, edge_id: Optional[str], p: Point):
        edge = self._store.get_edge(edge_id) if edge_id else None
        if edge is not None:
            edge.control = p

    # --------------------------------------------------------------------------
    # Pointer Up / Cancel
    # --------------------------------------------------------------------------

    def _consume_drag_flag(self) -> bool:
        moved = self._gesture.has_dragged
        self._gesture.has_dragged = False
        return moved

    def pointer_up(self, event: PointerEvent) -> Optional[GestureResult]:
        """
        Finish the gesture owned by this pointer.

        Returns:
            The completion side effect, or None if nothing happened
        """
        g = self._gesture
        if g.state is GestureState.IDLE or event.pointer_id != g.pointer_id:
            return None

        p = self._viewport.to_scene(event.x, event.y)
        g.current = p
        moved = self._consume_drag_flag()
        result = None

        try:
            if g.state is GestureState.LINKING:
                result = self._finish_link(g, p)

            elif g.state in _DRAG_STATES:
                if moved and self._pointer_over_trash(event):
                    result = self._trash(g)
                elif not moved:
                    kind = ItemKind.NODE if g.state is GestureState.DRAGGING_NODES else ItemKind.STICKY
                    self._store.selection.set_active(kind, g.target_id)
                    result = GestureResult(
                        ResultKind.NODE_OPENED if kind is ItemKind.NODE else ResultKind.STICKY_OPENED,
                        (g.target_id,)
                    )

            elif g.state is GestureState.EDGE_PRESSED:
                self._store.selection.set_active(ItemKind.EDGE, g.target_id)
                result = GestureResult(ResultKind.EDGE_OPENED, (g.target_id,))

            elif g.state is GestureState.BOX_SELECTING and moved:
                result = self._finish_box_select(g, p)

            elif g.state in (GestureState.PANNING, GestureState.BOX_SELECTING) and not moved:
                result = self._background_click(p)
        finally:
            self._reset()

        return result

    def pointer_cancel(self, event: PointerEvent):
        """Abort the gesture: same cleanup as pointer-up, no completion effects"""
        g = self._gesture
        if g.state is GestureState.IDLE or event.pointer_id != g.pointer_id:
            return
        self._consume_drag_flag()
        logger.debug(f"Gesture {g.state.name} cancelled")
        self._reset()

    # --------------------------------------------------------------------------
    # Completion
    # --------------------------------------------------------------------------

    def _finish_link(self, g: Gesture, p: Point) -> Optional[GestureResult]:
        target = find_topmost_node_at(p, self._store.nodes, exclude=g.target_id)
        if target is None:
            logger.debug("Link cancelled: released over empty space")
            return None
        if self._store.find_edge_between(g.target_id, target.id) is not None:
            logger.debug("Link cancelled: nodes already connected")
            return None
        self._history.record(self._store)
        edge = self._store.link(g.target_id, target.id)
        logger.info(f"Linked {g.target_id} → {target.id}")
        return GestureResult(ResultKind.EDGE_CREATED, (edge.id,))

    def _trash(self, g: Gesture) -> GestureResult:
        selection = self._store.selection
        ids = tuple(selection.ids) if g.in_group else (g.target_id,)
        self._history.record(self._store)
        nodes, edges, notes = self._store.remove_items(ids)
        if g.in_group:
            selection.clear()
        logger.info(f"Trashed {nodes} nodes, {edges} edges, {notes} notes")
        return GestureResult(ResultKind.ITEMS_TRASHED, ids)

    def _finish_box_select(self, g: Gesture, p: Point) -> GestureResult:
        box = Bounds.from_corners(g.origin, p)
        test = rect_contains if self._config.box_select_containment else rect_overlap
        hits: List[str] = []
        for node in self._store.nodes:
            if test(box, node.get_bounds()):
                hits.append(node.id)
        for note in self._store.sticky_notes:
            if test(box, note.get_bounds()):
                hits.append(note.id)
        self._store.selection.set_many(hits)
        logger.debug(f"Box select picked {len(hits)} items")
        return GestureResult(ResultKind.SELECTION_REPLACED, tuple(hits))

    def _background_click(self, p: Point) -> GestureResult:
        self._store.selection.clear()
        self._history.record(self._store)
        width = self._config.sticky_default_width
        height = self._config.sticky_default_height
        note = StickyNote(
            id=new_id(),
            x=p.x - width / 2,
            y=p.y - height / 2,
            width=width,
            height=height,
        )
        self._store.add_sticky(note)
        self._store.selection.set_active(ItemKind.STICKY, note.id)
        return GestureResult(ResultKind.STICKY_CREATED, (note.id,))

    # --------------------------------------------------------------------------
    # Rendering Helpers
    # --------------------------------------------------------------------------

    def link_preview(self) -> Optional[Tuple[Point, Point]]:
        """Rubber band from the origin handle to the pointer while linking"""
        g = self._gesture
        if g.state is not GestureState.LINKING:
            return None
        node = self._store.get_node(g.target_id)
        if node is None:
            return None
        return node.anchor_for_side(g.side), g.current

    def selection_box(self) -> Optional[Bounds]:
        g = self._gesture
        if g.state is not GestureState.BOX_SELECTING:
            return None
        return Bounds.from_corners(g.origin, g.current)
