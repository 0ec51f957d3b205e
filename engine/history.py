"""
Circuitboard Undo History
=========================

Bounded stack of whole-scene snapshots. A snapshot is pushed *before* each
mutating command, so undo restores the scene as it was before that command.
Continuous gestures (drag, resize, curve) push once, when they first cross
the drag threshold.
"""

import logging
from dataclasses import dataclass
from typing import List, Tuple

from .models import Edge, Node, StickyNote
from .store import SceneStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class HistorySnapshot:
    """Immutable deep copy of the scene collections"""
    nodes: Tuple[Node, ...]
    edges: Tuple[Edge, ...]
    sticky_notes: Tuple[StickyNote, ...]

    @classmethod
    def capture(cls, store: SceneStore) -> "HistorySnapshot":
        nodes, edges, notes = store.snapshot()
        return cls(nodes=nodes, edges=edges, sticky_notes=notes)


class HistoryManager:
    """Undo stack with a fixed capacity; the oldest entry is evicted first"""

    def __init__(self, capacity: int = 50):
        self._capacity = capacity
        self._stack: List[HistorySnapshot] = []

    @property
    def capacity(self) -> int:
        return self._capacity

    @property
    def cursor(self) -> int:
        """Index of the snapshot the next undo restores (-1 when empty)"""
        return len(self._stack) - 1

    def __len__(self) -> int:
        return len(self._stack)

    def can_undo(self) -> bool:
        return bool(self._stack)

    def record(self, store: SceneStore):
        """Push a snapshot of the current scene"""
        self.push(HistorySnapshot.capture(store))

    def push(self, snapshot: HistorySnapshot):
        self._stack.append(snapshot)
        # Limit history size
        if len(self._stack) > self._capacity:
            self._stack.pop(0)

    def undo(self, store: SceneStore) -> bool:
        """
        Restore the most recent snapshot into the store.

        Selection is always cleared on restore.

        Returns:
            True if a snapshot was restored, False if the stack was empty
        """
        if not self._stack:
            logger.debug("Undo ignored: history is empty")
            return False
        snapshot = self._stack.pop()
        store.replace(snapshot.nodes, snapshot.edges, snapshot.sticky_notes)
        logger.info(f"Undo: restored {len(snapshot.nodes)} nodes, "
                    f"{len(snapshot.edges)} edges, {len(snapshot.sticky_notes)} notes")
        return True

    def clear(self):
        self._stack.clear()
