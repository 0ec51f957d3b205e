"""
Circuitboard Scene Store
========================

The authoritative in-memory scene: nodes, edges, sticky notes and selection.

Nodes and edges are mirrored into an undirected NetworkX graph. The graph
keeps the one-edge-per-unordered-pair rule and the incident-edge cascade on
node removal cheap, and is what the analysis module reads.

Item dictionaries preserve insertion order, which is also the z-order:
the last node added is drawn on top and wins hit-tests.
"""

import copy
import logging
from typing import Dict, Iterable, List, Optional, Tuple

import networkx as nx

from .errors import ItemNotFoundError
from .models import Edge, ItemKind, Node, Selection, StickyNote, new_id

logger = logging.getLogger(__name__)


class SceneStore:
    """
    Ordered collections of scene items plus the current selection.

    Provides:
        - Node/Edge/StickyNote management with edge uniqueness per node pair
        - Cascading edge removal when nodes go away
        - Whole-scene snapshot and replacement for history and decoding
    """

    def __init__(self):
        self._graph: nx.Graph = nx.Graph()
        self._nodes: Dict[str, Node] = {}
        self._edges: Dict[str, Edge] = {}
        self._notes: Dict[str, StickyNote] = {}
        self.selection = Selection()

    @property
    def graph(self) -> nx.Graph:
        """Access the underlying NetworkX graph (node ids, edge attr 'edge_id')"""
        return self._graph

    @property
    def nodes(self) -> List[Node]:
        """Nodes in z-order, bottom first"""
        return list(self._nodes.values())

    @property
    def edges(self) -> List[Edge]:
        return list(self._edges.values())

    @property
    def sticky_notes(self) -> List[StickyNote]:
        return list(self._notes.values())

    @property
    def node_count(self) -> int:
        return len(self._nodes)

    @property
    def edge_count(self) -> int:
        return len(self._edges)

    def is_empty(self) -> bool:
        return not (self._nodes or self._edges or self._notes)

    # --------------------------------------------------------------------------
    # Lookup
    # --------------------------------------------------------------------------

    def get_node(self, node_id: str) -> Optional[Node]:
        return self._nodes.get(node_id)

    def get_edge(self, edge_id: str) -> Optional[Edge]:
        return self._edges.get(edge_id)

    def get_sticky(self, note_id: str) -> Optional[StickyNote]:
        return self._notes.get(note_id)

    def require_node(self, node_id: str) -> Node:
        node = self._nodes.get(node_id)
        if node is None:
            raise ItemNotFoundError("node", node_id)
        return node

    def require_edge(self, edge_id: str) -> Edge:
        edge = self._edges.get(edge_id)
        if edge is None:
            raise ItemNotFoundError("edge", edge_id)
        return edge

    def require_sticky(self, note_id: str) -> StickyNote:
        note = self._notes.get(note_id)
        if note is None:
            raise ItemNotFoundError("sticky", note_id)
        return note

    def kind_of(self, item_id: str) -> Optional[ItemKind]:
        if item_id in self._nodes:
            return ItemKind.NODE
        if item_id in self._notes:
            return ItemKind.STICKY
        if item_id in self._edges:
            return ItemKind.EDGE
        return None

    def find_edge_between(self, a: str, b: str) -> Optional[Edge]:
        """Edge joining a and b in either direction, if any"""
        if not self._graph.has_edge(a, b):
            return None
        return self._edges[self._graph.edges[a, b]["edge_id"]]

    def incident_edges(self, node_id: str) -> List[Edge]:
        if node_id not in self._graph:
            return []
        return [
            self._edges[data["edge_id"]]
            for _, _, data in self._graph.edges(node_id, data=True)
        ]

    # --------------------------------------------------------------------------
    # Mutation
    # --------------------------------------------------------------------------

    def add_node(self, node: Node) -> Node:
        self._nodes[node.id] = node
        self._graph.add_node(node.id)
        return node

    def add_sticky(self, note: StickyNote) -> StickyNote:
        self._notes[note.id] = note
        return note

    def add_edge(self, edge: Edge) -> Optional[Edge]:
        """
        Add an edge between two live nodes.

        Returns:
            The edge, or None when an endpoint is missing, the edge would be a
            self-loop, or the pair is already connected in either direction
        """
        if edge.source_id not in self._nodes or edge.target_id not in self._nodes:
            logger.debug(f"Edge {edge.id} rejected: dangling endpoint")
            return None
        if edge.source_id == edge.target_id:
            logger.debug(f"Edge {edge.id} rejected: self-loop")
            return None
        if self._graph.has_edge(edge.source_id, edge.target_id):
            logger.debug(
                f"Edge rejected: {edge.source_id} and {edge.target_id} already connected"
            )
            return None
        self._edges[edge.id] = edge
        self._graph.add_edge(edge.source_id, edge.target_id, edge_id=edge.id)
        return edge

    def link(self, source_id: str, target_id: str) -> Optional[Edge]:
        """Create a plain undirected-looking edge between two nodes"""
        return self.add_edge(Edge(id=new_id(), source_id=source_id, target_id=target_id))

    def remove_node(self, node_id: str) -> List[Edge]:
        """
        Remove a node and every edge touching it.

        Returns:
            The removed edges (empty if the node didn't exist)
        """
        if node_id not in self._nodes:
            return []
        removed = self.incident_edges(node_id)
        for edge in removed:
            del self._edges[edge.id]
            self.selection.discard(edge.id)
        self._graph.remove_node(node_id)
        del self._nodes[node_id]
        self.selection.discard(node_id)
        return removed

    def remove_edge(self, edge_id: str) -> bool:
        edge = self._edges.pop(edge_id, None)
        if edge is None:
            return False
        self._graph.remove_edge(edge.source_id, edge.target_id)
        self.selection.discard(edge_id)
        return True

    def remove_sticky(self, note_id: str) -> bool:
        if self._notes.pop(note_id, None) is None:
            return False
        self.selection.discard(note_id)
        return True

    def remove_items(self, ids: Iterable[str]) -> Tuple[int, int, int]:
        """
        Remove any mix of node, sticky and edge ids.

        Returns:
            (nodes removed, edges removed, notes removed)
        """
        node_count = edge_count = note_count = 0
        for item_id in list(ids):
            kind = self.kind_of(item_id)
            if kind is ItemKind.NODE:
                edge_count += len(self.remove_node(item_id))
                node_count += 1
            elif kind is ItemKind.STICKY:
                self.remove_sticky(item_id)
                note_count += 1
            elif kind is ItemKind.EDGE:
                self.remove_edge(item_id)
                edge_count += 1
        return node_count, edge_count, note_count

    def clear(self):
        """Clear all items and the selection"""
        self._graph.clear()
        self._nodes.clear()
        self._edges.clear()
        self._notes.clear()
        self.selection.clear()

    # --------------------------------------------------------------------------
    # Snapshots
    # --------------------------------------------------------------------------

    def snapshot(self) -> Tuple[Tuple[Node, ...], Tuple[Edge, ...], Tuple[StickyNote, ...]]:
        """Deep copy of the three collections"""
        return (
            tuple(copy.deepcopy(n) for n in self._nodes.values()),
            tuple(copy.deepcopy(e) for e in self._edges.values()),
            tuple(copy.deepcopy(s) for s in self._notes.values()),
        )

    def replace(
        self,
        nodes: Iterable[Node],
        edges: Iterable[Edge],
        notes: Iterable[StickyNote]
    ):
        """
        Replace the whole scene, clearing the selection.

        Edges are re-validated, so a dangling or duplicate edge is dropped.
        """
        self.clear()
        for node in nodes:
            self.add_node(copy.deepcopy(node))
        for note in notes:
            self.add_sticky(copy.deepcopy(note))
        for edge in edges:
            if self.add_edge(copy.deepcopy(edge)) is None:
                logger.warning(f"Dropped edge {edge.id} while loading scene")
