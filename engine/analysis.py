"""
Circuitboard Scene Analysis
===========================

Read-only metrics over a scene: connectivity, completeness and organization.

The scene graph is rebuilt in NetworkX from the item lists, so this module
works on snapshots and decoded scenes as well as on a live store. An empty
scene yields a report with is_empty set and everything else zeroed.
"""

import math
import re
from collections import Counter
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Tuple

import networkx as nx

from .models import Direction, Edge, Node, StickyNote


def _percent(part: float, whole: float) -> int:
    """Whole-number percentage, halves rounded up"""
    if whole <= 0:
        return 0
    return int(math.floor(part / whole * 100 + 0.5))


# ==============================================================================
# Report Structures
# ==============================================================================

@dataclass
class Connectivity:
    node_id: str
    title: str
    count: int


@dataclass
class TagCount:
    tag: str
    count: int


@dataclass
class ColorUsage:
    color: str
    count: int
    percentage: int
    common_tags: Dict[str, int] = field(default_factory=dict)


@dataclass
class SystemSummary:
    total_elements: int = 0
    is_empty: bool = True
    total_nodes: int = 0
    total_connections: int = 0
    total_colors: int = 0
    network_density: int = 0
    components: int = 0
    most_connected: Optional[Connectivity] = None


@dataclass
class StructureReport:
    insights: List[str] = field(default_factory=list)
    recommendations: List[str] = field(default_factory=list)
    top5_connected: List[Connectivity] = field(default_factory=list)
    hub_nodes: List[Connectivity] = field(default_factory=list)
    clusters: List[TagCount] = field(default_factory=list)
    isolated_count: int = 0


@dataclass
class CompletenessReport:
    insights: List[str] = field(default_factory=list)
    score: int = 0
    description_completeness: int = 0
    tag_completeness: int = 0
    note_utilization: int = 0


@dataclass
class OrganizationReport:
    insights: List[str] = field(default_factory=list)
    recommendations: List[str] = field(default_factory=list)
    top10_tags: List[TagCount] = field(default_factory=list)
    top_colors: List[ColorUsage] = field(default_factory=list)
    tag_variety: int = 0
    has_good_structure: bool = False


@dataclass
class AnalysisReport:
    system: SystemSummary = field(default_factory=SystemSummary)
    structure: StructureReport = field(default_factory=StructureReport)
    completeness: CompletenessReport = field(default_factory=CompletenessReport)
    organization: OrganizationReport = field(default_factory=OrganizationReport)


# ==============================================================================
# Analysis
# ==============================================================================

def build_graph(nodes: Sequence[Node], edges: Sequence[Edge]) -> nx.Graph:
    """Undirected graph of node ids; edges with a missing endpoint are skipped"""
    graph = nx.Graph()
    graph.add_nodes_from(n.id for n in nodes)
    for edge in edges:
        if edge.source_id in graph and edge.target_id in graph:
            graph.add_edge(edge.source_id, edge.target_id)
    return graph


def _structure(nodes: Sequence[Node], edges: Sequence[Edge], graph: nx.Graph,
               summary: SystemSummary) -> StructureReport:
    report = StructureReport()

    # Stable sort keeps scene order among equally connected nodes
    counts = sorted(
        (Connectivity(n.id, n.title, graph.degree(n.id)) for n in nodes),
        key=lambda c: c.count,
        reverse=True,
    )
    isolated = [c for c in counts if c.count == 0]
    hubs = [c for c in counts if c.count >= 3]

    density = _percent(nx.density(graph), 1) if len(nodes) > 1 else 0
    summary.network_density = density
    summary.components = nx.number_connected_components(graph)
    summary.most_connected = counts[0] if counts and counts[0].count > 0 else None

    tag_groups: Dict[str, int] = {}
    for node in nodes:
        for tag in node.tags:
            tag_groups[tag] = tag_groups.get(tag, 0) + 1
    clusters = sorted(
        (TagCount(tag, count) for tag, count in tag_groups.items() if count >= 2),
        key=lambda t: t.count,
        reverse=True,
    )

    if isolated:
        report.insights.append(f"{len(isolated)} isolated nodes detected")
        report.recommendations.append(
            "Consider connecting isolated nodes to show their relationships")
    if hubs:
        report.insights.append(f"{len(hubs)} hub nodes found (3+ connections)")
        if len(hubs) == 1:
            report.recommendations.append(
                "Consider adding more hub nodes to distribute connectivity")
    if density < 20:
        report.insights.append("Sparse network - low connectivity between elements")
        report.recommendations.append(
            "Add more connections to show relationships between components")
    elif density > 60:
        report.insights.append("Dense network - high interconnectivity")
        report.recommendations.append(
            "Consider grouping related elements or simplifying connections")
    if clusters:
        report.insights.append(f"{len(clusters)} distinct clusters identified")

    report.top5_connected = [c for c in counts[:5] if c.count > 0]
    report.hub_nodes = hubs[:3]
    report.clusters = clusters[:3]
    report.isolated_count = len(isolated)
    return report


def _completeness(nodes: Sequence[Node], notes: Sequence[StickyNote]) -> CompletenessReport:
    report = CompletenessReport()
    described = sum(1 for n in nodes if n.description.strip())
    tagged = sum(1 for n in nodes if n.tags)
    filled = sum(1 for s in notes if s.content.strip())

    report.description_completeness = _percent(described, len(nodes))
    report.tag_completeness = _percent(tagged, len(nodes))
    report.note_utilization = _percent(filled, len(notes)) if notes else 100
    report.score = int(math.floor(
        (report.description_completeness + report.tag_completeness + report.note_utilization) / 3
        + 0.5
    ))

    if report.description_completeness < 30:
        report.insights.append(
            "Most nodes lack descriptions - add context for better understanding")
    elif report.description_completeness < 70:
        report.insights.append("Some nodes need descriptions to improve clarity")
    else:
        report.insights.append("Good documentation - most nodes have descriptions")

    if report.tag_completeness < 50:
        report.insights.append("Add tags to categorize and organize your components")
    else:
        report.insights.append("Well-tagged system helps with organization")

    if notes and len(notes) > filled:
        report.insights.append(f"{len(notes) - filled} empty notes can be removed or filled")
    return report


def _prefix(name: str) -> str:
    return re.split(r"\d", name, maxsplit=1)[0]


def _organization(nodes: Sequence[Node], edges: Sequence[Edge],
                  structure: StructureReport) -> Tuple[OrganizationReport, int]:
    report = OrganizationReport()

    all_tags = [tag for n in nodes for tag in n.tags]
    tag_counts = Counter(all_tags)
    unique_tags = list(dict.fromkeys(all_tags))
    report.tag_variety = len(unique_tags)
    report.top10_tags = sorted(
        (TagCount(tag, tag_counts[tag]) for tag in unique_tags),
        key=lambda t: t.count,
        reverse=True,
    )[:10]

    color_counts: Dict[str, int] = {}
    for node in nodes:
        color_counts[node.color] = color_counts.get(node.color, 0) + 1
    colors = []
    for color, count in sorted(color_counts.items(), key=lambda kv: kv[1], reverse=True):
        common = Counter(tag for n in nodes if n.color == color for tag in n.tags)
        colors.append(ColorUsage(color, count, _percent(count, len(nodes)), dict(common)))
    report.top_colors = colors[:5]

    if len(unique_tags) > len(nodes) * 0.8:
        report.insights.append("Too many unique tags - consider consolidating similar ones")
        report.recommendations.append("Standardize tag names for better organization")
    elif len(unique_tags) < len(nodes) * 0.2 and len(nodes) > 5:
        report.insights.append("Limited tag variety - consider more specific categorization")
        report.recommendations.append("Add more descriptive tags to improve searchability")

    names = [n.title.lower() for n in nodes]
    has_numbering = any(re.search(r"\d", name) for name in names)
    consistent = any(
        sum(1 for other in names if _prefix(name) in other or _prefix(other) in name) > 1
        for name in names
    )
    if has_numbering and not consistent:
        report.recommendations.append(
            "Consider consistent naming patterns for related components")

    directional = sum(1 for e in edges if e.direction is not Direction.NONE)
    if directional < len(edges) * 0.3 and len(edges) > 3:
        report.recommendations.append(
            "Add directional arrows to show process flow or data direction")

    report.has_good_structure = (
        bool(structure.clusters) and structure.isolated_count < len(nodes) * 0.3
    )
    return report, len(color_counts)


def analyze(
    nodes: Sequence[Node],
    edges: Sequence[Edge],
    sticky_notes: Sequence[StickyNote]
) -> AnalysisReport:
    """
    Compute the scene report.

    Args:
        nodes: Scene nodes
        edges: Scene edges
        sticky_notes: Scene sticky notes

    Returns:
        AnalysisReport; system.is_empty is True when there are no nodes
    """
    report = AnalysisReport()
    if not nodes:
        return report

    graph = build_graph(nodes, edges)
    summary = report.system
    summary.total_elements = len(nodes) + len(edges) + len(sticky_notes)
    summary.is_empty = summary.total_elements == 0
    summary.total_nodes = len(nodes)
    summary.total_connections = len(edges)

    report.structure = _structure(nodes, edges, graph, summary)
    report.completeness = _completeness(nodes, sticky_notes)
    report.organization, summary.total_colors = _organization(nodes, edges, report.structure)
    return report


# ==============================================================================
# Color Topics
# ==============================================================================

def topic_for_color(color: str, nodes: Sequence[Node], assignments: Dict[str, str]) -> str:
    """
    Topic a color stands for.

    A manual assignment wins; otherwise the most common tag among nodes of
    that color (first seen wins a tie). Empty string when there is neither.
    """
    if assignments.get(color):
        return assignments[color]
    counts = Counter(tag for n in nodes if n.color == color for tag in n.tags)
    if not counts:
        return ""
    return counts.most_common(1)[0][0]


def legend_entries(nodes: Sequence[Node], assignments: Dict[str, str]) -> List[Tuple[str, str]]:
    """(color, topic) for every color in use that has a topic, in first-use order"""
    entries = []
    for color in dict.fromkeys(n.color for n in nodes):
        topic = topic_for_color(color, nodes, assignments)
        if topic:
            entries.append((color, topic))
    return entries
