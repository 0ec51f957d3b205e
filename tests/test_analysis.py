from engine.analysis import analyze, legend_entries, topic_for_color
from engine.models import Direction, Edge, Node, StickyNote


def hub_scene():
    nodes = [
        Node(id="hub", x=0, y=0, title="Hub", description="center", tags=["core"]),
        Node(id="a", x=0, y=0, title="A", tags=["core", "edge"], color="#ff4d4f"),
        Node(id="b", x=0, y=0, title="B", color="#ff4d4f"),
        Node(id="c", x=0, y=0, title="C"),
        Node(id="lonely", x=0, y=0, title="Lonely"),
    ]
    edges = [Edge(id=f"e{n}", source_id="hub", target_id=n) for n in ("a", "b", "c")]
    notes = [StickyNote(id="s1", x=0, y=0, content="todo"), StickyNote(id="s2", x=0, y=0)]
    return nodes, edges, notes


def test_empty_scene_is_tolerated():
    report = analyze([], [], [])
    assert report.system.is_empty
    assert report.system.total_elements == 0
    assert report.structure.insights == []
    assert report.completeness.score == 0


def test_structure_metrics():
    nodes, edges, notes = hub_scene()
    report = analyze(nodes, edges, notes)

    assert report.system.total_elements == 10
    assert report.system.network_density == 30  # 3 of 10 possible pairs
    assert report.system.components == 2
    assert report.system.most_connected.node_id == "hub"
    assert report.system.total_colors == 2

    structure = report.structure
    assert [h.node_id for h in structure.hub_nodes] == ["hub"]
    assert structure.isolated_count == 1
    assert [c.tag for c in structure.clusters] == ["core"]
    assert [c.node_id for c in structure.top5_connected] == ["hub", "a", "b", "c"]
    assert "1 isolated nodes detected" in structure.insights
    assert "Consider adding more hub nodes to distribute connectivity" in structure.recommendations


def test_completeness_scores():
    nodes, edges, notes = hub_scene()
    completeness = analyze(nodes, edges, notes).completeness
    assert completeness.description_completeness == 20
    assert completeness.tag_completeness == 40
    assert completeness.note_utilization == 50
    assert completeness.score == 37
    assert "1 empty notes can be removed or filled" in completeness.insights


def test_organization_tags_and_colors():
    nodes, edges, notes = hub_scene()
    organization = analyze(nodes, edges, notes).organization
    assert [(t.tag, t.count) for t in organization.top10_tags] == [("core", 2), ("edge", 1)]
    assert organization.tag_variety == 2
    top = organization.top_colors[0]
    assert (top.color, top.count, top.percentage) == ("#1e90ff", 3, 60)
    assert top.common_tags == {"core": 1}
    assert organization.has_good_structure


def test_directional_recommendation():
    nodes = [Node(id=str(i), x=0, y=0, title=f"n{i}") for i in range(5)]
    edges = [Edge(id=f"e{i}", source_id="0", target_id=str(i)) for i in range(1, 5)]
    edges[0].direction = Direction.SOURCE_TO_TARGET
    report = analyze(nodes, edges, [])
    assert "Add directional arrows to show process flow or data direction" in \
        report.organization.recommendations


def test_topic_for_color():
    nodes, _, _ = hub_scene()
    assert topic_for_color("#ff4d4f", nodes, {}) == "core"
    assert topic_for_color("#ff4d4f", nodes, {"#ff4d4f": "Alerts"}) == "Alerts"
    assert topic_for_color("#123456", nodes, {}) == ""
    assert legend_entries(nodes, {}) == [("#1e90ff", "core"), ("#ff4d4f", "core")]
