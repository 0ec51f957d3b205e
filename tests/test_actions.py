import random

import pytest

from engine.actions import AddEdge, AddNode, apply_actions, parse_actions
from engine.errors import ActionError
from engine.models import Direction, Keyword, Node
from engine.store import SceneStore


def test_parse_accepts_object_list_and_text():
    action = {"type": "add_node", "node": {"title": "API"}}
    assert parse_actions({"actions": [action]}) == [AddNode(title="API")]
    assert parse_actions([action]) == [AddNode(title="API")]

    reply = 'Sure, here you go:\n```json\n{"actions": [{"type": "add_node", "node": {}}]}\n```'
    assert parse_actions(reply) == [AddNode()]


def test_parse_edge_fields():
    [edge] = parse_actions([{"type": "add_edge", "edge": {
        "sourceTitle": "API", "targetTitle": "DB", "direction": "source-to-target",
        "keywords": ["increases", "increases"], "note": "writes",
    }}])
    assert edge == AddEdge(source_title="API", target_title="DB",
                           direction=Direction.SOURCE_TO_TARGET,
                           keywords=[Keyword.INCREASES], note="writes")


@pytest.mark.parametrize("payload", [
    "no json here",
    "{not: json}",
    {"actions": "add_node"},
    {"nothing": []},
    [{"type": "delete_node"}],
    ["add_node"],
    [{"type": "add_node", "node": "API"}],
    [{"type": "add_node", "node": {"x": "10"}}],
    [{"type": "add_node", "node": {"tags": ["ok", 3]}}],
    [{"type": "add_node", "node": {"size": True}}],
    [{"type": "add_node", "node": {"size": float("inf")}}],
    [{"type": "add_node", "node": {"x": float("nan")}}],
    '{"actions": [{"type": "add_node", "node": {"y": -Infinity}}]}',
    '{"actions": [{"type": "add_node", "node": {"size": 1e400}}]}',
    [{"type": "add_node"}],
    [{"type": "add_edge", "edge": {"sourceId": 7}}],
    [{"type": "add_edge", "edge": {"direction": "up"}}],
    [{"type": "add_edge", "edge": {"keywords": ["doubles"]}}],
])
def test_parse_rejects_malformed_payloads(payload):
    with pytest.raises(ActionError) as exc:
        parse_actions(payload)
    assert exc.value.code == "invalid_actions"


def test_parse_accepts_integer_coordinates():
    [node] = parse_actions([{"type": "add_node", "node": {"x": 10, "y": -2.5, "size": 80}}])
    assert (node.x, node.y, node.size) == (10, -2.5, 80)


def test_apply_resolves_titles_within_batch(config):
    store = SceneStore()
    store.add_node(Node(id="db", x=0, y=0, title="DB"))
    actions = parse_actions([
        {"type": "add_node", "node": {"title": "API", "x": 10, "y": 20}},
        {"type": "add_edge", "edge": {"sourceTitle": "API", "targetTitle": "DB"}},
        {"type": "add_edge", "edge": {"sourceTitle": "API", "targetTitle": "Ghost"}},
        {"type": "add_edge", "edge": {"sourceTitle": "DB", "targetTitle": "DB"}},
        {"type": "add_edge", "edge": {"sourceId": "db", "targetTitle": "API"}},
    ])
    added = apply_actions(store, actions, config=config)

    assert len(added) == 2
    assert store.node_count == 2
    assert store.edge_count == 1
    api = store.get_node(added[0])
    assert (api.x, api.y, api.size) == (10, 20, 64)
    edge = store.get_edge(added[1])
    assert (edge.source_id, edge.target_id) == (api.id, "db")


def test_apply_defaults_position_title_and_size(config):
    store = SceneStore()
    rng = random.Random(7)
    expected = random.Random(7)
    added = apply_actions(store, [AddNode(size=900), AddNode(size=1)], rng=rng, config=config)

    first, second = (store.get_node(i) for i in added)
    assert first.x == pytest.approx(100 + expected.random() * 200)
    assert first.y == pytest.approx(100 + expected.random() * 200)
    assert 100 <= second.x <= 300 and 100 <= second.y <= 300
    assert (first.title, second.title) == ("Node 1", "Node 2")
    assert (first.size, second.size) == (200, 24)
