import base64

import pytest

from engine.errors import ActionError, ItemNotFoundError, SceneCodeError
from engine.gestures import InteractionMode
from engine.models import Direction, ItemKind, Keyword


def test_add_node_titles_and_palette_color(editor):
    editor.selected_color = "#52c41a"
    first = editor.add_node()
    second = editor.add_node(at=(0, 0), color="#000000")
    assert first.title == "Node 1"
    assert first.color == "#52c41a"
    assert second.title == "Node 2"
    assert (second.x, second.y) == (-32, -32)
    assert second.text_color == "#ffffff"


def test_add_node_before_canvas_is_measured(config):
    from engine.editor import Editor

    node = Editor(config).add_node()
    assert (node.x, node.y) == (168, 168)


def test_delete_commands_raise_for_unknown_ids(editor):
    depth = len(editor.history)
    with pytest.raises(ItemNotFoundError):
        editor.delete_node("missing")
    with pytest.raises(ItemNotFoundError):
        editor.delete_edge("missing")
    with pytest.raises(ItemNotFoundError):
        editor.delete_sticky("missing")
    assert len(editor.history) == depth


def test_delete_node_cascades(editor):
    a = editor.add_node(at=(100, 100))
    b = editor.add_node(at=(300, 100))
    c = editor.add_node(at=(500, 100))
    editor.store.link(a.id, b.id)
    kept = editor.store.link(b.id, c.id)
    removed = editor.delete_node(a.id)
    assert len(removed) == 1
    assert [e.id for e in editor.edges] == [kept.id]


def test_delete_selection_prefers_set_then_active(editor):
    a = editor.add_node(at=(100, 100))
    b = editor.add_node(at=(300, 100))
    note = editor.add_sticky(at=(500, 400))

    editor.selection.set_many([a.id, note.id])
    assert editor.delete_selection() == (1, 0, 1)

    editor.open_editor(b.id)
    assert editor.delete_selection() == (1, 0, 0)
    assert editor.delete_selection() == (0, 0, 0)


def test_update_node_fields(editor):
    node = editor.add_node()
    editor.update_node(node.id, title="API", description="gateway", tags=["net", "net"], size=500)
    assert (node.title, node.description, node.tags, node.size) == ("API", "gateway", ["net", "net"], 200)
    with pytest.raises(ValueError):
        editor.update_node(node.id, shape="square")

    editor.undo()
    assert editor.store.get_node(node.id).title == "Node 1"


@pytest.mark.parametrize("fields", [
    {"title": "x", "size": "big"},
    {"title": "x", "size": float("inf")},
    {"title": "x", "size": True},
    {"description": "y", "tags": "ops"},
])
def test_update_node_rejects_bad_values_without_partial_write(editor, fields):
    node = editor.add_node()
    depth = len(editor.history)
    with pytest.raises(ValueError):
        editor.update_node(node.id, **fields)
    assert (node.title, node.description, node.tags, node.size) == ("Node 1", "", [], 64)
    assert len(editor.history) == depth


def test_edge_property_commands(editor):
    a = editor.add_node(at=(100, 100))
    b = editor.add_node(at=(300, 100))
    edge = editor.store.link(a.id, b.id)

    editor.set_edge_direction(edge.id, "target-to-source")
    editor.toggle_edge_keyword(edge.id, "increases")
    editor.toggle_edge_keyword(edge.id, Keyword.DECREASES)
    editor.toggle_edge_keyword(edge.id, "increases")
    editor.set_edge_note(edge.id, "via queue")
    editor.set_edge_control_point(edge.id, (200, 50))

    assert edge.direction is Direction.TARGET_TO_SOURCE
    assert edge.keywords == [Keyword.DECREASES]
    assert edge.label == "decreases • via queue"
    assert tuple(edge.control) == (200, 50)

    editor.set_edge_keywords(edge.id, ["increases", "decreases", "increases"])
    assert edge.keywords == [Keyword.INCREASES, Keyword.DECREASES]

    with pytest.raises(ValueError):
        editor.set_edge_direction(edge.id, "up")

    editor.undo()
    assert editor.store.get_edge(edge.id).keywords == [Keyword.DECREASES]


def test_encode_load_round_trip(editor):
    a = editor.add_node(at=(100, 100))
    b = editor.add_node(at=(300, 100))
    editor.store.link(a.id, b.id)
    editor.add_sticky(at=(0, 0))
    editor.set_zoom(1.5)
    editor.assign_color_topic("#1e90ff", "Services")
    code = editor.encode()

    editor.reset()
    assert editor.store.is_empty()
    assert editor.viewport.zoom == 1.0

    editor.load_code(code)
    assert editor.store.node_count == 2
    assert editor.store.edge_count == 1
    assert len(editor.sticky_notes) == 1
    assert editor.viewport.zoom == 1.5
    assert editor.color_topics == {"#1e90ff": "Services"}


def test_failed_load_leaves_scene_untouched(editor):
    node = editor.add_node()
    depth = len(editor.history)
    with pytest.raises(SceneCodeError) as exc:
        editor.load_code(base64.b64encode(b'{"nodes": []}').decode())
    assert exc.value.code == "invalid_code"
    assert editor.store.get_node(node.id) is node
    assert len(editor.history) == depth


def test_reset_is_undoable(editor):
    editor.add_node()
    editor.reset()
    assert editor.store.node_count == 0
    editor.undo()
    assert editor.store.node_count == 1


def test_mode_and_editor_state(editor):
    assert editor.mode is InteractionMode.PAN
    assert editor.toggle_mode() is InteractionMode.SELECT

    note = editor.add_sticky()
    assert editor.open_editor(note.id) is ItemKind.STICKY
    editor.close_editor()
    assert editor.selection.active_id is None
    with pytest.raises(ItemNotFoundError):
        editor.open_editor("nothing")


def test_color_topics_and_legend(editor):
    a = editor.add_node(color="#ff4d4f")
    b = editor.add_node(color="#ff4d4f")
    editor.add_node(color="#52c41a")
    editor.update_node(a.id, tags=["risk", "ops"])
    editor.update_node(b.id, tags=["ops"])

    assert editor.topic_for_color("#ff4d4f") == "ops"
    assert editor.topic_for_color("#52c41a") == ""
    assert editor.legend_entries() == [("#ff4d4f", "ops")]

    editor.assign_color_topic("#52c41a", "Healthy")
    assert editor.legend_entries() == [("#ff4d4f", "ops"), ("#52c41a", "Healthy")]
    editor.remove_color_topic("#52c41a")
    assert editor.topic_for_color("#52c41a") == ""


def test_apply_actions_is_one_undo_step(editor):
    editor.add_node()
    payload = {"actions": [
        {"type": "add_node", "node": {"title": "API", "x": 0, "y": 0}},
        {"type": "add_edge", "edge": {"sourceTitle": "API", "targetTitle": "Node 1"}},
    ]}
    added = editor.apply_actions(payload)
    assert len(added) == 2
    assert editor.store.edge_count == 1

    editor.undo()
    assert editor.store.node_count == 1
    assert editor.store.edge_count == 0


def test_invalid_actions_change_nothing(editor):
    depth = len(editor.history)
    with pytest.raises(ActionError) as exc:
        editor.apply_actions({"actions": [{"type": "add_node", "node": {}}, {"type": "delete_all"}]})
    assert exc.value.code == "invalid_actions"
    assert editor.store.is_empty()
    assert len(editor.history) == depth


def test_out_of_range_size_rejects_whole_batch(editor):
    depth = len(editor.history)
    with pytest.raises(ActionError):
        editor.apply_actions([
            {"type": "add_node", "node": {"title": "A"}},
            {"type": "add_node", "node": {"title": "B", "size": 1e400}},
        ])
    assert editor.store.is_empty()
    assert len(editor.history) == depth


def test_failure_while_applying_rolls_back(editor, monkeypatch):
    existing = editor.add_node()
    depth = len(editor.history)

    def broken_add_edge(edge):
        raise RuntimeError("store unavailable")

    monkeypatch.setattr(editor.store, "add_edge", broken_add_edge)
    with pytest.raises(RuntimeError):
        editor.apply_actions([
            {"type": "add_node", "node": {"title": "API"}},
            {"type": "add_edge", "edge": {"sourceTitle": "API", "targetTitle": "Node 1"}},
        ])
    assert [n.id for n in editor.nodes] == [existing.id]
    assert len(editor.history) == depth
