from engine.history import HistoryManager
from engine.models import ItemKind, Node
from engine.store import SceneStore


def test_undo_on_empty_stack_is_noop():
    store = SceneStore()
    history = HistoryManager()
    assert history.undo(store) is False
    assert history.cursor == -1


def test_undo_restores_previous_scene_and_clears_selection():
    store = SceneStore()
    history = HistoryManager()
    history.record(store)
    store.add_node(Node(id="a", x=0, y=0))
    store.selection.set_active(ItemKind.NODE, "a")

    assert history.undo(store) is True
    assert store.node_count == 0
    assert store.selection.is_empty()


def test_capacity_evicts_oldest():
    store = SceneStore()
    history = HistoryManager(capacity=50)
    for i in range(60):
        history.record(store)
        store.add_node(Node(id=f"n{i}", x=i, y=0))

    assert len(history) == 50
    for _ in range(50):
        assert history.undo(store) is True
    # The oldest retained snapshot was taken before node 10 was added
    assert [n.id for n in store.nodes] == [f"n{i}" for i in range(10)]
    assert history.undo(store) is False
    assert store.node_count == 10


def test_snapshots_are_isolated_from_later_edits():
    store = SceneStore()
    store.add_node(Node(id="a", x=0, y=0))
    history = HistoryManager()
    history.record(store)
    store.get_node("a").x = 50
    history.undo(store)
    assert store.get_node("a").x == 0
