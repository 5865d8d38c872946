import pytest

from versioned_store import SandboxActiveError, Store, attribute_schema


def user_ids(store):
    return [u.id for u in store["user"].get_all()]


def test_undo_redo_walkthrough(store):
    history = store.history
    history.commit()
    store.create("user", {"id": "u1"})
    history.commit()
    store.create("user", {"id": "u2"})
    history.commit()

    assert history.undo() is True
    assert user_ids(store) == ["u1"]
    assert history.undo() is True
    assert user_ids(store) == []
    assert history.redo() is True
    assert user_ids(store) == ["u1"]
    assert history.redo() is True
    assert user_ids(store) == ["u1", "u2"]


def test_undo_n_then_redo_n_restores_state(store):
    history = store.history
    history.commit()
    for i in range(4):
        store.create("user", {"id": f"u{i}", "name": str(i)})
        store.create("piece", {"id": "p1", "kind": "queen", "x": i, "y": i})
        history.commit()
    before = store.to_json()

    for _ in range(4):
        history.undo()
    assert store.to_json()["collections"] == {"user": [], "piece": []}
    for _ in range(4):
        history.redo()
    assert store.to_json() == before


def test_undo_and_redo_on_empty_stacks_are_noops(store, changes):
    assert store.history.undo() is False
    assert store.history.redo() is False

    store.history.commit()
    assert store.history.undo() is False
    assert store.history.redo() is False
    assert changes == []


def test_undo_preserves_instance_identity(store):
    store.history.commit()
    piece = store.create("piece", {"id": "p1", "kind": "knight", "x": 1, "y": 0})
    store.history.commit()
    store.create("piece", {"id": "p1", "x": 2, "y": 2})
    store.history.commit()

    store.history.undo()
    assert store.get("piece", "p1") is piece
    assert (piece.x, piece.y) == (1, 0)
    store.history.redo()
    assert store.get("piece", "p1") is piece
    assert (piece.x, piece.y) == (2, 2)


def test_undo_restores_deleted_instance_in_original_order(store):
    for user_id in ["a", "b", "c"]:
        store.create("user", {"id": user_id})
    store.history.commit()
    before = store.to_json()

    store.delete("user", "a")
    store.history.commit()
    store.history.undo()

    assert store.to_json() == before


def test_undo_discards_uncommitted_edits_first(store):
    store.create("user", {"id": "u1"})
    store.history.commit()
    store.create("user", {"id": "u2"})
    store.history.commit()
    store.create("user", {"id": "u3"})

    assert store.history.is_dirty
    store.history.undo()
    assert user_ids(store) == ["u1", "u2"]
    store.history.undo()
    assert user_ids(store) == ["u1"]
    store.history.redo()
    store.history.redo()
    assert user_ids(store) == ["u1", "u2", "u3"]


def test_one_notification_per_undo_and_redo(store, changes):
    store.history.commit()
    store.create("user", {"id": "u1"})
    store.create("user", {"id": "u2"})
    store.history.commit()
    del changes[:]

    store.history.undo()
    assert len(changes) == 1
    assert changes[0].reason == "restore"
    assert changes[0].changes == {"user": ["u1", "u2"]}

    store.history.redo()
    assert len(changes) == 2


def test_commit_clears_redo_and_does_not_deduplicate(store):
    history = store.history
    history.commit()
    store.create("user", {"id": "u1"})
    history.commit()
    history.undo()
    assert history.can_redo

    history.commit()
    history.commit()
    assert not history.can_redo
    assert history.undo_depth == 2


def test_history_limit_drops_oldest(config):
    store = Store({**config, "history_limit": 2})
    store.history.commit()
    for i in range(5):
        store.create("user", {"id": f"u{i}"})
        store.history.commit()

    assert store.history.undo_depth == 2
    while store.history.undo():
        pass
    assert user_ids(store) == ["u0", "u1", "u2"]


def test_can_undo_and_clear(store):
    assert not store.history.can_undo
    store.history.commit()
    assert not store.history.can_undo
    store.create("user", {"id": "u1"})
    assert store.history.can_undo

    store.history.clear()
    assert not store.history.can_undo
    assert store.history.undo() is False


@pytest.mark.parametrize("operation", ["commit", "undo", "redo", "clear"])
def test_history_is_locked_inside_sandbox(store, operation):
    store.history.commit()
    with pytest.raises(SandboxActiveError):
        with store.sandboxed():
            getattr(store.history, operation)()
    assert not store.in_sandbox


def test_redo_keeps_uncommitted_edits_undoable(store):
    history = store.history
    history.commit()
    store.create("user", {"id": "u1"})
    history.commit()
    history.undo()
    assert user_ids(store) == []

    store.create("user", {"id": "u9"})
    assert history.redo() is True
    assert user_ids(store) == ["u1"]

    history.undo()
    assert user_ids(store) == ["u9"]
    history.undo()
    assert user_ids(store) == []


def test_undo_clears_attribute_set_after_commit():
    class Loose:
        pass

    store = Store({"models": {"loose": attribute_schema(Loose, ["name", "extra"])}})
    store.create("loose", {"id": "a", "name": "A"})
    store.history.commit()
    before = store.to_json()

    store.create("loose", {"id": "a", "extra": 1})
    store.history.commit()
    store.history.undo()

    assert store.to_json() == before
    assert store.get("loose", "a").extra is None
