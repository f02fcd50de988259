import json
import logging

import pytest

from cyoa.checkpoint import CheckpointStore
from cyoa.items import Item, ItemCatalog
from cyoa.pages import Page, PageGraph
from cyoa.save_migrations import SnapshotMigrationError
from cyoa.snapshot import SnapshotCorruptError, StateSnapshot, encode_snapshot
from cyoa.state import GameState
from cyoa.storage import MemoryStore

CHECKPOINT_KEY = "cyoa-app-checkpoint"


def build_state(storage: MemoryStore | None = None) -> GameState:
    pages = PageGraph([Page(id="main_menu"), Page(id="dock"), Page(id="boat")])
    items = ItemCatalog({"oar": Item(id="oar", name="Oar"), "net": Item(id="net", name="Net")})
    return GameState(pages, items, storage if storage is not None else MemoryStore())


def test_load_restores_the_saved_snapshot_exactly() -> None:
    state = build_state()
    state.go_to("dock")
    state.add_item("oar", 2)
    state.actions_taken["dock"] = ["Untie rope"]
    state.save_checkpoint()
    saved = state.snapshot()

    state.go_to("boat")
    state.remove_item("oar")
    state.add_item("net")
    state.allow_checkpoints = False

    assert state.load_checkpoint() is False
    assert state.snapshot() == saved
    assert state.current_page.id == "dock"


def test_load_leaves_the_dialog_alone() -> None:
    state = build_state()
    state.save_checkpoint()
    state.open_dialog("Storm", "Rain lashes the dock.")

    state.load_checkpoint()

    assert state.dialog.show is True
    assert state.dialog.title == "Storm"


def test_checkpoint_is_independent_of_later_changes() -> None:
    state = build_state()
    state.add_item("oar")
    state.save_checkpoint()

    state.add_item("net")
    state.go_to("boat")

    info = state.get_checkpoint_info()
    assert info is not None
    assert info.current_page == "main_menu"
    assert info.snapshot.inventory == ["oar"]


def test_saving_again_overwrites_the_slot() -> None:
    state = build_state()
    state.save_checkpoint()
    state.go_to("boat")
    state.save_checkpoint()

    state.go_to("dock")
    state.load_checkpoint()

    assert state.history == ["main_menu", "boat"]


def test_load_without_checkpoint_is_a_no_op() -> None:
    state = build_state()
    state.go_to("dock")

    assert state.has_checkpoint() is False
    assert state.get_checkpoint_info() is None
    assert state.load_checkpoint() is True
    assert state.history == ["main_menu", "dock"]


@pytest.mark.parametrize(
    "raw",
    [
        "{not json",
        json.dumps({"version": 1, "state": {"history": []}}),
        json.dumps({"version": 99, "state": {}}),
        json.dumps([1, 2, 3]),
    ],
)
def test_corrupt_checkpoint_is_reported_and_ignored(raw: str, caplog) -> None:
    storage = MemoryStore({CHECKPOINT_KEY: raw})
    state = build_state(storage)
    state.go_to("dock")

    with caplog.at_level(logging.ERROR):
        assert state.load_checkpoint() is True

    assert state.history == ["main_menu", "dock"]
    assert "Error loading checkpoint" in caplog.text
    assert state.get_checkpoint_info() is None


def test_info_reports_page_and_save_time() -> None:
    storage = MemoryStore()
    snapshot = StateSnapshot(history=["main_menu", "boat"], inventory=["net"])
    storage.set(CHECKPOINT_KEY, encode_snapshot(snapshot, saved_at="2024-05-01T10:00:00+00:00"))

    info = CheckpointStore(storage).info()

    assert info is not None
    assert info.current_page == "boat"
    assert info.saved_at == "2024-05-01T10:00:00+00:00"
    assert info.snapshot == snapshot


def test_checkpoint_payload_is_versioned_and_excludes_dialog() -> None:
    storage = MemoryStore()
    state = build_state(storage)
    state.open_dialog("Hello", "World")
    state.save_checkpoint()

    payload = json.loads(storage.get(CHECKPOINT_KEY))

    assert payload["version"] == 1
    assert payload["metadata"]["schema"] == "cyoa_state_v1"
    assert set(payload["state"]) == {"history", "actions_taken", "inventory", "allow_checkpoints"}


def test_legacy_checkpoint_record_is_migrated_on_load() -> None:
    legacy = {
        "history": ["main_menu", "dock"],
        "actionsTaken": {"dock": ["Untie rope"]},
        "inventory": ["oar"],
        "allowCheckpoints": False,
    }
    state = build_state(MemoryStore({CHECKPOINT_KEY: json.dumps(legacy)}))

    assert state.load_checkpoint() is False
    assert state.history == ["main_menu", "dock"]
    assert state.actions_taken == {"dock": ["Untie rope"]}
    assert state.inventory_ids == ["oar"]
    assert state.allow_checkpoints is False


def test_store_read_raises_for_bad_data() -> None:
    store = CheckpointStore(MemoryStore({CHECKPOINT_KEY: "{oops"}))

    with pytest.raises(SnapshotCorruptError):
        store.read()

    store.storage.set(CHECKPOINT_KEY, json.dumps({"version": 7, "state": {}}))
    with pytest.raises(SnapshotMigrationError, match="newer"):
        store.read()


def test_clear_empties_the_slot() -> None:
    store = CheckpointStore(MemoryStore())
    store.write(StateSnapshot.default("main_menu"))
    assert store.exists() is True

    store.clear()

    assert store.exists() is False
    assert store.read() is None
