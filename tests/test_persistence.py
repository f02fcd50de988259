import json
import logging
from pathlib import Path

import pytest

from cyoa.endings import EndingsTracker
from cyoa.items import Item, ItemCatalog
from cyoa.pages import Page, PageGraph
from cyoa.save_migrations import SnapshotMigrationError, migrate_snapshot_payload
from cyoa.settings import DEFAULT_ITEM_MARKUP, Settings, load_settings, save_settings
from cyoa.state import GameState
from cyoa.storage import FileStore, MemoryStore, StorageError, open_store

PAGES = PageGraph([Page(id="main_menu"), Page(id="forest"), Page(id="lake", is_ending=True)])
ITEMS = ItemCatalog({"axe": Item(id="axe", name="Axe")})


def test_file_store_reads_missing_keys_as_empty(tmp_path: Path) -> None:
    store = FileStore(tmp_path / "saves")

    assert store.get("cyoa-app") == ""
    store.set("cyoa-app", "payload")
    assert store.get("cyoa-app") == "payload"
    assert store.keys() == ["cyoa-app"]

    store.delete("cyoa-app")
    store.delete("cyoa-app")
    assert store.get("cyoa-app") == ""


@pytest.mark.parametrize("key", ["", "../escape", "a/b", ".hidden"])
def test_file_store_rejects_unsafe_keys(tmp_path: Path, key: str) -> None:
    store = FileStore(tmp_path)

    with pytest.raises(StorageError):
        store.set(key, "x")


def test_state_survives_a_new_session(tmp_path: Path) -> None:
    settings = Settings(data_dir=str(tmp_path / "saves"))
    first = GameState(PAGES, ITEMS, open_store(settings), settings=settings)
    first.go_to("forest")
    first.add_item("axe")
    first.save_checkpoint()

    second = GameState(PAGES, ITEMS, open_store(settings), settings=settings)

    assert second.history == ["main_menu", "forest"]
    assert second.inventory_ids == ["axe"]
    assert second.has_checkpoint() is True
    assert (tmp_path / "saves" / "cyoa-app.json").exists()


def test_corrupt_live_record_starts_fresh(caplog) -> None:
    storage = MemoryStore({"cyoa-app": "{broken"})

    with caplog.at_level(logging.WARNING):
        state = GameState(PAGES, ITEMS, storage)

    assert state.history == ["main_menu"]
    assert "Discarding saved state" in caplog.text


def test_legacy_live_record_is_read() -> None:
    legacy = {"history": ["main_menu", "forest"], "actionsTaken": {}, "inventory": ["axe"]}
    state = GameState(PAGES, ITEMS, MemoryStore({"cyoa-app": json.dumps(legacy)}))

    assert state.current_page.id == "forest"
    assert state.inventory_ids == ["axe"]
    assert state.allow_checkpoints is True


def test_history_repair_is_persisted() -> None:
    storage = MemoryStore()
    state = GameState(PAGES, ITEMS, storage)
    state.go_to("forest")
    state.go_to("removed-page")

    assert state.current_page.id == "forest"

    reloaded = GameState(PAGES, ITEMS, storage)
    assert reloaded.history == ["main_menu", "forest"]


def test_migration_rejects_newer_and_malformed_payloads() -> None:
    with pytest.raises(SnapshotMigrationError, match="newer"):
        migrate_snapshot_payload({"version": 3}, 1)
    with pytest.raises(SnapshotMigrationError, match="not an object"):
        migrate_snapshot_payload(["history"], 1)
    with pytest.raises(SnapshotMigrationError, match="no history"):
        migrate_snapshot_payload({"inventory": []}, 1)


def test_endings_are_recorded_once_and_persist() -> None:
    storage = MemoryStore()
    state = GameState(PAGES, ITEMS, storage)
    state.go_to("lake")
    state.restart()
    state.go_to("lake")

    tracker = EndingsTracker(storage)
    assert tracker.achieved_endings() == ["lake"]
    assert tracker.has_achieved("lake") is True

    tracker.reset()
    assert EndingsTracker(storage).achieved_endings() == []


def test_corrupt_endings_record_is_reset(caplog) -> None:
    storage = MemoryStore({"cyoa-app-endings": "[not json"})

    with caplog.at_level(logging.WARNING):
        tracker = EndingsTracker(storage)

    assert tracker.achieved_endings() == []
    assert "corrupt endings record" in caplog.text


def test_settings_round_trip_and_clamping(tmp_path: Path) -> None:
    path = tmp_path / "settings.json"
    settings = Settings(text_speed=9.0, ui_scale=0.1, data_dir="elsewhere")

    saved = save_settings(settings, path)
    loaded = load_settings(path)

    assert saved == loaded
    assert loaded.text_speed == 5.0
    assert loaded.ui_scale == 0.5
    assert loaded.data_dir == "elsewhere"


def test_settings_from_dict_tolerates_bad_values() -> None:
    settings = Settings.from_dict(
        {"text_speed": "fast", "reduce_animations": "yes", "state_key": " ", "item_markup": "<b>"}
    )

    assert settings.text_speed == 1.0
    assert settings.reduce_animations is True
    assert settings.state_key == "cyoa-app"
    assert settings.item_markup == DEFAULT_ITEM_MARKUP


def test_unreadable_settings_file_falls_back_to_defaults(tmp_path: Path, caplog) -> None:
    path = tmp_path / "settings.json"
    path.write_text("{nope", encoding="utf-8")

    with caplog.at_level(logging.WARNING):
        settings = load_settings(path)

    assert settings == Settings()
    assert "Ignoring unreadable settings file" in caplog.text
