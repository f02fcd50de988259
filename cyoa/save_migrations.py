"""Snapshot migration registry."""

from __future__ import annotations

import copy
from typing import Callable, Dict


class SnapshotMigrationError(Exception):
    """Raised when a stored snapshot cannot be migrated to the latest schema."""


Migration = Callable[[Dict], Dict]

_LEGACY_KEYS = {
    "history": "history",
    "actionsTaken": "actions_taken",
    "inventory": "inventory",
    "allowCheckpoints": "allow_checkpoints",
}


def _migrate_v0_to_v1(payload: Dict) -> Dict:
    # v0 is the bare camelCase record written before snapshots were versioned.
    state = {}
    for legacy_key, key in _LEGACY_KEYS.items():
        if legacy_key in payload:
            state[key] = payload[legacy_key]
        elif key in payload:
            state[key] = payload[key]
    if "history" not in state:
        raise SnapshotMigrationError("Legacy snapshot has no history.")
    state.setdefault("actions_taken", {})
    state.setdefault("inventory", [])
    state.setdefault("allow_checkpoints", True)
    return {
        "version": 1,
        "metadata": {"schema": "cyoa_state_v1", "version": 1, "saved_at": None},
        "state": state,
    }


MIGRATIONS: Dict[int, Migration] = {
    0: _migrate_v0_to_v1,
}


def migrate_snapshot_payload(payload: Dict, target_version: int) -> Dict:
    if not isinstance(payload, dict):
        raise SnapshotMigrationError("Snapshot payload was not an object.")

    version = payload.get("version", 0)
    if version is None:
        version = 0
    if not isinstance(version, int) or isinstance(version, bool):
        raise SnapshotMigrationError("Snapshot version missing or invalid.")
    if version > target_version:
        raise SnapshotMigrationError(
            f"Snapshot schema {version} is newer than supported {target_version}."
        )

    current = copy.deepcopy(payload)
    while version < target_version:
        migrator = MIGRATIONS.get(version)
        if migrator is None:
            raise SnapshotMigrationError(
                f"No migration available for snapshot schema {version}."
            )
        current = migrator(current)
        version = current.get("version", version + 1)
        if not isinstance(version, int):
            raise SnapshotMigrationError("Migration produced an invalid schema version.")

    return current
