"""Versioned serialization of the navigation/inventory state."""

from __future__ import annotations

import copy
import json
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from .save_migrations import SnapshotMigrationError, migrate_snapshot_payload

SCHEMA_NAME = "cyoa_state_v1"
SCHEMA_VERSION = 1


class SnapshotError(Exception):
    """Base class for snapshot decoding failures."""


class SnapshotCorruptError(SnapshotError):
    """Raised when stored state cannot be parsed or validated."""


@dataclass
class StateSnapshot:
    history: List[str]
    inventory: List[str] = field(default_factory=list)
    actions_taken: Dict[str, List[str]] = field(default_factory=dict)
    allow_checkpoints: bool = True

    @classmethod
    def default(cls, root: str) -> "StateSnapshot":
        return cls(history=[root])

    def copy(self) -> "StateSnapshot":
        return copy.deepcopy(self)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "history": list(self.history),
            "actions_taken": {page: list(names) for page, names in self.actions_taken.items()},
            "inventory": list(self.inventory),
            "allow_checkpoints": self.allow_checkpoints,
        }


def build_payload(snapshot: StateSnapshot, *, saved_at: Optional[str] = None) -> Dict[str, Any]:
    return {
        "version": SCHEMA_VERSION,
        "metadata": {
            "schema": SCHEMA_NAME,
            "version": SCHEMA_VERSION,
            "saved_at": saved_at or datetime.now(timezone.utc).isoformat(),
        },
        "state": snapshot.to_dict(),
    }


def encode_snapshot(snapshot: StateSnapshot, *, saved_at: Optional[str] = None) -> str:
    return json.dumps(build_payload(snapshot, saved_at=saved_at), separators=(",", ":"))


def read_payload(raw: str) -> Dict[str, Any]:
    """Parse, migrate and validate an encoded snapshot.

    Raises ``SnapshotCorruptError`` or ``SnapshotMigrationError``.
    """
    try:
        payload = json.loads(raw)
    except (TypeError, json.JSONDecodeError) as exc:
        raise SnapshotCorruptError(f"Invalid JSON: {exc}") from exc
    payload = migrate_snapshot_payload(payload, SCHEMA_VERSION)
    validate_payload(payload)
    return payload


def snapshot_from_payload(payload: Dict[str, Any]) -> StateSnapshot:
    state = payload["state"]
    return StateSnapshot(
        history=list(state["history"]),
        inventory=list(state["inventory"]),
        actions_taken={page: list(names) for page, names in state["actions_taken"].items()},
        allow_checkpoints=state["allow_checkpoints"],
    )


def decode_snapshot(raw: str) -> StateSnapshot:
    return snapshot_from_payload(read_payload(raw))


def _is_str_list(value: Any) -> bool:
    return isinstance(value, list) and all(isinstance(entry, str) for entry in value)


def validate_payload(payload: Dict[str, Any]) -> None:
    if not isinstance(payload, dict):
        raise SnapshotCorruptError("Payload was not an object.")
    version = payload.get("version")
    if version != SCHEMA_VERSION:
        raise SnapshotCorruptError(f"Unsupported schema version: {version!r}")
    state = payload.get("state")
    if not isinstance(state, dict):
        raise SnapshotCorruptError("State block missing.")
    for key in ("history", "inventory", "actions_taken", "allow_checkpoints"):
        if key not in state:
            raise SnapshotCorruptError(f"Missing key: state.{key}")
    if not _is_str_list(state["history"]) or not state["history"]:
        raise SnapshotCorruptError("state.history must be a non-empty list of page ids.")
    if not _is_str_list(state["inventory"]):
        raise SnapshotCorruptError("state.inventory must be a list of item ids.")
    actions_taken = state["actions_taken"]
    if not isinstance(actions_taken, dict) or not all(
        isinstance(page, str) and _is_str_list(names) for page, names in actions_taken.items()
    ):
        raise SnapshotCorruptError("state.actions_taken must map page ids to action names.")
    if not isinstance(state["allow_checkpoints"], bool):
        raise SnapshotCorruptError("state.allow_checkpoints must be a boolean.")
