"""Single-slot checkpoint storage."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from .save_migrations import SnapshotMigrationError
from .snapshot import (
    SnapshotError,
    StateSnapshot,
    decode_snapshot,
    encode_snapshot,
    read_payload,
    snapshot_from_payload,
)
from .storage import KeyValueStore, StorageError

logger = logging.getLogger(__name__)


class CheckpointError(Exception):
    """Raised when the checkpoint slot cannot be accessed."""


@dataclass
class CheckpointInfo:
    saved_at: Optional[str]
    current_page: str
    snapshot: StateSnapshot


class CheckpointStore:
    """Holds one encoded snapshot under ``key``; an empty value means no checkpoint."""

    DEFAULT_KEY = "cyoa-app-checkpoint"

    def __init__(self, storage: KeyValueStore, key: str = DEFAULT_KEY) -> None:
        self.storage = storage
        self.key = key

    def exists(self) -> bool:
        return bool(self._raw())

    def write(self, snapshot: StateSnapshot) -> None:
        try:
            self.storage.set(self.key, encode_snapshot(snapshot))
        except StorageError as exc:
            raise CheckpointError(f"Failed to write checkpoint: {exc}") from exc
        logger.debug("Checkpoint written at page %s.", snapshot.history[-1])

    def read(self) -> Optional[StateSnapshot]:
        """Decode the stored snapshot, or return ``None`` when the slot is empty.

        Raises ``SnapshotError`` / ``SnapshotMigrationError`` on bad data.
        """
        raw = self._raw()
        if not raw:
            return None
        return decode_snapshot(raw)

    def info(self) -> Optional[CheckpointInfo]:
        raw = self._raw()
        if not raw:
            return None
        try:
            payload = read_payload(raw)
            snapshot = snapshot_from_payload(payload)
        except (SnapshotError, SnapshotMigrationError):
            return None
        metadata = payload.get("metadata") or {}
        return CheckpointInfo(
            saved_at=metadata.get("saved_at"),
            current_page=snapshot.history[-1],
            snapshot=snapshot,
        )

    def clear(self) -> None:
        try:
            self.storage.set(self.key, "")
        except StorageError as exc:
            raise CheckpointError(f"Failed to clear checkpoint: {exc}") from exc

    def _raw(self) -> str:
        try:
            return self.storage.get(self.key)
        except StorageError as exc:
            logger.error("Checkpoint slot unreadable: %s", exc)
            return ""
