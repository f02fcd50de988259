"""Achieved-endings tracker persisted alongside the game state."""

from __future__ import annotations

import json
import logging
from typing import List

from .storage import KeyValueStore, StorageError

logger = logging.getLogger(__name__)


def default_record() -> dict:
    return {"achieved": []}


def _normalize_record(data: object) -> dict:
    if not isinstance(data, dict):
        return default_record()
    seen: List[str] = []
    for ending in data.get("achieved", []) if isinstance(data.get("achieved"), list) else []:
        if isinstance(ending, str) and ending not in seen:
            seen.append(ending)
    return {"achieved": seen}


class EndingsTracker:
    """Remembers which ending pages the player has reached, across restarts."""

    DEFAULT_KEY = "cyoa-app-endings"

    def __init__(self, storage: KeyValueStore, key: str = DEFAULT_KEY) -> None:
        self.storage = storage
        self.key = key
        self._record = self._load()

    def add_achieved_ending(self, page_id: str) -> None:
        if not page_id:
            return
        achieved = self._record["achieved"]
        if page_id in achieved:
            return
        achieved.append(page_id)
        self._save()
        logger.info("Ending reached: %s", page_id)

    def achieved_endings(self) -> List[str]:
        return list(self._record["achieved"])

    def has_achieved(self, page_id: str) -> bool:
        return page_id in self._record["achieved"]

    def reset(self) -> None:
        self._record = default_record()
        self._save()

    def _load(self) -> dict:
        try:
            raw = self.storage.get(self.key)
        except StorageError as exc:
            logger.error("Endings record unreadable: %s", exc)
            return default_record()
        if not raw:
            return default_record()
        try:
            data = json.loads(raw)
        except json.JSONDecodeError as exc:
            logger.warning("Resetting corrupt endings record: %s", exc)
            return default_record()
        return _normalize_record(data)

    def _save(self) -> None:
        try:
            self.storage.set(self.key, json.dumps(self._record))
        except StorageError as exc:
            logger.error("Failed to save endings record: %s", exc)
