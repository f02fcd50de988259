"""Key-value storage backends for desktop and web builds."""

from __future__ import annotations

import logging
import os
import string
import sys
import tempfile
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional

from .settings import Settings

logger = logging.getLogger(__name__)

IS_WEB = sys.platform == "emscripten"

_VALID_KEY_CHARS = set(string.ascii_letters + string.digits + "-_.")


class StorageError(Exception):
    """Raised when a value cannot be read from or written to storage."""


def get_local_storage() -> Optional[Any]:
    if not IS_WEB:
        return None
    try:
        from js import localStorage  # type: ignore
    except ImportError:
        return None
    return localStorage


class KeyValueStore:
    """String-keyed store of string values.

    A missing key and an empty string both read back as ``""``.
    """

    def get(self, key: str) -> str:
        raise NotImplementedError

    def set(self, key: str, value: str) -> None:
        raise NotImplementedError

    def delete(self, key: str) -> None:
        raise NotImplementedError

    def keys(self) -> List[str]:
        raise NotImplementedError


class MemoryStore(KeyValueStore):
    def __init__(self, initial: Dict[str, str] | None = None) -> None:
        self._data: Dict[str, str] = dict(initial or {})

    def get(self, key: str) -> str:
        return self._data.get(key, "")

    def set(self, key: str, value: str) -> None:
        self._data[key] = value

    def delete(self, key: str) -> None:
        self._data.pop(key, None)

    def keys(self) -> List[str]:
        return sorted(self._data)


class FileStore(KeyValueStore):
    """One file per key under ``base_path``; writes go through a temp file."""

    SUFFIX = ".json"

    def __init__(self, base_path: Path | str) -> None:
        self.base_path = Path(base_path)
        self.base_path.mkdir(parents=True, exist_ok=True)

    def get(self, key: str) -> str:
        path = self._path_for(key)
        try:
            return path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return ""
        except OSError as exc:
            raise StorageError(f"Failed to read '{key}': {exc}") from exc

    def set(self, key: str, value: str) -> None:
        path = self._path_for(key)
        tmp_path: Path | None = None
        try:
            with tempfile.NamedTemporaryFile(
                "w", delete=False, dir=path.parent, prefix=path.name, suffix=".tmp", encoding="utf-8"
            ) as tmp_file:
                tmp_file.write(value)
                tmp_path = Path(tmp_file.name)
            os.replace(str(tmp_path), str(path))
        except OSError as exc:
            if tmp_path is not None:
                try:
                    tmp_path.unlink()
                except OSError:
                    pass
            raise StorageError(f"Failed to write '{key}': {exc}") from exc

    def delete(self, key: str) -> None:
        try:
            self._path_for(key).unlink()
        except FileNotFoundError:
            return
        except OSError as exc:
            raise StorageError(f"Failed to delete '{key}': {exc}") from exc

    def keys(self) -> List[str]:
        if not self.base_path.exists():
            return []
        return sorted(
            child.name[: -len(self.SUFFIX)]
            for child in self.base_path.iterdir()
            if child.is_file() and child.name.endswith(self.SUFFIX)
        )

    def _path_for(self, key: str) -> Path:
        if not key or any(ch not in _VALID_KEY_CHARS for ch in key) or key.startswith("."):
            raise StorageError(f"Invalid storage key: {key!r}")
        return self.base_path / f"{key}{self.SUFFIX}"


class WebStore(KeyValueStore):
    """Browser ``localStorage`` wrapper used by the emscripten build."""

    def __init__(self, local_storage: Any, prefix: str = "") -> None:
        self._local_storage = local_storage
        self.prefix = prefix

    def get(self, key: str) -> str:
        value = self._local_storage.getItem(self.prefix + key)
        return "" if value is None else str(value)

    def set(self, key: str, value: str) -> None:
        self._local_storage.setItem(self.prefix + key, value)

    def delete(self, key: str) -> None:
        self._local_storage.removeItem(self.prefix + key)

    def keys(self) -> List[str]:
        return sorted(
            key[len(self.prefix) :] for key in self._iter_keys() if key.startswith(self.prefix)
        )

    def _iter_keys(self) -> Iterable[str]:
        try:
            length = int(self._local_storage.length)
        except (TypeError, ValueError):
            length = 0
        return [
            str(self._local_storage.key(index))
            for index in range(length)
            if self._local_storage.key(index) is not None
        ]


def open_store(settings: Settings) -> KeyValueStore:
    local_storage = get_local_storage()
    if IS_WEB and local_storage is not None:
        return WebStore(local_storage)
    if IS_WEB:
        logger.warning("localStorage unavailable in web build; falling back to filesystem storage.")
    return FileStore(settings.data_dir)
