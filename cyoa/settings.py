"""Settings persistence for the story engine."""

from __future__ import annotations

import json
import logging
import os
import tempfile
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Any, Dict

logger = logging.getLogger(__name__)

_BASE_DIR = Path(__file__).resolve().parent.parent
SETTINGS_PATH = _BASE_DIR / "settings.json"

DEFAULT_ITEM_MARKUP = '<span class="underline italic text-gray-200">{name}</span>'


def _clamp(value: float, minimum: float, maximum: float) -> float:
    return max(minimum, min(maximum, value))


def is_valid_item_markup(template: Any) -> bool:
    """A markup template needs text on both sides of ``{name}`` so spans can be found again."""
    if not isinstance(template, str):
        return False
    prefix, found, suffix = template.partition("{name}")
    return bool(found and prefix and suffix)


@dataclass
class Settings:
    """Runtime configuration that persists between sessions."""

    data_dir: str = "saves"
    state_key: str = "cyoa-app"
    checkpoint_key: str = "cyoa-app-checkpoint"
    endings_key: str = "cyoa-app-endings"
    item_markup: str = DEFAULT_ITEM_MARKUP
    text_speed: float = 1.0
    reduce_animations: bool = False
    ui_scale: float = 1.0

    def clamp(self) -> "Settings":
        self.text_speed = _clamp(float(self.text_speed), 0.0, 5.0)
        self.ui_scale = _clamp(float(self.ui_scale), 0.5, 2.0)
        self.reduce_animations = bool(self.reduce_animations)
        for key, default in (
            ("data_dir", "saves"),
            ("state_key", "cyoa-app"),
            ("checkpoint_key", "cyoa-app-checkpoint"),
            ("endings_key", "cyoa-app-endings"),
        ):
            value = getattr(self, key)
            if not isinstance(value, str) or not value.strip():
                setattr(self, key, default)
        if not is_valid_item_markup(self.item_markup):
            self.item_markup = DEFAULT_ITEM_MARKUP
        return self

    def copy(self) -> "Settings":
        return Settings.from_dict(self.to_dict())

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any] | None) -> "Settings":
        if not isinstance(data, dict):
            return cls()

        def _as_float(key: str, default: float) -> float:
            try:
                return float(data.get(key, default))
            except (TypeError, ValueError):
                return default

        def _as_bool(key: str, default: bool) -> bool:
            value = data.get(key, default)
            if isinstance(value, bool):
                return value
            if isinstance(value, str):
                lowered = value.strip().lower()
                if lowered in {"true", "1", "yes", "on"}:
                    return True
                if lowered in {"false", "0", "no", "off"}:
                    return False
            return bool(value) if value is not None else default

        defaults = cls()
        settings = cls(
            data_dir=str(data.get("data_dir", defaults.data_dir)),
            state_key=str(data.get("state_key", defaults.state_key)),
            checkpoint_key=str(data.get("checkpoint_key", defaults.checkpoint_key)),
            endings_key=str(data.get("endings_key", defaults.endings_key)),
            item_markup=str(data.get("item_markup", defaults.item_markup)),
            text_speed=_as_float("text_speed", 1.0),
            reduce_animations=_as_bool("reduce_animations", False),
            ui_scale=_as_float("ui_scale", 1.0),
        )
        return settings.clamp()


def load_settings(path: Path | str = SETTINGS_PATH) -> Settings:
    path = Path(path)
    try:
        with path.open("r", encoding="utf-8") as handle:
            data = json.load(handle)
    except FileNotFoundError:
        return Settings()
    except (OSError, json.JSONDecodeError, TypeError) as exc:
        logger.warning("Ignoring unreadable settings file %s: %s", path, exc)
        return Settings()
    return Settings.from_dict(data)


def save_settings(settings: Settings, path: Path | str = SETTINGS_PATH) -> Settings:
    path = Path(path)
    sanitized = settings.copy().clamp()
    path.parent.mkdir(parents=True, exist_ok=True)

    tmp_path: Path | None = None
    try:
        with tempfile.NamedTemporaryFile(
            "w", delete=False, dir=path.parent, prefix=path.name, suffix=".tmp", encoding="utf-8"
        ) as tmp_file:
            json.dump(sanitized.to_dict(), tmp_file, indent=2)
            tmp_file.write("\n")
            tmp_path = Path(tmp_file.name)
        os.replace(str(tmp_path), str(path))
    except OSError as exc:
        logger.error("Failed to save settings to %s: %s", path, exc)
        if tmp_path is not None:
            try:
                tmp_path.unlink()
            except OSError:
                pass
    return sanitized
