"""Loading story worlds (pages and items) from JSON."""

from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List

from .items import ItemCatalog
from .pages import PageGraph
from .schema import validate_world
from .world_schema import normalize_pages

DEFAULT_WORLD_PATH = "world/world.json"
DEFAULT_ROOT = "main_menu"


class WorldError(ValueError):
    """Raised when world data fails validation."""


@dataclass
class World:
    title: str
    pages: PageGraph
    items: ItemCatalog
    path: Path


def _raise_world_validation(errors: List[str]) -> None:
    raise WorldError("Invalid world.json:\n- " + "\n- ".join(errors))


def _merge_world_modules(world: Dict[str, Any], world_path: Path) -> Dict[str, Any]:
    modules = world.get("modules")
    if not modules:
        return world
    if not isinstance(modules, list):
        _raise_world_validation(["'modules' must be a list of module file paths."])

    base_pages, page_errors = normalize_pages(world.get("pages"))
    if page_errors:
        _raise_world_validation(page_errors)
    base_items = world.get("items") or {}
    if not isinstance(base_items, dict):
        _raise_world_validation(["'items' must be an object mapping item IDs to items."])

    combined_pages = dict(base_pages)
    combined_items = dict(base_items)
    base_dir = world_path.resolve().parent

    for module_ref in modules:
        if not isinstance(module_ref, str) or not module_ref.strip():
            _raise_world_validation(["module entries must be non-empty strings."])
        module_path = (base_dir / module_ref).resolve()
        with open(module_path, "r", encoding="utf-8") as handle:
            try:
                module = json.load(handle)
            except json.JSONDecodeError as exc:
                _raise_world_validation([f"{module_path}: invalid JSON: {exc}"])
        if not isinstance(module, dict):
            _raise_world_validation([f"{module_path}: module data must be a JSON object."])

        module_pages, module_page_errors = normalize_pages(module.get("pages", {}))
        if module_page_errors:
            _raise_world_validation([f"{module_path}: {err}" for err in module_page_errors])
        overlap = set(combined_pages).intersection(module_pages)
        if overlap:
            _raise_world_validation(
                [f"{module_path}: page IDs already exist in base world: {', '.join(sorted(overlap))}."]
            )
        combined_pages.update(module_pages)

        module_items = module.get("items") or {}
        if not isinstance(module_items, dict):
            _raise_world_validation([f"{module_path}: 'items' must be an object."])
        for item_id, payload in module_items.items():
            if item_id in combined_items and combined_items[item_id] != payload:
                _raise_world_validation(
                    [f"{module_path}: item '{item_id}' conflicts with existing definition."]
                )
            combined_items.setdefault(item_id, payload)

    world["pages"] = combined_pages
    world["items"] = combined_items
    return world


def load_world(path: Path | str) -> World:
    path = Path(path)
    with open(path, "r", encoding="utf-8") as f:
        try:
            world = json.load(f)
        except json.JSONDecodeError as exc:
            _raise_world_validation([f"invalid JSON: {exc}"])
    if not isinstance(world, dict):
        _raise_world_validation(["World data must be a JSON object."])

    world = _merge_world_modules(world, path)

    errors = validate_world(world)
    if errors:
        _raise_world_validation(errors)

    pages, _ = normalize_pages(world.get("pages"))
    root = world.get("root", DEFAULT_ROOT)
    return World(
        title=world["title"],
        pages=PageGraph.from_dict(pages, root=root),
        items=ItemCatalog.from_dict(world.get("items")),
        path=path,
    )
