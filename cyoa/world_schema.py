"""Machine-readable specs for world conditions and effects."""

from __future__ import annotations

import json
from collections import Counter
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Mapping, MutableMapping, Sequence, Tuple

ConditionValidator = Callable[[Mapping[str, Any], str, Mapping[str, Any]], List[str]]
EffectValidator = Callable[
    [Mapping[str, Any], str, Mapping[str, Any], Mapping[str, Any]], List[str]
]


def path(*parts: object) -> str:
    path_str = ""
    for part in parts:
        if isinstance(part, int):
            path_str = f"{path_str}[{part}]"
            continue
        if not isinstance(part, str):
            part = str(part)
        if part.isidentifier():
            path_str = f"{path_str}.{part}" if path_str else part
        else:
            path_str = f'{path_str}[{json.dumps(part)}]'
    return path_str


def format_validation_message(path_str: str, context: str, message: str) -> str:
    if context:
        return f"{path_str}: {context}: {message}"
    return f"{path_str}: {message}"


def is_non_empty_str(value: Any) -> bool:
    return isinstance(value, str) and value.strip() != ""


def str_or_str_list(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip() != ""
    if isinstance(value, list) and value:
        return all(isinstance(item, str) and item.strip() != "" for item in value)
    return False


def normalize_pages(
    raw_pages: Any, ctx: Any | None = None
) -> Tuple[Dict[str, Dict[str, Any]], List[str]]:
    pages: Dict[str, Dict[str, Any]] = {}
    errors: List[str] = []
    page_ids: List[str] = []

    def add_error(context: str, path_parts: Sequence[object], message: str) -> None:
        path_str = path(*path_parts)
        errors.append(format_validation_message(path_str, context, message))
        if ctx is not None:
            ctx.add(context, path_str, message)

    if isinstance(raw_pages, dict):
        for page_id, payload in raw_pages.items():
            if not is_non_empty_str(page_id):
                add_error("Pages", ("pages",), "page identifiers must be non-empty strings.")
                continue
            if not isinstance(payload, dict):
                add_error("Pages", ("pages", page_id), f"page '{page_id}' must be an object.")
                continue
            pages[page_id] = payload
        page_ids = list(pages.keys())
    elif isinstance(raw_pages, list):
        for idx, entry in enumerate(raw_pages, start=1):
            if not isinstance(entry, MutableMapping):
                add_error(f"Page entry {idx}", ("pages", idx - 1), "must be an object.")
                continue
            page_id = entry.get("id")
            if not is_non_empty_str(page_id):
                add_error(f"Page entry {idx}", ("pages", idx - 1, "id"), "is missing a valid 'id'.")
                continue
            page_ids.append(page_id)
            payload = dict(entry)
            payload.pop("id", None)
            pages[page_id] = payload
    else:
        add_error(
            "World data",
            ("pages",),
            "must be an object mapping IDs to page definitions or a list of page entries.",
        )

    duplicates = [page_id for page_id, count in Counter(page_ids).items() if count > 1]
    if duplicates:
        dup_list = ", ".join(sorted(set(duplicates)))
        add_error("Pages", ("pages",), f"Duplicate page IDs found: {dup_list}.")

    return pages, errors


@dataclass(frozen=True)
class ConditionSpec:
    required_fields: Tuple[str, ...]
    optional_fields: Tuple[str, ...]
    field_rules: Mapping[str, str]
    validate: ConditionValidator


@dataclass(frozen=True)
class EffectSpec:
    required_fields: Tuple[str, ...]
    optional_fields: Tuple[str, ...]
    field_rules: Mapping[str, str]
    validate: EffectValidator


def _validate_item_refs(
    spec: Mapping[str, Any], context: str, name: str, items: Mapping[str, Any]
) -> List[str]:
    errors: List[str] = []
    value = spec.get("value")
    if not str_or_str_list(value):
        errors.append(f"{context}: '{name}' requires an item id or list of item ids in 'value'.")
        return errors
    for ref in [value] if isinstance(value, str) else value:
        if ref not in items:
            errors.append(f"{context}: '{name}' references unknown item '{ref}'.")
    count = spec.get("count")
    if count is not None and (not isinstance(count, int) or isinstance(count, bool)):
        errors.append(f"{context}: '{name}' optional 'count' must be an integer.")
    return errors


def _validate_action_ref(condition: Mapping[str, Any], context: str, name: str) -> List[str]:
    errors: List[str] = []
    if not is_non_empty_str(condition.get("value")):
        errors.append(f"{context}: '{name}' requires a non-empty action name in 'value'.")
    page = condition.get("page")
    if page is not None and not is_non_empty_str(page):
        errors.append(f"{context}: '{name}' optional 'page' must be a non-empty string.")
    return errors


def _validate_visited(condition: Mapping[str, Any], context: str) -> List[str]:
    if not is_non_empty_str(condition.get("value")):
        return [f"{context}: 'visited' requires a non-empty page id in 'value'."]
    return []


def _validate_any(condition: Mapping[str, Any], context: str) -> List[str]:
    conditions = condition.get("conditions")
    if not isinstance(conditions, list) or not conditions:
        return [f"{context}: 'any' requires a non-empty list in 'conditions'."]
    return []


def _validate_not(condition: Mapping[str, Any], context: str) -> List[str]:
    if not isinstance(condition.get("condition"), (Mapping, list)):
        return [f"{context}: 'not' requires a nested 'condition'."]
    return []


def _validate_go_to(
    effect: Mapping[str, Any], context: str, pages: Mapping[str, Any]
) -> List[str]:
    target = effect.get("target")
    if not is_non_empty_str(target):
        return [f"{context}: 'go_to' requires a non-empty string 'target'."]
    if target not in pages:
        return [f"{context}: go_to target '{target}' does not exist."]
    return []


def _validate_open_dialog(effect: Mapping[str, Any], context: str) -> List[str]:
    errors: List[str] = []
    for key in ("title", "description"):
        value = effect.get(key, "")
        if not isinstance(value, str):
            errors.append(f"{context}: 'open_dialog' field '{key}' must be a string.")
    return errors


def _validate_set_allow_checkpoints(effect: Mapping[str, Any], context: str) -> List[str]:
    if not isinstance(effect.get("value"), bool):
        return [f"{context}: 'set_allow_checkpoints' requires a boolean 'value'."]
    return []


def _validate_require(effect: Mapping[str, Any], context: str) -> List[str]:
    errors: List[str] = []
    if not isinstance(effect.get("condition"), (Mapping, list)):
        errors.append(f"{context}: 'require' needs a 'condition'.")
    for key in ("title", "message"):
        value = effect.get(key)
        if value is not None and not isinstance(value, str):
            errors.append(f"{context}: 'require' optional '{key}' must be a string.")
    return errors


def _no_fields(*_args: Any) -> List[str]:
    return []


CONDITION_SPECS: Dict[str, ConditionSpec] = {
    "has_item": ConditionSpec(
        required_fields=("value",),
        optional_fields=("count",),
        field_rules={"value": "item id or list of item ids", "count": "optional integer minimum"},
        validate=lambda condition, context, items: _validate_item_refs(
            condition, context, "has_item", items
        ),
    ),
    "missing_item": ConditionSpec(
        required_fields=("value",),
        optional_fields=(),
        field_rules={"value": "item id or list of item ids"},
        validate=lambda condition, context, items: _validate_item_refs(
            condition, context, "missing_item", items
        ),
    ),
    "action_taken": ConditionSpec(
        required_fields=("value",),
        optional_fields=("page",),
        field_rules={"value": "action name", "page": "optional page id (defaults to current)"},
        validate=lambda condition, context, items: _validate_action_ref(
            condition, context, "action_taken"
        ),
    ),
    "action_not_taken": ConditionSpec(
        required_fields=("value",),
        optional_fields=("page",),
        field_rules={"value": "action name", "page": "optional page id (defaults to current)"},
        validate=lambda condition, context, items: _validate_action_ref(
            condition, context, "action_not_taken"
        ),
    ),
    "visited": ConditionSpec(
        required_fields=("value",),
        optional_fields=(),
        field_rules={"value": "page id"},
        validate=lambda condition, context, items: _validate_visited(condition, context),
    ),
    "checkpoints_allowed": ConditionSpec(
        required_fields=(),
        optional_fields=(),
        field_rules={},
        validate=_no_fields,
    ),
    "has_checkpoint": ConditionSpec(
        required_fields=(),
        optional_fields=(),
        field_rules={},
        validate=_no_fields,
    ),
    "any": ConditionSpec(
        required_fields=("conditions",),
        optional_fields=(),
        field_rules={"conditions": "non-empty list of conditions"},
        validate=lambda condition, context, items: _validate_any(condition, context),
    ),
    "not": ConditionSpec(
        required_fields=("condition",),
        optional_fields=(),
        field_rules={"condition": "nested condition"},
        validate=lambda condition, context, items: _validate_not(condition, context),
    ),
}

EFFECT_SPECS: Dict[str, EffectSpec] = {
    "add_item": EffectSpec(
        required_fields=("value",),
        optional_fields=("count",),
        field_rules={"value": "item id", "count": "optional integer copies"},
        validate=lambda effect, context, pages, items: _validate_item_refs(
            effect, context, "add_item", items
        ),
    ),
    "remove_item": EffectSpec(
        required_fields=("value",),
        optional_fields=("count",),
        field_rules={"value": "item id", "count": "optional integer copies"},
        validate=lambda effect, context, pages, items: _validate_item_refs(
            effect, context, "remove_item", items
        ),
    ),
    "go_to": EffectSpec(
        required_fields=("target",),
        optional_fields=(),
        field_rules={"target": "page id"},
        validate=lambda effect, context, pages, items: _validate_go_to(effect, context, pages),
    ),
    "open_dialog": EffectSpec(
        required_fields=(),
        optional_fields=("title", "description"),
        field_rules={"title": "dialog title", "description": "dialog text"},
        validate=lambda effect, context, pages, items: _validate_open_dialog(effect, context),
    ),
    "restart": EffectSpec(
        required_fields=(),
        optional_fields=(),
        field_rules={},
        validate=_no_fields,
    ),
    "save_checkpoint": EffectSpec(
        required_fields=(),
        optional_fields=(),
        field_rules={},
        validate=_no_fields,
    ),
    "load_checkpoint": EffectSpec(
        required_fields=(),
        optional_fields=(),
        field_rules={},
        validate=_no_fields,
    ),
    "set_allow_checkpoints": EffectSpec(
        required_fields=("value",),
        optional_fields=(),
        field_rules={"value": "boolean"},
        validate=lambda effect, context, pages, items: _validate_set_allow_checkpoints(
            effect, context
        ),
    ),
    "require": EffectSpec(
        required_fields=("condition",),
        optional_fields=("title", "message"),
        field_rules={
            "condition": "condition that must hold",
            "title": "optional dialog title on failure",
            "message": "optional dialog text on failure",
        },
        validate=lambda effect, context, pages, items: _validate_require(effect, context),
    ),
    "repeatable": EffectSpec(
        required_fields=(),
        optional_fields=(),
        field_rules={},
        validate=_no_fields,
    ),
}
