"""World validation: pages, items, actions, links and their rules."""

from __future__ import annotations

from typing import Any, Iterable, List, Mapping, Sequence

from .conditions import CONDITION_HANDLERS
from .effects import EFFECT_HANDLERS
from .world_schema import (
    CONDITION_SPECS,
    EFFECT_SPECS,
    format_validation_message,
    is_non_empty_str,
    normalize_pages,
    path,
)


class ValidationContext:
    """Utility container for accumulating validation errors."""

    def __init__(self) -> None:
        self.errors: List[str] = []

    def add(self, context: str, path_str: str, message: str) -> None:
        self.errors.append(format_validation_message(path_str, context, message))

    def extend_with_path(self, messages: Iterable[str], path_str: str) -> None:
        for message in messages:
            self.errors.append(f"{path_str}: {message}")

    def ok(self) -> bool:
        return not self.errors


def _is_list(value: Any) -> bool:
    return isinstance(value, Sequence) and not isinstance(value, (str, bytes, Mapping))


def _check_required(spec: Any, rule: Mapping[str, Any], context: str, path_parts, ctx) -> bool:
    missing = [name for name in spec.required_fields if name not in rule]
    for name in missing:
        hint = spec.field_rules.get(name)
        suffix = f" ({hint})" if hint else ""
        ctx.add(context, path(*path_parts, name), f"missing required field '{name}'{suffix}.")
    return not missing


def validate_condition(
    condition: Any,
    context: str,
    items: Mapping[str, Any],
    path_parts: Sequence[object],
    ctx: ValidationContext,
) -> None:
    if condition in (None, {}):
        return
    if _is_list(condition):
        if not condition:
            ctx.add(context, path(*path_parts), "condition list must not be empty.")
            return
        for idx, sub in enumerate(condition, start=1):
            validate_condition(sub, f"{context} (entry {idx})", items, (*path_parts, idx - 1), ctx)
        return
    if not isinstance(condition, Mapping):
        ctx.add(context, path(*path_parts), "condition must be an object, a list or null.")
        return

    cond_type = condition.get("type")
    spec = CONDITION_SPECS.get(cond_type)
    if spec is None:
        if cond_type not in CONDITION_HANDLERS:
            ctx.add(context, path(*path_parts, "type"), f"unsupported condition type '{cond_type}'.")
        return
    if not _check_required(spec, condition, context, path_parts, ctx):
        return
    ctx.extend_with_path(spec.validate(condition, context, items), path(*path_parts))
    if cond_type == "any":
        for idx, sub in enumerate(condition["conditions"], start=1):
            validate_condition(
                sub, f"{context} (any {idx})", items, (*path_parts, "conditions", idx - 1), ctx
            )
    elif cond_type == "not":
        validate_condition(
            condition["condition"], f"{context} (not)", items, (*path_parts, "condition"), ctx
        )


def validate_effect(
    effect: Any,
    context: str,
    pages: Mapping[str, Any],
    items: Mapping[str, Any],
    path_parts: Sequence[object],
    ctx: ValidationContext,
) -> None:
    if not isinstance(effect, Mapping):
        ctx.add(context, path(*path_parts), "effect must be an object.")
        return

    effect_type = effect.get("type")
    spec = EFFECT_SPECS.get(effect_type)
    if spec is None:
        if effect_type not in EFFECT_HANDLERS:
            ctx.add(context, path(*path_parts, "type"), f"unsupported effect type '{effect_type}'.")
        return
    if not _check_required(spec, effect, context, path_parts, ctx):
        return
    ctx.extend_with_path(spec.validate(effect, context, pages, items), path(*path_parts))
    if effect_type == "require":
        validate_condition(
            effect["condition"], f"{context} (require)", items, (*path_parts, "condition"), ctx
        )


def validate_effects(
    effects: Any,
    context: str,
    pages: Mapping[str, Any],
    items: Mapping[str, Any],
    path_parts: Sequence[object],
    ctx: ValidationContext,
) -> None:
    if effects is None:
        return
    if not _is_list(effects):
        ctx.add(context, path(*path_parts), "must be a list of effect objects if present.")
        return
    for eff_index, effect in enumerate(effects, start=1):
        validate_effect(
            effect,
            f"{context}, effect {eff_index}",
            pages,
            items,
            (*path_parts, eff_index - 1),
            ctx,
        )


def validate_action(
    action: Any,
    page_id: str,
    index: int,
    pages: Mapping[str, Any],
    items: Mapping[str, Any],
    path_parts: Sequence[object],
    ctx: ValidationContext,
) -> None:
    context = f"Action {index} in page '{page_id}'"
    if not isinstance(action, Mapping):
        ctx.add(context, path(*path_parts), "must be an object.")
        return
    if not is_non_empty_str(action.get("name")):
        ctx.add(context, path(*path_parts, "name"), "requires a non-empty 'name'.")
    effect_text = action.get("effect")
    if effect_text is not None and not isinstance(effect_text, str):
        ctx.add(context, path(*path_parts, "effect"), "'effect' must be text if present.")
    validate_condition(action.get("condition"), context, items, (*path_parts, "condition"), ctx)
    validate_effects(action.get("action"), context, pages, items, (*path_parts, "action"), ctx)


def validate_link(
    link: Any,
    page_id: str,
    index: int,
    pages: Mapping[str, Any],
    items: Mapping[str, Any],
    path_parts: Sequence[object],
    ctx: ValidationContext,
) -> None:
    context = f"Link {index} in page '{page_id}'"
    if not isinstance(link, Mapping):
        ctx.add(context, path(*path_parts), "must be an object.")
        return
    target = link.get("link_to")
    if target is None:
        ctx.add(context, path(*path_parts, "link_to"), "is missing a 'link_to'.")
    elif not is_non_empty_str(target):
        ctx.add(context, path(*path_parts, "link_to"), "must use a non-empty string 'link_to'.")
    elif target not in pages:
        ctx.add(context, path(*path_parts, "link_to"), f"targets unknown page '{target}'.")
    text = link.get("text")
    if text is not None and not isinstance(text, str):
        ctx.add(context, path(*path_parts, "text"), "'text' must be a string if present.")
    validate_condition(link.get("condition"), context, items, (*path_parts, "condition"), ctx)
    validate_effects(link.get("on_link"), context, pages, items, (*path_parts, "on_link"), ctx)


def validate_items(raw_items: Any, ctx: ValidationContext) -> Mapping[str, Any]:
    if raw_items is None:
        return {}
    if not isinstance(raw_items, Mapping):
        ctx.add("World data", path("items"), "'items' must be an object mapping item IDs to items.")
        return {}
    for item_id, payload in raw_items.items():
        if isinstance(payload, str):
            continue
        if not isinstance(payload, Mapping):
            ctx.add("Items", path("items", item_id), f"item '{item_id}' must be an object or a name.")
            continue
        if not is_non_empty_str(payload.get("name")):
            ctx.add("Items", path("items", item_id, "name"), "requires a non-empty 'name'.")
    return raw_items


def validate_world(world: Mapping[str, Any]) -> List[str]:
    ctx = ValidationContext()

    if not is_non_empty_str(world.get("title")):
        ctx.add("World data", path("title"), "must include a non-empty 'title'.")
    if "pages" not in world:
        ctx.add("World data", path("pages"), "must include a 'pages' section.")

    items = validate_items(world.get("items"), ctx)
    pages, _page_errors = normalize_pages(world.get("pages"), ctx)

    root = world.get("root", "main_menu")
    if not is_non_empty_str(root):
        ctx.add("World data", path("root"), "'root' must be a non-empty page id.")
    elif pages and root not in pages:
        ctx.add("World data", path("root"), f"root page '{root}' is not defined.")

    for page_id, page in pages.items():
        is_ending = page.get("is_ending", False)
        if not isinstance(is_ending, bool):
            ctx.add(f"Page '{page_id}'", path("pages", page_id, "is_ending"), "must be a boolean.")
        for key, validator in (("actions", validate_action), ("links", validate_link)):
            entries = page.get(key)
            if entries is None:
                continue
            if not _is_list(entries):
                ctx.add(
                    f"Page '{page_id}'",
                    path("pages", page_id, key),
                    f"{key} must be provided as a list.",
                )
                continue
            for index, entry in enumerate(entries, start=1):
                validator(entry, page_id, index, pages, items, ("pages", page_id, key, index - 1), ctx)

    return ctx.errors
