"""Condition evaluation for page actions and links."""

from __future__ import annotations

import logging
from typing import Any, Callable, Dict, Mapping

logger = logging.getLogger(__name__)

ConditionHandler = Callable[[Mapping[str, Any], Any], bool]

CONDITION_HANDLERS: Dict[str, ConditionHandler] = {}


def register_condition(name: str) -> Callable[[ConditionHandler], ConditionHandler]:
    """Register a handler for ``{"type": name, ...}`` conditions."""

    def decorator(handler: ConditionHandler) -> ConditionHandler:
        CONDITION_HANDLERS[name] = handler
        return handler

    return decorator


def _as_list(value: Any) -> list:
    if value is None:
        return []
    if isinstance(value, str):
        return [value]
    return list(value)


def meets_condition(cond: Any, state: Any) -> bool:
    if cond is None:
        return True
    if callable(cond):
        return bool(cond(state))
    if isinstance(cond, (list, tuple)):
        return all(meets_condition(c, state) for c in cond)
    if not isinstance(cond, Mapping) or not cond:
        return True
    t = cond.get("type")
    handler = CONDITION_HANDLERS.get(t)
    if handler is None:
        logger.warning("Unknown condition type %r; treating as unmet.", t)
        return False
    return bool(handler(cond, state))


@register_condition("has_item")
def _has_item(cond, state):
    count = int(cond.get("count", 1))
    inventory = state.inventory_ids
    return all(inventory.count(item) >= count for item in _as_list(cond.get("value")))


@register_condition("missing_item")
def _missing_item(cond, state):
    inventory = state.inventory_ids
    return all(item not in inventory for item in _as_list(cond.get("value")))


def _action_was_taken(cond, state):
    page_id = cond.get("page") or state.current_page.id
    return cond.get("value") in state.actions_taken.get(page_id, [])


@register_condition("action_taken")
def _action_taken(cond, state):
    return _action_was_taken(cond, state)


@register_condition("action_not_taken")
def _action_not_taken(cond, state):
    return not _action_was_taken(cond, state)


@register_condition("visited")
def _visited(cond, state):
    return cond.get("value") in state.history


@register_condition("checkpoints_allowed")
def _checkpoints_allowed(cond, state):
    return bool(state.allow_checkpoints)


@register_condition("has_checkpoint")
def _has_checkpoint(cond, state):
    return state.has_checkpoint()


@register_condition("any")
def _any(cond, state):
    return any(meets_condition(c, state) for c in cond.get("conditions") or [])


@register_condition("not")
def _not(cond, state):
    return not meets_condition(cond.get("condition"), state)
