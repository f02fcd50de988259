"""Effect lists attached to page actions and links.

Effects run in order against the game state. An effect that returns exactly
``False`` stops the list, and the list then evaluates to ``False``: on an
action this keeps it available, on a link it cancels the navigation.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Dict, Mapping, Optional

from .conditions import meets_condition

logger = logging.getLogger(__name__)

EffectHandler = Callable[[Mapping[str, Any], Any], Optional[bool]]

EFFECT_HANDLERS: Dict[str, EffectHandler] = {}


def register_effect(name: str) -> Callable[[EffectHandler], EffectHandler]:
    """Register a handler for ``{"type": name, ...}`` effects."""

    def decorator(handler: EffectHandler) -> EffectHandler:
        EFFECT_HANDLERS[name] = handler
        return handler

    return decorator


def apply_effect(effect: Mapping[str, Any], state: Any) -> Optional[bool]:
    if not effect:
        return None
    t = effect.get("type")
    handler = EFFECT_HANDLERS.get(t)
    if handler is None:
        logger.warning("Unknown effect type %r; skipping.", t)
        return None
    return handler(effect, state)


def apply_effects(effects: Any, state: Any) -> Optional[bool]:
    if effects is None:
        return None
    if callable(effects):
        return effects(state)
    if isinstance(effects, Mapping):
        effects = [effects]
    result: Optional[bool] = None
    for eff in effects:
        outcome = apply_effect(eff, state)
        if outcome is False:
            return False
        if outcome is not None:
            result = outcome
    return result


@register_effect("add_item")
def _add_item(effect, state):
    state.add_item(effect["value"], int(effect.get("count", 1)))


@register_effect("remove_item")
def _remove_item(effect, state):
    state.remove_item(effect["value"], int(effect.get("count", 1)))


@register_effect("go_to")
def _go_to(effect, state):
    state.go_to(effect["target"])


@register_effect("open_dialog")
def _open_dialog(effect, state):
    state.open_dialog(effect.get("title", ""), effect.get("description", ""))


@register_effect("restart")
def _restart(effect, state):
    return state.restart()


@register_effect("save_checkpoint")
def _save_checkpoint(effect, state):
    state.save_checkpoint()


@register_effect("load_checkpoint")
def _load_checkpoint(effect, state):
    return state.load_checkpoint()


@register_effect("set_allow_checkpoints")
def _set_allow_checkpoints(effect, state):
    state.allow_checkpoints = effect.get("value", True)


@register_effect("require")
def _require(effect, state):
    if meets_condition(effect.get("condition"), state):
        return None
    message = effect.get("message")
    if message:
        state.open_dialog(effect.get("title", ""), message)
    return False


@register_effect("repeatable")
def _repeatable(effect, state):
    return False
