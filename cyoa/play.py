#!/usr/bin/env python3
"""
Terminal front-end for the story engine.
- Pages show their available actions and links; taken actions stay locked.
- Items named in brackets are highlighted and collected.
- One checkpoint slot: save with S, load with L.
Usage: python3 -m cyoa.play [world.json]
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import re
from pathlib import Path
from typing import List, Optional, Union

from .pages import PageAction, PageLink
from .settings import SETTINGS_PATH, Settings, is_valid_item_markup, load_settings
from .state import GameState
from .storage import IS_WEB, open_store
from .world import DEFAULT_WORLD_PATH, WorldError, load_world

logger = logging.getLogger(__name__)

BASE_LINE_WIDTH = 80
MIN_LINE_WIDTH = 50
MAX_LINE_WIDTH = 120
BASE_TEXT_DELAY = 0.02

ANSI_RESET = "\033[0m"
ANSI_ITEM = "\033[32m"
ANSI_PATTERN = re.compile(r"\033\[[0-9;]*m")

Choice = Union[PageAction, PageLink]


def emit_print(*args, **kwargs) -> None:
    print(*args, **kwargs)


async def read_input(prompt: str = "") -> str:
    return await asyncio.to_thread(input, prompt)


def markup_pattern(template: str) -> Optional[re.Pattern[str]]:
    """Regex capturing the item name inside a markup span, or ``None`` for an unusable template."""
    if not is_valid_item_markup(template):
        return None
    prefix, _, suffix = template.partition("{name}")
    return re.compile(re.escape(prefix) + "(.*?)" + re.escape(suffix))


def print_formatted(text: str, settings: Settings) -> str:
    """Turn item markup spans into terminal colour codes."""
    if not text:
        return text
    pattern = markup_pattern(settings.item_markup)
    if pattern is None:
        return text
    if IS_WEB:
        return pattern.sub(lambda match: match.group(1), text)
    return pattern.sub(lambda match: f"{ANSI_ITEM}{match.group(1)}{ANSI_RESET}", text)


def visible_length(text: str) -> int:
    return len(ANSI_PATTERN.sub("", text))


def wrap_formatted(text: str, width: int) -> List[str]:
    """Greedy word wrap that does not count colour codes toward the width."""
    lines: List[str] = []
    current: List[str] = []
    current_len = 0
    for word in text.split():
        length = visible_length(word)
        if current and current_len + 1 + length > width:
            lines.append(" ".join(current))
            current, current_len = [], 0
        current_len = current_len + 1 + length if current else length
        current.append(word)
    if current:
        lines.append(" ".join(current))
    return lines


def compute_line_width(settings: Settings) -> int:
    width = int(round(BASE_LINE_WIDTH * settings.ui_scale))
    return max(MIN_LINE_WIDTH, min(MAX_LINE_WIDTH, width))


def compute_text_delay(settings: Settings) -> float:
    if settings.reduce_animations or settings.text_speed <= 0:
        return 0.0
    return BASE_TEXT_DELAY / max(settings.text_speed, 0.1)


async def _emit_formatted(formatted: str, state: GameState, allow_delay: bool) -> None:
    delay = compute_text_delay(state.settings) if allow_delay else 0.0
    if delay <= 0:
        emit_print(formatted)
        return
    for char in formatted:
        emit_print(char, end="", flush=True)
        await asyncio.sleep(delay)
    emit_print("")


async def emit_line(text: str, state: GameState, *, allow_delay: bool = True) -> None:
    await _emit_formatted(print_formatted(text, state.settings), state, allow_delay)


async def emit_paragraphs(text: str, state: GameState) -> None:
    width = compute_line_width(state.settings)
    for paragraph in text.split("\n"):
        if not paragraph.strip():
            emit_print("")
            continue
        # Markup is converted before wrapping so a span is never split.
        for line in wrap_formatted(print_formatted(paragraph, state.settings), width):
            await _emit_formatted(line, state, True)


async def show_dialog(state: GameState) -> None:
    if not state.dialog.show:
        return
    width = compute_line_width(state.settings)
    emit_print("\n" + "-" * width)
    await emit_line(f"[ {state.dialog.title} ]", state, allow_delay=False)
    await emit_paragraphs(state.dialog.description, state)
    emit_print("-" * width)
    await read_input("(press Enter to continue) ")
    state.dismiss_dialog()


def describe_inventory(state: GameState) -> str:
    counts = {}
    for item in state.inventory:
        counts[item.name] = counts.get(item.name, 0) + 1
    if not counts:
        return "(empty)"
    return ", ".join(name if n == 1 else f"{name} x{n}" for name, n in counts.items())


async def render_page(state: GameState) -> List[Choice]:
    page = state.current_page
    width = compute_line_width(state.settings)
    emit_print("\n" + "=" * width)
    await emit_line(state.interpolate(page.title, markup=True).text, state, allow_delay=False)
    emit_print("-" * width)
    await emit_paragraphs(state.interpolate(page.text, markup=True).text, state)
    emit_print("")
    if page.is_ending:
        emit_print("*** You have reached an ending. ***")

    choices: List[Choice] = [*state.available_actions, *state.visible_links]
    for idx, choice in enumerate(choices, start=1):
        if isinstance(choice, PageAction):
            label = f"[Action] {state.interpolate(choice.name, markup=True).text}"
        else:
            label = state.interpolate(choice.text, markup=True).text
        emit_print(f"  {idx}. {print_formatted(label, state.settings)}")

    commands = ["I. Inventory", "E. Endings", "R. Restart", "Q. Quit"]
    if state.allow_checkpoints:
        commands[1:1] = ["S. Save Checkpoint", "L. Load Checkpoint"]
    emit_print("  " + "    ".join(commands))
    if state.debug_mode:
        emit_print("  DEBUG: /state, /goto <page>, /unlock <page> <action>")
    return choices


async def handle_debug_command(state: GameState, raw: str) -> None:
    parts = raw.split()
    command = parts[0].lower()
    if command == "/state":
        emit_print(state.debug.get_full_state())
        return
    if command == "/goto":
        if len(parts) < 2:
            emit_print("Usage: /goto <page_id>")
            return
        state.go_to(parts[1])
        return
    if command == "/unlock":
        if len(parts) < 3:
            emit_print("Usage: /unlock <page_id> <action name>")
            return
        state.debug.remove_action(parts[1], " ".join(parts[2:]))
        return
    emit_print("Unknown debug command.")


async def prompt_restart(state: GameState) -> None:
    response = (await read_input("Restart from the beginning? (y/N): ")).strip().lower()
    if response in {"y", "yes"}:
        state.restart()


async def play(state: GameState) -> None:
    while True:
        await show_dialog(state)
        choices = await render_page(state)
        raw_choice = (await read_input("> ")).strip()
        choice = raw_choice.lower()

        if state.debug_mode and raw_choice.startswith("/"):
            await handle_debug_command(state, raw_choice)
            continue
        if choice == "q":
            emit_print("Goodbye!")
            return
        if choice == "i":
            emit_print(f"Inventory: {describe_inventory(state)}")
            continue
        if choice == "e":
            endings = state.endings.achieved_endings()
            emit_print(f"Endings found: {len(endings)}/{len(state.pages.endings())}")
            for ending in endings:
                page = state.pages.get(ending)
                emit_print(f"  - {page.title if page else ending}")
            continue
        if choice == "r":
            await prompt_restart(state)
            continue
        if choice == "s" and state.allow_checkpoints:
            state.save_checkpoint()
            emit_print("[Checkpoint] Progress saved.")
            continue
        if choice == "l" and state.allow_checkpoints:
            if state.load_checkpoint():
                emit_print("[!] No checkpoint could be loaded.")
            else:
                emit_print("[Checkpoint] Progress restored.")
            continue
        if not choice.isdigit():
            emit_print("Enter a number or one of the listed commands.")
            continue
        idx = int(choice)
        if not (1 <= idx <= len(choices)):
            emit_print("Pick a valid choice number.")
            continue

        selected = choices[idx - 1]
        if isinstance(selected, PageAction):
            state.take_action(state.current_page, selected)
        else:
            state.take_link(selected)


def build_state(world_path: Path | str, settings: Settings) -> GameState:
    world = load_world(world_path)
    logger.info("Loaded %r with %d pages and %d items.", world.title, len(world.pages), len(world.items))
    return GameState(world.pages, world.items, open_store(settings), settings=settings)


async def main() -> None:
    parser = argparse.ArgumentParser(description="Play a story world in the terminal.")
    parser.add_argument("world", nargs="?", default=DEFAULT_WORLD_PATH)
    parser.add_argument("--settings", default=str(SETTINGS_PATH), help="Settings JSON path.")
    parser.add_argument("--data-dir", default=None, help="Override the save directory.")
    parser.add_argument("--debug", action="store_true", help="Enable debug commands and logging.")
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.debug else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )
    settings = load_settings(args.settings)
    if args.data_dir:
        settings.data_dir = args.data_dir
    try:
        state = build_state(args.world, settings)
    except (OSError, WorldError) as exc:
        emit_print(f"[!] Could not load world: {exc}")
        return
    state.debug_mode = args.debug
    await play(state)


def run() -> None:
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        emit_print("\n[Interrupted] Bye.")


if __name__ == "__main__":
    run()
