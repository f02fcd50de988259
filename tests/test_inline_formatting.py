import asyncio

import pytest

from cyoa import play
from cyoa.items import Item, ItemCatalog, interpolate_item_names
from cyoa.pages import Page, PageAction, PageGraph
from cyoa.play import (
    ANSI_ITEM,
    ANSI_RESET,
    describe_inventory,
    print_formatted,
    visible_length,
    wrap_formatted,
)
from cyoa.settings import DEFAULT_ITEM_MARKUP, Settings
from cyoa.state import GameState
from cyoa.storage import MemoryStore

TORCH = Item(id="torch", name="Torch")
CATALOG = ItemCatalog({"torch": TORCH, "key": Item(id="key", name="Brass Key")})


def test_interpolation_replaces_known_item_in_plain_mode() -> None:
    result = interpolate_item_names("You found [torch]!", CATALOG)

    assert result.text == "You found Torch!"
    assert result.items == [TORCH]


def test_interpolation_leaves_unknown_tokens_verbatim() -> None:
    result = interpolate_item_names("[missing]", CATALOG)

    assert result.text == "[missing]"
    assert result.items == []


def test_interpolation_wraps_names_in_markup_mode() -> None:
    result = interpolate_item_names("Take the [key].", CATALOG, markup=True)

    assert result.text == "Take the " + DEFAULT_ITEM_MARKUP.format(name="Brass Key") + "."


def test_interpolation_records_every_occurrence() -> None:
    result = interpolate_item_names("[torch], [key] and another [torch]", CATALOG)

    assert result.text == "Torch, Brass Key and another Torch"
    assert [item.id for item in result.items] == ["torch", "key", "torch"]


@pytest.mark.parametrize(
    ("text", "expected"),
    [
        ("", ""),
        ("No tokens here.", "No tokens here."),
        ("[[torch]]", "[Torch]"),
        ("[a [torch]", "[a Torch"),
        ("[torch] ]", "Torch ]"),
        ("[]", "[]"),
    ],
)
def test_interpolation_matches_only_innermost_tokens(text: str, expected: str) -> None:
    assert interpolate_item_names(text, CATALOG).text == expected


def test_print_formatted_turns_item_markup_into_colour() -> None:
    settings = Settings()
    marked = interpolate_item_names("Grab the [torch] now", CATALOG, markup=True).text

    formatted = print_formatted(marked, settings)

    assert formatted == f"Grab the {ANSI_ITEM}Torch{ANSI_RESET} now"
    assert "<span" not in formatted


def build_state(settings: Settings) -> GameState:
    pages = PageGraph([Page(id="main_menu", text="A [torch] burns.")])
    return GameState(pages, CATALOG, MemoryStore(), settings=settings)


def test_markup_template_with_other_braces_is_used_verbatim() -> None:
    template = '<span style="{color:red}">{name}</span>'
    settings = Settings.from_dict({"item_markup": template})
    state = build_state(settings)
    action = PageAction(name="Search", effect="A [torch].")

    state.take_action(state.current_page, action)

    assert settings.item_markup == template
    assert state.dialog.description == 'A <span style="{color:red}">Torch</span>.'
    assert print_formatted(state.dialog.description, settings) == f"A {ANSI_ITEM}Torch{ANSI_RESET}."


@pytest.mark.parametrize("template", ["{name}", "<b>{name}", "{name}</b>", "<b>name</b>"])
def test_markup_template_without_both_delimiters_is_rejected(template: str) -> None:
    assert Settings.from_dict({"item_markup": template}).item_markup == DEFAULT_ITEM_MARKUP


def test_print_formatted_leaves_text_alone_for_unusable_template() -> None:
    assert print_formatted("Hello", Settings(item_markup="{name}")) == "Hello"


def test_wrap_ignores_colour_codes_when_measuring() -> None:
    text = f"You hold the {ANSI_ITEM}Torch{ANSI_RESET} and more"

    lines = wrap_formatted(text, 25)

    assert lines == [f"You hold the {ANSI_ITEM}Torch{ANSI_RESET} and", "more"]
    assert visible_length(lines[0]) == 22


def test_emit_paragraphs_prints_each_span_once(monkeypatch) -> None:
    printed = []
    monkeypatch.setattr(play, "emit_print", lambda *args, **kwargs: printed.append(args))
    state = build_state(Settings(reduce_animations=True))

    asyncio.run(play.emit_paragraphs(state.interpolate("A [torch] burns.", markup=True).text, state))

    assert printed == [(f"A {ANSI_ITEM}Torch{ANSI_RESET} burns.",)]


def test_empty_inventory_is_described_in_plain_text() -> None:
    state = build_state(Settings())

    assert describe_inventory(state) == "(empty)"
    state.add_item("torch", 2)
    assert describe_inventory(state) == "Torch x2"
