"""Page graph: story pages, their actions and links."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterator, List, Mapping, Optional, Sequence, Tuple, Union

# Conditions and effects are tagged data (see conditions.py / effects.py);
# plain callables taking the game state are accepted for programmatic content.
Condition = Union[None, Mapping[str, Any], Sequence[Any], Callable[[Any], bool]]
EffectList = Union[
    None, Mapping[str, Any], Sequence[Mapping[str, Any]], Callable[[Any], Optional[bool]]
]


@dataclass(frozen=True)
class PageAction:
    name: str
    condition: Condition = None
    action: EffectList = None
    effect: Optional[str] = None

    @classmethod
    def from_dict(cls, raw: Mapping[str, Any]) -> "PageAction":
        return cls(
            name=raw["name"],
            condition=raw.get("condition"),
            action=raw.get("action"),
            effect=raw.get("effect"),
        )


@dataclass(frozen=True)
class PageLink:
    link_to: str
    on_link: EffectList = None
    text: str = ""
    condition: Condition = None

    @classmethod
    def from_dict(cls, raw: Mapping[str, Any]) -> "PageLink":
        return cls(
            link_to=raw["link_to"],
            on_link=raw.get("on_link"),
            text=raw.get("text") or raw["link_to"],
            condition=raw.get("condition"),
        )


@dataclass(frozen=True)
class Page:
    id: str
    title: str = ""
    text: str = ""
    is_ending: bool = False
    actions: Tuple[PageAction, ...] = field(default_factory=tuple)
    links: Tuple[PageLink, ...] = field(default_factory=tuple)

    @classmethod
    def from_dict(cls, page_id: str, raw: Mapping[str, Any]) -> "Page":
        return cls(
            id=page_id,
            title=raw.get("title") or page_id,
            text=raw.get("text", ""),
            is_ending=bool(raw.get("is_ending", False)),
            actions=tuple(PageAction.from_dict(entry) for entry in raw.get("actions") or []),
            links=tuple(PageLink.from_dict(entry) for entry in raw.get("links") or []),
        )


class PageGraph:
    """Lookup of pages by identifier."""

    def __init__(self, pages: Mapping[str, Page] | Sequence[Page], root: str = "main_menu") -> None:
        if isinstance(pages, Mapping):
            self._pages: Dict[str, Page] = dict(pages)
        else:
            self._pages = {page.id: page for page in pages}
        self.root = root

    @classmethod
    def from_dict(cls, raw: Mapping[str, Mapping[str, Any]], root: str = "main_menu") -> "PageGraph":
        return cls({page_id: Page.from_dict(page_id, payload) for page_id, payload in raw.items()}, root)

    def get(self, page_id: Optional[str]) -> Optional[Page]:
        if page_id is None:
            return None
        return self._pages.get(page_id)

    def __contains__(self, page_id: object) -> bool:
        return page_id in self._pages

    def __iter__(self) -> Iterator[str]:
        return iter(self._pages)

    def __len__(self) -> int:
        return len(self._pages)

    def endings(self) -> List[str]:
        return [page_id for page_id, page in self._pages.items() if page.is_ending]
