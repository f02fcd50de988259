"""Item catalog and bracketed item-name interpolation."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, List, Mapping, NamedTuple, Optional, Union

from .settings import DEFAULT_ITEM_MARKUP

ITEM_TOKEN_PATTERN = re.compile(r"\[([^\[\]]*)\]")


@dataclass(frozen=True)
class Item:
    id: str
    name: str
    description: str = ""
    extra: Mapping[str, Any] = field(default_factory=dict, compare=False)


ItemRef = Union[Item, str]


def item_id(item: ItemRef) -> str:
    return item.id if isinstance(item, Item) else item


class ItemCatalog:
    """Read-only lookup of items by identifier."""

    def __init__(self, items: Mapping[str, Item] | None = None) -> None:
        self._items: Dict[str, Item] = dict(items or {})

    @classmethod
    def from_dict(cls, raw: Mapping[str, Any] | None) -> "ItemCatalog":
        items: Dict[str, Item] = {}
        for key, payload in (raw or {}).items():
            if isinstance(payload, str):
                items[key] = Item(id=key, name=payload)
                continue
            payload = dict(payload)
            name = payload.pop("name", key)
            description = payload.pop("description", "")
            payload.pop("id", None)
            items[key] = Item(id=key, name=name, description=description, extra=payload)
        return cls(items)

    def get(self, identifier: str) -> Optional[Item]:
        return self._items.get(identifier)

    def __contains__(self, identifier: object) -> bool:
        return identifier in self._items

    def __iter__(self) -> Iterator[str]:
        return iter(self._items)

    def __len__(self) -> int:
        return len(self._items)


class Interpolation(NamedTuple):
    text: str
    items: List[Item]


def interpolate_item_names(
    text: str,
    catalog: ItemCatalog,
    markup: bool = False,
    *,
    template: str = DEFAULT_ITEM_MARKUP,
) -> Interpolation:
    """Replace ``[item_id]`` tokens with item display names.

    Tokens naming unknown items are left as written. Every replaced token is
    recorded in ``items``, so an item mentioned twice appears twice.
    """
    items: List[Item] = []
    if not text:
        return Interpolation(text or "", items)

    def replace(match: re.Match[str]) -> str:
        item = catalog.get(match.group(1))
        if item is None:
            return match.group(0)
        items.append(item)
        return template.replace("{name}", item.name) if markup else item.name

    return Interpolation(ITEM_TOKEN_PATTERN.sub(replace, text), items)
