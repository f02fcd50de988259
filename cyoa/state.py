"""Navigation, inventory and action-lock state for a play session."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional

from .checkpoint import CheckpointError, CheckpointInfo, CheckpointStore
from .conditions import meets_condition
from .effects import apply_effects
from .endings import EndingsTracker
from .items import Interpolation, Item, ItemCatalog, ItemRef, interpolate_item_names, item_id
from .pages import Page, PageAction, PageGraph, PageLink
from .save_migrations import SnapshotMigrationError
from .settings import Settings
from .snapshot import SnapshotError, StateSnapshot, decode_snapshot, encode_snapshot
from .storage import KeyValueStore, MemoryStore, StorageError

logger = logging.getLogger(__name__)

Listener = Callable[[str, "GameState"], None]


class HistoryExhaustedError(RuntimeError):
    """Raised when no page in the history resolves in the page graph."""


@dataclass
class DialogState:
    show: bool = False
    title: str = ""
    description: str = ""
    callback: Optional[Callable[[], None]] = None


class DebugTools:
    """Inspection helpers for tooling. These skip link and ending side effects."""

    def __init__(self, state: "GameState") -> None:
        self._state = state

    def get_full_state(self) -> Dict:
        return self._state.snapshot().to_dict()

    def remove_action(self, page_id: str, action_name: str) -> None:
        actions_taken = self._state.actions_taken
        actions_taken[page_id] = [
            name for name in actions_taken.get(page_id, []) if name != action_name
        ]
        self._state._commit("debug")


class GameState:
    def __init__(
        self,
        pages: PageGraph,
        items: ItemCatalog,
        storage: Optional[KeyValueStore] = None,
        *,
        settings: Optional[Settings] = None,
        endings: Optional[EndingsTracker] = None,
        checkpoints: Optional[CheckpointStore] = None,
    ) -> None:
        self.settings = settings.copy() if isinstance(settings, Settings) else Settings()
        self.pages = pages
        self.items = items
        self.storage = storage if storage is not None else MemoryStore()
        self.endings = endings or EndingsTracker(self.storage, self.settings.endings_key)
        self.checkpoints = checkpoints or CheckpointStore(
            self.storage, self.settings.checkpoint_key
        )
        self.dialog = DialogState()
        self.debug = DebugTools(self)
        self.debug_mode = False
        self._listeners: List[Listener] = []
        self._live = self._load_live_state()

    # ---------- Live record ----------
    @property
    def root(self) -> str:
        return self.pages.root

    @property
    def history(self) -> List[str]:
        return self._live.history

    @property
    def inventory_ids(self) -> List[str]:
        return self._live.inventory

    @property
    def actions_taken(self) -> Dict[str, List[str]]:
        return self._live.actions_taken

    @property
    def allow_checkpoints(self) -> bool:
        return self._live.allow_checkpoints

    @allow_checkpoints.setter
    def allow_checkpoints(self, allow: bool) -> None:
        self._live.allow_checkpoints = bool(allow)
        self._commit("settings")

    def snapshot(self) -> StateSnapshot:
        return self._live.copy()

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Call ``listener(event, state)`` after every change; returns an unsubscribe function."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    # ---------- Navigation ----------
    @property
    def current_page(self) -> Page:
        history = self._live.history
        repaired = False
        while True:
            if not history:
                raise HistoryExhaustedError(
                    f"History has no page known to the page graph (root '{self.root}')."
                )
            page = self.pages.get(history[-1])
            if page is not None:
                break
            logger.debug("Dropping unknown page %r from history.", history.pop())
            repaired = True
        if repaired:
            self._persist()
        return page

    def go_to(self, page_id: str) -> None:
        self._live.history.append(page_id)
        page = self.pages.get(page_id)
        if page is not None and page.is_ending:
            self.endings.add_achieved_ending(page_id)
        self._commit("navigate")

    def take_link(self, link: PageLink) -> bool:
        if link.on_link is not None and apply_effects(link.on_link, self) is False:
            return False
        self.go_to(link.link_to)
        return True

    @property
    def visible_links(self) -> List[PageLink]:
        return [link for link in self.current_page.links if meets_condition(link.condition, self)]

    # ---------- Actions ----------
    def take_action(self, page: Page, action: PageAction) -> bool:
        """Run ``action`` on ``page``; returns whether it was locked."""
        if action.condition is not None and not meets_condition(action.condition, self):
            return False
        lock_action = True
        if action.action is not None:
            if apply_effects(action.action, self) is False:
                lock_action = False
        elif action.effect:
            for item in self.interpolate(action.effect, markup=True).items:
                self.add_item(item.id)
            self.open_dialog(action.name, action.effect)
        if lock_action:
            taken = self._live.actions_taken.setdefault(page.id, [])
            if action.name not in taken:
                taken.append(action.name)
            self._commit("action")
        return lock_action

    @property
    def available_actions(self) -> List[PageAction]:
        page = self.current_page
        taken = self._live.actions_taken.get(page.id, [])
        return [
            action
            for action in page.actions
            if action.name not in taken and meets_condition(action.condition, self)
        ]

    # ---------- Inventory ----------
    @property
    def inventory(self) -> List[Item]:
        resolved = []
        for ident in self._live.inventory:
            item = self.items.get(ident)
            if item is None:
                logger.warning("Inventory holds unknown item %r; hiding it.", ident)
                continue
            resolved.append(item)
        return resolved

    def add_item(self, item: ItemRef, count: int = 1) -> None:
        if count < 1:
            return
        self._live.inventory.extend([item_id(item)] * count)
        self._commit("inventory")

    def remove_item(self, item: ItemRef, count: int = 1) -> None:
        ident = item_id(item)
        inventory = self._live.inventory
        removed = 0
        while count > 0 and ident in inventory:
            inventory.remove(ident)
            removed += 1
            count -= 1
        if removed:
            self._commit("inventory")

    # ---------- Session ----------
    def restart(self) -> bool:
        allow = self._live.allow_checkpoints
        self._live = StateSnapshot.default(self.root)
        self._live.allow_checkpoints = allow
        try:
            self.checkpoints.clear()
        except CheckpointError as exc:
            logger.error("Could not clear checkpoint on restart: %s", exc)
        self._commit("restart")
        return False

    def open_dialog(
        self, title: str, description: str, callback: Optional[Callable[[], None]] = None
    ) -> None:
        self.dialog.show = True
        self.dialog.title = self.interpolate(title, markup=True).text
        self.dialog.description = self.interpolate(description, markup=True).text
        self.dialog.callback = callback
        self._notify("dialog")

    def dismiss_dialog(self) -> None:
        callback = self.dialog.callback
        self.dialog = DialogState()
        self._notify("dialog")
        if callback is not None:
            callback()

    def interpolate(self, text: str, markup: bool = False) -> Interpolation:
        return interpolate_item_names(text, self.items, markup, template=self.settings.item_markup)

    # ---------- Checkpoint ----------
    def save_checkpoint(self) -> None:
        try:
            self.checkpoints.write(self._live.copy())
        except CheckpointError as exc:
            logger.error("Error saving checkpoint: %s", exc)

    def load_checkpoint(self) -> bool:
        """Returns True when the caller should move on (nothing loaded), False once loaded."""
        try:
            snapshot = self.checkpoints.read()
        except (SnapshotError, SnapshotMigrationError) as exc:
            logger.error("Error loading checkpoint: %s", exc)
            return True
        if snapshot is None:
            return True
        self._live = snapshot
        self._commit("checkpoint")
        return False

    def get_checkpoint_info(self) -> Optional[CheckpointInfo]:
        return self.checkpoints.info()

    def has_checkpoint(self) -> bool:
        return self.checkpoints.exists()

    # ---------- Internal helpers ----------
    def _load_live_state(self) -> StateSnapshot:
        try:
            raw = self.storage.get(self.settings.state_key)
        except StorageError as exc:
            logger.error("Saved state unreadable, starting fresh: %s", exc)
            return StateSnapshot.default(self.root)
        if not raw:
            return StateSnapshot.default(self.root)
        try:
            return decode_snapshot(raw)
        except (SnapshotError, SnapshotMigrationError) as exc:
            logger.warning("Discarding saved state: %s", exc)
            return StateSnapshot.default(self.root)

    def _persist(self) -> None:
        try:
            self.storage.set(self.settings.state_key, encode_snapshot(self._live))
        except StorageError as exc:
            logger.error("Failed to persist game state: %s", exc)

    def _notify(self, event: str) -> None:
        for listener in list(self._listeners):
            listener(event, self)

    def _commit(self, event: str) -> None:
        self._persist()
        self._notify(event)
