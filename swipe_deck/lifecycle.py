# File: swipe_deck/lifecycle.py
"""swipe_deck.lifecycle: bridges host foreground/background signals to the registry and the session cache."""

from __future__ import annotations

from enum import Enum
from typing import Iterable, Optional

from swipe_deck.cache import SessionCache
from swipe_deck.engine import SessionHandle
from swipe_deck.errors import InvalidRange, StoreError
from swipe_deck.logger import get_logger
from swipe_deck.models import Page, SeedPage
from swipe_deck.registry import PageRegistry
from swipe_deck.store import StateStore

__all__ = ("ScenePhase", "LifecycleCoordinator")

log = get_logger("lifecycle")


class ScenePhase(str, Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"
    BACKGROUND = "background"


class LifecycleCoordinator:
    """Keeps the displayed index and the warm sessions in step with the registry.

    ``current_index`` is the position the display surface shows; every change
    is written to the state store so it survives a restart.
    """

    def __init__(
        self,
        registry: PageRegistry,
        cache: SessionCache,
        state: StateStore,
        *,
        preload_radius: int = 1,
    ) -> None:
        self.registry = registry
        self.cache = cache
        self.state = state
        self.preload_radius = max(0, preload_radius)
        self.current_index = 0

    # ------------------------------------------------------------- lifecycle

    def handle_phase(self, phase: ScenePhase) -> None:
        phase = ScenePhase(phase)
        if phase is ScenePhase.ACTIVE:
            self.on_became_active()
        elif phase is ScenePhase.BACKGROUND:
            self.on_entering_background()

    def on_became_active(self) -> int:
        """Re-warms every page in order and restores the last displayed index."""
        pages = self.registry.list()
        log.info("Became active: warming %d page(s)", len(pages))
        self._warm(pages)
        self.current_index = self.restore_last_index()
        return self.current_index

    def on_entering_background(self) -> None:
        log.info("Entering background: preserving %d live session(s)", len(self.cache))

    def restore_last_index(self) -> int:
        """Stored index when it addresses an existing page, else 0."""
        count = len(self.registry)
        try:
            stored = self.state.load_last_index()
        except StoreError as exc:
            log.warning("Cannot read last displayed index: %s", exc)
            return 0
        if stored is None or count == 0 or not 0 <= stored < count:
            return 0
        return stored

    # ----------------------------------------------------------- navigation

    def current_page(self) -> Optional[Page]:
        pages = self.registry.list()
        if not pages:
            return None
        return pages[min(self.current_index, len(pages) - 1)]

    def show(self, index: int) -> SessionHandle:
        """Displays the page at *index* and warms its neighbours."""
        pages = self.registry.list()
        if not 0 <= index < len(pages):
            raise InvalidRange(f"index {index} outside [0, {len(pages) - 1}]")
        handle = self.cache.display(pages[index].address)
        self.preload_adjacent(index)
        self._record_index(index)
        return handle

    def preload_adjacent(self, index: int) -> None:
        pages = self.registry.list()
        for offset in range(1, self.preload_radius + 1):
            for neighbour in (index + offset, index - offset):
                if 0 <= neighbour < len(pages):
                    self.cache.preload(pages[neighbour].address)

    # ------------------------------------------------------------ mutations

    def add_page(self, raw_address: str, title: Optional[str] = None) -> Page:
        """Adds a page, warms it and makes it the displayed page."""
        page = self.registry.add(raw_address, title)
        self.cache.preload(page.address)
        index = self.registry.index_of(page.id)
        if index is not None:
            self._record_index(index)
        return page

    def remove_page(self, page_id: str) -> None:
        self.registry.delete(page_id)
        self._clamp()

    def move_page(self, page_id: str, to_position: int) -> None:
        """Reorders; the displayed page stays displayed at its new position."""
        shown = self.current_page()
        self.registry.reorder(page_id, to_position)
        if shown is not None:
            index = self.registry.index_of(shown.id)
            if index is not None:
                self._record_index(index)

    def reset(self, defaults: Iterable[SeedPage]) -> None:
        """Full reset: releases every session, re-seeds the registry and warms it."""
        self.cache.clear()
        self.registry.reset(defaults)
        self._warm(self.registry.list())
        self._record_index(0, force=True)

    # -------------------------------------------------------------- helpers

    def _warm(self, pages: Iterable[Page]) -> None:
        for page in pages:
            self.cache.preload(page.address)

    def _clamp(self) -> None:
        count = len(self.registry)
        index = min(self.current_index, count - 1) if count else 0
        self._record_index(max(0, index), force=True)

    def _record_index(self, index: int, force: bool = False) -> None:
        if index == self.current_index and not force:
            return
        self.current_index = index
        try:
            self.state.save_last_index(index)
        except StoreError as exc:
            log.warning("Cannot persist displayed index %d: %s", index, exc)
