# File: swipe_deck/registry.py
"""swipe_deck.registry: the persisted, ordered list of pages.

The registry is the source of truth for which pages exist and in what order.
Every completed mutation leaves ``order`` values contiguous from 0 and is
written through a :class:`~swipe_deck.store.PageStore`. Failed writes are
retried; if they keep failing the in-memory state is kept and the failure is
reported instead of raised.
"""

from __future__ import annotations

import threading
import time
from dataclasses import replace
from typing import Callable, Dict, Iterable, List, Optional, Sequence, Set, Tuple

from swipe_deck.errors import InvalidRange, PersistenceFailure, StoreError
from swipe_deck.logger import get_logger
from swipe_deck.models import Page, SeedPage
from swipe_deck.store import PageStore
from swipe_deck.utils import derive_title, normalize_address

__all__ = ("PageRegistry", "FailureReporter")

log = get_logger("registry")

FailureReporter = Callable[[PersistenceFailure], None]


class PageRegistry:
    """Ordered page records backed by a store.

    Mutations are serialised with a re-entrant lock. :meth:`list`, :meth:`get`,
    :meth:`add` and :meth:`rename` hand out copies taken at the last completed
    mutation; later mutations never rewrite them.
    """

    def __init__(
        self,
        store: PageStore,
        *,
        retry_times: int = 1,
        retry_delay: float = 0.5,
        on_persistence_failure: Optional[FailureReporter] = None,
    ) -> None:
        if retry_times < 1:
            raise ValueError("retry_times must be >= 1")
        self._store = store
        self.retry_times = retry_times
        self.retry_delay = retry_delay
        self._report = on_persistence_failure
        self._lock = threading.RLock()
        self._pages: List[Page] = []
        self._snapshot: Tuple[Page, ...] = ()
        self._opened = False
        self._dirty_ids: Set[str] = set()
        self._pending_deletes: Set[str] = set()
        self.last_failure: Optional[PersistenceFailure] = None

    @classmethod
    def from_config(cls, store: PageStore, config, **kwargs) -> PageRegistry:
        return cls(store, retry_times=config.retry_times, retry_delay=config.retry_delay, **kwargs)

    # ------------------------------------------------------------------ reads

    def list(self) -> Tuple[Page, ...]:
        """Pages in visible order."""
        return self._snapshot

    def __len__(self) -> int:
        return len(self._snapshot)

    def get(self, page_id: str) -> Optional[Page]:
        for page in self._snapshot:
            if page.id == page_id:
                return page
        return None

    def index_of(self, page_id: str) -> Optional[int]:
        for index, page in enumerate(self._snapshot):
            if page.id == page_id:
                return index
        return None

    @property
    def opened(self) -> bool:
        return self._opened

    @property
    def dirty(self) -> bool:
        """True while some change is only in memory."""
        return bool(self._dirty_ids or self._pending_deletes)

    # ------------------------------------------------------------------- open

    def open(self, defaults: Iterable[SeedPage] = ()) -> PageRegistry:
        """Loads the store, seeding *defaults* into an empty one and migrating legacy order keys.

        Legacy data is detected as a page with ``order == 0`` past position 0
        of the sorted sequence; every page then gets its position as order.
        A store that cannot be read raises :class:`StoreError`.
        """
        with self._lock:
            pages = self._store.load_all()
            defaults = list(defaults)

            if not pages and defaults:
                self._pages = self._seed_pages(defaults)
                log.info("Seeding empty registry with %d default page(s)", len(self._pages))
                self._opened = True
                self._commit(changed=self._pages, action="seed defaults")
                return self

            # records written before ``order`` existed all carry 0
            pages.sort(key=Page.sort_key)
            if any(page.order == 0 and index > 0 for index, page in enumerate(pages)):
                log.info("Migrating order keys of %d legacy page record(s)", len(pages))
                for index, page in enumerate(pages):
                    page.order = index
                self._pages = pages
                self._opened = True
                self._commit(changed=pages, action="order migration")
                return self

            self._pages = pages
            self._opened = True
            changed = self._normalize()
            if changed:
                log.info("Re-normalized order of %d page(s) on open", len(changed))
            self._commit(changed=changed, action="order normalization")
            return self

    # -------------------------------------------------------------- mutations

    def add(self, raw_address: str, title: Optional[str] = None) -> Page:
        """Normalises *raw_address* and appends a page for it.

        Raises :class:`~swipe_deck.errors.InvalidInput` without changing anything
        when the address is empty or has no host.
        """
        address = normalize_address(raw_address)
        label = (title or "").strip() or derive_title(address)
        with self._lock:
            self._ensure_open()
            order = max((p.order for p in self._pages), default=-1) + 1
            page = Page(address=address, title=label, order=order)
            self._pages.append(page)
            changed = self._normalize()
            self._commit(changed=[page, *changed], action=f"add {address}")
            log.info("Added page %s (%s) at position %d", page.id, address, self.index_of(page.id))
            return self.get(page.id)

    def delete(self, page_id: str) -> None:
        """Removes a page; unknown ids are ignored."""
        with self._lock:
            self._ensure_open()
            page = next((p for p in self._pages if p.id == page_id), None)
            if page is None:
                log.debug("Delete of unknown page %s ignored", page_id)
                return
            self._pages.remove(page)
            self._pending_deletes.add(page.id)
            self._dirty_ids.discard(page.id)
            changed = self._normalize()
            self._commit(changed=changed, action=f"delete {page_id}")
            log.info("Deleted page %s (%s)", page_id, page.address)

    def reorder(self, page_id: str, to_position: int) -> None:
        """Moves a page to zero-based *to_position* in the visible sequence.

        Raises :class:`InvalidRange` when *to_position* is outside
        ``[0, count - 1]``; unknown ids are ignored.
        """
        with self._lock:
            self._ensure_open()
            ordered = self._sorted()
            if not 0 <= to_position < len(ordered):
                raise InvalidRange(f"position {to_position} outside [0, {len(ordered) - 1}]")
            page = next((p for p in ordered if p.id == page_id), None)
            if page is None:
                log.debug("Reorder of unknown page %s ignored", page_id)
                return
            ordered.remove(page)
            ordered.insert(to_position, page)
            self._pages = ordered
            changed = self._normalize(presorted=True)
            if changed:
                self._commit(changed=changed, action=f"reorder {page_id} -> {to_position}")
            else:
                self._refresh_snapshot()
            log.info("Moved page %s to position %d", page_id, to_position)

    def rename(self, page_id: str, title: Optional[str]) -> Optional[Page]:
        """Updates a page title; a blank title falls back to the host. Unknown ids return None."""
        with self._lock:
            self._ensure_open()
            page = next((p for p in self._pages if p.id == page_id), None)
            if page is None:
                return None
            page.title = (title or "").strip() or derive_title(page.address)
            self._commit(changed=[page], action=f"rename {page_id}")
            return self.get(page_id)

    def reset(self, defaults: Iterable[SeedPage]) -> None:
        """Drops every record and seeds *defaults* in their given order."""
        with self._lock:
            self._ensure_open()
            self._pending_deletes.update(p.id for p in self._pages)
            self._dirty_ids.clear()
            self._pages = self._seed_pages(defaults)
            log.info("Registry reset to %d default page(s)", len(self._pages))
            self._commit(changed=self._pages, action="reset")

    def flush(self) -> bool:
        """Retries persisting whatever is still only in memory. Returns True when clean."""
        with self._lock:
            if self.dirty:
                self._persist_changes([], action="flush")
            return not self.dirty

    # ---------------------------------------------------------------- helpers

    def _ensure_open(self) -> None:
        if not self._opened:
            raise RuntimeError("PageRegistry.open() has not been called")

    @staticmethod
    def _seed_pages(defaults: Iterable[SeedPage]) -> List[Page]:
        return [
            Page(address=normalize_address(seed.url), title=seed.title, order=index)
            for index, seed in enumerate(defaults)
        ]

    def _sorted(self) -> List[Page]:
        return sorted(self._pages, key=Page.sort_key)

    def _normalize(self, presorted: bool = False) -> List[Page]:
        """Rewrites ``order`` as 0..n-1 in visible order; returns the pages whose key changed."""
        ordered = self._pages if presorted else self._sorted()
        changed = []
        for index, page in enumerate(ordered):
            if page.order != index:
                page.order = index
                changed.append(page)
        self._pages = list(ordered)
        return changed

    def _refresh_snapshot(self) -> None:
        self._snapshot = tuple(replace(p) for p in self._sorted())

    def _commit(self, changed: Sequence[Page], action: str) -> None:
        self._refresh_snapshot()
        self._persist_changes(changed, action)

    def _persist_changes(self, changed: Sequence[Page], action: str) -> None:
        """Writes *changed* plus any earlier unsaved work, retrying on failure."""
        live: Dict[str, Page] = {p.id: p for p in self._pages}
        to_save_ids = set(self._dirty_ids) | {p.id for p in changed}
        to_save = sorted((live[i] for i in to_save_ids if i in live), key=Page.sort_key)
        to_delete = sorted(self._pending_deletes)

        def write() -> None:
            for page_id in to_delete:
                self._store.delete_one(page_id)
                self._pending_deletes.discard(page_id)
            if to_save:
                self._store.save_all(to_save)

        error = self._with_retry(write, action)
        if error is None:
            self._dirty_ids.clear()
            self.last_failure = None
            return

        self._dirty_ids.update(p.id for p in to_save)
        failure = PersistenceFailure(action, error)
        self.last_failure = failure
        log.warning("%s; keeping in-memory state", failure)
        if self._report is not None:
            self._report(failure)

    def _with_retry(self, write: Callable[[], None], action: str) -> Optional[StoreError]:
        attempts = 1 + self.retry_times
        for attempt in range(1, attempts + 1):
            try:
                write()
                return None
            except StoreError as exc:
                if attempt >= attempts:
                    return exc
                log.debug("Retry %d/%d for %s after %.2f s: %s", attempt, self.retry_times, action, self.retry_delay, exc)
                if self.retry_delay:
                    time.sleep(self.retry_delay)
        return None
