# File: swipe_deck/cache.py
"""swipe_deck.cache: address-keyed cache of live browsing sessions.

The cache belongs to one asyncio event loop (the owning context). Session
creation and every mutation of the cache map happen on that loop;
:meth:`SessionCache.preload` may be called from any thread and posts its work
onto the loop.
"""

from __future__ import annotations

import asyncio
import threading
from collections import OrderedDict
from typing import Any, Iterable, List, Optional, Protocol, Sequence

from swipe_deck.engine import BrowsingEngine, SessionHandle
from swipe_deck.errors import InvalidInput, NavigationFailure
from swipe_deck.logger import get_logger
from swipe_deck.models import SessionEntry
from swipe_deck.utils import normalize_address

__all__ = ("EvictionPolicy", "UnboundedPolicy", "LRUPolicy", "SessionCache")

log = get_logger("cache")


class EvictionPolicy(Protocol):
    def victims(self, keys: Sequence[str], protected: str) -> Iterable[str]:
        """Keys to release, given *keys* from least to most recently used."""
        ...


class UnboundedPolicy:
    """Keeps every session for the lifetime of the process."""

    def victims(self, keys: Sequence[str], protected: str) -> List[str]:
        return []


class LRUPolicy:
    """Releases the least recently used sessions beyond ``max_sessions``."""

    def __init__(self, max_sessions: int) -> None:
        if max_sessions < 1:
            raise ValueError("max_sessions must be >= 1")
        self.max_sessions = max_sessions

    def victims(self, keys: Sequence[str], protected: str) -> List[str]:
        excess = len(keys) - self.max_sessions
        if excess <= 0:
            return []
        return [k for k in keys if k != protected][:excess]


def policy_for(max_sessions: Optional[int]) -> EvictionPolicy:
    return UnboundedPolicy() if max_sessions is None else LRUPolicy(max_sessions)


class SessionCache:
    """At most one live session per normalised address.

    Entries are kept in least-recently-used order so that a bounded
    :class:`EvictionPolicy` can be swapped in; the default policy never evicts.
    """

    def __init__(
        self,
        engine: BrowsingEngine,
        *,
        loop: Optional[asyncio.AbstractEventLoop] = None,
        policy: Optional[EvictionPolicy] = None,
    ) -> None:
        self._engine = engine
        self._loop = loop or asyncio.get_running_loop()
        self._policy: EvictionPolicy = policy or UnboundedPolicy()
        self._shared_context: Any = engine.create_shared_context()
        self._entries: "OrderedDict[str, SessionEntry]" = OrderedDict()
        self._pending: set[str] = set()
        self._pending_lock = threading.Lock()
        self._generation = 0

    # ----------------------------------------------------------------- lookup

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, address: object) -> bool:
        if not isinstance(address, str):
            return False
        try:
            return normalize_address(address) in self._entries
        except InvalidInput:
            return False

    def keys(self) -> List[str]:
        return list(self._entries)

    def entry(self, address: str) -> Optional[SessionEntry]:
        try:
            return self._entries.get(normalize_address(address))
        except InvalidInput:
            return None

    def is_loaded(self, address: str) -> bool:
        entry = self.entry(address)
        return entry is not None and entry.loaded

    @property
    def pending(self) -> int:
        """Warm-ups posted to the loop but not yet run."""
        with self._pending_lock:
            return len(self._pending)

    # ------------------------------------------------------------- operations

    def get_or_create(self, address: str) -> SessionHandle:
        """Returns the session for *address*, creating it on first use.

        Must be called on the owning loop. Raises :class:`InvalidInput` for an
        address that does not normalise.
        """
        key = normalize_address(address)
        entry = self._entries.get(key)
        if entry is not None:
            self._entries.move_to_end(key)
            return entry.handle
        return self._create(key).handle

    def display(self, address: str) -> SessionHandle:
        """Session for *address*, navigated there unless it already is."""
        key = normalize_address(address)
        handle = self.get_or_create(key)
        if handle.current_address != key:
            handle.navigate(key)
        return handle

    def preload(self, address: str) -> None:
        """Fire-and-forget warm-up; safe from any thread."""
        try:
            key = normalize_address(address)
        except InvalidInput as exc:
            log.debug("Skipping preload of %r: %s", address, exc)
            return
        if key in self._entries:
            return
        with self._pending_lock:
            if key in self._pending:
                return
            self._pending.add(key)
        try:
            self._loop.call_soon_threadsafe(self._warm, key, self._generation)
        except RuntimeError as exc:
            # loop already closed; nothing left to warm for
            with self._pending_lock:
                self._pending.discard(key)
            log.warning("Dropping preload of %s: %s", key, exc)

    def mark_loaded(self, address: str) -> None:
        entry = self.entry(address)
        if entry is None:
            log.debug("Loaded signal for unknown session %s dropped", address)
            return
        entry.loaded = True

    def clear(self) -> None:
        """Stops and releases every session; pending warm-ups are discarded."""
        self._generation += 1
        with self._pending_lock:
            self._pending.clear()
        count = len(self._entries)
        for entry in self._entries.values():
            self._release(entry)
        self._entries.clear()
        log.info("Session cache cleared (%d session(s) released)", count)

    # ---------------------------------------------------------------- helpers

    def _warm(self, key: str, generation: int) -> None:
        with self._pending_lock:
            self._pending.discard(key)
        if generation != self._generation or key in self._entries:
            return
        entry = self._create(key)
        log.debug("Preloading %s", key)
        entry.handle.navigate(key)

    def _create(self, key: str) -> SessionEntry:
        handle = self._engine.create_session(self._shared_context)
        entry = SessionEntry(key=key, handle=handle)
        handle.on_navigation_finished(lambda _address, _key=key: self.mark_loaded(_key))
        handle.on_navigation_failed(lambda _address, error, _key=key: self._navigation_failed(_key, error))
        self._entries[key] = entry
        log.debug("Created session for %s (%d live)", key, len(self._entries))
        for victim in list(self._policy.victims(list(self._entries), key)):
            self._evict(victim)
        return entry

    def _evict(self, key: str) -> None:
        entry = self._entries.pop(key, None)
        if entry is not None:
            self._release(entry)
            log.info("Evicted session for %s", key)

    @staticmethod
    def _release(entry: SessionEntry) -> None:
        entry.handle.stop_loading()
        entry.handle.close()

    def _navigation_failed(self, key: str, error: BaseException) -> None:
        failure = NavigationFailure(key, error)
        log.warning("%s", failure)
