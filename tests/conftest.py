# File: tests/conftest.py
from __future__ import annotations

import json
from pathlib import Path
from typing import Dict, List, Optional, Sequence

import pytest
import pytest_asyncio

from swipe_deck.cache import SessionCache
from swipe_deck.errors import StoreError
from swipe_deck.models import Page
from swipe_deck.registry import PageRegistry


class FakeHandle:
    """Stand-in for an engine session that records navigations instead of loading."""

    def __init__(self, context: object) -> None:
        self.context = context
        self.current_address: Optional[str] = None
        self.navigations: List[str] = []
        self.stop_calls = 0
        self.closed = False
        self._finished = []
        self._failed = []

    def navigate(self, address: str) -> None:
        self.current_address = address
        self.navigations.append(address)

    def stop_loading(self) -> None:
        self.stop_calls += 1

    def close(self) -> None:
        self.closed = True

    def on_navigation_finished(self, callback) -> None:
        self._finished.append(callback)

    def on_navigation_failed(self, callback) -> None:
        self._failed.append(callback)

    # test helpers
    def finish(self) -> None:
        for cb in self._finished:
            cb(self.current_address)

    def fail(self, error: BaseException) -> None:
        for cb in self._failed:
            cb(self.current_address, error)


class FakeEngine:
    def __init__(self) -> None:
        self.contexts: List[object] = []
        self.sessions: List[FakeHandle] = []

    def create_shared_context(self) -> object:
        context = object()
        self.contexts.append(context)
        return context

    def create_session(self, shared_context: object) -> FakeHandle:
        handle = FakeHandle(shared_context)
        self.sessions.append(handle)
        return handle


class MemoryStore:
    """In-memory PageStore/StateStore; ``fail_next`` makes the next N writes raise."""

    def __init__(self, pages: Sequence[Page] = ()) -> None:
        self.rows: Dict[str, dict] = {p.id: p.to_record() for p in pages}
        self.fail_next = 0
        self.save_calls = 0
        self.delete_calls = 0
        self.last_index: Optional[int] = None

    def _maybe_fail(self) -> None:
        if self.fail_next:
            self.fail_next -= 1
            raise StoreError("disk full")

    def load_all(self) -> List[Page]:
        return [Page.from_record(r) for r in self.rows.values()]

    def save_all(self, pages: Sequence[Page]) -> None:
        self.save_calls += 1
        self._maybe_fail()
        for p in pages:
            self.rows[p.id] = p.to_record()

    def delete_one(self, page_id: str) -> None:
        self.delete_calls += 1
        self._maybe_fail()
        self.rows.pop(page_id, None)

    def load_last_index(self) -> Optional[int]:
        return self.last_index

    def save_last_index(self, index: int) -> None:
        self.last_index = index

    def stored_order(self) -> List[str]:
        return [r["address"] for r in sorted(self.rows.values(), key=lambda r: r["order"])]


@pytest.fixture()
def store() -> MemoryStore:
    return MemoryStore()


@pytest.fixture()
def reported() -> list:
    return []


@pytest.fixture()
def registry(store, reported) -> PageRegistry:
    return PageRegistry(store, retry_times=1, retry_delay=0, on_persistence_failure=reported.append).open()


@pytest.fixture()
def engine() -> FakeEngine:
    return FakeEngine()


@pytest_asyncio.fixture
async def cache(engine) -> SessionCache:
    return SessionCache(engine)


@pytest.fixture()
def config_file(tmp_path) -> Path:
    """JSON config pointing the store into *tmp_path* with two default pages."""
    path = tmp_path / "deck.json"
    path.write_text(
        json.dumps(
            {
                "store_path": str(tmp_path / "deck.db"),
                "retry_delay": 0,
                "log_level": "WARNING",
                "default_pages": [
                    {"url": "https://one.example", "title": "One"},
                    {"url": "https://two.example", "title": "Two"},
                ],
            }
        ),
        encoding="utf-8",
    )
    return path
