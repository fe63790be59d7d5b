# File: tests/test_store.py
"""SQLitePageStore: round trip of page records, UI state and the legacy-schema upgrade."""
from __future__ import annotations

import sqlite3
from datetime import datetime, timezone

import pytest

from swipe_deck.errors import StoreError
from swipe_deck.models import Page
from swipe_deck.registry import PageRegistry
from swipe_deck.store import SQLitePageStore


@pytest.fixture()
def db_path(tmp_path):
    return tmp_path / "nested" / "deck.db"


def test_save_and_load(db_path):
    created = datetime(2025, 3, 12, 8, 30, tzinfo=timezone.utc)
    page = Page(address="https://x.com", title="x", order=3, created_at=created)
    with SQLitePageStore(db_path) as store:
        store.save_all([page])

    with SQLitePageStore(db_path) as store:
        (loaded,) = store.load_all()

    assert loaded == page


def test_save_updates_existing_rows(db_path):
    page = Page(address="https://x.com", title="x", order=0)
    with SQLitePageStore(db_path) as store:
        store.save_all([page])
        page.order = 5
        page.title = "renamed"
        store.save_all([page])
        (loaded,) = store.load_all()
    assert (loaded.order, loaded.title) == (5, "renamed")


def test_delete_one(db_path):
    a = Page(address="https://a.com", title="a")
    b = Page(address="https://b.com", title="b")
    with SQLitePageStore(db_path) as store:
        store.save_all([a, b])
        store.delete_one(a.id)
        store.delete_one("missing")
        assert [p.id for p in store.load_all()] == [b.id]


def test_last_index(db_path):
    with SQLitePageStore(db_path) as store:
        assert store.load_last_index() is None
        store.save_last_index(4)
        store.save_last_index(2)
    with SQLitePageStore(db_path) as store:
        assert store.load_last_index() == 2


def test_save_all_is_atomic(db_path):
    a = Page(address="https://a.com", title="a", id="same")
    with SQLitePageStore(db_path) as store:
        store.save_all([a])
        broken = Page(address="https://b.com", title="b")
        broken.title = None  # NOT NULL constraint
        with pytest.raises(StoreError):
            store.save_all([Page(address="https://c.com", title="c"), broken])
        assert [p.id for p in store.load_all()] == ["same"]


def test_closed_store_raises_store_error(db_path):
    store = SQLitePageStore(db_path)
    store.close()
    with pytest.raises(StoreError):
        store.load_all()


def test_legacy_table_gets_order_column_and_is_migrated(db_path):
    db_path.parent.mkdir(parents=True)
    conn = sqlite3.connect(db_path)
    conn.execute("CREATE TABLE pages (id TEXT PRIMARY KEY, address TEXT NOT NULL, title TEXT NOT NULL, created_at TEXT NOT NULL)")
    conn.executemany(
        "INSERT INTO pages VALUES (?, ?, ?, ?)",
        [
            ("p1", "https://one.example", "One", "2025-03-12T10:00:00+00:00"),
            ("p2", "https://two.example", "Two", "2025-03-12T10:01:00+00:00"),
            ("p3", "https://three.example", "Three", "2025-03-12T10:02:00+00:00"),
        ],
    )
    conn.commit()
    conn.close()

    with SQLitePageStore(db_path) as store:
        registry = PageRegistry(store, retry_delay=0).open()
        assert [p.id for p in registry.list()] == ["p1", "p2", "p3"]
        assert sorted(p.order for p in store.load_all()) == [0, 1, 2]


def test_registry_round_trip_through_sqlite(db_path):
    with SQLitePageStore(db_path) as store:
        registry = PageRegistry(store, retry_delay=0).open()
        a, b, c = (registry.add(u) for u in ("a.com", "b.com", "c.com"))
        registry.reorder(c.id, 0)
        registry.delete(a.id)

    with SQLitePageStore(db_path) as store:
        reopened = PageRegistry(store, retry_delay=0).open()
        assert [p.id for p in reopened.list()] == [c.id, b.id]
        assert [p.order for p in reopened.list()] == [0, 1]
