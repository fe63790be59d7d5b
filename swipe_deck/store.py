# swipe_deck/store.py
"""
Persistence collaborator: an ordered-record store for pages plus one scalar of UI state.

The registry only talks to the :class:`PageStore` protocol; :class:`SQLitePageStore`
is the embedded-database implementation used by the CLI.
"""
from __future__ import annotations

import sqlite3
import threading
from pathlib import Path
from typing import List, Optional, Protocol, Sequence, Union

from swipe_deck.errors import StoreError
from swipe_deck.logger import get_logger
from swipe_deck.models import Page

__all__ = ("PageStore", "StateStore", "SQLitePageStore")

log = get_logger("store")

_LAST_INDEX_KEY = "last_index"

_SCHEMA = """
CREATE TABLE IF NOT EXISTS pages (
    id TEXT PRIMARY KEY,
    address TEXT NOT NULL,
    title TEXT NOT NULL,
    created_at TEXT NOT NULL,
    sort_order INTEGER NOT NULL DEFAULT 0
);
CREATE TABLE IF NOT EXISTS ui_state (
    key TEXT PRIMARY KEY,
    value TEXT
);
"""


class PageStore(Protocol):
    """Durable ordered-record store consumed by :class:`~swipe_deck.registry.PageRegistry`.

    Every method raises :class:`StoreError` when it cannot commit.
    """

    def load_all(self) -> List[Page]: ...

    def save_all(self, pages: Sequence[Page]) -> None: ...

    def delete_one(self, page_id: str) -> None: ...


class StateStore(Protocol):
    """Holder of the persisted "last displayed index"."""

    def load_last_index(self) -> Optional[int]: ...

    def save_last_index(self, index: int) -> None: ...


class SQLitePageStore:
    """`sqlite3` backed :class:`PageStore` and :class:`StateStore`.

    ``load_all`` returns rows in insertion order, not sorted by ``sort_order``;
    sorting is the registry's job. Tables created before ``sort_order`` existed
    get the column added with default 0.
    """

    def __init__(self, path: Union[str, Path]) -> None:
        self.path = str(path)
        if self.path != ":memory:":
            Path(self.path).expanduser().parent.mkdir(parents=True, exist_ok=True)
        self._lock = threading.Lock()
        try:
            self._conn = sqlite3.connect(self.path, check_same_thread=False)
            self._conn.row_factory = sqlite3.Row
            self._migrate()
        except sqlite3.Error as exc:
            raise StoreError(f"cannot open page store {self.path}: {exc}") from exc

    def _migrate(self) -> None:
        with self._conn:
            self._conn.executescript(_SCHEMA)
            columns = {row["name"] for row in self._conn.execute("PRAGMA table_info(pages)")}
            if "sort_order" not in columns:
                log.info("Adding sort_order column to legacy pages table in %s", self.path)
                self._conn.execute("ALTER TABLE pages ADD COLUMN sort_order INTEGER NOT NULL DEFAULT 0")

    # ------------------------------------------------------------------ pages

    def load_all(self) -> List[Page]:
        try:
            with self._lock:
                rows = self._conn.execute(
                    "SELECT id, address, title, created_at, sort_order FROM pages ORDER BY rowid"
                ).fetchall()
        except sqlite3.Error as exc:
            raise StoreError(f"cannot load pages: {exc}") from exc
        pages = [
            Page.from_record(
                {
                    "id": row["id"],
                    "address": row["address"],
                    "title": row["title"],
                    "created_at": row["created_at"],
                    "order": row["sort_order"],
                }
            )
            for row in rows
        ]
        log.debug("Loaded %d page records from %s", len(pages), self.path)
        return pages

    def save_all(self, pages: Sequence[Page]) -> None:
        """Upserts *pages* in a single transaction: all rows are written or none."""
        params = [
            (p.id, p.address, p.title, p.created_at.isoformat(), p.order) for p in pages
        ]
        try:
            with self._lock, self._conn:
                self._conn.executemany(
                    "INSERT INTO pages (id, address, title, created_at, sort_order) "
                    "VALUES (?, ?, ?, ?, ?) "
                    "ON CONFLICT(id) DO UPDATE SET "
                    "address = excluded.address, title = excluded.title, sort_order = excluded.sort_order",
                    params,
                )
        except sqlite3.Error as exc:
            raise StoreError(f"cannot save {len(params)} page(s): {exc}") from exc

    def delete_one(self, page_id: str) -> None:
        try:
            with self._lock, self._conn:
                self._conn.execute("DELETE FROM pages WHERE id = ?", (page_id,))
        except sqlite3.Error as exc:
            raise StoreError(f"cannot delete page {page_id}: {exc}") from exc

    # --------------------------------------------------------------- ui state

    def load_last_index(self) -> Optional[int]:
        try:
            with self._lock:
                row = self._conn.execute(
                    "SELECT value FROM ui_state WHERE key = ?", (_LAST_INDEX_KEY,)
                ).fetchone()
        except sqlite3.Error as exc:
            raise StoreError(f"cannot read last index: {exc}") from exc
        if row is None or row["value"] is None:
            return None
        try:
            return int(row["value"])
        except ValueError:
            log.warning("Ignoring malformed last index %r", row["value"])
            return None

    def save_last_index(self, index: int) -> None:
        try:
            with self._lock, self._conn:
                self._conn.execute(
                    "INSERT INTO ui_state (key, value) VALUES (?, ?) "
                    "ON CONFLICT(key) DO UPDATE SET value = excluded.value",
                    (_LAST_INDEX_KEY, str(int(index))),
                )
        except sqlite3.Error as exc:
            raise StoreError(f"cannot save last index: {exc}") from exc

    def close(self) -> None:
        with self._lock:
            self._conn.close()

    def __enter__(self) -> SQLitePageStore:
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()
