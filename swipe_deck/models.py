# swipe_deck/models.py
"""
Data models for SwipeDeck: durable page records and transient session entries.
"""
from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Tuple

from pydantic import BaseModel, ConfigDict, Field

__all__ = ("Page", "SessionEntry", "SeedPage", "utcnow", "new_page_id")


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def new_page_id() -> str:
    return uuid.uuid4().hex


@dataclass(slots=True)
class Page:
    """A page record as stored by the registry.

    ``id`` and ``created_at`` never change after creation; ``order`` is the
    position key rewritten by the registry after every mutation.
    """

    address: str
    title: str
    order: int = 0
    id: str = field(default_factory=new_page_id)
    created_at: datetime = field(default_factory=utcnow)

    def sort_key(self) -> Tuple[int, datetime, str]:
        """Ordering used for the visible sequence: order, then creation time, then id."""
        return (self.order, self.created_at, self.id)

    def to_record(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "address": self.address,
            "title": self.title,
            "created_at": self.created_at.isoformat(),
            "order": self.order,
        }

    @classmethod
    def from_record(cls, record: Dict[str, Any]) -> Page:
        created = record["created_at"]
        if isinstance(created, str):
            created = datetime.fromisoformat(created)
        if created.tzinfo is None:
            created = created.replace(tzinfo=timezone.utc)
        return cls(
            id=str(record["id"]),
            address=str(record["address"]),
            title=str(record["title"]),
            created_at=created,
            order=int(record.get("order") or 0),
        )


@dataclass(slots=True)
class SessionEntry:
    """In-memory cache slot; the cache is the only owner of ``handle``."""

    key: str
    handle: Any
    loaded: bool = False


class SeedPage(BaseModel):
    """Default destination used to seed an empty registry."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    url: str = Field(..., min_length=1)
    title: str = Field(..., min_length=1)
