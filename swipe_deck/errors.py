# File: swipe_deck/errors.py
"""swipe_deck.errors: error kinds raised or reported by the registry and the session cache."""

from __future__ import annotations

from typing import Optional

__all__ = (
    "DeckError",
    "InvalidInput",
    "InvalidRange",
    "StoreError",
    "PersistenceFailure",
    "NavigationFailure",
)


class DeckError(Exception):
    """Base class for every SwipeDeck error."""


class InvalidInput(DeckError, ValueError):
    """Malformed or empty address handed to ``PageRegistry.add``."""


class InvalidRange(DeckError, IndexError):
    """Position outside ``[0, count - 1]``."""


class StoreError(DeckError):
    """Raised by a :class:`~swipe_deck.store.PageStore` when a read or write cannot be committed."""


class PersistenceFailure(DeckError):
    """A save or delete still failed after retrying.

    Never raised to the caller of a registry mutation: the in-memory change is
    kept and this object is logged and handed to the failure reporter.
    """

    def __init__(self, action: str, cause: Optional[BaseException] = None) -> None:
        self.action = action
        self.cause = cause
        detail = f": {cause}" if cause is not None else ""
        super().__init__(f"could not persist {action}{detail}")


class NavigationFailure(DeckError):
    """The browsing engine could not load an address. Logged, never retried."""

    def __init__(self, address: str, cause: Optional[BaseException] = None) -> None:
        self.address = address
        self.cause = cause
        detail = f": {cause}" if cause is not None else ""
        super().__init__(f"navigation to {address} failed{detail}")
