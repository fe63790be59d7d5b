# File: swipe_deck/utils.py
"""swipe_deck.utils: address normalisation and title derivation shared by the registry and the cache."""

from __future__ import annotations

from typing import Sequence
from urllib.parse import urlparse

from swipe_deck.errors import InvalidInput
from swipe_deck.logger import get_logger

__all__: Sequence[str] = (
    "DEFAULT_SCHEME",
    "FALLBACK_TITLE",
    "normalize_address",
    "extract_host",
    "derive_title",
)

log = get_logger("utils")

DEFAULT_SCHEME = "https://"
FALLBACK_TITLE = "Webpage"
_KNOWN_SCHEMES = ("http://", "https://")


def normalize_address(raw: str) -> str:
    """Adds ``https://`` when no http(s) scheme is present and strips trailing slashes.

    Raises :class:`InvalidInput` for an empty value or a bare scheme without host.
    """
    address = (raw or "").strip()
    if not address:
        raise InvalidInput("address is empty")

    if not address.startswith(_KNOWN_SCHEMES):
        address = DEFAULT_SCHEME + address

    scheme = "http://" if address.startswith("http://") else DEFAULT_SCHEME
    while address.endswith("/") and address != scheme:
        address = address[:-1]

    if address == scheme:
        raise InvalidInput(f"address {raw!r} has no host")

    if address != raw:
        log.debug("Normalized address: %s -> %s", raw, address)
    return address


def extract_host(address: str) -> str:
    """Returns the host of *address* or an empty string when it cannot be parsed."""
    try:
        return urlparse(address).hostname or ""
    except ValueError:
        return ""


def derive_title(address: str) -> str:
    """Display label for an address: its host without a leading ``www.``."""
    host = extract_host(address)
    if not host:
        return FALLBACK_TITLE
    return host.removeprefix("www.")
