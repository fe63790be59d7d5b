# === FILE: swipe_deck/engine.py ===
"""Browsing-engine collaborator.

:class:`BrowsingEngine` / :class:`SessionHandle` describe what the session cache
needs from an engine. :class:`HttpBrowsingEngine` is a headless implementation
on top of aiohttp: every handle keeps its own navigation state while all of
them share one ``ClientSession`` and ``CookieJar``, so a login performed in one
session is visible to the others.
"""
from __future__ import annotations

import asyncio
from typing import Any, Callable, List, Optional, Protocol

from aiohttp import ClientError, ClientSession, ClientTimeout, CookieJar
from bs4 import BeautifulSoup

from swipe_deck.logger import get_logger

__all__ = (
    "FinishedCallback",
    "FailedCallback",
    "SessionHandle",
    "BrowsingEngine",
    "SharedContext",
    "HttpSession",
    "HttpBrowsingEngine",
)

log = get_logger("engine")

FinishedCallback = Callable[[str], None]
FailedCallback = Callable[[str, BaseException], None]


class SessionHandle(Protocol):
    current_address: Optional[str]

    def navigate(self, address: str) -> None: ...

    def stop_loading(self) -> None: ...

    def close(self) -> None: ...

    def on_navigation_finished(self, callback: FinishedCallback) -> None: ...

    def on_navigation_failed(self, callback: FailedCallback) -> None: ...


class BrowsingEngine(Protocol):
    def create_shared_context(self) -> Any: ...

    def create_session(self, shared_context: Any) -> SessionHandle: ...


class SharedContext:
    """Cookie jar and connection pool shared by every session of one cache."""

    def __init__(self, user_agent: str, timeout: float) -> None:
        self.user_agent = user_agent
        self.timeout = timeout
        self._client: Optional[ClientSession] = None

    def client(self) -> ClientSession:
        """Lazily opens the aiohttp session; must run inside the owning event loop."""
        if self._client is None or self._client.closed:
            self._client = ClientSession(
                cookie_jar=CookieJar(unsafe=True),
                timeout=ClientTimeout(total=self.timeout),
                headers={"User-Agent": self.user_agent},
                raise_for_status=False,
            )
        return self._client

    @property
    def cookie_jar(self) -> Optional[CookieJar]:
        return None if self._client is None else self._client.cookie_jar

    async def close(self) -> None:
        if self._client is not None and not self._client.closed:
            await self._client.close()


def _document_title(html: str) -> Optional[str]:
    soup = BeautifulSoup(html, "html.parser")
    if soup.title is None or soup.title.string is None:
        return None
    return soup.title.string.strip() or None


class HttpSession:
    """One headless browsing session.

    ``navigate`` starts a request task on the running loop; a newer
    ``navigate`` cancels the previous in-flight task.
    """

    def __init__(self, context: SharedContext) -> None:
        self._context = context
        self.current_address: Optional[str] = None
        self.document_title: Optional[str] = None
        self.status: Optional[int] = None
        self.history: List[str] = []
        self.closed = False
        self._task: Optional[asyncio.Task[None]] = None
        self._finished: List[FinishedCallback] = []
        self._failed: List[FailedCallback] = []

    def on_navigation_finished(self, callback: FinishedCallback) -> None:
        self._finished.append(callback)

    def on_navigation_failed(self, callback: FailedCallback) -> None:
        self._failed.append(callback)

    @property
    def loading(self) -> bool:
        return self._task is not None and not self._task.done()

    def navigate(self, address: str) -> None:
        if self.closed:
            raise RuntimeError("session is closed")
        self.stop_loading()
        self.current_address = address
        self.history.append(address)
        self._task = asyncio.get_running_loop().create_task(self._load(address))

    def stop_loading(self) -> None:
        if self._task is not None and not self._task.done():
            self._task.cancel()
        self._task = None

    def close(self) -> None:
        self.stop_loading()
        self.closed = True

    async def wait(self) -> None:
        """Waits for the current navigation, if any."""
        if self._task is not None:
            await asyncio.gather(self._task, return_exceptions=True)

    async def _load(self, address: str) -> None:
        try:
            async with self._context.client().get(address) as resp:
                self.status = resp.status
                resp.raise_for_status()
                mime = resp.headers.get("Content-Type", "").split(";", 1)[0].lower()
                body = await resp.text(errors="replace") if mime == "text/html" else ""
        except (ClientError, asyncio.TimeoutError, LookupError) as exc:
            # LookupError: the declared charset is unknown to the codec registry
            log.debug("Navigation to %s failed: %r", address, exc)
            for callback in list(self._failed):
                callback(address, exc)
            return

        self.document_title = _document_title(body) if body else None
        log.debug("Loaded %s (HTTP %s, title=%r)", address, self.status, self.document_title)
        for callback in list(self._finished):
            callback(address)


class HttpBrowsingEngine:
    """Factory of :class:`HttpSession` objects; owns the shared contexts it hands out."""

    def __init__(self, user_agent: str = "SwipeDeck/1.0", timeout: float = 30.0) -> None:
        self.user_agent = user_agent
        self.timeout = timeout
        self._contexts: List[SharedContext] = []

    @classmethod
    def from_config(cls, config) -> HttpBrowsingEngine:
        return cls(user_agent=config.user_agent, timeout=config.navigation_timeout)

    def create_shared_context(self) -> SharedContext:
        context = SharedContext(self.user_agent, self.timeout)
        self._contexts.append(context)
        return context

    def create_session(self, shared_context: SharedContext) -> HttpSession:
        return HttpSession(shared_context)

    async def close(self) -> None:
        for context in self._contexts:
            await context.close()

    async def __aenter__(self) -> HttpBrowsingEngine:
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()
