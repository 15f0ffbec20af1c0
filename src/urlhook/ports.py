"""Ports to the host environment: page context, notifications, clipboard.

Page lookups are best-effort. BestEffortPageContext wraps any provider
so that a failing lookup degrades to an empty value and never aborts a
delivery. Notifications and clipboard writes are fire-and-forget side
effects whose failures are logged and dropped.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Coroutine
from typing import Any, Protocol, TypeVar

from urlhook.exceptions import NotFoundError
from urlhook.models import PageMetadata, TabInfo

logger = logging.getLogger(__name__)

T = TypeVar("T")


class PageContext(Protocol):
    """Host page/tab lookups. Implementations may raise; callers wrap them."""

    async def active_tab(self) -> TabInfo | None: ...

    async def tab(self, tab_id: int) -> TabInfo | None: ...

    async def selection_text(self, tab_id: int) -> str: ...

    async def page_metadata(self, tab_id: int) -> PageMetadata: ...

    async def canonical_link(self, tab_id: int) -> str | None: ...


class Notifier(Protocol):
    async def notify(self, title: str, message: str) -> None: ...


class Clipboard(Protocol):
    async def copy(self, text: str) -> None: ...


class BestEffortPageContext:
    """Wraps a PageContext so every lookup degrades to a default on failure."""

    def __init__(self, inner: PageContext) -> None:
        self._inner = inner

    async def _attempt(self, what: str, call: Coroutine[Any, Any, T], default: T) -> T:
        try:
            result = await call
        except Exception as e:
            logger.debug("Page lookup %s failed, using default: %s", what, e)
            return default
        return default if result is None else result

    async def active_tab(self) -> TabInfo | None:
        return await self._attempt("active_tab", self._inner.active_tab(), None)

    async def tab(self, tab_id: int) -> TabInfo | None:
        return await self._attempt("tab", self._inner.tab(tab_id), None)

    async def selection_text(self, tab_id: int) -> str:
        return await self._attempt("selection_text", self._inner.selection_text(tab_id), "")

    async def page_metadata(self, tab_id: int) -> PageMetadata:
        return await self._attempt(
            "page_metadata", self._inner.page_metadata(tab_id), PageMetadata()
        )

    async def canonical_link(self, tab_id: int) -> str | None:
        link = await self._attempt("canonical_link", self._inner.canonical_link(tab_id), None)
        return link or None


class MemoryPageContext:
    """Tab registry fed by the trigger surface (e.g. the HTTP API).

    Each registered tab carries a snapshot of its URL, title, selection,
    metadata and canonical link. Looking up an unknown tab raises
    NotFoundError, which BestEffortPageContext turns into a default.
    """

    def __init__(self) -> None:
        self._tabs: dict[int, TabInfo] = {}
        self._selection: dict[int, str] = {}
        self._metadata: dict[int, PageMetadata] = {}
        self._canonical: dict[int, str | None] = {}
        self._active_id: int | None = None

    def register(
        self,
        tab: TabInfo,
        selection: str = "",
        metadata: PageMetadata | None = None,
        canonical_link: str | None = None,
        active: bool = True,
    ) -> None:
        """Add or replace a tab snapshot, optionally making it the active tab."""
        self._tabs[tab.id] = tab
        self._selection[tab.id] = selection
        self._metadata[tab.id] = metadata or PageMetadata()
        self._canonical[tab.id] = canonical_link
        if active:
            self._active_id = tab.id

    def forget(self, tab_id: int) -> None:
        for table in (self._tabs, self._selection, self._metadata, self._canonical):
            table.pop(tab_id, None)
        if self._active_id == tab_id:
            self._active_id = None

    def _require(self, tab_id: int) -> TabInfo:
        tab = self._tabs.get(tab_id)
        if tab is None:
            raise NotFoundError("tab", str(tab_id))
        return tab

    async def active_tab(self) -> TabInfo | None:
        if self._active_id is None:
            return None
        return self._tabs.get(self._active_id)

    async def tab(self, tab_id: int) -> TabInfo | None:
        return self._require(tab_id)

    async def selection_text(self, tab_id: int) -> str:
        self._require(tab_id)
        return self._selection.get(tab_id, "")

    async def page_metadata(self, tab_id: int) -> PageMetadata:
        self._require(tab_id)
        return self._metadata.get(tab_id) or PageMetadata()

    async def canonical_link(self, tab_id: int) -> str | None:
        self._require(tab_id)
        return self._canonical.get(tab_id)


class LoggingNotifier:
    """Notifier that writes notifications to the log."""

    async def notify(self, title: str, message: str) -> None:
        logger.info("%s: %s", title, message)


class NullNotifier:
    async def notify(self, title: str, message: str) -> None:
        return None


class NullClipboard:
    async def copy(self, text: str) -> None:
        return None


class SideEffects:
    """Runs notifications and clipboard writes without awaiting them.

    Failures are logged at debug level and never reach the caller.
    """

    def __init__(self, notifier: Notifier, clipboard: Clipboard) -> None:
        self.notifier = notifier
        self.clipboard = clipboard
        self._tasks: set[asyncio.Task[None]] = set()

    def notify(self, title: str, message: str) -> None:
        self._spawn("notify", self.notifier.notify(title, message))

    def copy_to_clipboard(self, text: str) -> None:
        self._spawn("clipboard", self.clipboard.copy(text))

    def _spawn(self, what: str, call: Coroutine[Any, Any, None]) -> None:
        task = asyncio.get_running_loop().create_task(call)
        self._tasks.add(task)

        def _done(t: asyncio.Task[None]) -> None:
            self._tasks.discard(t)
            if not t.cancelled() and t.exception() is not None:
                logger.debug("Side effect %s failed: %s", what, t.exception())

        task.add_done_callback(_done)

    async def drain(self) -> None:
        """Wait for in-flight side effects (used on shutdown and in tests)."""
        if self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)
