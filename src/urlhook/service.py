"""urlhook service layer.

Wires storage, page context, side effects and the delivery engine
together and exposes the trigger surface:
- send_page(), send_link(): context menu triggers
- send_shortcut(): keyboard shortcut trigger
- send_active_tab(): explicit "send active tab" request
- retry_queue(): run a queue pass now
- handle_message(): route host messages to the triggers above

Example:
    ```python
    from urlhook.service import URLHookService

    async with URLHookService.create() as hook:
        hook.settings_manager.update(webhook_url="https://n8n.example.com/webhook/abc")
        result = await hook.send_link("https://example.com/article?utm_source=x")
        print(result.ok, result.status, result.error)
    ```
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

import httpx
from pydantic import BaseModel, Field

from urlhook.config import Settings
from urlhook.dedupe import DedupeCache
from urlhook.logging import bind_context, get_logger, unbind_context
from urlhook.models import Action, DispatchResult, HistoryEntry, Job, WebhookProfile
from urlhook.ports import (
    BestEffortPageContext,
    Clipboard,
    LoggingNotifier,
    MemoryPageContext,
    Notifier,
    NullClipboard,
    PageContext,
    SideEffects,
)
from urlhook.queue import JobQueue
from urlhook.scheduler import AsyncioScheduler, Scheduler
from urlhook.storage import SettingsManager, StateStores, json_file_stores, memory_stores
from urlhook.webhooks import Dispatcher, QueueProcessor, probe_webhook

logger = get_logger(__name__)

FAILURE_TITLE = "Failed to send URL"


class WebhookTestResult(BaseModel):
    """Outcome of sending the test payload to one webhook."""

    name: str
    url: str
    ok: bool
    status: int | None = None
    error: str | None = None


class WebhookTestReport(BaseModel):
    """Outcome of testing every configured profile."""

    results: list[WebhookTestResult] = Field(default_factory=list)
    succeeded: int = 0
    failed: int = 0


@dataclass
class URLHookService:
    """High-level urlhook service.

    Uses dependency injection for every collaborator so tests can swap
    in fakes (a recording scheduler, httpx.MockTransport clients, a
    failing clipboard).

    Attributes:
        settings: Runtime configuration.
        stores: Queue, dedupe, settings and history repositories.
        page_context: Tab/page lookups (wrapped as best-effort).
        notifier: Notification port.
        clipboard: Clipboard port.
        scheduler: Timer scheduler for queue passes.
        client: Shared HTTP client (None = one client per request).
    """

    settings: Settings
    stores: StateStores
    page_context: PageContext = field(default_factory=MemoryPageContext)
    notifier: Notifier = field(default_factory=LoggingNotifier)
    clipboard: Clipboard = field(default_factory=NullClipboard)
    scheduler: Scheduler = field(default_factory=AsyncioScheduler)
    client: httpx.AsyncClient | None = None

    _owns_client: bool = field(default=False, init=False, repr=False)

    def __post_init__(self) -> None:
        self.queue = JobQueue(self.stores.queue, self.settings.queue_max_size)
        self.dedupe = DedupeCache(self.stores.dedupe, self.settings.dedupe_ttl_ms)
        self.settings_manager = SettingsManager(self.stores.settings)
        self.side_effects = SideEffects(self.notifier, self.clipboard)
        self.context = BestEffortPageContext(self.page_context)
        self.processor = QueueProcessor(
            self.queue,
            self.stores.history,
            self.scheduler,
            client=self.client,
            retry=self.settings.retry,
            timeout_seconds=self.settings.request_timeout_seconds,
        )
        self.dispatcher = Dispatcher(
            settings_store=self.stores.settings,
            history=self.stores.history,
            dedupe=self.dedupe,
            queue=self.queue,
            processor=self.processor,
            page_context=self.context,
            side_effects=self.side_effects,
            client=self.client,
            timeout_seconds=self.settings.request_timeout_seconds,
            retry=self.settings.retry,
            blocked_schemes=self.settings.blocked_url_schemes,
            source=self.settings.source_tag,
        )

    @classmethod
    def create(cls, settings: Settings | None = None) -> URLHookService:
        """Create a service with default collaborators.

        State is kept in ``settings.state_file`` when set, in memory otherwise.
        """
        if settings is None:
            settings = Settings()

        if settings.state_file:
            stores = json_file_stores(settings.state_file, settings.history_max_size)
        else:
            stores = memory_stores(history_max_size=settings.history_max_size)

        client = httpx.AsyncClient(
            timeout=settings.request_timeout_seconds,
            follow_redirects=True,
        )
        service = cls(settings=settings, stores=stores, client=client)
        service._owns_client = True
        return service

    async def initialize(self) -> None:
        """Resume persisted jobs after a short startup delay."""
        pending = await self.queue.size()
        logger.info("urlhook service starting", queued_jobs=pending)
        self.processor.schedule(self.settings.startup_retry_delay_ms)

    async def close(self) -> None:
        """Cancel pending passes, flush side effects and close the HTTP client."""
        self.scheduler.close()
        await self.side_effects.drain()
        if self._owns_client and self.client is not None:
            await self.client.aclose()

    async def __aenter__(self) -> URLHookService:
        await self.initialize()
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()

    # Triggers

    async def send_page(self, page_url: str | None = None, tab_id: int | None = None) -> DispatchResult:
        """Page context menu: send the page URL (or the tab's URL)."""
        target = page_url
        if not target and tab_id is not None:
            tab = await self.context.tab(tab_id)
            target = tab.url if tab else ""
        return await self._menu_trigger(Action.PAGE, target or "", tab_id)

    async def send_link(self, link_url: str, tab_id: int | None = None) -> DispatchResult:
        """Link context menu: send the clicked link."""
        return await self._menu_trigger(Action.LINK, link_url, tab_id)

    async def send_shortcut(self) -> DispatchResult:
        """Keyboard shortcut: send the active tab."""
        tab = await self.context.active_tab()
        if tab is None:
            return _no_active_tab()
        return await self._dispatch(Action.SHORTCUT, tab.url, tab.id)

    async def send_active_tab(
        self,
        webhook_override: str | WebhookProfile | None = None,
        force_send: bool = False,
    ) -> DispatchResult:
        """Explicit request to send the active tab, optionally forced."""
        tab = await self.context.active_tab()
        if tab is None:
            return _no_active_tab()
        return await self._dispatch(
            Action.CLICK,
            tab.url,
            tab.id,
            webhook_override=webhook_override,
            force_send=force_send,
        )

    async def send_url(
        self,
        target_url: str,
        action: Action = Action.CLICK,
        tab_id: int | None = None,
        webhook_override: str | WebhookProfile | None = None,
        force_send: bool = False,
    ) -> DispatchResult:
        """Send an explicit URL, as the given trigger."""
        if action in (Action.PAGE, Action.LINK):
            return await self._menu_trigger(action, target_url, tab_id)
        return await self._dispatch(
            action,
            target_url,
            tab_id,
            webhook_override=webhook_override,
            force_send=force_send,
        )

    async def retry_queue(self) -> int:
        """Run a queue pass now. Returns the number of jobs still queued."""
        await self.processor.process_queue()
        return await self.queue.size()

    async def handle_message(self, message: dict[str, Any]) -> dict[str, Any]:
        """Route a host message (SEND_ACTIVE, SEND_LINK, RETRY_QUEUE)."""
        kind = message.get("type")
        if kind == "SEND_ACTIVE":
            result = await self.send_active_tab(
                webhook_override=message.get("webhookUrl"),
                force_send=bool(message.get("forceSend", False)),
            )
            return result.model_dump()
        if kind == "SEND_LINK" and message.get("url"):
            tab = await self.context.active_tab()
            result = await self.send_link(message["url"], tab.id if tab else None)
            return result.model_dump()
        if kind == "RETRY_QUEUE":
            await self.retry_queue()
            return {"ok": True}
        return {"ok": False, "error": f"Unknown message type: {kind}"}

    async def _menu_trigger(self, action: Action, target_url: str, tab_id: int | None) -> DispatchResult:
        result = await self._dispatch(action, target_url, tab_id)
        if not result.ok and result.error:
            self.side_effects.notify(FAILURE_TITLE, result.error)
        return result

    async def _dispatch(
        self,
        action: Action,
        target_url: str,
        tab_id: int | None,
        **options: Any,
    ) -> DispatchResult:
        bind_context(action=action.value)
        try:
            return await self.dispatcher.send_or_enqueue(action, target_url, tab_id, **options)
        except Exception as e:
            logger.exception("Trigger failed", target_url=target_url, error=str(e))
            self.side_effects.notify("Error", "Failed to send URL. Check settings.")
            return DispatchResult(ok=False, error=str(e), error_code="urlhook_error")
        finally:
            unbind_context("action")

    # Queue and history

    async def queued_jobs(self) -> list[Job]:
        return await self.queue.jobs()

    async def clear_queue(self) -> int:
        return await self.queue.clear()

    def history(self, limit: int | None = None) -> list[HistoryEntry]:
        return self.stores.history.entries(limit)

    def clear_history(self) -> None:
        self.stores.history.clear()

    # Webhook testing

    async def test_webhook(self, url: str, name: str = "") -> WebhookTestResult:
        """POST the test payload to one URL."""
        outcome = await probe_webhook(
            url,
            client=self.client,
            timeout_seconds=self.settings.request_timeout_seconds,
        )
        return WebhookTestResult(
            name=name or url,
            url=url,
            ok=outcome.ok,
            status=outcome.status,
            error=outcome.error,
        )

    async def test_all_webhooks(self) -> WebhookTestReport:
        """Test every configured profile in order."""
        report = WebhookTestReport()
        for profile in self.settings_manager.load().webhook_profiles:
            result = await self.test_webhook(profile.url, profile.name)
            report.results.append(result)
            if result.ok:
                report.succeeded += 1
            else:
                report.failed += 1
        logger.info("Webhook test finished", succeeded=report.succeeded, failed=report.failed)
        return report


def _no_active_tab() -> DispatchResult:
    return DispatchResult(ok=False, error="No tab is currently active", error_code="no_active_tab")
