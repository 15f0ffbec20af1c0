"""Dispatcher: send a URL now, or queue it for retry.

Implements the send-or-enqueue decision:
- resolve the destination and reject disallowed target URLs
- canonicalize the URL and build the signed request
- suppress recent duplicates unless force-sent
- POST immediately; hand transient failures to the queue processor
- record exactly one history entry per call
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING
from urllib.parse import urlsplit

import httpx

from urlhook.canonical import canonicalize
from urlhook.config import REQUEST_TIMEOUT_SECONDS, SOURCE_TAG, RetryPolicy
from urlhook.dedupe import dedupe_key
from urlhook.exceptions import (
    DuplicateSuppressedError,
    NoWebhookConfiguredError,
    QueueFullError,
    URLHookError,
    ValidationError,
)
from urlhook.models import (
    Action,
    DeliverySettings,
    DispatchResult,
    HistoryEntry,
    Job,
    PageMetadata,
    RequestSummary,
    WebhookProfile,
)

from .delivery import post_webhook
from .request import BuiltRequest, build_request

if TYPE_CHECKING:
    from urlhook.dedupe import DedupeCache
    from urlhook.ports import BestEffortPageContext, SideEffects
    from urlhook.queue import JobQueue
    from urlhook.storage.base import HistorySink, SettingsStore

    from .processor import QueueProcessor

logger = logging.getLogger(__name__)

DEFAULT_BLOCKED_SCHEMES = ("chrome", "chrome-extension", "edge", "about", "moz-extension")

WebhookOverride = str | WebhookProfile | None


def resolve_webhook_url(settings: DeliverySettings, override: WebhookOverride = None) -> str:
    """Pick the destination: explicit override, first profile, legacy URL.

    Raises:
        NoWebhookConfiguredError: If none of them is set.
    """
    if isinstance(override, WebhookProfile):
        override = override.url
    url = override or settings.default_webhook_url()
    if not url:
        raise NoWebhookConfiguredError()
    return url


def check_target_url(target_url: str, blocked_schemes: tuple[str, ...] | list[str]) -> None:
    """Reject empty targets and browser-internal schemes.

    Raises:
        ValidationError: If the URL must not be sent.
    """
    if not target_url or not target_url.strip():
        raise ValidationError("target_url", "No URL to send")
    scheme = urlsplit(target_url.strip()).scheme.lower()
    if scheme in blocked_schemes:
        raise ValidationError("target_url", f"Cannot send {scheme}:// or extension URLs")


class Dispatcher:
    """Sends captured URLs to the configured webhook.

    Example:
        ```python
        dispatcher = Dispatcher(
            settings_store=stores.settings,
            history=stores.history,
            dedupe=DedupeCache(stores.dedupe),
            queue=JobQueue(stores.queue),
            processor=processor,
            page_context=BestEffortPageContext(MemoryPageContext()),
            side_effects=SideEffects(LoggingNotifier(), NullClipboard()),
        )
        result = await dispatcher.send_or_enqueue(Action.CLICK, "https://example.com/a")
        ```
    """

    def __init__(
        self,
        *,
        settings_store: SettingsStore,
        history: HistorySink,
        dedupe: DedupeCache,
        queue: JobQueue,
        processor: QueueProcessor,
        page_context: BestEffortPageContext,
        side_effects: SideEffects,
        client: httpx.AsyncClient | None = None,
        timeout_seconds: float = REQUEST_TIMEOUT_SECONDS,
        retry: RetryPolicy | None = None,
        blocked_schemes: tuple[str, ...] | list[str] = DEFAULT_BLOCKED_SCHEMES,
        source: str = SOURCE_TAG,
    ) -> None:
        self._settings_store = settings_store
        self._history = history
        self._dedupe = dedupe
        self._queue = queue
        self._processor = processor
        self._page = page_context
        self._effects = side_effects
        self._client = client
        self._timeout = timeout_seconds
        self._retry = retry or RetryPolicy()
        self._blocked_schemes = tuple(blocked_schemes)
        self._source = source

    async def send_or_enqueue(
        self,
        action: Action,
        target_url: str,
        tab_id: int | None = None,
        webhook_override: WebhookOverride = None,
        force_send: bool = False,
    ) -> DispatchResult:
        """Send ``target_url`` to the webhook, queueing it on transient failure.

        Args:
            action: Trigger that produced the send.
            target_url: URL to send (canonicalized before use).
            tab_id: Tab the URL came from, for canonical link, selection,
                title and metadata lookups.
            webhook_override: Destination URL or profile overriding the default.
            force_send: Skip duplicate suppression.

        Returns:
            DispatchResult; ``ok`` only for a 2xx response.
        """
        settings = self._settings_store.load()

        try:
            webhook_url = resolve_webhook_url(settings, webhook_override)
            check_target_url(target_url, self._blocked_schemes)
        except URLHookError as e:
            logger.info("Send rejected (%s): %s", e.code, e.message)
            self._record(action, target_url, error=e.message)
            return DispatchResult.from_error(e)

        canonical_url = await self._canonical_url(target_url, tab_id, settings)
        request = await self._build(canonical_url, tab_id, settings)

        key = dedupe_key(webhook_url, request.body)
        if not force_send and await self._dedupe.should_suppress(key):
            suppressed = DuplicateSuppressedError(self._dedupe.ttl_ms)
            self._record(action, canonical_url, request=request, error=suppressed.message)
            result = DispatchResult.from_error(suppressed)
            return result.model_copy(update={"can_retry": True})

        self._effects.copy_to_clipboard(canonical_url)

        outcome = await post_webhook(
            webhook_url,
            request.body,
            request.headers,
            client=self._client,
            timeout_seconds=self._timeout,
        )
        error = outcome.error
        error_code = outcome.error_code

        if outcome.retryable:
            job = Job(
                body=request.body,
                headers=request.headers,
                webhook_url=webhook_url,
                dedupe_key=key,
                target_url=canonical_url,
                action=action,
            )
            if await self._queue.enqueue(job):
                self._processor.schedule(self._retry.delay(job.attempt))
            else:
                full = QueueFullError(self._queue.max_size)
                error, error_code = full.message, full.code

        self._record(
            action,
            canonical_url,
            request=request,
            http_status=outcome.status,
            error=error,
        )

        if outcome.ok and settings.show_notifications:
            host = urlsplit(webhook_url).hostname or webhook_url
            self._effects.notify("URL sent", f"Successfully sent to {host}")

        return DispatchResult(
            ok=outcome.ok,
            status=outcome.status,
            error=error,
            error_code=error_code,
        )

    async def _canonical_url(
        self, target_url: str, tab_id: int | None, settings: DeliverySettings
    ) -> str:
        declared = None
        if settings.use_canonical and tab_id is not None:
            declared = await self._page.canonical_link(tab_id)
        return canonicalize(target_url, settings.strip_params, declared)

    async def _build(
        self, canonical_url: str, tab_id: int | None, settings: DeliverySettings
    ) -> BuiltRequest:
        selection = ""
        og_data: PageMetadata | None = None
        tab = None
        if tab_id is not None:
            if settings.include_selection:
                selection = await self._page.selection_text(tab_id)
            if settings.include_og_data:
                og_data = await self._page.page_metadata(tab_id)
            tab = await self._page.tab(tab_id)

        return build_request(
            canonical_url,
            tab,
            settings,
            selection,
            og_data,
            source=self._source,
        )

    def _record(
        self,
        action: Action,
        target_url: str,
        *,
        request: BuiltRequest | None = None,
        http_status: int | None = None,
        error: str | None = None,
    ) -> None:
        summary = (
            RequestSummary.for_request(request.body, request.headers)
            if request is not None
            else RequestSummary()
        )
        self._history.append(
            HistoryEntry(
                action=action,
                target_url=target_url,
                http_status=http_status,
                error=error,
                request_summary=summary,
            )
        )
