"""Pytest configuration and shared fixtures."""

from __future__ import annotations

import sys
from collections.abc import Callable
from dataclasses import dataclass, field
from pathlib import Path

import httpx
import pytest

from urlhook.config import RetryPolicy
from urlhook.dedupe import DedupeCache
from urlhook.models import DeliverySettings
from urlhook.ports import BestEffortPageContext, MemoryPageContext, SideEffects
from urlhook.queue import JobQueue
from urlhook.scheduler import Callback
from urlhook.storage import StateStores, memory_stores
from urlhook.webhooks import Dispatcher, QueueProcessor

# Add tests directory to path so test modules can import these helpers
tests_dir = Path(__file__).parent
if str(tests_dir) not in sys.path:
    sys.path.insert(0, str(tests_dir))

WEBHOOK_URL = "https://hooks.example.com/webhook/abc"


class RecordedTimer:
    """Timer handle returned by RecordingScheduler."""

    def __init__(self, delay_ms: int, callback: Callback) -> None:
        self.delay_ms = delay_ms
        self.callback = callback
        self.cancelled = False
        self.fired = False

    def cancel(self) -> None:
        self.cancelled = True


class RecordingScheduler:
    """Scheduler that records timers and fires them only on request.

    Lets tests assert on requested delays and step the queue processor
    one pass at a time without waiting.
    """

    def __init__(self) -> None:
        self.timers: list[RecordedTimer] = []
        self.closed = False

    def call_later(self, delay_ms: int, callback: Callback) -> RecordedTimer:
        timer = RecordedTimer(delay_ms, callback)
        self.timers.append(timer)
        return timer

    def close(self) -> None:
        self.closed = True
        for timer in self.pending:
            timer.cancel()

    @property
    def delays(self) -> list[int]:
        """Delays of every timer requested so far, in order."""
        return [timer.delay_ms for timer in self.timers]

    @property
    def pending(self) -> list[RecordedTimer]:
        return [t for t in self.timers if not t.cancelled and not t.fired]

    async def run_next(self) -> bool:
        """Fire the oldest pending timer. Returns False if none is pending."""
        pending = self.pending
        if not pending:
            return False
        timer = pending[0]
        timer.fired = True
        await timer.callback()
        return True

    async def run_all(self, limit: int = 50) -> int:
        """Fire timers until none is pending. Returns how many fired."""
        fired = 0
        while fired < limit and await self.run_next():
            fired += 1
        return fired


class FakeClock:
    """Injectable epoch-milliseconds clock."""

    def __init__(self, start_ms: float = 1_700_000_000_000.0) -> None:
        self.now = start_ms

    def __call__(self) -> float:
        return self.now

    def advance(self, ms: float) -> None:
        self.now += ms


class StubWebhook:
    """httpx.MockTransport handler replaying a scripted list of outcomes.

    Each outcome is a status code or an exception to raise. The last
    outcome repeats once the script runs out.
    """

    def __init__(self, *outcomes: int | Exception) -> None:
        self.outcomes: list[int | Exception] = list(outcomes) or [200]
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        outcome = self.outcomes.pop(0) if len(self.outcomes) > 1 else self.outcomes[0]
        if isinstance(outcome, Exception):
            raise outcome
        return httpx.Response(outcome, text="ok")

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(self))

    @property
    def bodies(self) -> list[str]:
        return [r.content.decode("utf-8") for r in self.requests]


class RecordingNotifier:
    def __init__(self) -> None:
        self.notifications: list[tuple[str, str]] = []

    async def notify(self, title: str, message: str) -> None:
        self.notifications.append((title, message))


class RecordingClipboard:
    def __init__(self, fail: bool = False) -> None:
        self.copied: list[str] = []
        self.fail = fail

    async def copy(self, text: str) -> None:
        if self.fail:
            raise RuntimeError("clipboard unavailable")
        self.copied.append(text)


@dataclass
class Engine:
    """A dispatcher and queue processor wired to in-memory fakes."""

    stores: StateStores
    scheduler: RecordingScheduler
    clock: FakeClock
    webhook: StubWebhook
    page: MemoryPageContext
    notifier: RecordingNotifier
    clipboard: RecordingClipboard
    queue: JobQueue
    dedupe: DedupeCache
    processor: QueueProcessor
    side_effects: SideEffects
    dispatcher: Dispatcher
    retry: RetryPolicy = field(default_factory=RetryPolicy)

    def history(self):
        return self.stores.history.entries()


EngineFactory = Callable[..., Engine]


@pytest.fixture
def make_engine() -> EngineFactory:
    """Factory building an Engine around a StubWebhook.

    Example:
        engine = make_engine(StubWebhook(503, 200), settings=DeliverySettings(...))
    """

    def _make(
        webhook: StubWebhook | None = None,
        settings: DeliverySettings | None = None,
        queue_max_size: int = 50,
        clipboard: RecordingClipboard | None = None,
    ) -> Engine:
        webhook = webhook or StubWebhook(200)
        settings = settings or DeliverySettings(webhook_url=WEBHOOK_URL)
        stores = memory_stores(settings)
        scheduler = RecordingScheduler()
        clock = FakeClock()
        client = webhook.client()
        retry = RetryPolicy()
        page = MemoryPageContext()
        notifier = RecordingNotifier()
        clipboard = clipboard or RecordingClipboard()

        queue = JobQueue(stores.queue, max_size=queue_max_size)
        dedupe = DedupeCache(stores.dedupe, clock=clock)
        processor = QueueProcessor(queue, stores.history, scheduler, client=client, retry=retry)
        side_effects = SideEffects(notifier, clipboard)
        dispatcher = Dispatcher(
            settings_store=stores.settings,
            history=stores.history,
            dedupe=dedupe,
            queue=queue,
            processor=processor,
            page_context=BestEffortPageContext(page),
            side_effects=side_effects,
            client=client,
            retry=retry,
        )
        return Engine(
            stores=stores,
            scheduler=scheduler,
            clock=clock,
            webhook=webhook,
            page=page,
            notifier=notifier,
            clipboard=clipboard,
            queue=queue,
            dedupe=dedupe,
            processor=processor,
            side_effects=side_effects,
            dispatcher=dispatcher,
            retry=retry,
        )

    return _make
