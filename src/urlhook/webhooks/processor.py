"""Queue processor: the retry state machine for queued jobs.

Each pass handles the head job only:

    Queued -> Attempting -> Succeeded       (removed, next pass now)
                         -> RetryScheduled  (written back with attempt+1,
                                             next pass after backoff)
                         -> Dropped         (removed, terminal history)

Passes re-enter through the scheduler rather than looping, and every pass
starts from the persisted queue, so processing resumes after a restart.
History entries written here carry the trigger that queued the job.
"""

from __future__ import annotations

import logging
import time
from typing import TYPE_CHECKING

import httpx

from urlhook.config import REQUEST_TIMEOUT_SECONDS, RetryPolicy
from urlhook.models import HistoryEntry, Job, RequestSummary

from .delivery import DeliveryOutcome, post_webhook

if TYPE_CHECKING:
    from urlhook.queue import JobQueue
    from urlhook.scheduler import Scheduler, TimerHandle
    from urlhook.storage.base import HistorySink

logger = logging.getLogger(__name__)


class QueueProcessor:
    """Drives retries for the persisted queue, one job at a time.

    A run-guard flag allows a single active pass: it is checked and set
    with no ``await`` in between, so a second trigger while a pass is in
    flight is a no-op. At most one pass is pending on the scheduler.

    Example:
        ```python
        processor = QueueProcessor(queue, stores.history, scheduler)
        processor.schedule(1000)       # first pass in one second
        await processor.process_queue()  # or run a pass now
        ```
    """

    def __init__(
        self,
        queue: JobQueue,
        history: HistorySink,
        scheduler: Scheduler,
        *,
        client: httpx.AsyncClient | None = None,
        retry: RetryPolicy | None = None,
        timeout_seconds: float = REQUEST_TIMEOUT_SECONDS,
    ) -> None:
        self._queue = queue
        self._history = history
        self._scheduler = scheduler
        self._client = client
        self._retry = retry or RetryPolicy()
        self._timeout = timeout_seconds
        self._running = False
        self._pending: TimerHandle | None = None
        self._pending_due: float | None = None

    @property
    def running(self) -> bool:
        return self._running

    def schedule(self, delay_ms: int) -> None:
        """Schedule a pass after ``delay_ms``.

        A pending pass that fires at or before the new one is kept;
        otherwise it is replaced, so only one timer chain exists.
        """
        due = time.monotonic() * 1000 + delay_ms
        if self._pending is not None and self._pending_due is not None:
            if self._pending_due <= due:
                return
            self._pending.cancel()

        self._pending_due = due
        self._pending = self._scheduler.call_later(delay_ms, self._fire)
        logger.debug("Queue pass scheduled in %d ms", delay_ms)

    async def _fire(self) -> None:
        self._pending = None
        self._pending_due = None
        await self.process_queue()

    async def process_queue(self) -> None:
        """Run one pass over the head of the queue."""
        if self._running:
            logger.debug("Queue pass already running, skipping")
            return
        self._running = True
        try:
            await self._process_head()
        finally:
            self._running = False

    async def _process_head(self) -> None:
        job = await self._queue.peek()
        if job is None:
            return

        outcome = await self._deliver(job)

        if outcome.ok:
            await self._queue.remove(job.id)
            self._record(job, outcome)
            logger.info("Queued job %s delivered after %d retries", job.id, job.attempt)
            self.schedule(0)
            return

        retried = job.next_attempt()
        if retried.attempt > self._retry.max_attempts or not outcome.retryable:
            await self._queue.remove(job.id)
            error = outcome.error
            if outcome.retryable:
                error = f"Failed permanently after {retried.attempt} retry attempts ({error})"
            self._record(retried, outcome, error=error)
            logger.warning("Dropped job %s: %s", job.id, error)
            self.schedule(0)
            return

        if not await self._queue.replace(retried):
            logger.info("Job %s left the queue during delivery, not rescheduling it", job.id)
            self.schedule(0)
            return

        delay = self._retry.delay(retried.attempt)
        logger.info(
            "Job %s failed (%s), retry %d in %d ms",
            job.id,
            outcome.error,
            retried.attempt,
            delay,
        )
        self.schedule(delay)

    async def _deliver(self, job: Job) -> DeliveryOutcome:
        return await post_webhook(
            job.webhook_url,
            job.body,
            job.headers,
            client=self._client,
            timeout_seconds=self._timeout,
        )

    def _record(self, job: Job, outcome: DeliveryOutcome, error: str | None = None) -> None:
        self._history.append(
            HistoryEntry(
                action=job.action,
                target_url=job.target_url,
                http_status=outcome.status,
                error=error,
                request_summary=RequestSummary.for_request(job.body, job.headers),
            )
        )
