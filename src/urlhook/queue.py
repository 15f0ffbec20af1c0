"""Bounded FIFO retry queue over a QueueStore.

Every operation is a read-modify-write of the persisted list. An
asyncio.Lock serializes those cycles within the process so that a
dispatcher enqueue racing a processor pass cannot drop either write.
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING

from urlhook.config import MAX_QUEUE_SIZE

if TYPE_CHECKING:
    from urlhook.models import Job
    from urlhook.storage.base import QueueStore

logger = logging.getLogger(__name__)


class JobQueue:
    """Retry queue: insert at tail, process at head, at most ``max_size`` jobs."""

    def __init__(self, store: QueueStore, max_size: int = MAX_QUEUE_SIZE) -> None:
        self._store = store
        self._max_size = max_size
        self._lock = asyncio.Lock()

    @property
    def max_size(self) -> int:
        return self._max_size

    async def enqueue(self, job: Job) -> bool:
        """Append a job.

        Returns:
            False, with the queue unchanged, when the queue is full.
        """
        async with self._lock:
            jobs = self._store.load()
            if len(jobs) >= self._max_size:
                logger.warning(
                    "Queue is full (%d items). Cannot add more failed requests.", self._max_size
                )
                return False
            jobs.append(job)
            self._store.save(jobs)
            logger.info("Queued job %s for retry (%d in queue)", job.id, len(jobs))
            return True

    async def peek(self) -> Job | None:
        """The head job, or None when empty."""
        async with self._lock:
            jobs = self._store.load()
            return jobs[0] if jobs else None

    async def replace(self, job: Job) -> bool:
        """Write ``job`` back in place of the stored job with the same id.

        Returns:
            False if the job is no longer queued (e.g. the queue was cleared).
        """
        async with self._lock:
            jobs = self._store.load()
            for index, existing in enumerate(jobs):
                if existing.id == job.id:
                    jobs[index] = job
                    self._store.save(jobs)
                    return True
            return False

    async def remove(self, job_id: str) -> bool:
        """Remove a job by id. Returns False if it was not queued."""
        async with self._lock:
            jobs = self._store.load()
            remaining = [job for job in jobs if job.id != job_id]
            if len(remaining) == len(jobs):
                return False
            self._store.save(remaining)
            return True

    async def jobs(self) -> list[Job]:
        async with self._lock:
            return self._store.load()

    async def size(self) -> int:
        async with self._lock:
            return len(self._store.load())

    async def clear(self) -> int:
        """Drop every queued job. Returns how many were removed."""
        async with self._lock:
            count = len(self._store.load())
            self._store.save([])
            if count:
                logger.info("Cleared %d queued jobs", count)
            return count
