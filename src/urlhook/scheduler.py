"""Timer scheduling for self-rescheduling work.

Waiting is expressed as a continuation scheduled on the event loop, not
as a sleeping worker, so nothing blocks between retries and a host that
tears down and recreates the loop loses nothing but pending timers
(state is always re-read from storage).
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import Protocol

logger = logging.getLogger(__name__)

Callback = Callable[[], Awaitable[None]]


class TimerHandle(Protocol):
    def cancel(self) -> None: ...


class Scheduler(Protocol):
    """Runs an async callback once after a delay in milliseconds."""

    def call_later(self, delay_ms: int, callback: Callback) -> TimerHandle: ...

    def close(self) -> None: ...


class AsyncioScheduler:
    """Scheduler backed by ``loop.call_later``.

    Callbacks run as tasks; exceptions are logged, never propagated into
    the loop. ``close()`` cancels pending timers and running callbacks.
    """

    def __init__(self) -> None:
        self._timers: set[asyncio.TimerHandle] = set()
        self._tasks: set[asyncio.Task[None]] = set()

    def call_later(self, delay_ms: int, callback: Callback) -> TimerHandle:
        loop = asyncio.get_running_loop()

        def _fire() -> None:
            self._timers.discard(timer)
            task = loop.create_task(callback())
            self._tasks.add(task)
            task.add_done_callback(self._task_done)

        timer = loop.call_later(max(delay_ms, 0) / 1000, _fire)
        self._timers.add(timer)
        return timer

    def _task_done(self, task: asyncio.Task[None]) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error("Scheduled callback failed: %s", exc, exc_info=exc)

    @property
    def pending(self) -> int:
        """Timers not yet fired plus callbacks still running."""
        return len(self._timers) + len(self._tasks)

    def close(self) -> None:
        for timer in self._timers:
            timer.cancel()
        for task in self._tasks:
            task.cancel()
        self._timers.clear()
        self._tasks.clear()
