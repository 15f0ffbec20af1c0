"""Tests for the asyncio timer scheduler."""

import asyncio

import pytest

from urlhook.scheduler import AsyncioScheduler


class TestAsyncioScheduler:
    """Tests for AsyncioScheduler."""

    @pytest.mark.asyncio
    async def test_runs_callback_after_delay(self):
        scheduler = AsyncioScheduler()
        fired = asyncio.Event()

        async def callback():
            fired.set()

        scheduler.call_later(10, callback)
        await asyncio.wait_for(fired.wait(), timeout=1)

        assert fired.is_set()

    @pytest.mark.asyncio
    async def test_cancelled_timer_does_not_fire(self):
        scheduler = AsyncioScheduler()
        calls = []

        async def callback():
            calls.append(1)

        handle = scheduler.call_later(10, callback)
        handle.cancel()
        await asyncio.sleep(0.05)

        assert calls == []

    @pytest.mark.asyncio
    async def test_close_cancels_pending(self):
        scheduler = AsyncioScheduler()
        calls = []

        async def callback():
            calls.append(1)

        scheduler.call_later(20, callback)
        assert scheduler.pending == 1
        scheduler.close()
        await asyncio.sleep(0.05)

        assert calls == []
        assert scheduler.pending == 0

    @pytest.mark.asyncio
    async def test_callback_errors_do_not_propagate(self):
        """A failing callback is logged and later timers still run."""
        scheduler = AsyncioScheduler()
        done = asyncio.Event()

        async def failing():
            raise RuntimeError("boom")

        async def succeeding():
            done.set()

        scheduler.call_later(0, failing)
        scheduler.call_later(10, succeeding)
        await asyncio.wait_for(done.wait(), timeout=1)

        assert done.is_set()
