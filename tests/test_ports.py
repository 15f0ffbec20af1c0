"""Tests for page context and side-effect ports."""

import pytest
from conftest import RecordingClipboard, RecordingNotifier

from urlhook.exceptions import NotFoundError
from urlhook.models import PageMetadata, TabInfo
from urlhook.ports import BestEffortPageContext, MemoryPageContext, SideEffects


class ExplodingPageContext:
    """Page context whose every lookup fails."""

    async def active_tab(self):
        raise RuntimeError("no tabs")

    async def tab(self, tab_id):
        raise RuntimeError("tab gone")

    async def selection_text(self, tab_id):
        raise PermissionError("cannot inject script")

    async def page_metadata(self, tab_id):
        raise RuntimeError("no metadata")

    async def canonical_link(self, tab_id):
        raise RuntimeError("no canonical")


class TestMemoryPageContext:
    """Tests for the in-memory tab registry."""

    @pytest.mark.asyncio
    async def test_register_and_lookup(self):
        context = MemoryPageContext()
        context.register(
            TabInfo(id=1, url="https://a.com/", title="A"),
            selection="text",
            metadata=PageMetadata(title="OG"),
            canonical_link="https://a.com/canonical",
        )

        assert (await context.active_tab()).id == 1
        assert (await context.tab(1)).title == "A"
        assert await context.selection_text(1) == "text"
        assert (await context.page_metadata(1)).title == "OG"
        assert await context.canonical_link(1) == "https://a.com/canonical"

    @pytest.mark.asyncio
    async def test_inactive_registration_keeps_active_tab(self):
        context = MemoryPageContext()
        context.register(TabInfo(id=1))
        context.register(TabInfo(id=2), active=False)

        assert (await context.active_tab()).id == 1

    @pytest.mark.asyncio
    async def test_unknown_tab_raises(self):
        with pytest.raises(NotFoundError):
            await MemoryPageContext().selection_text(5)

    @pytest.mark.asyncio
    async def test_forget(self):
        context = MemoryPageContext()
        context.register(TabInfo(id=1))
        context.forget(1)

        assert await context.active_tab() is None
        with pytest.raises(NotFoundError):
            await context.tab(1)


class TestBestEffortPageContext:
    """Tests for lookups that degrade to defaults."""

    @pytest.mark.asyncio
    async def test_failures_become_defaults(self):
        context = BestEffortPageContext(ExplodingPageContext())

        assert await context.active_tab() is None
        assert await context.tab(1) is None
        assert await context.selection_text(1) == ""
        assert await context.page_metadata(1) == PageMetadata()
        assert await context.canonical_link(1) is None

    @pytest.mark.asyncio
    async def test_empty_canonical_link_is_none(self):
        inner = MemoryPageContext()
        inner.register(TabInfo(id=1), canonical_link="")
        assert await BestEffortPageContext(inner).canonical_link(1) is None


class TestSideEffects:
    """Tests for fire-and-forget notifications and clipboard writes."""

    @pytest.mark.asyncio
    async def test_runs_side_effects(self):
        notifier = RecordingNotifier()
        clipboard = RecordingClipboard()
        effects = SideEffects(notifier, clipboard)

        effects.notify("Title", "Message")
        effects.copy_to_clipboard("https://a.com/")
        await effects.drain()

        assert notifier.notifications == [("Title", "Message")]
        assert clipboard.copied == ["https://a.com/"]

    @pytest.mark.asyncio
    async def test_failures_are_swallowed(self):
        effects = SideEffects(RecordingNotifier(), RecordingClipboard(fail=True))

        effects.copy_to_clipboard("https://a.com/")
        await effects.drain()
