"""Tests for URLHookService triggers and management operations."""

from unittest.mock import AsyncMock

import httpx
import pytest
from conftest import WEBHOOK_URL, RecordingNotifier, RecordingScheduler, StubWebhook

from urlhook.config import Settings
from urlhook.models import Action, DeliverySettings, TabInfo, WebhookProfile
from urlhook.service import URLHookService
from urlhook.storage import JSONQueueStore, MemoryQueueStore, memory_stores
from urlhook.webhooks.delivery import TEST_PAYLOAD

PAGE_URL = "https://example.com/story?utm_medium=social&id=1"


def make_service(
    webhook: StubWebhook | None = None,
    delivery: DeliverySettings | None = None,
) -> URLHookService:
    webhook = webhook or StubWebhook(200)
    return URLHookService(
        settings=Settings(_env_file=None),
        stores=memory_stores(delivery or DeliverySettings(webhook_url=WEBHOOK_URL)),
        notifier=RecordingNotifier(),
        scheduler=RecordingScheduler(),
        client=webhook.client(),
    )


class TestLifecycle:
    """Tests for create/initialize/close."""

    @pytest.mark.asyncio
    async def test_initialize_schedules_startup_pass(self):
        """Persisted jobs are resumed one second after startup."""
        service = make_service()

        await service.initialize()

        assert service.scheduler.delays == [1000]

    @pytest.mark.asyncio
    async def test_context_manager_closes_scheduler(self):
        service = make_service()

        async with service as hook:
            assert hook is service

        assert service.scheduler.closed

    @pytest.mark.asyncio
    async def test_create_with_state_file(self, tmp_path):
        """A configured state file selects the JSON backend."""
        settings = Settings(_env_file=None, state_file=str(tmp_path / "state.json"))
        service = URLHookService.create(settings)

        assert isinstance(service.stores.queue, JSONQueueStore)
        await service.close()
        assert service.client is not None and service.client.is_closed

    @pytest.mark.asyncio
    async def test_create_in_memory(self):
        service = URLHookService.create(Settings(_env_file=None))

        assert isinstance(service.stores.queue, MemoryQueueStore)
        await service.close()

    @pytest.mark.asyncio
    async def test_injected_client_left_open(self):
        service = make_service()
        await service.close()
        assert not service.client.is_closed


class TestTriggers:
    """Tests for the send triggers."""

    @pytest.mark.asyncio
    async def test_send_link(self):
        webhook = StubWebhook(200)
        service = make_service(webhook)

        result = await service.send_link(PAGE_URL)

        assert result.ok is True
        assert webhook.bodies == ["https://example.com/story?id=1"]
        assert service.history()[0].action == Action.LINK

    @pytest.mark.asyncio
    async def test_send_page_uses_tab_url(self):
        webhook = StubWebhook(200)
        service = make_service(webhook)
        service.page_context.register(TabInfo(id=4, url=PAGE_URL, title="Story"))

        result = await service.send_page(tab_id=4)

        assert result.ok is True
        assert webhook.bodies == ["https://example.com/story?id=1"]
        assert service.history()[0].action == Action.PAGE

    @pytest.mark.asyncio
    async def test_menu_failure_notifies(self):
        """Failed page/link sends raise a failure notification."""
        service = make_service(StubWebhook(404))

        result = await service.send_link(PAGE_URL)
        await service.side_effects.drain()

        assert result.ok is False
        assert service.notifier.notifications == [
            ("Failed to send URL", "Webhook not found (HTTP 404). Check your webhook URL.")
        ]

    @pytest.mark.asyncio
    async def test_shortcut_sends_active_tab(self):
        webhook = StubWebhook(200)
        service = make_service(webhook)
        service.page_context.register(TabInfo(id=1, url="https://example.com/a"))

        result = await service.send_shortcut()

        assert result.ok is True
        assert service.history()[0].action == Action.SHORTCUT

    @pytest.mark.asyncio
    async def test_no_active_tab(self):
        service = make_service()

        result = await service.send_shortcut()

        assert result.ok is False
        assert result.error == "No tab is currently active"
        assert service.history() == []

    @pytest.mark.asyncio
    async def test_send_active_tab_with_override_and_force(self):
        webhook = StubWebhook(200)
        service = make_service(webhook)
        service.page_context.register(TabInfo(id=1, url="https://example.com/a"))
        profile = WebhookProfile(name="Alt", url="https://alt.example.com/hook")

        first = await service.send_active_tab(webhook_override=profile)
        blocked = await service.send_active_tab(webhook_override=profile)
        forced = await service.send_active_tab(webhook_override=profile, force_send=True)

        assert first.ok and forced.ok
        assert blocked.can_retry
        assert [str(r.url) for r in webhook.requests] == [
            "https://alt.example.com/hook",
            "https://alt.example.com/hook",
        ]

    @pytest.mark.asyncio
    async def test_unexpected_error_reported(self):
        """An exception escaping the dispatcher becomes a failure result."""
        service = make_service()
        service.dispatcher.send_or_enqueue = AsyncMock(side_effect=RuntimeError("boom"))

        result = await service.send_url("https://example.com/", action=Action.CLICK)
        await service.side_effects.drain()

        assert result.ok is False
        assert result.error == "boom"
        assert result.error_code == "urlhook_error"
        assert ("Error", "Failed to send URL. Check settings.") in service.notifier.notifications


class TestHandleMessage:
    """Tests for host message routing."""

    @pytest.mark.asyncio
    async def test_send_active(self):
        service = make_service()
        service.page_context.register(TabInfo(id=1, url="https://example.com/a"))

        response = await service.handle_message({"type": "SEND_ACTIVE"})

        assert response["ok"] is True
        assert response["status"] == 200

    @pytest.mark.asyncio
    async def test_send_link(self):
        webhook = StubWebhook(200)
        service = make_service(webhook)

        response = await service.handle_message({"type": "SEND_LINK", "url": "https://b.com/"})

        assert response["ok"] is True
        assert webhook.bodies == ["https://b.com/"]

    @pytest.mark.asyncio
    async def test_retry_queue(self):
        webhook = StubWebhook(503, 200)
        service = make_service(webhook)
        await service.send_link("https://example.com/x")

        response = await service.handle_message({"type": "RETRY_QUEUE"})

        assert response == {"ok": True}
        assert await service.queue.size() == 0

    @pytest.mark.asyncio
    async def test_unknown_type(self):
        response = await make_service().handle_message({"type": "NOPE"})
        assert response["ok"] is False


class TestQueueAndHistory:
    """Tests for queue and history management."""

    @pytest.mark.asyncio
    async def test_queue_status_and_clear(self):
        service = make_service(StubWebhook(500))
        await service.send_link("https://example.com/1")
        await service.send_link("https://example.com/2")

        jobs = await service.queued_jobs()
        assert [job.target_url for job in jobs] == ["https://example.com/1", "https://example.com/2"]
        assert await service.clear_queue() == 2
        assert await service.queued_jobs() == []

    @pytest.mark.asyncio
    async def test_retry_queue_returns_remaining(self):
        service = make_service(StubWebhook(500))
        await service.send_link("https://example.com/1")

        assert await service.retry_queue() == 1
        [job] = await service.queued_jobs()
        assert job.attempt == 1

    @pytest.mark.asyncio
    async def test_history_limit_and_clear(self):
        service = make_service()
        for n in range(3):
            await service.send_link(f"https://example.com/{n}")

        assert len(service.history()) == 3
        assert service.history(limit=1)[0].target_url == "https://example.com/2"
        service.clear_history()
        assert service.history() == []


class TestWebhookTesting:
    """Tests for test_webhook and test_all_webhooks."""

    @pytest.mark.asyncio
    async def test_single_webhook(self):
        webhook = StubWebhook(200)
        service = make_service(webhook)

        result = await service.test_webhook("https://a.example.com/hook")

        assert result.ok is True
        assert webhook.bodies == [TEST_PAYLOAD]
        assert webhook.requests[0].headers["Content-Type"] == "text/plain"

    @pytest.mark.asyncio
    async def test_all_profiles(self):
        delivery = DeliverySettings(
            webhook_profiles=[
                WebhookProfile(name="A", url="https://a.example.com/hook"),
                WebhookProfile(name="B", url="https://b.example.com/hook"),
            ]
        )
        service = make_service(StubWebhook(200, 500), delivery)

        report = await service.test_all_webhooks()

        assert [r.name for r in report.results] == ["A", "B"]
        assert report.succeeded == 1
        assert report.failed == 1
        assert report.results[1].status == 500

    @pytest.mark.asyncio
    async def test_unreachable(self):
        service = make_service(StubWebhook(httpx.ConnectError("refused")))

        result = await service.test_webhook("https://down.example.com/")

        assert result.ok is False
        assert "Network error" in result.error
