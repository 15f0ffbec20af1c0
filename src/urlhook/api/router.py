"""FastAPI router for urlhook API endpoints."""

from __future__ import annotations

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Request, status
from fastapi.responses import Response

from urlhook import __version__
from urlhook.models import Action, DeliverySettings, DispatchResult, PageMetadata, TabInfo
from urlhook.ports import MemoryPageContext
from urlhook.service import URLHookService, WebhookTestReport

from .schemas import (
    ClearResponse,
    HealthResponse,
    HistoryResponse,
    QueueResponse,
    RetryResponse,
    SendActiveRequest,
    SendRequest,
    TabRequest,
    TabResponse,
    WebhookTestRequest,
)

logger = logging.getLogger(__name__)

router = APIRouter()

# Service instance (set by app lifespan)
_service: URLHookService | None = None


def set_service(service: URLHookService | None) -> None:
    """Set the global service instance."""
    global _service
    _service = service


async def get_service() -> URLHookService:
    """Dependency to get the URLHookService instance."""
    if _service is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Service not initialized",
        )
    return _service


ServiceDep = Annotated[URLHookService, Depends(get_service)]


@router.get("/health", response_model=HealthResponse, tags=["system"])
async def health_check() -> HealthResponse:
    """Check service health and report the retry queue size."""
    if _service is None:
        return HealthResponse(status="unhealthy", version=__version__)
    return HealthResponse(
        status="healthy",
        version=__version__,
        queue_size=await _service.queue.size(),
    )


@router.post("/send", response_model=DispatchResult, tags=["delivery"])
async def send(request: SendRequest, service: ServiceDep) -> DispatchResult:
    """Send a URL to the webhook.

    Delivery failures are reported in the result body, not as HTTP
    errors: a transient failure is queued for retry and a duplicate
    within the dedupe window comes back with ``can_retry`` set.
    """
    return await service.send_url(
        request.url,
        action=Action(request.action),
        tab_id=request.tab_id,
        webhook_override=request.webhook_url,
        force_send=request.force_send,
    )


@router.post("/send/active", response_model=DispatchResult, tags=["delivery"])
async def send_active(request: SendActiveRequest, service: ServiceDep) -> DispatchResult:
    """Send the active tab's URL."""
    return await service.send_active_tab(
        webhook_override=request.webhook_url,
        force_send=request.force_send,
    )


@router.put("/tabs/{tab_id}", response_model=TabResponse, tags=["context"])
async def register_tab(tab_id: int, request: TabRequest, service: ServiceDep) -> TabResponse:
    """Register a tab snapshot for selection, metadata and canonical lookups."""
    page_context = service.page_context
    if not isinstance(page_context, MemoryPageContext):
        raise HTTPException(
            status_code=status.HTTP_501_NOT_IMPLEMENTED,
            detail="Page context does not accept tab snapshots",
        )

    tab = TabInfo(id=tab_id, url=request.url, title=request.title)
    page_context.register(
        tab,
        selection=request.selection,
        metadata=PageMetadata(
            title=request.og_title,
            type=request.og_type,
            published_time=request.published_time,
        ),
        canonical_link=request.canonical_link,
        active=request.active,
    )
    logger.debug("Registered tab %d (active=%s)", tab_id, request.active)
    return TabResponse(id=tab.id, url=tab.url, title=tab.title, active=request.active)


@router.post("/queue/retry", response_model=RetryResponse, tags=["queue"])
async def retry_queue(service: ServiceDep) -> RetryResponse:
    """Run a queue pass now."""
    remaining = await service.retry_queue()
    return RetryResponse(remaining=remaining)


@router.get("/queue", response_model=QueueResponse, tags=["queue"])
async def get_queue(service: ServiceDep) -> QueueResponse:
    """List jobs waiting for retry."""
    jobs = await service.queued_jobs()
    return QueueResponse(size=len(jobs), max_size=service.queue.max_size, jobs=jobs)


@router.delete("/queue", response_model=ClearResponse, tags=["queue"])
async def clear_queue(service: ServiceDep) -> ClearResponse:
    """Drop every queued job."""
    return ClearResponse(removed=await service.clear_queue())


@router.get("/history", response_model=HistoryResponse, tags=["history"])
async def get_history(service: ServiceDep, limit: int | None = None) -> HistoryResponse:
    """List delivery history, newest first."""
    if limit is not None and limit < 1:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="limit must be at least 1",
        )
    entries = service.history(limit)
    return HistoryResponse(entries=entries, count=len(entries))


@router.delete("/history", status_code=status.HTTP_204_NO_CONTENT, tags=["history"])
async def clear_history(service: ServiceDep) -> None:
    """Remove every history entry."""
    service.clear_history()


@router.get("/settings", response_model=DeliverySettings, tags=["settings"])
async def get_settings(service: ServiceDep) -> DeliverySettings:
    """Current delivery settings."""
    return service.settings_manager.load()


@router.put("/settings", response_model=DeliverySettings, tags=["settings"])
async def put_settings(settings: DeliverySettings, service: ServiceDep) -> DeliverySettings:
    """Validate and replace delivery settings."""
    return service.settings_manager.save(settings)


@router.get("/settings/export", tags=["settings"])
async def export_settings(service: ServiceDep) -> Response:
    """Download delivery settings as a JSON document."""
    return Response(
        content=service.settings_manager.export_json(),
        media_type="application/json",
        headers={"Content-Disposition": 'attachment; filename="urlhook-settings.json"'},
    )


@router.post("/settings/import", response_model=DeliverySettings, tags=["settings"])
async def import_settings(request: Request, service: ServiceDep) -> DeliverySettings:
    """Replace delivery settings from an exported JSON document."""
    body = await request.body()
    return service.settings_manager.import_json(body.decode("utf-8", errors="replace"))


@router.post("/webhooks/test", response_model=WebhookTestReport, tags=["settings"])
async def test_webhooks(request: WebhookTestRequest, service: ServiceDep) -> WebhookTestReport:
    """Send the test payload to one URL, or to every configured profile."""
    if request.url is None:
        return await service.test_all_webhooks()

    result = await service.test_webhook(request.url)
    return WebhookTestReport(
        results=[result],
        succeeded=1 if result.ok else 0,
        failed=0 if result.ok else 1,
    )
