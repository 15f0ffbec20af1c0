"""Pydantic schemas for API request/response models."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

from urlhook.models import HistoryEntry, Job

# Triggers accepted by POST /send (retry is internal to the queue)
SendAction = Literal["page", "link", "shortcut", "click"]


class SendRequest(BaseModel):
    """Request body for sending a URL.

    Attributes:
        url: URL to send. Canonicalized before delivery.
        action: Trigger to record in history.
        tab_id: Registered tab the URL came from (enables selection,
            title, metadata and canonical link lookups).
        webhook_url: Destination overriding the default profile.
        force_send: Skip duplicate suppression.
    """

    model_config = ConfigDict(extra="forbid")

    url: str = Field(description="URL to send")
    action: SendAction = Field(default="click", description="Trigger recorded in history")
    tab_id: int | None = Field(default=None, description="Registered tab ID")
    webhook_url: str | None = Field(default=None, description="Destination override")
    force_send: bool = Field(default=False, description="Bypass duplicate suppression")


class SendActiveRequest(BaseModel):
    """Request body for sending the active tab."""

    model_config = ConfigDict(extra="forbid")

    webhook_url: str | None = Field(default=None, description="Destination override")
    force_send: bool = Field(default=False, description="Bypass duplicate suppression")


class TabRequest(BaseModel):
    """Snapshot of a browser tab, registered with the page context.

    Attributes:
        url: Current tab URL.
        title: Document title.
        selection: Selected text.
        og_title: og:title meta content.
        og_type: og:type meta content.
        published_time: article:published_time meta content.
        canonical_link: href of <link rel="canonical">.
        active: Make this the active tab.
    """

    model_config = ConfigDict(extra="forbid")

    url: str = ""
    title: str = ""
    selection: str = ""
    og_title: str = ""
    og_type: str = ""
    published_time: str = ""
    canonical_link: str | None = None
    active: bool = True


class TabResponse(BaseModel):
    model_config = ConfigDict(extra="forbid")

    id: int
    url: str
    title: str
    active: bool


class QueueResponse(BaseModel):
    """Current retry queue.

    Attributes:
        size: Jobs waiting for retry.
        max_size: Queue capacity.
        jobs: Jobs in FIFO order.
    """

    model_config = ConfigDict(extra="forbid")

    size: int
    max_size: int
    jobs: list[Job] = Field(default_factory=list)


class RetryResponse(BaseModel):
    model_config = ConfigDict(extra="forbid")

    remaining: int = Field(description="Jobs still queued after the pass")


class ClearResponse(BaseModel):
    model_config = ConfigDict(extra="forbid")

    removed: int


class HistoryResponse(BaseModel):
    """History entries, newest first."""

    model_config = ConfigDict(extra="forbid")

    entries: list[HistoryEntry] = Field(default_factory=list)
    count: int


class WebhookTestRequest(BaseModel):
    """Test one URL, or every configured profile when url is omitted."""

    model_config = ConfigDict(extra="forbid")

    url: str | None = Field(default=None, description="Webhook URL to test")


class HealthResponse(BaseModel):
    """Response for health check endpoint.

    Attributes:
        status: Service status.
        version: API version.
        queue_size: Jobs waiting for retry.
    """

    model_config = ConfigDict(extra="forbid")

    status: Literal["healthy", "unhealthy"]
    version: str
    queue_size: int | None = None
