"""HistoryEntry model - the audit trail of every send outcome."""

from datetime import UTC, datetime

from pydantic import BaseModel, ConfigDict, Field

from .base import Action, generate_id


class RequestSummary(BaseModel):
    """What was (or would have been) sent."""

    model_config = ConfigDict(extra="forbid")

    method: str = Field(default="POST")
    headers: dict[str, str] = Field(default_factory=dict)
    size: int = Field(default=0, ge=0, description="Body size in UTF-8 bytes")

    @classmethod
    def for_request(cls, body: str, headers: dict[str, str]) -> "RequestSummary":
        """Summarize a built request."""
        return cls(headers=dict(headers), size=len(body.encode("utf-8")))


class HistoryEntry(BaseModel):
    """One send outcome.

    Every dispatch produces exactly one entry, and so does every job the
    queue processor finishes (delivered or dropped).

    Attributes:
        id: Unique identifier for this entry.
        timestamp: When the outcome was recorded.
        action: Trigger that produced the send.
        target_url: Canonicalized (or raw, if rejected early) source URL.
        http_status: Response status if a response was received.
        error: Classified error message, None on success.
        request_summary: Method, headers and body size.
    """

    model_config = ConfigDict(extra="forbid")

    id: str = Field(default_factory=lambda: generate_id("hist"))
    timestamp: datetime = Field(
        default_factory=lambda: datetime.now(UTC),
        description="When the outcome was recorded",
    )
    action: Action = Field(description="Originating trigger")
    target_url: str = Field(default="", description="Source URL")
    http_status: int | None = Field(default=None, description="HTTP response status")
    error: str | None = Field(default=None, description="Error message if the send failed")
    request_summary: RequestSummary = Field(default_factory=RequestSummary)

    @property
    def succeeded(self) -> bool:
        """True when a 2xx response was received and no error recorded."""
        return self.error is None and self.http_status is not None and 200 <= self.http_status < 300
