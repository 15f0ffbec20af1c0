"""Job model - one persisted, retry-pending webhook delivery."""

from datetime import UTC, datetime

from pydantic import BaseModel, ConfigDict, Field

from .base import Action, generate_id


class Job(BaseModel):
    """A queued delivery attempt.

    Created by the dispatcher on the first retryable failure and owned
    by the queue processor afterwards. The request is stored fully built
    so a retry sends exactly the same body, headers and destination.

    Attributes:
        id: Unique identifier for this job.
        attempt: Failed retries so far (0 when first queued).
        created_at: When the job was queued.
        body: Serialized request body.
        headers: Request headers as originally built.
        webhook_url: Destination endpoint.
        dedupe_key: Fingerprint of method, destination and body.
        target_url: Canonicalized source URL (for display).
        action: Trigger that produced the original send.
    """

    model_config = ConfigDict(extra="forbid")

    id: str = Field(default_factory=lambda: generate_id("job"))
    attempt: int = Field(default=0, ge=0, description="Failed retries so far")
    created_at: datetime = Field(
        default_factory=lambda: datetime.now(UTC),
        description="When the job was queued",
    )
    body: str = Field(description="Serialized request body")
    headers: dict[str, str] = Field(default_factory=dict, description="Request headers")
    webhook_url: str = Field(description="Destination endpoint")
    dedupe_key: str = Field(description="Fingerprint used for duplicate suppression")
    target_url: str = Field(default="", description="Canonicalized source URL")
    action: Action = Field(default=Action.CLICK, description="Originating trigger")

    def next_attempt(self) -> "Job":
        """Copy of this job with the attempt counter incremented."""
        return self.model_copy(update={"attempt": self.attempt + 1})
