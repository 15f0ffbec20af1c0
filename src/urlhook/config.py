"""Configuration management for urlhook."""

import logging
from typing import Literal

from pydantic import BaseModel, Field, model_validator
from pydantic_settings import BaseSettings

logger = logging.getLogger(__name__)

# Delivery constants shared by the engine and its defaults
REQUEST_TIMEOUT_SECONDS = 10.0
MAX_QUEUE_SIZE = 50
MAX_HISTORY_SIZE = 50
DEDUPE_TTL_MS = 60_000
MAX_RETRY_ATTEMPTS = 5
BACKOFF_BASE_MS = 1000
BACKOFF_MAX_MS = 32_000
SOURCE_TAG = "urlhook"


def backoff_delay(
    attempt: int,
    base_ms: int = BACKOFF_BASE_MS,
    max_ms: int = BACKOFF_MAX_MS,
) -> int:
    """Exponential backoff in milliseconds, capped at ``max_ms``.

    With the defaults: 0 -> 1000, 1 -> 2000, ..., 5 -> 32000, 6+ -> 32000.
    """
    return min((2**attempt) * base_ms, max_ms)


class RetryPolicy(BaseModel):
    """Retry budget and backoff curve for queued deliveries.

    Attributes:
        max_attempts: Failed retries allowed before a job is dropped.
        base_delay_ms: Delay for attempt 0; doubles per attempt.
        max_delay_ms: Upper bound on any single delay.
    """

    max_attempts: int = Field(
        default=MAX_RETRY_ATTEMPTS,
        ge=0,
        le=20,
        description="Failed retries allowed before a job is dropped",
    )
    base_delay_ms: int = Field(
        default=BACKOFF_BASE_MS,
        ge=0,
        description="Backoff delay for attempt 0 (doubles each attempt)",
    )
    max_delay_ms: int = Field(
        default=BACKOFF_MAX_MS,
        ge=0,
        description="Cap applied to every backoff delay",
    )

    @model_validator(mode="after")
    def validate_delay_bounds(self) -> "RetryPolicy":
        """The cap must not be below the base delay."""
        if self.max_delay_ms < self.base_delay_ms:
            raise ValueError(
                f"max_delay_ms ({self.max_delay_ms}) must be >= "
                f"base_delay_ms ({self.base_delay_ms})"
            )
        return self

    def delay(self, attempt: int) -> int:
        """Backoff delay in milliseconds for the given attempt."""
        return backoff_delay(attempt, self.base_delay_ms, self.max_delay_ms)


class Settings(BaseSettings):
    """urlhook runtime configuration loaded from environment variables.

    All settings can be overridden via environment variables with the
    URLHOOK_ prefix, for example:
        URLHOOK_STATE_FILE=/var/lib/urlhook/state.json
        URLHOOK_RETRY__MAX_ATTEMPTS=3

    Delivery preferences (webhook profiles, payload template, signing
    secret) are not runtime configuration; they live in the settings
    store and are read per send.
    """

    env: Literal["development", "production", "test"] = Field(
        default="development",
        description="Environment: development, production, or test",
    )

    # Persistence
    state_file: str | None = Field(
        default=None,
        description="JSON file holding queue, dedupe table, history and settings (None = memory)",
    )

    # Delivery
    request_timeout_seconds: float = Field(
        default=REQUEST_TIMEOUT_SECONDS,
        gt=0,
        le=120,
        description="Timeout for every webhook POST",
    )
    queue_max_size: int = Field(
        default=MAX_QUEUE_SIZE,
        ge=1,
        le=1000,
        description="Maximum number of jobs waiting for retry",
    )
    history_max_size: int = Field(
        default=MAX_HISTORY_SIZE,
        ge=1,
        le=1000,
        description="History entries kept (newest first)",
    )
    dedupe_ttl_ms: int = Field(
        default=DEDUPE_TTL_MS,
        ge=0,
        description="Window in which an identical send is suppressed",
    )
    retry: RetryPolicy = Field(
        default_factory=RetryPolicy,
        description="Retry budget and backoff for queued jobs",
    )
    startup_retry_delay_ms: int = Field(
        default=1000,
        ge=0,
        description="Delay before resuming persisted jobs at startup",
    )
    blocked_url_schemes: list[str] = Field(
        default_factory=lambda: ["chrome", "chrome-extension", "edge", "about", "moz-extension"],
        description="Target URL schemes that are never sent",
    )
    source_tag: str = Field(
        default=SOURCE_TAG,
        description="Value of the {{source}} template field",
    )

    # Logging
    log_level: str = Field(
        default="INFO",
        description="Logging level",
    )
    log_format: Literal["json", "text"] = Field(
        default="json",
        description="Log output format",
    )

    # HTTP API
    api_host: str = Field(
        default="127.0.0.1",
        description="Interface the API server binds to",
    )
    api_port: int = Field(
        default=8000,
        ge=1,
        le=65535,
        description="Port the API server listens on",
    )

    # CORS for the HTTP API
    cors_enabled: bool = Field(
        default=False,
        description="Enable CORS middleware on the API",
    )
    cors_allow_origins: list[str] = Field(
        default_factory=lambda: ["*"],
        description="Allowed CORS origins",
    )

    model_config = {
        "env_prefix": "URLHOOK_",
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "env_nested_delimiter": "__",
    }

    @model_validator(mode="after")
    def normalize_blocked_schemes(self) -> "Settings":
        """Store blocked schemes lowercased and without a trailing colon."""
        schemes = [s.lower().rstrip(":/") for s in self.blocked_url_schemes if s.strip()]
        object.__setattr__(self, "blocked_url_schemes", schemes)
        if self.env == "production" and self.state_file is None:
            logger.warning("No URLHOOK_STATE_FILE set in production; queue will not survive restarts")
        return self
