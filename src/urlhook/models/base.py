"""Base models and shared types for urlhook."""

from __future__ import annotations

from datetime import UTC, datetime
from enum import Enum
from uuid import uuid4


class Action(str, Enum):
    """Provenance of a send: which trigger produced it."""

    PAGE = "page"  # page context menu
    LINK = "link"  # link context menu
    SHORTCUT = "shortcut"  # keyboard shortcut
    CLICK = "click"  # explicit "send active tab" request
    RETRY = "retry"  # queued job with no recorded trigger


def generate_id(prefix: str) -> str:
    """Generate a unique ID with the given prefix.

    Examples:
        generate_id("job") -> "job_a1b2c3d4e5f6"
        generate_id("hist") -> "hist_a1b2c3d4e5f6"
    """
    return f"{prefix}_{uuid4().hex[:12]}"


def new_request_id() -> str:
    """RFC 4122 version 4 UUID for the X-Request-ID header."""
    return str(uuid4())


def iso_timestamp(moment: datetime | None = None) -> str:
    """UTC timestamp in millisecond ISO-8601 form, e.g. ``2024-05-01T12:00:00.000Z``."""
    moment = moment or datetime.now(UTC)
    return moment.astimezone(UTC).isoformat(timespec="milliseconds").replace("+00:00", "Z")
