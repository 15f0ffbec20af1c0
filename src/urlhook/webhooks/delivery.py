"""HTTP delivery of a built webhook request.

One POST with a hard timeout, and classification of the outcome into
success, terminal failure or retryable failure:
- 2xx: delivered
- 429 and 5xx: transient, retried through the queue
- other non-2xx: terminal client error
- timeouts and network errors: transient
- requests that cannot be encoded: terminal
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

import httpx

from urlhook.config import REQUEST_TIMEOUT_SECONDS

logger = logging.getLogger(__name__)

TEST_PAYLOAD = "test://webhook-batch"


@dataclass(frozen=True)
class DeliveryOutcome:
    """Result of one POST.

    Attributes:
        ok: A 2xx response was received.
        status: HTTP status, None when no response arrived.
        error: Classified message, None on success.
        retryable: The failure is transient and may be queued.
    """

    ok: bool
    status: int | None = None
    error: str | None = None
    retryable: bool = False

    @property
    def error_code(self) -> str | None:
        if self.ok:
            return None
        return "transient_error" if self.retryable else "client_error"


def is_retryable_status(status: int) -> bool:
    """429 and every 5xx are transient."""
    return status == 429 or 500 <= status < 600


def classify_status(status: int) -> str:
    """Human-readable message for a non-2xx status."""
    if status == 404:
        return "Webhook not found (HTTP 404). Check your webhook URL."
    if status in (401, 403):
        return f"Webhook authentication failed (HTTP {status}). Check your credentials."
    if status == 429:
        return "Rate limited (HTTP 429). Will retry automatically."
    if status >= 500:
        return f"Webhook server error (HTTP {status}). Will retry automatically."
    return f"Webhook returned HTTP {status}"


def classify_transport_error(exc: Exception, timeout_seconds: float) -> str:
    """Human-readable message for a request that got no response."""
    if isinstance(exc, httpx.TimeoutException):
        return f"Request timed out after {timeout_seconds:g} seconds. Will retry."
    if isinstance(exc, httpx.NetworkError):
        return "Network error. Check your internet connection. Will retry."
    return f"Connection failed: {str(exc)[:100]}"


async def post_webhook(
    url: str,
    body: str,
    headers: dict[str, str],
    *,
    client: httpx.AsyncClient | None = None,
    timeout_seconds: float = REQUEST_TIMEOUT_SECONDS,
) -> DeliveryOutcome:
    """POST ``body`` to ``url`` and classify the result.

    Args:
        url: Webhook endpoint.
        body: Request body exactly as built (and signed).
        headers: Request headers.
        client: Shared client; a short-lived one is created when None.
        timeout_seconds: Hard limit for the whole request.

    Returns:
        DeliveryOutcome. Never raises for HTTP or transport failures.
    """
    try:
        if client is None:
            async with httpx.AsyncClient(timeout=timeout_seconds, follow_redirects=True) as own:
                response = await own.post(url, content=body.encode("utf-8"), headers=headers)
        else:
            response = await client.post(
                url,
                content=body.encode("utf-8"),
                headers=headers,
                timeout=timeout_seconds,
                follow_redirects=True,
            )
    except httpx.InvalidURL as e:
        logger.warning("Webhook URL rejected: %s (%s)", url, e)
        return DeliveryOutcome(ok=False, error=f"Invalid webhook URL: {e}")
    except httpx.HTTPError as e:
        message = classify_transport_error(e, timeout_seconds)
        logger.info("Webhook request failed: %s (%s)", url, message)
        return DeliveryOutcome(ok=False, error=message, retryable=True)
    except ValueError as e:
        # Raised while encoding the request, e.g. a non-latin-1 header value
        message = classify_transport_error(e, timeout_seconds)
        logger.warning("Webhook request could not be built for %s (%s)", url, message)
        return DeliveryOutcome(ok=False, error=message)

    status = response.status_code
    if 200 <= status < 300:
        logger.info("Webhook delivered to %s (status %d)", url, status)
        return DeliveryOutcome(ok=True, status=status)

    retryable = is_retryable_status(status)
    logger.warning(
        "Webhook rejected by %s (status %d, %s)",
        url,
        status,
        "retryable" if retryable else "terminal",
    )
    return DeliveryOutcome(
        ok=False,
        status=status,
        error=classify_status(status),
        retryable=retryable,
    )


async def probe_webhook(
    url: str,
    *,
    client: httpx.AsyncClient | None = None,
    timeout_seconds: float = REQUEST_TIMEOUT_SECONDS,
) -> DeliveryOutcome:
    """Send a plain-text test payload to check a webhook is reachable."""
    return await post_webhook(
        url,
        TEST_PAYLOAD,
        {"Content-Type": "text/plain"},
        client=client,
        timeout_seconds=timeout_seconds,
    )
