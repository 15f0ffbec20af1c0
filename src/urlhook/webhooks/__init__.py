"""Webhook delivery engine for urlhook.

Builds signed requests, sends them with a timeout, suppresses duplicates
and retries transient failures from a persisted queue with exponential
backoff.

Example:
    ```python
    from urlhook.webhooks import build_request, compute_signature, verify_signature

    request = build_request("https://example.com/", None, DeliverySettings(hmac_secret=secret))
    assert verify_signature(request.body, secret, request.headers["X-Signature"])
    ```
"""

from .delivery import (
    DeliveryOutcome,
    classify_status,
    is_retryable_status,
    post_webhook,
    probe_webhook,
)
from .dispatcher import Dispatcher, check_target_url, resolve_webhook_url
from .processor import QueueProcessor
from .request import (
    BuiltRequest,
    build_request,
    compute_signature,
    render_template,
    verify_signature,
)

__all__ = [
    "BuiltRequest",
    "DeliveryOutcome",
    "Dispatcher",
    "QueueProcessor",
    "build_request",
    "check_target_url",
    "classify_status",
    "compute_signature",
    "is_retryable_status",
    "post_webhook",
    "probe_webhook",
    "render_template",
    "resolve_webhook_url",
    "verify_signature",
]
