"""urlhook: send URLs to webhooks, reliably.

Captures a URL, canonicalizes it, renders it into a templated and
optionally HMAC-signed request, suppresses accidental duplicates and
POSTs it to a webhook. Transient failures go to a persisted queue that
retries with exponential backoff.

Quick Start:
    from urlhook.service import URLHookService

    async with URLHookService.create() as hook:
        hook.settings_manager.update(webhook_url="https://n8n.example.com/webhook/abc")
        result = await hook.send_link("https://example.com/post?utm_source=feed")
        if not result.ok:
            print(result.error_code, result.error)

Pipeline:
    - canonicalize(): normalize the URL and strip tracking parameters
    - build_request(): render plain or JSON body, add headers and signature
    - DedupeCache: suppress identical sends within 60 seconds
    - Dispatcher: send now, or enqueue on 429/5xx/timeout/network error
    - QueueProcessor: retry the head job with backoff, up to 5 retries
"""

__version__ = "0.1.0"

# Canonicalization
from .canonical import canonicalize

# Configuration
from .config import RetryPolicy, Settings, backoff_delay

# Dedupe
from .dedupe import DedupeCache, dedupe_key

# Exceptions
from .exceptions import (
    ConfigurationError,
    DuplicateSuppressedError,
    NoWebhookConfiguredError,
    NotFoundError,
    QueueFullError,
    StorageError,
    URLHookError,
    ValidationError,
)

# Logging
from .logging import (
    bind_context,
    clear_context,
    configure_logging,
    get_logger,
    unbind_context,
)

# Models
from .models import (
    Action,
    CustomHeader,
    DeliverySettings,
    DispatchResult,
    HistoryEntry,
    Job,
    PageMetadata,
    RequestSummary,
    TabInfo,
    WebhookProfile,
)

# Queue
from .queue import JobQueue

# Service
from .service import URLHookService

# Delivery engine
from .webhooks import (
    Dispatcher,
    QueueProcessor,
    build_request,
    compute_signature,
    verify_signature,
)

__all__ = [
    "__version__",
    # Canonicalization
    "canonicalize",
    # Configuration
    "RetryPolicy",
    "Settings",
    "backoff_delay",
    # Dedupe
    "DedupeCache",
    "dedupe_key",
    # Exceptions
    "ConfigurationError",
    "DuplicateSuppressedError",
    "NoWebhookConfiguredError",
    "NotFoundError",
    "QueueFullError",
    "StorageError",
    "URLHookError",
    "ValidationError",
    # Logging
    "bind_context",
    "clear_context",
    "configure_logging",
    "get_logger",
    "unbind_context",
    # Models
    "Action",
    "CustomHeader",
    "DeliverySettings",
    "DispatchResult",
    "HistoryEntry",
    "Job",
    "PageMetadata",
    "RequestSummary",
    "TabInfo",
    "WebhookProfile",
    # Queue
    "JobQueue",
    # Service
    "URLHookService",
    # Delivery engine
    "Dispatcher",
    "QueueProcessor",
    "build_request",
    "compute_signature",
    "verify_signature",
]
