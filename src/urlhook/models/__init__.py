"""Data models for urlhook.

Queue and history records:
    - Job: a persisted, retry-pending delivery
    - HistoryEntry, RequestSummary: outcome log records

Settings and context:
    - DeliverySettings, WebhookProfile, CustomHeader: per-send preferences
    - TabInfo, PageMetadata: host page context

Results:
    - DispatchResult: what a trigger gets back
"""

from .base import Action, generate_id, iso_timestamp, new_request_id
from .history import HistoryEntry, RequestSummary
from .job import Job
from .page import PageMetadata, TabInfo
from .result import DispatchResult
from .settings import (
    DEFAULT_JSON_TEMPLATE,
    DEFAULT_STRIP_PARAMS,
    CustomHeader,
    DeliverySettings,
    PayloadMode,
    WebhookProfile,
)

__all__ = [
    # Base types
    "Action",
    "generate_id",
    "iso_timestamp",
    "new_request_id",
    # Queue and history
    "Job",
    "HistoryEntry",
    "RequestSummary",
    # Settings
    "DEFAULT_JSON_TEMPLATE",
    "DEFAULT_STRIP_PARAMS",
    "CustomHeader",
    "DeliverySettings",
    "PayloadMode",
    "WebhookProfile",
    # Page context
    "PageMetadata",
    "TabInfo",
    # Results
    "DispatchResult",
]
