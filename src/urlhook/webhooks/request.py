"""Request construction: payload templating and HMAC signing.

Everything here is pure apart from reading the clock and generating a
request id; no network or storage access.
"""

from __future__ import annotations

import hashlib
import hmac
import re
from collections.abc import Mapping
from dataclasses import dataclass
from datetime import datetime
from typing import Any

from urlhook.config import SOURCE_TAG
from urlhook.models import (
    DEFAULT_JSON_TEMPLATE,
    DeliverySettings,
    PageMetadata,
    TabInfo,
    iso_timestamp,
    new_request_id,
)

PLACEHOLDER_PATTERN = re.compile(r"\{\{(.*?)\}\}")

CONTENT_TYPE_JSON = "application/json"
CONTENT_TYPE_PLAIN = "text/plain"

# Order matters: backslashes first so later escapes are not doubled
_JSON_ESCAPES = (
    ("\\", "\\\\"),
    ('"', '\\"'),
    ("\n", "\\n"),
    ("\r", "\\r"),
    ("\t", "\\t"),
)


@dataclass(frozen=True)
class BuiltRequest:
    """A fully built webhook request body and headers."""

    body: str
    headers: dict[str, str]


def json_escape(value: object) -> str:
    """Escape a value for embedding inside a JSON string literal."""
    text = str(value)
    for raw, escaped in _JSON_ESCAPES:
        text = text.replace(raw, escaped)
    return text


def render_template(template: str, data: Mapping[str, Any]) -> str:
    """Replace every ``{{key}}`` with the JSON-escaped value of ``data[key]``.

    Keys are trimmed. Missing keys and None values render as an empty
    string, never as the literal placeholder.

    Example:
        ```python
        render_template('{"url":"{{url}}","t":"{{missing}}"}', {"url": "https://a.com"})
        # '{"url":"https://a.com","t":""}'
        ```
    """

    def _substitute(match: re.Match[str]) -> str:
        value = data.get(match.group(1).strip())
        if value is None:
            return ""
        return json_escape(value)

    return PLACEHOLDER_PATTERN.sub(_substitute, template)


def compute_signature(payload: str, secret: str) -> str:
    """Compute the HMAC-SHA256 signature for a webhook body.

    Args:
        payload: Request body exactly as sent.
        secret: Shared secret for HMAC.

    Returns:
        Lowercase hex digest (no algorithm prefix).
    """
    return hmac.new(
        key=secret.encode("utf-8"),
        msg=payload.encode("utf-8"),
        digestmod=hashlib.sha256,
    ).hexdigest()


def verify_signature(payload: str, secret: str, signature: str) -> bool:
    """Verify an X-Signature value in constant time.

    Receivers can use this to authenticate deliveries.
    """
    expected = compute_signature(payload, secret)
    return hmac.compare_digest(expected, signature.lower())


def build_template_data(
    base_url: str,
    tab: TabInfo | None,
    settings: DeliverySettings,
    timestamp: str,
    selection: str | None = None,
    og_data: PageMetadata | None = None,
    source: str = SOURCE_TAG,
) -> dict[str, str]:
    """Assemble the fields available to ``{{key}}`` placeholders."""
    og = og_data if settings.include_og_data and og_data is not None else PageMetadata()
    return {
        "url": base_url,
        "title": tab.title if tab else "",
        "isoTimestamp": timestamp,
        "selection": (selection or "") if settings.include_selection else "",
        "ogTitle": og.title,
        "ogType": og.type,
        "publishedTime": og.published_time,
        "source": source,
    }


def build_request(
    base_url: str,
    tab: TabInfo | None,
    settings: DeliverySettings,
    selection: str | None = None,
    og_data: PageMetadata | None = None,
    *,
    now: datetime | None = None,
    source: str = SOURCE_TAG,
) -> BuiltRequest:
    """Build the body and headers for one send.

    Args:
        base_url: Canonicalized URL being sent.
        tab: Tab the URL came from (for the title), if any.
        settings: Delivery settings snapshot.
        selection: Selected page text, used when include_selection is on.
        og_data: Page metadata, used when include_og_data is on.
        now: Timestamp override, mainly for tests.
        source: Value of the {{source}} field.

    Returns:
        BuiltRequest with headers in this order: Content-Type, custom
        headers, X-Timestamp, X-Request-ID, then X-Signature when a
        secret is configured.
    """
    timestamp = iso_timestamp(now)

    if settings.payload_mode == "json":
        data = build_template_data(base_url, tab, settings, timestamp, selection, og_data, source)
        body = render_template(settings.json_template or DEFAULT_JSON_TEMPLATE, data)
        content_type = CONTENT_TYPE_JSON
    else:
        body = base_url
        content_type = CONTENT_TYPE_PLAIN

    headers: dict[str, str] = {"Content-Type": content_type}
    for header in settings.custom_headers:
        if header.name:
            headers[header.name] = header.value
    headers["X-Timestamp"] = timestamp
    headers["X-Request-ID"] = new_request_id()
    if settings.hmac_secret:
        headers["X-Signature"] = compute_signature(body, settings.hmac_secret)

    return BuiltRequest(body=body, headers=headers)
