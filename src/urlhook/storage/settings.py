"""Delivery settings management: validation, export and import.

The dispatch engine only ever reads settings. Writes go through
SettingsManager so that what reaches the store has been validated.
"""

from __future__ import annotations

import json
import logging
from urllib.parse import urlsplit

import validators
from pydantic import ValidationError as PydanticValidationError

from urlhook.exceptions import ValidationError
from urlhook.models import DeliverySettings

from .base import SettingsStore

logger = logging.getLogger(__name__)

MIN_SECRET_LENGTH = 16


def is_valid_webhook_url(url: str) -> bool:
    """Check that a webhook destination is an absolute http(s) URL."""
    if urlsplit(url).scheme.lower() not in ("http", "https"):
        return False
    return bool(validators.url(url, simple_host=True))


def validate_delivery_settings(settings: DeliverySettings) -> DeliverySettings:
    """Validate settings before they are stored.

    Checks:
    - every profile has an http(s) URL
    - profile names are unique (case-insensitive)
    - profile URLs are unique (case-insensitive)
    - the legacy webhook_url, if set, is an http(s) URL
    - the HMAC secret, if set, has at least 16 characters
    - custom header names and values are ASCII, as httpx sends them

    Raises:
        ValidationError: On the first failed check.
    """
    for profile in settings.webhook_profiles:
        if not is_valid_webhook_url(profile.url):
            raise ValidationError("webhook_profiles", f"Invalid URL: {profile.name}")

    seen_names: set[str] = set()
    seen_urls: set[str] = set()
    for profile in settings.webhook_profiles:
        name = profile.name.lower()
        if name in seen_names:
            raise ValidationError("webhook_profiles", f"Duplicate webhook name: {name}")
        seen_names.add(name)

        url = profile.url.lower()
        if url in seen_urls:
            raise ValidationError(
                "webhook_profiles",
                "Duplicate webhook URL found. Each webhook must have a unique URL.",
            )
        seen_urls.add(url)

    if settings.webhook_url and not is_valid_webhook_url(settings.webhook_url):
        raise ValidationError("webhook_url", "Invalid URL")

    if settings.hmac_secret and len(settings.hmac_secret.strip()) < MIN_SECRET_LENGTH:
        raise ValidationError(
            "hmac_secret",
            f"HMAC secret should be at least {MIN_SECRET_LENGTH} characters for security",
        )

    for header in settings.custom_headers:
        if not header.name.strip():
            continue
        if not (header.name.isascii() and header.value.isascii()):
            raise ValidationError(
                "custom_headers",
                f"Header {header.name!r} must contain only ASCII characters",
            )

    return settings


class SettingsManager:
    """Validated access to the settings store.

    Example:
        ```python
        manager = SettingsManager(stores.settings)
        manager.save(DeliverySettings(webhook_profiles=[...]))
        backup = manager.export_json()
        manager.import_json(backup)
        ```
    """

    def __init__(self, store: SettingsStore) -> None:
        self._store = store

    def load(self) -> DeliverySettings:
        return self._store.load()

    def save(self, settings: DeliverySettings) -> DeliverySettings:
        """Validate and persist settings."""
        validate_delivery_settings(settings)
        self._store.save(settings)
        logger.info(
            "Delivery settings saved (%d profiles, mode=%s)",
            len(settings.webhook_profiles),
            settings.payload_mode,
        )
        return settings

    def update(self, **changes: object) -> DeliverySettings:
        """Merge ``changes`` into the stored settings and save."""
        merged = self._store.load().model_dump()
        merged.update(changes)
        return self.save(self._parse(merged))

    def export_json(self) -> str:
        """Serialize current settings as pretty-printed JSON."""
        return self._store.load().model_dump_json(indent=2)

    def import_json(self, text: str) -> DeliverySettings:
        """Replace settings from an exported JSON document.

        Raises:
            ValidationError: If the document is not a JSON object or fails validation.
        """
        try:
            document = json.loads(text)
        except json.JSONDecodeError as e:
            raise ValidationError("settings", f"Invalid settings file: {e.msg}") from e
        if not isinstance(document, dict):
            raise ValidationError("settings", "Invalid settings file")
        return self.save(self._parse(document))

    @staticmethod
    def _parse(document: dict[str, object]) -> DeliverySettings:
        try:
            return DeliverySettings.model_validate(document)
        except PydanticValidationError as e:
            first = e.errors()[0]
            field = ".".join(str(part) for part in first["loc"]) or "settings"
            raise ValidationError(field, first["msg"]) from e
