"""Delivery settings - the per-send snapshot read from the settings store."""

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

from .base import generate_id

PayloadMode = Literal["plain", "json"]

DEFAULT_JSON_TEMPLATE = (
    '{"url":"{{url}}","title":"{{title}}","ts":"{{isoTimestamp}}",'
    '"selection":"{{selection}}","source":"{{source}}"}'
)

DEFAULT_STRIP_PARAMS = ["utm_*", "fbclid", "gclid"]


class WebhookProfile(BaseModel):
    """A named webhook destination."""

    model_config = ConfigDict(extra="forbid")

    id: str = Field(default_factory=lambda: generate_id("whk"))
    name: str = Field(description="Display name, unique per settings")
    url: str = Field(description="Endpoint receiving the POST")


class CustomHeader(BaseModel):
    """Extra header sent with every request. Empty names are skipped."""

    model_config = ConfigDict(extra="forbid")

    name: str = ""
    value: str = ""


class DeliverySettings(BaseModel):
    """User-facing delivery preferences.

    Read fresh on every dispatch; the engine never writes them.

    Attributes:
        webhook_url: Legacy single destination, used when no profile exists.
        webhook_profiles: Named destinations; the first one is the default.
        payload_mode: "plain" sends the bare URL, "json" renders json_template.
        json_template: Template with {{key}} placeholders.
        custom_headers: Extra headers added after Content-Type.
        hmac_secret: When set, requests carry an X-Signature header.
        use_canonical: Prefer the page-declared canonical URL.
        include_selection: Fill {{selection}} from the page.
        include_og_data: Fill {{ogTitle}}, {{ogType}} and {{publishedTime}}.
        show_notifications: Notify on successful sends.
        strip_params: Query parameter patterns to remove ("utm_*" = prefix).
    """

    model_config = ConfigDict(extra="ignore")

    webhook_url: str = ""
    webhook_profiles: list[WebhookProfile] = Field(default_factory=list)
    payload_mode: PayloadMode = "plain"
    json_template: str = DEFAULT_JSON_TEMPLATE
    custom_headers: list[CustomHeader] = Field(default_factory=list)
    hmac_secret: str | None = None
    use_canonical: bool = False
    include_selection: bool = False
    include_og_data: bool = False
    show_notifications: bool = True
    strip_params: list[str] = Field(default_factory=lambda: list(DEFAULT_STRIP_PARAMS))

    def default_webhook_url(self) -> str | None:
        """First profile URL, else the legacy single URL, else None."""
        for profile in self.webhook_profiles:
            if profile.url:
                return profile.url
        return self.webhook_url or None
