"""Unit tests for urlhook models."""

from datetime import UTC, datetime, timedelta, timezone

import pytest
from pydantic import ValidationError

from urlhook.models import (
    Action,
    DeliverySettings,
    HistoryEntry,
    Job,
    RequestSummary,
    WebhookProfile,
    generate_id,
    iso_timestamp,
)


class TestGenerateId:
    """Tests for the generate_id function."""

    def test_generates_unique_ids(self):
        """Each call should produce a unique ID."""
        ids = [generate_id("job") for _ in range(100)]
        assert len(ids) == len(set(ids))

    def test_consistent_format(self):
        """ID should be prefix_12chars."""
        prefix, suffix = generate_id("hist").split("_")
        assert prefix == "hist"
        assert len(suffix) == 12


class TestIsoTimestamp:
    """Tests for iso_timestamp()."""

    def test_millisecond_utc(self):
        moment = datetime(2024, 1, 2, 3, 4, 5, 678901, tzinfo=UTC)
        assert iso_timestamp(moment) == "2024-01-02T03:04:05.678Z"

    def test_converts_to_utc(self):
        moment = datetime(2024, 1, 2, 5, 0, 0, tzinfo=timezone(timedelta(hours=2)))
        assert iso_timestamp(moment) == "2024-01-02T03:00:00.000Z"

    def test_now_ends_with_z(self):
        assert iso_timestamp().endswith("Z")


class TestJob:
    """Tests for Job model."""

    def test_defaults(self):
        job = Job(body="b", webhook_url="https://h/", dedupe_key="k")
        assert job.id.startswith("job_")
        assert job.attempt == 0
        assert job.action == Action.CLICK
        assert job.created_at.tzinfo is not None

    def test_next_attempt_copies(self):
        """next_attempt() returns a new job and leaves the original alone."""
        job = Job(body="b", webhook_url="https://h/", dedupe_key="k")
        retried = job.next_attempt()

        assert retried.attempt == 1
        assert retried.id == job.id
        assert job.attempt == 0

    def test_negative_attempt_rejected(self):
        with pytest.raises(ValidationError):
            Job(body="b", webhook_url="https://h/", dedupe_key="k", attempt=-1)

    def test_extra_fields_rejected(self):
        with pytest.raises(ValidationError):
            Job(body="b", webhook_url="https://h/", dedupe_key="k", method="GET")

    def test_json_round_trip(self):
        job = Job(body="b", headers={"A": "1"}, webhook_url="https://h/", dedupe_key="k")
        assert Job.model_validate_json(job.model_dump_json()) == job


class TestHistoryEntry:
    """Tests for HistoryEntry and RequestSummary."""

    def test_summary_size_in_bytes(self):
        summary = RequestSummary.for_request("héllo", {"Content-Type": "text/plain"})
        assert summary.method == "POST"
        assert summary.size == 6
        assert summary.headers == {"Content-Type": "text/plain"}

    def test_succeeded(self):
        assert HistoryEntry(action=Action.CLICK, http_status=200).succeeded
        assert not HistoryEntry(action=Action.CLICK, http_status=503, error="x").succeeded
        assert not HistoryEntry(action=Action.CLICK, error="No webhook configured").succeeded

    def test_action_serializes_as_value(self):
        entry = HistoryEntry(action=Action.RETRY)
        assert entry.model_dump(mode="json")["action"] == "retry"


class TestDeliverySettings:
    """Tests for DeliverySettings."""

    def test_defaults(self):
        settings = DeliverySettings()
        assert settings.payload_mode == "plain"
        assert settings.strip_params == ["utm_*", "fbclid", "gclid"]
        assert settings.show_notifications is True
        assert settings.hmac_secret is None

    def test_default_webhook_url_prefers_profile(self):
        settings = DeliverySettings(
            webhook_url="https://legacy/",
            webhook_profiles=[WebhookProfile(name="A", url="https://a/")],
        )
        assert settings.default_webhook_url() == "https://a/"

    def test_default_webhook_url_none(self):
        assert DeliverySettings().default_webhook_url() is None

    def test_payload_mode_values(self):
        with pytest.raises(ValidationError):
            DeliverySettings(payload_mode="xml")

    def test_strip_params_not_shared(self):
        """Each instance gets its own default list."""
        first = DeliverySettings()
        first.strip_params.append("ref")
        assert DeliverySettings().strip_params == ["utm_*", "fbclid", "gclid"]
