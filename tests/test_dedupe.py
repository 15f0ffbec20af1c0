"""Tests for duplicate-send suppression."""

import asyncio

import pytest
from conftest import FakeClock

from urlhook.dedupe import DedupeCache, dedupe_key, fingerprint
from urlhook.storage import MemoryDedupeStore


class TestFingerprint:
    """Tests for the 64-bit fingerprint."""

    def test_format(self):
        """Fingerprints are 16 lowercase hex characters."""
        value = fingerprint("POST|https://a.com|https://b.com/")
        assert len(value) == 16
        assert value == value.lower()
        int(value, 16)

    def test_deterministic(self):
        """Same input gives the same fingerprint."""
        assert fingerprint("hello") == fingerprint("hello")

    def test_sensitive_to_input(self):
        """Different inputs give different fingerprints."""
        assert fingerprint("hello") != fingerprint("hellp")
        assert fingerprint("") != fingerprint(" ")

    def test_non_bmp_text(self):
        """Characters outside the BMP hash without error."""
        assert len(fingerprint("link \U0001f517 here")) == 16


class TestDedupeKey:
    """Tests for dedupe_key()."""

    def test_depends_on_destination_and_body(self):
        """Key changes with webhook URL or body."""
        base = dedupe_key("https://hook/a", "https://example.com/")
        assert base == dedupe_key("https://hook/a", "https://example.com/")
        assert base != dedupe_key("https://hook/b", "https://example.com/")
        assert base != dedupe_key("https://hook/a", "https://example.com/x")

    def test_includes_method(self):
        assert dedupe_key("u", "b") == fingerprint("POST|u|b")
        assert dedupe_key("u", "b", method="PUT") != dedupe_key("u", "b")


class TestDedupeCache:
    """Tests for DedupeCache.should_suppress()."""

    @pytest.mark.asyncio
    async def test_false_then_true_then_false_after_ttl(self):
        """First send passes, a repeat is blocked, and it passes again after the TTL."""
        clock = FakeClock()
        cache = DedupeCache(MemoryDedupeStore(), ttl_ms=60_000, clock=clock)

        assert await cache.should_suppress("k") is False
        clock.advance(30_000)
        assert await cache.should_suppress("k") is True
        clock.advance(30_000)
        assert await cache.should_suppress("k") is False

    @pytest.mark.asyncio
    async def test_suppressed_hit_does_not_extend_window(self):
        """A blocked attempt keeps the original timestamp."""
        clock = FakeClock()
        store = MemoryDedupeStore()
        cache = DedupeCache(store, ttl_ms=60_000, clock=clock)

        await cache.should_suppress("k")
        recorded = store.load()["k"]
        clock.advance(59_999)
        assert await cache.should_suppress("k") is True

        assert store.load()["k"] == recorded
        clock.advance(1)
        assert await cache.should_suppress("k") is False

    @pytest.mark.asyncio
    async def test_expired_entries_purged(self):
        """Non-suppressed lookups drop entries older than the TTL."""
        clock = FakeClock()
        store = MemoryDedupeStore()
        cache = DedupeCache(store, ttl_ms=1000, clock=clock)

        await cache.should_suppress("old")
        clock.advance(1500)
        await cache.should_suppress("new")

        assert set(store.load()) == {"new"}

    @pytest.mark.asyncio
    async def test_keys_are_independent(self):
        clock = FakeClock()
        cache = DedupeCache(MemoryDedupeStore(), clock=clock)

        assert await cache.should_suppress("a") is False
        assert await cache.should_suppress("b") is False
        assert await cache.should_suppress("a") is True

    @pytest.mark.asyncio
    async def test_concurrent_checks_record_one_send(self):
        """Concurrent checks of the same key let exactly one through."""
        cache = DedupeCache(MemoryDedupeStore(), clock=FakeClock())

        results = await asyncio.gather(*(cache.should_suppress("k") for _ in range(5)))

        assert results.count(False) == 1

    def test_ttl_property(self):
        assert DedupeCache(MemoryDedupeStore(), ttl_ms=5000).ttl_ms == 5000
