"""Time-windowed duplicate-send suppression.

Suppression is advisory: keys are a 64-bit non-cryptographic hash and
collisions are accepted. The table is persisted through a DedupeStore so
it survives process restarts, and expired entries are purged lazily on
every non-suppressed lookup.
"""

from __future__ import annotations

import asyncio
import logging
import struct
import time
from collections.abc import Callable
from typing import TYPE_CHECKING

from urlhook.config import DEDUPE_TTL_MS

if TYPE_CHECKING:
    from urlhook.storage.base import DedupeStore

logger = logging.getLogger(__name__)

_MASK32 = 0xFFFFFFFF


def _imul(a: int, b: int) -> int:
    return (a * b) & _MASK32


def fingerprint(text: str) -> str:
    """Deterministic 64-bit hash of a string, as 16 lowercase hex chars.

    cyrb53-style mixing over UTF-16 code units with both 32-bit halves
    kept. Unlike ``hash()``, the result is stable across processes.
    """
    units = text.encode("utf-16-le")
    length = len(units) // 2
    h1 = 0xDEADBEEF ^ length
    h2 = 0x41C6CE57 ^ length
    for (unit,) in struct.iter_unpack("<H", units):
        h1 = _imul(h1 ^ unit, 2654435761)
        h2 = _imul(h2 ^ unit, 1597334677)
    h1 = _imul(h1 ^ (h2 >> 15), 2246822507) ^ _imul(h2 ^ (h1 >> 13), 3266489909)
    h2 = _imul(h2 ^ (h1 >> 16), 2246822507) ^ _imul(h1 ^ (h2 >> 13), 3266489909)
    return f"{(h2 << 32) | h1:016x}"


def dedupe_key(webhook_url: str, body: str, method: str = "POST") -> str:
    """Fingerprint of method, destination and body."""
    return fingerprint(f"{method}|{webhook_url}|{body}")


def now_ms() -> float:
    """Wall-clock time in epoch milliseconds."""
    return time.time() * 1000


class DedupeCache:
    """Suppresses repeat sends of the same request within a TTL.

    Example:
        ```python
        cache = DedupeCache(MemoryDedupeStore())
        await cache.should_suppress(key)  # False, key recorded
        await cache.should_suppress(key)  # True within 60s
        ```
    """

    def __init__(
        self,
        store: DedupeStore,
        ttl_ms: int = DEDUPE_TTL_MS,
        clock: Callable[[], float] = now_ms,
    ) -> None:
        self._store = store
        self._ttl_ms = ttl_ms
        self._clock = clock
        self._lock = asyncio.Lock()

    @property
    def ttl_ms(self) -> int:
        return self._ttl_ms

    async def should_suppress(self, key: str) -> bool:
        """Check ``key`` and record it if it is not a recent duplicate.

        A hit within the TTL returns True and writes nothing, so the
        original timestamp is kept and the window is not extended by
        blocked attempts. Otherwise expired entries are purged, ``key``
        is stamped with the current time and the table is saved.
        """
        async with self._lock:
            now = self._clock()
            table = self._store.load()

            last_seen = table.get(key)
            if last_seen is not None and now - last_seen < self._ttl_ms:
                logger.debug("Duplicate send suppressed: %s", key)
                return True

            fresh = {k: seen for k, seen in table.items() if now - seen < self._ttl_ms}
            fresh[key] = now
            self._store.save(fresh)
            return False
