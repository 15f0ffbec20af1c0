"""In-process repositories.

State lives for the lifetime of the process only. Loads and saves copy
their data so callers cannot mutate stored state by reference, matching
the semantics of a real durable backend.
"""

from __future__ import annotations

from urlhook.config import MAX_HISTORY_SIZE
from urlhook.models import DeliverySettings, HistoryEntry, Job

from .base import StateStores


class MemoryQueueStore:
    """Job queue held in a list."""

    def __init__(self, jobs: list[Job] | None = None) -> None:
        self._jobs = [job.model_copy(deep=True) for job in jobs or []]

    def load(self) -> list[Job]:
        return [job.model_copy(deep=True) for job in self._jobs]

    def save(self, jobs: list[Job]) -> None:
        self._jobs = [job.model_copy(deep=True) for job in jobs]


class MemoryDedupeStore:
    """Dedupe table held in a dict."""

    def __init__(self, table: dict[str, float] | None = None) -> None:
        self._table = dict(table or {})

    def load(self) -> dict[str, float]:
        return dict(self._table)

    def save(self, table: dict[str, float]) -> None:
        self._table = dict(table)


class MemorySettingsStore:
    """Delivery settings held in memory."""

    def __init__(self, settings: DeliverySettings | None = None) -> None:
        self._settings = (settings or DeliverySettings()).model_copy(deep=True)

    def load(self) -> DeliverySettings:
        return self._settings.model_copy(deep=True)

    def save(self, settings: DeliverySettings) -> None:
        self._settings = settings.model_copy(deep=True)


class MemoryHistorySink:
    """History log kept newest first and trimmed to ``max_size``."""

    def __init__(self, max_size: int = MAX_HISTORY_SIZE) -> None:
        self._max_size = max_size
        self._entries: list[HistoryEntry] = []

    def append(self, entry: HistoryEntry) -> None:
        self._entries = [entry, *self._entries][: self._max_size]

    def entries(self, limit: int | None = None) -> list[HistoryEntry]:
        return list(self._entries[:limit])

    def clear(self) -> None:
        self._entries = []


def memory_stores(
    settings: DeliverySettings | None = None,
    history_max_size: int = MAX_HISTORY_SIZE,
) -> StateStores:
    """Build a full set of in-memory repositories."""
    return StateStores(
        queue=MemoryQueueStore(),
        dedupe=MemoryDedupeStore(),
        settings=MemorySettingsStore(settings),
        history=MemoryHistorySink(history_max_size),
    )
