"""Repository protocols for persisted state.

The engine never holds queue or dedupe state in memory between calls;
it reads through these repositories on every operation, so any durable
key-value backend can be substituted. Calls are synchronous and durable
within a call. Capacity checks belong to the caller, not the store.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from urlhook.models import DeliverySettings, HistoryEntry, Job


@runtime_checkable
class QueueStore(Protocol):
    """Ordered list of jobs (head first)."""

    def load(self) -> list[Job]: ...

    def save(self, jobs: list[Job]) -> None: ...


@runtime_checkable
class DedupeStore(Protocol):
    """Mapping of dedupe key to last-seen epoch milliseconds."""

    def load(self) -> dict[str, float]: ...

    def save(self, table: dict[str, float]) -> None: ...


@runtime_checkable
class SettingsStore(Protocol):
    """Delivery settings snapshot. The engine only reads."""

    def load(self) -> DeliverySettings: ...

    def save(self, settings: DeliverySettings) -> None: ...


@runtime_checkable
class HistorySink(Protocol):
    """Append-only outcome log, newest first, trimmed by the sink."""

    def append(self, entry: HistoryEntry) -> None: ...

    def entries(self, limit: int | None = None) -> list[HistoryEntry]: ...

    def clear(self) -> None: ...


@dataclass
class StateStores:
    """The four repositories a service runs on."""

    queue: QueueStore
    dedupe: DedupeStore
    settings: SettingsStore
    history: HistorySink
