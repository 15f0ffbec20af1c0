"""Persisted state for urlhook.

Repositories for the retry queue, dedupe table, delivery settings and
history log, with in-memory and JSON file backends.

Example:
    ```python
    from urlhook.storage import json_file_stores

    stores = json_file_stores("~/.local/state/urlhook.json")
    jobs = stores.queue.load()
    ```
"""

from .base import DedupeStore, HistorySink, QueueStore, SettingsStore, StateStores
from .json_file import (
    JSONDedupeStore,
    JSONHistorySink,
    JSONQueueStore,
    JSONSettingsStore,
    JSONStateFile,
    json_file_stores,
)
from .memory import (
    MemoryDedupeStore,
    MemoryHistorySink,
    MemoryQueueStore,
    MemorySettingsStore,
    memory_stores,
)
from .settings import SettingsManager, is_valid_webhook_url, validate_delivery_settings

__all__ = [
    # Protocols
    "DedupeStore",
    "HistorySink",
    "QueueStore",
    "SettingsStore",
    "StateStores",
    # JSON file backend
    "JSONDedupeStore",
    "JSONHistorySink",
    "JSONQueueStore",
    "JSONSettingsStore",
    "JSONStateFile",
    "json_file_stores",
    # Memory backend
    "MemoryDedupeStore",
    "MemoryHistorySink",
    "MemoryQueueStore",
    "MemorySettingsStore",
    "memory_stores",
    # Settings management
    "SettingsManager",
    "is_valid_webhook_url",
    "validate_delivery_settings",
]
