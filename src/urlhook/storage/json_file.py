"""JSON file repositories.

All state lives in one JSON document with a section per repository:

    {"queue": [...], "dedupe": {...}, "history": [...], "settings": {...}}

Every load re-reads the file and every save rewrites it through a
temporary file and ``os.replace``, so a crash mid-write leaves the
previous document intact and a restarted process resumes from disk.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any

from pydantic import ValidationError as PydanticValidationError

from urlhook.config import MAX_HISTORY_SIZE
from urlhook.exceptions import StorageError
from urlhook.models import DeliverySettings, HistoryEntry, Job

from .base import StateStores

logger = logging.getLogger(__name__)


class JSONStateFile:
    """A JSON document on disk, read and written by section."""

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)

    def read(self) -> dict[str, Any]:
        """Read the whole document; a missing file is an empty document."""
        try:
            text = self.path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return {}
        except OSError as e:
            raise StorageError(f"Cannot read state file {self.path}: {e}") from e

        if not text.strip():
            return {}
        try:
            document = json.loads(text)
        except json.JSONDecodeError as e:
            raise StorageError(f"Corrupt state file {self.path}: {e}") from e
        if not isinstance(document, dict):
            raise StorageError(f"Corrupt state file {self.path}: top level is not an object")
        return document

    def get(self, section: str, default: Any) -> Any:
        return self.read().get(section, default)

    def set(self, section: str, value: Any) -> None:
        """Replace one section, leaving the others untouched."""
        document = self.read()
        document[section] = value
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(dir=self.path.parent, prefix=f".{self.path.name}.")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                json.dump(document, fh, ensure_ascii=False)
            os.replace(tmp_name, self.path)
        except OSError as e:
            Path(tmp_name).unlink(missing_ok=True)
            raise StorageError(f"Cannot write state file {self.path}: {e}") from e


class JSONQueueStore:
    def __init__(self, state: JSONStateFile) -> None:
        self._state = state

    def load(self) -> list[Job]:
        raw = self._state.get("queue", [])
        try:
            return [Job.model_validate(item) for item in raw]
        except PydanticValidationError as e:
            raise StorageError(f"Invalid job in {self._state.path}: {e}") from e

    def save(self, jobs: list[Job]) -> None:
        self._state.set("queue", [job.model_dump(mode="json") for job in jobs])


class JSONDedupeStore:
    def __init__(self, state: JSONStateFile) -> None:
        self._state = state

    def load(self) -> dict[str, float]:
        raw = self._state.get("dedupe", {})
        return {str(k): float(v) for k, v in raw.items()}

    def save(self, table: dict[str, float]) -> None:
        self._state.set("dedupe", table)


class JSONSettingsStore:
    def __init__(self, state: JSONStateFile) -> None:
        self._state = state

    def load(self) -> DeliverySettings:
        raw = self._state.get("settings", {})
        try:
            return DeliverySettings.model_validate(raw)
        except PydanticValidationError as e:
            raise StorageError(f"Invalid settings in {self._state.path}: {e}") from e

    def save(self, settings: DeliverySettings) -> None:
        self._state.set("settings", settings.model_dump(mode="json"))


class JSONHistorySink:
    """History section kept newest first and trimmed to ``max_size``."""

    def __init__(self, state: JSONStateFile, max_size: int = MAX_HISTORY_SIZE) -> None:
        self._state = state
        self._max_size = max_size

    def append(self, entry: HistoryEntry) -> None:
        raw = self._state.get("history", [])
        trimmed = [entry.model_dump(mode="json"), *raw][: self._max_size]
        self._state.set("history", trimmed)

    def entries(self, limit: int | None = None) -> list[HistoryEntry]:
        raw = self._state.get("history", [])[:limit]
        entries: list[HistoryEntry] = []
        for item in raw:
            try:
                entries.append(HistoryEntry.model_validate(item))
            except PydanticValidationError as e:
                logger.warning("Skipping unreadable history entry: %s", e)
        return entries

    def clear(self) -> None:
        self._state.set("history", [])


def json_file_stores(path: str | Path, history_max_size: int = MAX_HISTORY_SIZE) -> StateStores:
    """Build a full set of repositories backed by one JSON file."""
    state = JSONStateFile(path)
    return StateStores(
        queue=JSONQueueStore(state),
        dedupe=JSONDedupeStore(state),
        settings=JSONSettingsStore(state),
        history=JSONHistorySink(state, history_max_size),
    )
