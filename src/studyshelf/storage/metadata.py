"""Key-value persistence for the item and progress collections."""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Any, Sequence

from pydantic import TypeAdapter, ValidationError

from studyshelf.library.models import Item, ItemList
from studyshelf.tracking.models import ProgressList, StudyProgress

from .errors import MissingRecordError, StorageError

LOGGER = logging.getLogger(__name__)

ITEMS_KEY = "items"
PROGRESS_KEY = "progress"
RECENTS_KEY = "recents"

_RecentList = TypeAdapter(list[str])


class MetadataStore:
    """Persist whole collections as independent JSON records.

    Each record is replaced on save. The typed ``load_*`` helpers are
    best-effort: a missing or unreadable record yields an empty list and the
    problem is logged, so callers always get something they can render.
    """

    def __init__(self, directory: Path) -> None:
        """Initialize the store.

        Args:
            directory: Directory that holds the ``<key>.json`` records.
        """
        self._directory = Path(directory).expanduser()

    @property
    def directory(self) -> Path:
        """Return the directory holding the records."""
        return self._directory

    def record_path(self, key: str) -> Path:
        """Return the file backing the record named ``key``."""
        return self._directory / f"{key}.json"

    def read_record(self, key: str) -> Any:
        """Return the decoded JSON payload stored under ``key``.

        Raises:
            MissingRecordError: If the record has never been written.
            StorageError: If the record cannot be read or parsed.
        """
        path = self.record_path(key)
        if not path.exists():
            raise MissingRecordError(f"No {key} record found at {path}")
        try:
            return json.loads(path.read_text(encoding="utf-8"))
        except (OSError, UnicodeDecodeError, json.JSONDecodeError) as exc:
            raise StorageError(f"Invalid {key} record: {exc}") from exc

    def write_record(self, key: str, payload: Any) -> None:
        """Replace the record named ``key`` with ``payload``.

        The payload is written to a temporary file first and moved into place,
        so a crash leaves either the old or the new record.

        Raises:
            StorageError: If the record cannot be written.
        """
        path = self.record_path(key)
        temp_path = path.with_name(f".{path.name}.tmp")
        try:
            self._directory.mkdir(parents=True, exist_ok=True)
            temp_path.write_text(json.dumps(payload, indent=2) + "\n", encoding="utf-8")
            os.replace(temp_path, path)
        except (OSError, TypeError, ValueError) as exc:
            raise StorageError(f"Unable to write {key} record: {exc}") from exc

    # Typed collections ------------------------------------------------

    def save_items(self, items: Sequence[Item]) -> bool:
        """Persist the item collection; returns whether the write succeeded."""
        return self._save(ITEMS_KEY, ItemList.dump_python(list(items), mode="json"))

    def load_items(self) -> list[Item]:
        """Return the stored item collection, or an empty list."""
        return self._load(ITEMS_KEY, ItemList)

    def save_progress(self, records: Sequence[StudyProgress]) -> bool:
        """Persist the study progress collection; returns whether the write succeeded."""
        return self._save(PROGRESS_KEY, ProgressList.dump_python(list(records), mode="json"))

    def load_progress(self) -> list[StudyProgress]:
        """Return the stored study progress records, or an empty list."""
        return self._load(PROGRESS_KEY, ProgressList)

    def save_recents(self, item_ids: Sequence[str]) -> bool:
        """Persist the recently opened document ids."""
        return self._save(RECENTS_KEY, list(item_ids))

    def load_recents(self) -> list[str]:
        """Return the stored recently opened document ids, or an empty list."""
        return self._load(RECENTS_KEY, _RecentList)

    # Internal helpers -------------------------------------------------

    def _save(self, key: str, payload: Any) -> bool:
        try:
            self.write_record(key, payload)
        except StorageError as exc:
            LOGGER.warning("Dropping %s write: %s", key, exc)
            return False
        return True

    def _load(self, key: str, adapter: TypeAdapter) -> list:
        try:
            raw = self.read_record(key)
        except MissingRecordError:
            LOGGER.debug("No %s record yet in %s", key, self._directory)
            return []
        except StorageError as exc:
            LOGGER.warning("Ignoring unreadable %s record: %s", key, exc)
            return []

        try:
            return adapter.validate_python(raw)
        except ValidationError as exc:
            LOGGER.warning("Ignoring invalid %s record: %s", key, exc)
            return []


__all__ = ["MetadataStore", "ITEMS_KEY", "PROGRESS_KEY", "RECENTS_KEY"]
