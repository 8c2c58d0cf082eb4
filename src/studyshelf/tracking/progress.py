"""Per-document study progress bookkeeping."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import TYPE_CHECKING, Callable, Iterable, Optional

from studyshelf.library.models import Item, utcnow

from .models import StudyProgress

if TYPE_CHECKING:
    from studyshelf.storage import MetadataStore

LOGGER = logging.getLogger(__name__)


class ProgressTracker:
    """Track study time and progress for documents, keyed by document id.

    Every mutation writes the whole collection through the metadata store
    when one is attached.
    """

    def __init__(
        self,
        store: "MetadataStore | None" = None,
        *,
        records: Iterable[StudyProgress] = (),
        initial_progress: float = 0.1,
        minutes_per_progress_unit: float = 100.0,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        """Initialize the tracker.

        Args:
            store: Metadata store used for write-through persistence.
            records: Previously persisted records. When several share a
                document id, the most recently studied one wins.
            initial_progress: Progress assigned on a document's first session.
            minutes_per_progress_unit: Minutes that add a full 1.0 of progress.
            clock: Source of timestamps.
        """
        if minutes_per_progress_unit <= 0:
            raise ValueError("minutes_per_progress_unit must be positive")
        self._store = store
        self._initial_progress = initial_progress
        self._minutes_per_unit = minutes_per_progress_unit
        self._clock = clock
        self._records: dict[str, StudyProgress] = {}
        for record in records:
            existing = self._records.get(record.document_id)
            if existing is not None:
                LOGGER.warning("Collapsing duplicate progress records for %s", record.document_id)
                if existing.last_studied >= record.last_studied:
                    continue
            self._records[record.document_id] = record

    def get(self, document_id: str) -> Optional[StudyProgress]:
        return self._records.get(document_id)

    def records(self) -> list[StudyProgress]:
        return list(self._records.values())

    def record_study_time(self, document_id: str, minutes: float) -> StudyProgress:
        """Add a study session for ``document_id``.

        The first session creates a record at the initial progress; later
        sessions add ``minutes / minutes_per_progress_unit``, capped at 1.0.

        Raises:
            ValueError: If ``minutes`` is negative.
        """
        if minutes < 0:
            raise ValueError("Study time cannot be negative.")

        now = self._clock()
        record = self._records.get(document_id)
        if record is None:
            record = StudyProgress(
                document_id=document_id,
                progress=self._initial_progress,
                total_time_spent=minutes,
                last_studied=now,
            )
            self._records[document_id] = record
        else:
            record.total_time_spent += minutes
            record.progress = min(1.0, record.progress + minutes / self._minutes_per_unit)
            record.last_studied = now

        self._persist()
        return record

    def mark_section(self, document_id: str, section: str) -> Optional[StudyProgress]:
        """Add ``section`` to the completed sections of an existing record."""
        record = self._records.get(document_id)
        if record is None:
            return None
        if section not in record.completed_sections:
            record.completed_sections = record.completed_sections | {section}
            self._persist()
        return record

    def forget(self, document_ids: Iterable[str]) -> int:
        """Drop the records of the given documents; returns how many were removed."""
        removed = 0
        for document_id in set(document_ids):
            if self._records.pop(document_id, None) is not None:
                removed += 1
        if removed:
            self._persist()
        return removed

    def top_recent(
        self,
        limit: int,
        lookup: Callable[[str], Optional[Item]],
    ) -> list[tuple[Item, StudyProgress]]:
        """Return the most recently studied documents that still exist.

        Args:
            limit: Maximum number of pairs to return.
            lookup: Resolves a document id to its item.

        Returns:
            list[tuple[Item, StudyProgress]]: Pairs ordered by ``last_studied``
            descending. Records of deleted documents are skipped.
        """
        ordered = sorted(self._records.values(), key=lambda r: r.last_studied, reverse=True)
        pairs: list[tuple[Item, StudyProgress]] = []
        for record in ordered:
            if len(pairs) >= limit:
                break
            item = lookup(record.document_id)
            if item is not None:
                pairs.append((item, record))
        return pairs

    def _persist(self) -> None:
        if self._store is not None:
            self._store.save_progress(self.records())


__all__ = ["ProgressTracker"]
