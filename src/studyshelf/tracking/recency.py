"""Bounded most-recently-opened document list."""

from __future__ import annotations

from typing import Callable, Iterable, List, Optional

from studyshelf.library.models import Item

DEFAULT_RECENT_LIMIT = 5


class RecencyTracker:
    """Remember the last few opened documents, most recent first.

    Only ids are stored; :meth:`list` resolves them through ``lookup`` so
    renamed items show their current name and deleted ones drop out.
    """

    def __init__(
        self,
        lookup: Callable[[str], Optional[Item]],
        *,
        limit: int = DEFAULT_RECENT_LIMIT,
        ids: Iterable[str] = (),
    ) -> None:
        if limit < 1:
            raise ValueError("limit must be at least 1")
        self._lookup = lookup
        self._limit = limit
        self._ids: List[str] = []
        for item_id in ids:
            if item_id not in self._ids and len(self._ids) < limit:
                self._ids.append(item_id)

    @property
    def limit(self) -> int:
        return self._limit

    def __len__(self) -> int:
        return len(self._ids)

    def record_open(self, item: Item | str) -> None:
        """Move ``item`` to the front, evicting the oldest entry past the limit."""
        item_id = item if isinstance(item, str) else item.id
        if item_id in self._ids:
            self._ids.remove(item_id)
        self._ids.insert(0, item_id)
        del self._ids[self._limit :]

    def discard(self, item_ids: Iterable[str]) -> None:
        """Forget the given ids."""
        dropped = set(item_ids)
        self._ids = [item_id for item_id in self._ids if item_id not in dropped]

    def clear(self) -> None:
        self._ids.clear()

    def ids(self) -> List[str]:
        """Return the stored ids, most recent first."""
        return list(self._ids)

    def list(self) -> List[Item]:
        """Return the recently opened items that still exist, most recent first."""
        resolved = (self._lookup(item_id) for item_id in self._ids)
        return [item for item in resolved if item is not None]


__all__ = ["RecencyTracker", "DEFAULT_RECENT_LIMIT"]
