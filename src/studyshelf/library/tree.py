"""In-memory tree of library items."""

from __future__ import annotations

import logging
import uuid
from typing import Callable, Iterable, Iterator, Optional, Sequence

from .errors import InvalidNameError, InvalidParentError, ItemNotFoundError
from .models import (
    ContentKind,
    FileItem,
    FolderItem,
    Item,
    ItemBase,
    ItemKind,
    SortOrder,
    WhiteboardItem,
    apply_suffix,
    utcnow,
)

LOGGER = logging.getLogger(__name__)

MAX_PATH_DEPTH = 64

DEFAULT_NAMES: dict[tuple[str, Optional[str]], str] = {
    ("folder", None): "New Folder",
    ("file", "note"): "New Note.notes",
    ("file", "pdf"): "New Document.pdf",
    ("whiteboard", None): "New Whiteboard.whiteboard",
}


def _new_uuid() -> str:
    return str(uuid.uuid4()).upper()


def sort_items(items: Iterable[Item], order: SortOrder) -> list[Item]:
    """Return ``items`` ordered by ``order``.

    Names compare case-insensitively. Python's sort is stable, so items that
    compare equal keep their incoming (insertion) order in every mode,
    including the descending ones.

    Args:
        items: Items to sort.
        order: Requested ordering.

    Returns:
        list[Item]: New sorted list.
    """
    order = SortOrder(order)
    if order is SortOrder.NAME_ASCENDING:
        return sorted(items, key=lambda item: item.name.lower())
    if order is SortOrder.NAME_DESCENDING:
        return sorted(items, key=lambda item: item.name.lower(), reverse=True)
    if order is SortOrder.DATE_CREATED_NEWEST:
        return sorted(items, key=lambda item: item.date_created, reverse=True)
    if order is SortOrder.DATE_CREATED_OLDEST:
        return sorted(items, key=lambda item: item.date_created)
    if order is SortOrder.DATE_MODIFIED_NEWEST:
        return sorted(items, key=lambda item: item.date_modified, reverse=True)
    return sorted(items, key=lambda item: item.date_modified)


class FileTree:
    """Flat item collection arranged into a tree through parent ids.

    Items are kept in insertion order, which doubles as the tie-breaker for
    every sort order. Deleting a folder does not touch its children; they stay
    addressable by id but are no longer listed under any visible folder.
    """

    def __init__(
        self,
        items: Iterable[Item] = (),
        *,
        id_factory: Callable[[], str] = _new_uuid,
    ) -> None:
        self._items: dict[str, Item] = {}
        self._id_factory = id_factory
        for item in items:
            if item.id in self._items:
                LOGGER.warning("Dropping duplicate item id %s while loading the tree.", item.id)
                continue
            self._items[item.id] = item

    # ------------------------------------------------------------------ #
    # Lookup                                                             #
    # ------------------------------------------------------------------ #

    def __contains__(self, item_id: object) -> bool:
        return item_id in self._items

    def __len__(self) -> int:
        return len(self._items)

    def __iter__(self) -> Iterator[Item]:
        return iter(list(self._items.values()))

    def items(self) -> list[Item]:
        """Return a snapshot of every item in insertion order."""
        return list(self._items.values())

    def get(self, item_id: Optional[str]) -> Optional[Item]:
        """Return the item for ``item_id`` or ``None``."""
        if item_id is None:
            return None
        return self._items.get(item_id)

    def require(self, item_id: str) -> Item:
        """Return the item for ``item_id``.

        Raises:
            ItemNotFoundError: If no such item exists.
        """
        item = self._items.get(item_id)
        if item is None:
            raise ItemNotFoundError(f"No item with id {item_id!r}")
        return item

    def children_of(
        self,
        parent_id: Optional[str],
        order: SortOrder = SortOrder.NAME_ASCENDING,
    ) -> list[Item]:
        """Return the items directly inside ``parent_id`` (``None`` for the root)."""
        children = [item for item in self._items.values() if item.parent_id == parent_id]
        return sort_items(children, order)

    def descendants_of(self, folder_id: str) -> list[Item]:
        """Return every item below ``folder_id``, breadth first."""
        found: list[Item] = []
        seen = {folder_id}
        frontier = [folder_id]
        while frontier:
            next_frontier: list[str] = []
            for parent in frontier:
                for item in self._items.values():
                    if item.parent_id == parent and item.id not in seen:
                        seen.add(item.id)
                        found.append(item)
                        next_frontier.append(item.id)
            frontier = next_frontier
        return found

    def ancestors_of(self, item_id: str) -> list[Item]:
        """Return the chain of items from the root down to ``item_id``.

        The walk stops silently at a missing parent, a repeated id, or after
        ``MAX_PATH_DEPTH`` steps, so a corrupted tree cannot hang navigation.
        """
        chain: list[Item] = []
        seen: set[str] = set()
        current = self.get(item_id)
        while current is not None and len(chain) < MAX_PATH_DEPTH:
            if current.id in seen:
                break
            seen.add(current.id)
            chain.append(current)
            current = self.get(current.parent_id)
        chain.reverse()
        return chain

    def resolve_path_to(self, item_id: str) -> list[str]:
        """Return breadcrumb names from the root down to ``item_id``."""
        return [item.name for item in self.ancestors_of(item_id)]

    def find(
        self,
        query: str = "",
        *,
        kind: Optional[ItemKind] = None,
        content_kind: Optional[ContentKind] = None,
        order: SortOrder = SortOrder.NAME_ASCENDING,
    ) -> list[Item]:
        """Search item names across the whole tree.

        Args:
            query: Case-insensitive substring; empty matches everything.
            kind: Restrict results to one item kind.
            content_kind: Restrict results to files of one content kind.
            order: Ordering applied to the matches.

        Returns:
            list[Item]: Matching items, orphans included.
        """
        needle = query.strip().lower()
        matches = []
        for item in self._items.values():
            if kind is not None and item.kind != kind:
                continue
            if content_kind is not None and getattr(item, "content_kind", None) != content_kind:
                continue
            if needle and needle not in item.name.lower():
                continue
            matches.append(item)
        return sort_items(matches, order)

    # ------------------------------------------------------------------ #
    # Mutation                                                           #
    # ------------------------------------------------------------------ #

    def create(
        self,
        kind: ItemKind,
        content_kind: Optional[ContentKind] = None,
        parent_id: Optional[str] = None,
        *,
        name: Optional[str] = None,
        item_id: Optional[str] = None,
    ) -> Item:
        """Create an item with a fresh id and append it to the collection.

        Args:
            kind: Item kind to create.
            content_kind: Payload type, required for files only.
            parent_id: Containing folder, ``None`` for the root.
            name: Optional display name; blank names fall back to the default.
            item_id: Explicit id, used when a blob was written under it first.

        Returns:
            Item: The new item.

        Raises:
            ValueError: If ``content_kind`` does not fit ``kind`` or
                ``item_id`` is already taken.
            InvalidParentError: If ``parent_id`` is not an existing folder.
        """
        if kind == "file" and content_kind is None:
            raise ValueError("Files require a content kind.")
        if kind != "file" and content_kind is not None:
            raise ValueError(f"{kind} items do not take a content kind.")
        if (kind, content_kind) not in DEFAULT_NAMES:
            raise ValueError(f"Unknown item kind {kind!r}.")

        self._check_parent(parent_id)
        if item_id is not None and item_id in self._items:
            raise ValueError(f"Item id {item_id!r} is already in use.")

        now = utcnow()
        fields = {
            "id": item_id or self.new_id(),
            "name": DEFAULT_NAMES[(kind, content_kind)],
            "parent_id": parent_id,
            "date_created": now,
            "date_modified": now,
        }
        item: Item
        if kind == "folder":
            item = FolderItem(**fields)
        elif kind == "whiteboard":
            item = WhiteboardItem(**fields)
        else:
            item = FileItem(content_kind=content_kind, **fields)

        if name is not None and name.strip():
            item.name = apply_suffix(name.strip(), item.suffix)

        self._items[item.id] = item
        LOGGER.debug("Created %s %s (%s) under %s", kind, item.id, item.name, parent_id)
        return item

    def rename(self, item_id: str, new_name: str) -> Item:
        """Rename an item, enforcing the suffix rule for documents.

        Raises:
            InvalidNameError: If ``new_name`` is blank once trimmed.
            ItemNotFoundError: If ``item_id`` is unknown.
        """
        trimmed = new_name.strip()
        if not trimmed:
            raise InvalidNameError("Names cannot be empty.")
        item = self.require(item_id)
        item.name = apply_suffix(trimmed, item.suffix)
        item.date_modified = utcnow()
        return item

    def touch(self, item_id: str) -> Item:
        """Mark an item's content as replaced."""
        item = self.require(item_id)
        item.date_modified = utcnow()
        return item

    def move(self, item_id: str, parent_id: Optional[str]) -> Item:
        """Reparent an item.

        Raises:
            ItemNotFoundError: If ``item_id`` is unknown.
            InvalidParentError: If the target is not a folder or lies inside
                the item being moved.
        """
        item = self.require(item_id)
        self._check_parent(parent_id, moving=item_id)
        item.parent_id = parent_id
        item.date_modified = utcnow()
        return item

    def delete(self, item_ids: Iterable[str]) -> list[Item]:
        """Remove exactly the named items; unknown ids are ignored.

        Children of a removed folder are left in place with their parent id
        unchanged.

        Returns:
            list[Item]: Items that were removed.
        """
        removed = []
        for item_id in dict.fromkeys(item_ids):
            item = self._items.pop(item_id, None)
            if item is not None:
                removed.append(item)
        return removed

    # ------------------------------------------------------------------ #
    # Diagnostics                                                        #
    # ------------------------------------------------------------------ #

    def orphans(self) -> list[Item]:
        """Return items whose parent id no longer resolves."""
        return [
            item
            for item in self._items.values()
            if item.parent_id is not None and item.parent_id not in self._items
        ]

    def check_integrity(self) -> list[str]:
        """Describe every broken invariant; an empty list means a healthy tree."""
        problems: list[str] = []
        for item in self._items.values():
            if item.parent_id is None:
                continue
            parent = self._items.get(item.parent_id)
            if parent is None:
                problems.append(
                    f"{item.id} ({item.name}) is orphaned: parent {item.parent_id} is gone"
                )
            elif parent.kind != "folder":
                problems.append(f"{item.id} ({item.name}) has non-folder parent {parent.id}")
            elif self._has_cycle(item.id):
                problems.append(f"{item.id} ({item.name}) has a cyclic ancestry")
        return problems

    # ------------------------------------------------------------------ #
    # Internal helpers                                                   #
    # ------------------------------------------------------------------ #

    def new_id(self) -> str:
        """Return a fresh id that no item in the tree uses."""
        candidate = self._id_factory()
        while candidate in self._items:
            LOGGER.debug("Id collision on %s; generating another.", candidate)
            candidate = self._id_factory()
        return candidate

    def _check_parent(self, parent_id: Optional[str], *, moving: Optional[str] = None) -> None:
        if parent_id is None:
            return
        parent = self._items.get(parent_id)
        if parent is None:
            raise InvalidParentError(f"Parent {parent_id!r} does not exist.")
        if parent.kind != "folder":
            raise InvalidParentError(f"Parent {parent_id!r} is not a folder.")
        if moving is not None and moving in {item.id for item in self.ancestors_of(parent_id)}:
            raise InvalidParentError(f"Cannot move {moving!r} inside itself.")

    def _has_cycle(self, item_id: str) -> bool:
        seen: set[str] = set()
        current: Optional[ItemBase] = self._items.get(item_id)
        steps = 0
        while current is not None and current.parent_id is not None:
            if current.id in seen or steps > MAX_PATH_DEPTH:
                return True
            seen.add(current.id)
            current = self._items.get(current.parent_id)
            steps += 1
        return False


def snapshot(items: Sequence[Item]) -> list[Item]:
    """Return deep copies of ``items`` for callers that must not alias state."""
    return [item.model_copy(deep=True) for item in items]


__all__ = ["FileTree", "MAX_PATH_DEPTH", "DEFAULT_NAMES", "sort_items", "snapshot"]
