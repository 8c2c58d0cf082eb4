"""The study shelf: the single owner of library state."""

from __future__ import annotations

import functools
import logging
import threading
from enum import Enum
from pathlib import Path
from typing import Any, Callable, FrozenSet, Iterable, Optional, TypeVar, Union

from studyshelf.config.models import LibrarySettings, ProgressSettings, ShelfConfig
from studyshelf.library import (
    FileTree,
    InvalidNameError,
    Item,
    ItemNotFoundError,
    OpenedDocument,
    SortOrder,
    ViewMode,
)
from studyshelf.library.models import ContentKind, ItemKind
from studyshelf.library.tree import snapshot
from studyshelf.notifications import LoggingNotifier, Notifier
from studyshelf.storage import BlobStore, MetadataStore, StorageError, blob_kind_for
from studyshelf.tracking import ProgressTracker, RecencyTracker, StudyProgress

LOGGER = logging.getLogger(__name__)

_F = TypeVar("_F", bound=Callable[..., Any])


def _detached(item: Optional[Item]) -> Optional[Item]:
    return item.model_copy(deep=True) if item is not None else None


class _Location(Enum):
    CURRENT_FOLDER = "current_folder"


CURRENT_FOLDER = _Location.CURRENT_FOLDER
ParentRef = Union[Optional[str], _Location]


def _exclusive(method: _F) -> _F:
    """Run ``method`` while holding the shelf lock."""

    @functools.wraps(method)
    def wrapper(self: "StudyShelf", *args: Any, **kwargs: Any) -> Any:
        with self._lock:
            return method(self, *args, **kwargs)

    return wrapper  # type: ignore[return-value]


class StudyShelf:
    """Compose the tree, trackers, and stores into the operations a UI calls.

    Every mutation updates in-memory state first and then writes through to
    the stores. Store failures are logged and never raised, so the in-memory
    snapshot is always valid to render. All public methods serialize on one
    re-entrant lock, which makes the shelf safe to share with a multi-threaded
    host.
    """

    def __init__(
        self,
        metadata: MetadataStore,
        blobs: BlobStore,
        *,
        library: LibrarySettings | None = None,
        progress: ProgressSettings | None = None,
        notifier: Notifier | None = None,
    ) -> None:
        """Initialize an empty shelf; call :meth:`load` to read persisted state.

        Args:
            metadata: Store for the item, progress, and recents records.
            blobs: Store for document payloads.
            library: Library behavior settings.
            progress: Study progress settings.
            notifier: Collaborator that surfaces user-facing messages.
        """
        self._lock = threading.RLock()
        self._metadata = metadata
        self._blobs = blobs
        self._settings = library or LibrarySettings()
        self._progress_settings = progress or ProgressSettings()
        self._notifier: Notifier = notifier or LoggingNotifier()

        self._tree = FileTree()
        self._progress = self._build_progress_tracker(())
        self._recents = RecencyTracker(self._tree.get, limit=self._settings.recent_limit)

        self._current_folder: Optional[str] = None
        self._current_path: list[str] = []
        self._editing_item: Optional[str] = None
        self._current_document: Optional[str] = None
        self._selection_mode = False
        self._selected: set[str] = set()
        self._view_mode = ViewMode.GRID
        self._sort_order = SortOrder(self._settings.default_sort)

    @classmethod
    def open(cls, config: ShelfConfig, *, notifier: Notifier | None = None) -> "StudyShelf":
        """Build a shelf from configuration and load its persisted state."""
        data_dir = Path(config.storage.data_dir).expanduser()
        shelf = cls(
            MetadataStore(data_dir),
            BlobStore(data_dir / config.storage.blob_dirname),
            library=config.library,
            progress=config.progress,
            notifier=notifier,
        )
        shelf.load()
        return shelf

    # ------------------------------------------------------------------ #
    # Lifecycle                                                          #
    # ------------------------------------------------------------------ #

    @_exclusive
    def load(self) -> None:
        """Replace in-memory state with what the stores hold.

        An empty item collection is seeded with a starter folder when the
        settings ask for one.
        """
        self._tree = FileTree(self._metadata.load_items())
        if not len(self._tree) and self._settings.seed_default_folder:
            folder = self._tree.create("folder", name=self._settings.default_folder_name)
            LOGGER.info("Seeded empty library with folder %s", folder.name)
            self._save_items()

        self._progress = self._build_progress_tracker(self._metadata.load_progress())
        recent_ids = self._metadata.load_recents() if self._settings.persist_recents else []
        self._recents = RecencyTracker(
            self._tree.get, limit=self._settings.recent_limit, ids=recent_ids
        )

        self._current_folder = None
        self._current_path = []
        self._editing_item = None
        self._current_document = None
        self._selection_mode = False
        self._selected.clear()

    # ------------------------------------------------------------------ #
    # Read accessors                                                     #
    # ------------------------------------------------------------------ #

    @property
    def items(self) -> list[Item]:
        """Return copies of every item, orphans included."""
        with self._lock:
            return snapshot(self._tree.items())

    @property
    def current_folder(self) -> Optional[str]:
        return self._current_folder

    @property
    def current_path(self) -> list[str]:
        return list(self._current_path)

    @property
    def sort_order(self) -> SortOrder:
        return self._sort_order

    @property
    def view_mode(self) -> ViewMode:
        return self._view_mode

    @property
    def selection_mode(self) -> bool:
        return self._selection_mode

    @property
    def selected_items(self) -> FrozenSet[str]:
        return frozenset(self._selected)

    @property
    def editing_item(self) -> Optional[str]:
        return self._editing_item

    @property
    def current_document(self) -> Optional[Item]:
        """Return the document most recently opened or created, if it still exists."""
        with self._lock:
            return _detached(self._tree.get(self._current_document))

    @_exclusive
    def get_item(self, item_id: str) -> Optional[Item]:
        """Return the item with ``item_id``, reachable or orphaned."""
        return _detached(self._tree.get(item_id))

    @_exclusive
    def children_of(self, parent_id: Optional[str]) -> list[Item]:
        """Return the items inside ``parent_id`` in the active sort order."""
        return snapshot(self._tree.children_of(parent_id, self._sort_order))

    @_exclusive
    def current_items(self) -> list[Item]:
        """Return the contents of the current folder in the active sort order."""
        return snapshot(self._tree.children_of(self._current_folder, self._sort_order))

    @_exclusive
    def path_to(self, item_id: str) -> list[str]:
        """Return breadcrumb names from the root to ``item_id``."""
        return self._tree.resolve_path_to(item_id)

    @_exclusive
    def find_items(
        self,
        query: str = "",
        *,
        kind: Optional[ItemKind] = None,
        content_kind: Optional[ContentKind] = None,
    ) -> list[Item]:
        """Search the whole library by name, in the active sort order."""
        matches = self._tree.find(
            query, kind=kind, content_kind=content_kind, order=self._sort_order
        )
        return snapshot(matches)

    @_exclusive
    def recent_items(self) -> list[Item]:
        """Return recently opened documents, most recent first."""
        return snapshot(self._recents.list())

    @_exclusive
    def progress_for(self, document_id: str) -> Optional[StudyProgress]:
        record = self._progress.get(document_id)
        return record.model_copy(deep=True) if record is not None else None

    @_exclusive
    def recent_progress(self, limit: int = 5) -> list[tuple[Item, StudyProgress]]:
        """Return the most recently studied documents that still exist."""
        pairs = self._progress.top_recent(limit, self._tree.get)
        return [
            (item.model_copy(deep=True), record.model_copy(deep=True)) for item, record in pairs
        ]

    @_exclusive
    def integrity_report(self) -> list[str]:
        """Describe broken tree invariants, orphans included."""
        return self._tree.check_integrity()

    # ------------------------------------------------------------------ #
    # Creation                                                           #
    # ------------------------------------------------------------------ #

    @_exclusive
    def create_folder(
        self,
        name: Optional[str] = None,
        *,
        parent_id: ParentRef = CURRENT_FOLDER,
    ) -> Item:
        """Create a folder and start editing its name.

        Raises:
            InvalidParentError: If ``parent_id`` is not an existing folder.
        """
        folder = self._tree.create("folder", parent_id=self._parent(parent_id), name=name)
        self._save_items()
        self._editing_item = folder.id
        self._notify("Folder Created", f"{folder.name} was added to your library.")
        return folder.model_copy(deep=True)

    @_exclusive
    def create_note(
        self,
        name: Optional[str] = None,
        *,
        parent_id: ParentRef = CURRENT_FOLDER,
        text: str = "",
    ) -> Item:
        """Create a note with an empty (or given) body and make it current."""
        return self._create_document(
            "file", "note", name, self._parent(parent_id), text.encode("utf-8"), "Note Created"
        )

    @_exclusive
    def create_whiteboard(
        self,
        name: Optional[str] = None,
        *,
        parent_id: ParentRef = CURRENT_FOLDER,
    ) -> Item:
        """Create an empty whiteboard and make it current."""
        return self._create_document(
            "whiteboard", None, name, self._parent(parent_id), b"", "Whiteboard Created"
        )

    @_exclusive
    def import_document(
        self,
        source: Union[Path, str, bytes],
        *,
        name: Optional[str] = None,
        parent_id: ParentRef = CURRENT_FOLDER,
        content_kind: ContentKind = "pdf",
    ) -> Optional[Item]:
        """Store a document's bytes under a new file item.

        Args:
            source: Path to read, or the payload itself.
            name: Display name; defaults to the source file name. The content
                suffix is appended when missing.
            parent_id: Destination folder; defaults to the current folder.
            content_kind: Payload type of the imported document.

        Returns:
            Item | None: The new file, or ``None`` when the source is unreadable.
        """
        if isinstance(source, bytes):
            data = source
            default_name = "Imported Document"
        else:
            path = Path(source).expanduser()
            try:
                data = path.read_bytes()
            except OSError as exc:
                LOGGER.warning("Unable to import %s: %s", path, exc)
                return None
            default_name = path.name

        return self._create_document(
            "file",
            content_kind,
            name or default_name,
            self._parent(parent_id),
            data,
            "Document Imported",
            edit=False,
        )

    # ------------------------------------------------------------------ #
    # Mutation                                                           #
    # ------------------------------------------------------------------ #

    @_exclusive
    def rename_item(self, item_id: str, new_name: str) -> Optional[Item]:
        """Rename an item and finish editing.

        A blank name or an unknown id cancels the edit without changing
        anything.

        Returns:
            Item | None: The renamed item, or ``None`` when the edit was cancelled.
        """
        self._editing_item = None
        try:
            item = self._tree.rename(item_id, new_name)
        except InvalidNameError:
            LOGGER.debug("Cancelled rename of %s: blank name", item_id)
            return None
        except ItemNotFoundError:
            LOGGER.warning("Cancelled rename of unknown item %s", item_id)
            return None
        self._save_items()
        return item.model_copy(deep=True)

    @_exclusive
    def move_item(self, item_id: str, parent_id: Optional[str]) -> Item:
        """Move an item into another folder (or the root).

        Raises:
            ItemNotFoundError: If ``item_id`` is unknown.
            InvalidParentError: If the destination is not a folder or lies
                inside the item.
        """
        item = self._tree.move(item_id, parent_id)
        self._save_items()
        if item.kind == "folder":
            self._sync_current_folder()
        return item.model_copy(deep=True)

    @_exclusive
    def delete_items(self, item_ids: Optional[Iterable[str]] = None) -> list[Item]:
        """Delete items from the library.

        With no ids, deletes the current selection in selection mode, or else
        the item being edited. Children of a deleted folder are orphaned
        unless cascading deletes are enabled. Selection mode ends afterwards.

        Returns:
            list[Item]: The removed items.
        """
        if item_ids is not None:
            targets = list(item_ids)
        elif self._selection_mode and self._selected:
            targets = list(self._selected)
        elif self._editing_item is not None:
            targets = [self._editing_item]
        else:
            targets = []

        if self._settings.cascade_deletes:
            expanded = list(targets)
            for target in targets:
                item = self._tree.get(target)
                if item is not None and item.kind == "folder":
                    expanded.extend(child.id for child in self._tree.descendants_of(target))
            targets = expanded

        removed = self._tree.delete(targets)
        removed_ids = {item.id for item in removed}

        self._selected.clear()
        self._selection_mode = False
        self._editing_item = None
        if self._current_document in removed_ids:
            self._current_document = None
        self._sync_current_folder()
        self._recents.discard(removed_ids)

        self._save_items()
        self._save_recents()
        if removed:
            noun = "item" if len(removed) == 1 else "items"
            self._notify("Items Deleted", f"Removed {len(removed)} {noun} from your library.")
        return removed

    @_exclusive
    def open_document(self, item_id: str) -> Optional[OpenedDocument]:
        """Fetch a document's payload for a viewer or editor.

        Returns:
            OpenedDocument | None: The payload, or ``None`` when the item is
            unknown, is a folder, or has no stored content.
        """
        item = self._tree.get(item_id)
        if item is None or not item.is_document:
            LOGGER.info("Cannot open %s: no such document", item_id)
            return None

        try:
            data = self._blobs.get_blob(item.id, blob_kind_for(item))
        except StorageError as exc:
            LOGGER.warning("Cannot open %s: %s", item_id, exc)
            return None
        if data is None:
            LOGGER.info("Content for %s (%s) is unavailable", item.name, item.id)
            return None

        self._recents.record_open(item)
        self._save_recents()
        self._current_document = item.id
        return OpenedDocument(
            id=item.id,
            title=item.name,
            kind=item.kind,
            content_kind=getattr(item, "content_kind", None),
            data=data,
        )

    @_exclusive
    def save_document(self, item_id: str, data: Union[bytes, str]) -> bool:
        """Replace a document's payload; returns whether it was written."""
        item = self._tree.get(item_id)
        if item is None or not item.is_document:
            LOGGER.info("Cannot save %s: no such document", item_id)
            return False

        payload = data.encode("utf-8") if isinstance(data, str) else data
        if not self._put_blob(item, payload):
            return False
        self._tree.touch(item.id)
        self._save_items()
        if item.kind == "whiteboard":
            self._notify("Whiteboard Saved", "Your whiteboard has been saved.")
        else:
            self._notify("Document Saved", f"{item.name} has been saved.")
        return True

    @_exclusive
    def record_study_time(self, document_id: str, minutes: float) -> Optional[StudyProgress]:
        """Add study time to a document; unknown ids and folders are ignored.

        Raises:
            ValueError: If ``minutes`` is negative.
        """
        item = self._tree.get(document_id)
        if item is None or not item.is_document:
            LOGGER.info("Ignoring study time for %s: no such document", document_id)
            return None
        record = self._progress.record_study_time(document_id, minutes)
        return record.model_copy(deep=True)

    @_exclusive
    def mark_section_complete(self, document_id: str, section: str) -> Optional[StudyProgress]:
        """Record a finished section for a document that has progress."""
        record = self._progress.mark_section(document_id, section)
        return record.model_copy(deep=True) if record is not None else None

    # ------------------------------------------------------------------ #
    # Navigation and view state                                          #
    # ------------------------------------------------------------------ #

    @_exclusive
    def navigate_to_folder(self, folder_id: str) -> bool:
        """Make ``folder_id`` the current folder; returns whether it changed."""
        folder = self._tree.get(folder_id)
        if folder is None or folder.kind != "folder":
            LOGGER.info("Cannot navigate to %s: not a folder", folder_id)
            return False
        self._current_folder = folder.id
        self._current_path = self._tree.resolve_path_to(folder.id)
        return True

    @_exclusive
    def navigate_back(self) -> None:
        """Go to the parent of the current folder, or the root."""
        current = self._tree.get(self._current_folder)
        if current is not None and current.parent_id is not None:
            if self.navigate_to_folder(current.parent_id):
                return
        self.navigate_to_root()

    @_exclusive
    def navigate_to_root(self) -> None:
        self._current_folder = None
        self._current_path = []

    @_exclusive
    def navigate_to_breadcrumb(self, index: int) -> bool:
        """Jump to the folder at ``index`` in :attr:`current_path`."""
        if self._current_folder is None:
            return False
        chain = self._tree.ancestors_of(self._current_folder)
        if not 0 <= index < len(chain):
            return False
        return self.navigate_to_folder(chain[index].id)

    @_exclusive
    def change_sort_order(self, order: Union[SortOrder, str]) -> None:
        self._sort_order = SortOrder(order)

    @_exclusive
    def toggle_view_mode(self) -> ViewMode:
        self._view_mode = ViewMode.LIST if self._view_mode is ViewMode.GRID else ViewMode.GRID
        return self._view_mode

    @_exclusive
    def toggle_selection_mode(self) -> bool:
        """Enter or leave selection mode; leaving clears the selection."""
        self._selection_mode = not self._selection_mode
        if not self._selection_mode:
            self._selected.clear()
        return self._selection_mode

    @_exclusive
    def toggle_selection(self, item_id: str) -> bool:
        """Add or remove ``item_id`` from the selection; returns whether it is selected."""
        if item_id in self._selected:
            self._selected.discard(item_id)
            return False
        if item_id not in self._tree:
            return False
        self._selected.add(item_id)
        return True

    @_exclusive
    def begin_editing(self, item_id: Optional[str]) -> None:
        self._editing_item = item_id if item_id in self._tree else None

    # ------------------------------------------------------------------ #
    # Internal helpers                                                   #
    # ------------------------------------------------------------------ #

    def _build_progress_tracker(self, records: Iterable[StudyProgress]) -> ProgressTracker:
        return ProgressTracker(
            self._metadata,
            records=records,
            initial_progress=self._progress_settings.initial_progress,
            minutes_per_progress_unit=self._progress_settings.minutes_per_progress_unit,
        )

    def _sync_current_folder(self) -> None:
        """Fall back to the root when the current folder is gone or unreachable."""
        if self._current_folder is None:
            return
        chain = self._tree.ancestors_of(self._current_folder)
        if not chain or chain[0].parent_id is not None:
            LOGGER.debug("Current folder %s is no longer reachable", self._current_folder)
            self.navigate_to_root()
            return
        self._current_path = [folder.name for folder in chain]

    def _parent(self, parent_id: ParentRef) -> Optional[str]:
        if parent_id is CURRENT_FOLDER:
            return self._current_folder
        return parent_id  # type: ignore[return-value]

    def _create_document(
        self,
        kind: ItemKind,
        content_kind: Optional[ContentKind],
        name: Optional[str],
        parent_id: Optional[str],
        payload: bytes,
        title: str,
        *,
        edit: bool = True,
    ) -> Item:
        item = self._tree.create(kind, content_kind, parent_id, name=name)
        self._put_blob(item, payload)
        self._save_items()
        self._current_document = item.id
        if edit:
            self._editing_item = item.id
        self._notify(title, f"{item.name} was added to your library.")
        return item.model_copy(deep=True)

    def _put_blob(self, item: Item, payload: bytes) -> bool:
        try:
            self._blobs.put_blob(item.id, blob_kind_for(item), payload)
        except StorageError as exc:
            LOGGER.warning("Dropping content write for %s: %s", item.id, exc)
            return False
        return True

    def _save_items(self) -> None:
        self._metadata.save_items(self._tree.items())

    def _save_recents(self) -> None:
        if self._settings.persist_recents:
            self._metadata.save_recents(self._recents.ids())

    def _notify(self, title: str, message: str) -> None:
        try:
            self._notifier.notify(title, message)
        except Exception as exc:  # noqa: BLE001
            LOGGER.debug("Notifier failed for %r: %s", title, exc)


__all__ = ["StudyShelf", "CURRENT_FOLDER"]
