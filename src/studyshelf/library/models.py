"""Item models for the virtual file system."""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Annotated, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter

ItemKind = Literal["folder", "file", "whiteboard"]
ContentKind = Literal["pdf", "note"]

CONTENT_SUFFIXES: dict[str, str] = {"pdf": ".pdf", "note": ".notes"}
WHITEBOARD_SUFFIX = ".whiteboard"


def utcnow() -> datetime:
    """Return the current time as an aware UTC timestamp."""
    return datetime.now(timezone.utc)


class SortOrder(str, Enum):
    """Orderings available for folder listings."""

    NAME_ASCENDING = "name_ascending"
    NAME_DESCENDING = "name_descending"
    DATE_CREATED_NEWEST = "date_created_newest"
    DATE_CREATED_OLDEST = "date_created_oldest"
    DATE_MODIFIED_NEWEST = "date_modified_newest"
    DATE_MODIFIED_OLDEST = "date_modified_oldest"

    @property
    def label(self) -> str:
        """Return the human-readable label shown in sort menus."""
        return _SORT_LABELS[self]


_SORT_LABELS = {
    SortOrder.NAME_ASCENDING: "Name (A-Z)",
    SortOrder.NAME_DESCENDING: "Name (Z-A)",
    SortOrder.DATE_CREATED_NEWEST: "Newest First",
    SortOrder.DATE_CREATED_OLDEST: "Oldest First",
    SortOrder.DATE_MODIFIED_NEWEST: "Recently Modified",
    SortOrder.DATE_MODIFIED_OLDEST: "Least Recently Modified",
}


class ViewMode(str, Enum):
    """Presentation modes for folder listings."""

    GRID = "grid"
    LIST = "list"


class ItemBase(BaseModel):
    """Fields shared by every node in the tree.

    Attributes:
        id: Opaque unique identifier assigned at creation.
        name: Display name, including the type suffix for documents.
        parent_id: Identifier of the containing folder, ``None`` at the root.
        date_created: Creation timestamp; never changes.
        date_modified: Updated on rename or content replacement.
    """

    model_config = ConfigDict(extra="forbid", validate_assignment=True)

    id: str = Field(min_length=1, frozen=True)
    name: str
    parent_id: Optional[str] = None
    date_created: datetime = Field(default_factory=utcnow, frozen=True)
    date_modified: datetime = Field(default_factory=utcnow)

    @property
    def suffix(self) -> str:
        """Return the name suffix required for this item, or an empty string."""
        return ""

    @property
    def is_document(self) -> bool:
        """Return whether the item carries a blob payload."""
        return False


class FolderItem(ItemBase):
    """A container for other items."""

    kind: Literal["folder"] = "folder"


class FileItem(ItemBase):
    """A PDF or note document.

    Attributes:
        content_kind: Payload type of the document.
    """

    kind: Literal["file"] = "file"
    content_kind: ContentKind

    @property
    def suffix(self) -> str:
        return CONTENT_SUFFIXES[self.content_kind]

    @property
    def is_document(self) -> bool:
        return True


class WhiteboardItem(ItemBase):
    """A freehand drawing canvas."""

    kind: Literal["whiteboard"] = "whiteboard"

    @property
    def suffix(self) -> str:
        return WHITEBOARD_SUFFIX

    @property
    def is_document(self) -> bool:
        return True


Item = Annotated[Union[FolderItem, FileItem, WhiteboardItem], Field(discriminator="kind")]
ItemList = TypeAdapter(List[Item])


class OpenedDocument(BaseModel):
    """Handle returned to viewers and editors when a document is opened.

    Attributes:
        id: Document identifier, also the blob key.
        title: Display name of the document.
        kind: Item kind of the document.
        content_kind: Payload type for files, ``None`` for whiteboards.
        data: Raw payload bytes fetched from the blob store.
    """

    id: str
    title: str
    kind: ItemKind
    content_kind: Optional[ContentKind] = None
    data: bytes = b""


def apply_suffix(name: str, suffix: str) -> str:
    """Return ``name`` carrying ``suffix`` exactly once at the end.

    Args:
        name: Trimmed user-supplied name.
        suffix: Required suffix, or an empty string for folders.

    Returns:
        str: Name with the suffix appended when it was missing.
    """
    if not suffix or name.endswith(suffix):
        return name
    return f"{name}{suffix}"


__all__ = [
    "ItemKind",
    "ContentKind",
    "CONTENT_SUFFIXES",
    "WHITEBOARD_SUFFIX",
    "SortOrder",
    "ViewMode",
    "ItemBase",
    "FolderItem",
    "FileItem",
    "WhiteboardItem",
    "Item",
    "ItemList",
    "OpenedDocument",
    "apply_suffix",
    "utcnow",
]
