"""Virtual file system: item models and the tree that arranges them."""

from .errors import InvalidNameError, InvalidParentError, ItemNotFoundError, LibraryError
from .models import (
    FileItem,
    FolderItem,
    Item,
    OpenedDocument,
    SortOrder,
    ViewMode,
    WhiteboardItem,
)
from .tree import FileTree, sort_items

__all__ = [
    "FileTree",
    "sort_items",
    "Item",
    "FolderItem",
    "FileItem",
    "WhiteboardItem",
    "OpenedDocument",
    "SortOrder",
    "ViewMode",
    "LibraryError",
    "InvalidNameError",
    "InvalidParentError",
    "ItemNotFoundError",
]
