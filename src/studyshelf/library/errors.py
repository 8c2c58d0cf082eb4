"""Virtual file system errors."""


class LibraryError(Exception):
    """Base exception for tree operations."""


class InvalidNameError(LibraryError):
    """Raised when a rename supplies a name that is empty once trimmed."""


class ItemNotFoundError(LibraryError, KeyError):
    """Raised when an identifier does not resolve to an item."""

    def __str__(self) -> str:
        return str(self.args[0]) if self.args else "Item not found"


class InvalidParentError(LibraryError):
    """Raised when a parent id is missing, not a folder, or would create a cycle."""
