"""Storage errors."""


class StorageError(Exception):
    """Base exception for metadata and blob store operations."""


class MissingRecordError(StorageError):
    """Raised when a metadata record has never been written."""
