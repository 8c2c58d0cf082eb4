"""Persistence for library metadata and document payloads."""

from .blobs import BLOB_SUFFIXES, BlobKind, BlobStore, blob_kind_for
from .errors import MissingRecordError, StorageError
from .metadata import ITEMS_KEY, PROGRESS_KEY, RECENTS_KEY, MetadataStore

__all__ = [
    "MetadataStore",
    "BlobStore",
    "BlobKind",
    "BLOB_SUFFIXES",
    "blob_kind_for",
    "ITEMS_KEY",
    "PROGRESS_KEY",
    "RECENTS_KEY",
    "StorageError",
    "MissingRecordError",
]
