"""Blob storage for document payloads."""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Literal

from studyshelf.library.models import Item

from .errors import StorageError

LOGGER = logging.getLogger(__name__)

BlobKind = Literal["pdf", "note", "whiteboard"]

BLOB_SUFFIXES: dict[str, str] = {
    "pdf": ".pdf",
    "note": ".notes",
    "whiteboard": ".drawing",
}


def blob_kind_for(item: Item) -> BlobKind:
    """Return the blob kind that stores the payload of ``item``.

    Raises:
        ValueError: If ``item`` is a folder.
    """
    if item.kind == "whiteboard":
        return "whiteboard"
    if item.kind == "file":
        return item.content_kind
    raise ValueError(f"Folder {item.id} has no payload.")


class BlobStore:
    """Store opaque payloads as ``<id><suffix>`` files keyed by ``(id, kind)``."""

    def __init__(self, directory: Path) -> None:
        self._directory = Path(directory).expanduser()

    @property
    def directory(self) -> Path:
        """Return the directory holding the payload files."""
        return self._directory

    def blob_path(self, blob_id: str, kind: BlobKind) -> Path:
        """Return the file that backs ``(blob_id, kind)``.

        Raises:
            StorageError: If the id is empty or would escape the blob directory.
        """
        if not blob_id or blob_id in {".", ".."} or "/" in blob_id or "\\" in blob_id:
            raise StorageError(f"Invalid blob id {blob_id!r}")
        try:
            suffix = BLOB_SUFFIXES[kind]
        except KeyError as exc:
            raise StorageError(f"Unknown blob kind {kind!r}") from exc
        return self._directory / f"{blob_id}{suffix}"

    def put_blob(self, blob_id: str, kind: BlobKind, data: bytes) -> Path:
        """Write ``data`` for ``(blob_id, kind)``, replacing any previous payload.

        Raises:
            StorageError: If the payload cannot be written.
        """
        path = self.blob_path(blob_id, kind)
        temp_path = path.with_name(f".{path.name}.tmp")
        try:
            self._directory.mkdir(parents=True, exist_ok=True)
            temp_path.write_bytes(bytes(data))
            os.replace(temp_path, path)
        except OSError as exc:
            raise StorageError(f"Unable to write blob {path.name}: {exc}") from exc
        LOGGER.debug("Stored %d bytes at %s", len(data), path)
        return path

    def get_blob(self, blob_id: str, kind: BlobKind) -> bytes | None:
        """Return the payload for ``(blob_id, kind)`` or ``None`` when absent."""
        path = self.blob_path(blob_id, kind)
        try:
            return path.read_bytes()
        except FileNotFoundError:
            LOGGER.info("No %s blob for id %s", kind, blob_id)
            return None
        except OSError as exc:
            LOGGER.warning("Unable to read blob %s: %s", path.name, exc)
            return None

    def has_blob(self, blob_id: str, kind: BlobKind) -> bool:
        """Return whether a payload exists for ``(blob_id, kind)``."""
        return self.blob_path(blob_id, kind).is_file()

    def delete_blob(self, blob_id: str, kind: BlobKind) -> bool:
        """Remove the payload for ``(blob_id, kind)``; returns whether one existed."""
        path = self.blob_path(blob_id, kind)
        try:
            path.unlink()
        except FileNotFoundError:
            return False
        except OSError as exc:
            raise StorageError(f"Unable to delete blob {path.name}: {exc}") from exc
        return True


__all__ = ["BlobStore", "BlobKind", "BLOB_SUFFIXES", "blob_kind_for"]
