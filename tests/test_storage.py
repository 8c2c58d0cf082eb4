"""Tests for metadata records and blob storage."""

from pathlib import Path

import pytest

from studyshelf.library import FileTree
from studyshelf.storage import (
    ITEMS_KEY,
    BlobStore,
    MetadataStore,
    MissingRecordError,
    StorageError,
    blob_kind_for,
)
from studyshelf.tracking import StudyProgress


def test_items_round_trip_is_byte_identical(tmp_path: Path) -> None:
    store = MetadataStore(tmp_path)
    tree = FileTree()
    folder = tree.create("folder", name="Physics")
    tree.create("file", "pdf", folder.id, name="Optics")
    tree.create("whiteboard", name="Diagrams")

    assert store.save_items(tree.items())
    first = store.record_path(ITEMS_KEY).read_bytes()

    loaded = store.load_items()
    assert loaded == tree.items()
    assert store.save_items(loaded)
    assert store.record_path(ITEMS_KEY).read_bytes() == first


def test_progress_round_trip_sorts_sections(tmp_path: Path) -> None:
    store = MetadataStore(tmp_path)
    record = StudyProgress(document_id="DOC", completed_sections={"b", "a"})

    store.save_progress([record])

    assert '"a",\n      "b"' in store.record_path("progress").read_text(encoding="utf-8")
    assert store.load_progress() == [record]


def test_missing_records_load_as_empty(tmp_path: Path) -> None:
    store = MetadataStore(tmp_path / "fresh")

    assert store.load_items() == []
    assert store.load_progress() == []
    assert store.load_recents() == []
    with pytest.raises(MissingRecordError):
        store.read_record(ITEMS_KEY)


def test_corrupt_record_loads_as_empty(tmp_path: Path) -> None:
    store = MetadataStore(tmp_path)
    store.record_path(ITEMS_KEY).write_text("{not json", encoding="utf-8")

    assert store.load_items() == []
    with pytest.raises(StorageError):
        store.read_record(ITEMS_KEY)


def test_invalid_record_shape_loads_as_empty(tmp_path: Path) -> None:
    store = MetadataStore(tmp_path)
    store.write_record(ITEMS_KEY, [{"id": "X", "kind": "spreadsheet", "name": "?"}])

    assert store.load_items() == []


def test_save_failure_is_reported_not_raised(tmp_path: Path) -> None:
    blocker = tmp_path / "blocker"
    blocker.write_text("", encoding="utf-8")
    store = MetadataStore(blocker / "nested")

    assert store.save_recents(["A"]) is False


def test_recents_round_trip(tmp_path: Path) -> None:
    store = MetadataStore(tmp_path)

    store.save_recents(["B", "A"])

    assert store.load_recents() == ["B", "A"]


def test_blob_round_trip_and_absence(tmp_path: Path) -> None:
    blobs = BlobStore(tmp_path / "blobs")

    path = blobs.put_blob("DOC", "pdf", b"%PDF-1.7")

    assert path.name == "DOC.pdf"
    assert blobs.get_blob("DOC", "pdf") == b"%PDF-1.7"
    assert blobs.has_blob("DOC", "pdf")
    assert blobs.get_blob("DOC", "note") is None
    assert blobs.get_blob("OTHER", "pdf") is None

    assert blobs.delete_blob("DOC", "pdf") is True
    assert blobs.delete_blob("DOC", "pdf") is False
    assert blobs.get_blob("DOC", "pdf") is None


def test_blob_kinds_use_distinct_files(tmp_path: Path) -> None:
    blobs = BlobStore(tmp_path)

    blobs.put_blob("ID", "note", b"note")
    blobs.put_blob("ID", "whiteboard", b"strokes")

    assert blobs.get_blob("ID", "note") == b"note"
    assert blobs.blob_path("ID", "whiteboard").name == "ID.drawing"


@pytest.mark.parametrize("blob_id", ["", ".", "..", "../escape", "a\\b"])
def test_blob_ids_cannot_escape_directory(tmp_path: Path, blob_id: str) -> None:
    blobs = BlobStore(tmp_path)

    with pytest.raises(StorageError):
        blobs.put_blob(blob_id, "pdf", b"")


def test_blob_kind_for_items() -> None:
    tree = FileTree()

    assert blob_kind_for(tree.create("file", "note")) == "note"
    assert blob_kind_for(tree.create("file", "pdf")) == "pdf"
    assert blob_kind_for(tree.create("whiteboard")) == "whiteboard"
    with pytest.raises(ValueError):
        blob_kind_for(tree.create("folder"))
