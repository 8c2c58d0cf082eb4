"""Tests for recency and study progress tracking."""

from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

from studyshelf.library import FileTree
from studyshelf.storage import MetadataStore
from studyshelf.tracking import ProgressTracker, RecencyTracker, StudyProgress

T0 = datetime(2024, 3, 1, tzinfo=timezone.utc)


class _Clock:
    def __init__(self) -> None:
        self.now = T0

    def __call__(self) -> datetime:
        self.now = self.now + timedelta(minutes=1)
        return self.now


def _documents(count: int) -> tuple[FileTree, list[str]]:
    tree = FileTree()
    ids = [tree.create("file", "pdf", name=f"Doc {n}").id for n in range(count)]
    return tree, ids


def test_recents_keep_the_last_five_most_recent_first() -> None:
    tree, (a, b, c, d, e, f) = _documents(6)
    recents = RecencyTracker(tree.get)

    for item_id in (a, b, c, d, e, f):
        recents.record_open(item_id)
    assert recents.ids() == [f, e, d, c, b]

    recents.record_open(c)
    assert recents.ids() == [c, f, e, d, b]


def test_recents_resolve_current_items() -> None:
    tree, (a, b) = _documents(2)
    recents = RecencyTracker(tree.get, limit=3)
    recents.record_open(tree.require(a))
    recents.record_open(b)

    tree.rename(a, "Renamed")
    tree.delete([b])

    assert [item.name for item in recents.list()] == ["Renamed.pdf"]
    assert len(recents) == 2

    recents.discard([b])
    assert recents.ids() == [a]


def test_recents_loaded_ids_are_deduplicated_and_capped() -> None:
    tree, ids = _documents(4)
    recents = RecencyTracker(tree.get, limit=2, ids=[ids[0], ids[0], ids[1], ids[2]])

    assert recents.ids() == [ids[0], ids[1]]
    with pytest.raises(ValueError):
        RecencyTracker(tree.get, limit=0)


def test_first_session_starts_at_initial_progress() -> None:
    tracker = ProgressTracker(clock=_Clock())

    record = tracker.record_study_time("DOC", 30)

    assert record.progress == pytest.approx(0.1)
    assert record.total_time_spent == pytest.approx(30)
    assert record.last_studied == T0 + timedelta(minutes=1)


def test_later_sessions_accumulate_and_clamp() -> None:
    tracker = ProgressTracker(clock=_Clock())
    tracker.record_study_time("DOC", 0)

    record = tracker.record_study_time("DOC", 50)
    assert record.progress == pytest.approx(0.6)
    assert record.total_time_spent == pytest.approx(50)

    for _ in range(3):
        record = tracker.record_study_time("DOC", 1000)
    assert record.progress == 1.0
    assert record.total_time_spent == pytest.approx(3050)


def test_negative_study_time_is_rejected() -> None:
    tracker = ProgressTracker()

    with pytest.raises(ValueError):
        tracker.record_study_time("DOC", -1)
    assert tracker.get("DOC") is None


def test_top_recent_orders_by_last_studied_and_skips_deleted() -> None:
    tree, (a, b, c) = _documents(3)
    tracker = ProgressTracker(clock=_Clock())
    for item_id in (a, b, c):
        tracker.record_study_time(item_id, 10)
    tree.delete([c])

    pairs = tracker.top_recent(5, tree.get)

    assert [item.id for item, _ in pairs] == [b, a]
    assert [item.id for item, _ in tracker.top_recent(1, tree.get)] == [b]


def test_duplicate_records_collapse_to_latest() -> None:
    older = StudyProgress(document_id="DOC", progress=0.2, last_studied=T0)
    newer = StudyProgress(document_id="DOC", progress=0.7, last_studied=T0 + timedelta(days=1))

    tracker = ProgressTracker(records=[newer, older])

    assert tracker.get("DOC") is newer
    assert len(tracker.records()) == 1


def test_progress_writes_through_to_store(tmp_path: Path) -> None:
    store = MetadataStore(tmp_path)
    tracker = ProgressTracker(store, clock=_Clock())

    tracker.record_study_time("DOC", 20)
    tracker.mark_section("DOC", "chapter-1")

    (saved,) = store.load_progress()
    assert saved.document_id == "DOC"
    assert saved.completed_sections == {"chapter-1"}

    assert tracker.forget(["DOC", "OTHER"]) == 1
    assert store.load_progress() == []


def test_mark_section_requires_existing_record() -> None:
    assert ProgressTracker().mark_section("DOC", "intro") is None
