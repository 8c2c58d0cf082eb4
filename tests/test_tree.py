"""Tests for the in-memory library tree."""

from datetime import datetime, timedelta, timezone
from itertools import chain, repeat

import pytest

from studyshelf.library import (
    FileTree,
    FolderItem,
    InvalidNameError,
    InvalidParentError,
    ItemNotFoundError,
    SortOrder,
    sort_items,
)
from studyshelf.library.tree import MAX_PATH_DEPTH

T0 = datetime(2024, 1, 1, tzinfo=timezone.utc)


def _folder(item_id: str, name: str, parent_id: str | None = None, **dates) -> FolderItem:
    created = dates.get("created", T0)
    return FolderItem(
        id=item_id,
        name=name,
        parent_id=parent_id,
        date_created=created,
        date_modified=dates.get("modified", created),
    )


def test_created_items_get_unique_ids() -> None:
    tree = FileTree()

    ids = {tree.create("folder").id for _ in range(50)}

    assert len(ids) == 50
    assert all(item_id == item_id.upper() for item_id in ids)


def test_id_collision_generates_a_new_id() -> None:
    tree = FileTree(id_factory=iter(chain(["A", "A", "A"], ["B"], repeat("C"))).__next__)

    first = tree.create("folder")
    second = tree.create("folder")

    assert first.id == "A"
    assert second.id == "B"


def test_default_names_per_kind() -> None:
    tree = FileTree()

    assert tree.create("folder").name == "New Folder"
    assert tree.create("file", "note").name == "New Note.notes"
    assert tree.create("file", "pdf").name == "New Document.pdf"
    assert tree.create("whiteboard").name == "New Whiteboard.whiteboard"


def test_create_rejects_mismatched_content_kind() -> None:
    tree = FileTree()

    with pytest.raises(ValueError):
        tree.create("file")
    with pytest.raises(ValueError):
        tree.create("folder", "pdf")


def test_create_rejects_non_folder_parent() -> None:
    tree = FileTree()
    note = tree.create("file", "note")

    with pytest.raises(InvalidParentError):
        tree.create("folder", parent_id=note.id)
    with pytest.raises(InvalidParentError):
        tree.create("folder", parent_id="missing")


def test_children_of_root_and_folder() -> None:
    tree = FileTree()
    docs = tree.create("folder", name="Docs")
    note = tree.create("file", "note", docs.id, name="Cells")

    assert [item.id for item in tree.children_of(None)] == [docs.id]
    assert [item.id for item in tree.children_of(docs.id)] == [note.id]
    assert note.name == "Cells.notes"


@pytest.mark.parametrize(
    ("kind", "content_kind", "expected"),
    [
        ("file", "pdf", "Report.pdf"),
        ("file", "note", "Report.notes"),
        ("whiteboard", None, "Report.whiteboard"),
        ("folder", None, "Report"),
    ],
)
def test_rename_applies_suffix_once(kind, content_kind, expected) -> None:
    tree = FileTree()
    item = tree.create(kind, content_kind)

    assert tree.rename(item.id, "  Report  ").name == expected
    assert tree.rename(item.id, expected).name == expected


def test_rename_updates_modified_but_not_created() -> None:
    tree = FileTree([_folder("F", "Old")])

    renamed = tree.rename("F", "New")

    assert renamed.date_created == T0
    assert renamed.date_modified > T0


def test_rename_rejects_blank_names() -> None:
    tree = FileTree([_folder("F", "Keep")])

    with pytest.raises(InvalidNameError):
        tree.rename("F", "   ")
    assert tree.require("F").name == "Keep"


def test_require_unknown_id_raises() -> None:
    with pytest.raises(ItemNotFoundError):
        FileTree().require("nope")


def test_delete_folder_orphans_its_children() -> None:
    tree = FileTree()
    folder = tree.create("folder", name="Biology")
    note = tree.create("file", "note", folder.id)

    removed = tree.delete([folder.id])

    assert [item.id for item in removed] == [folder.id]
    assert note.id in tree
    assert tree.children_of(None) == []
    assert [item.id for item in tree.orphans()] == [note.id]
    assert "is orphaned" in tree.check_integrity()[0]


def test_resolve_path_to_nested_item() -> None:
    tree = FileTree()
    a = tree.create("folder", name="A")
    b = tree.create("folder", parent_id=a.id, name="B")
    c = tree.create("file", "pdf", b.id, name="C")

    assert tree.resolve_path_to(c.id) == ["A", "B", "C.pdf"]
    assert tree.resolve_path_to("missing") == []


def test_resolve_path_terminates_on_cycle() -> None:
    tree = FileTree([_folder("X", "x", parent_id="Y"), _folder("Y", "y", parent_id="X")])

    path = tree.resolve_path_to("X")

    assert path == ["y", "x"]
    assert any("cyclic" in problem for problem in tree.check_integrity())


def test_resolve_path_is_depth_capped() -> None:
    items = [_folder("F0", "f0")]
    items += [_folder(f"F{n}", f"f{n}", parent_id=f"F{n - 1}") for n in range(1, 100)]
    tree = FileTree(items)

    assert len(tree.resolve_path_to("F99")) == MAX_PATH_DEPTH


def test_sort_name_ascending_is_stable() -> None:
    b = _folder("1", "b")
    a0 = _folder("2", "a")
    a1 = _folder("3", "a", created=T0 + timedelta(days=1))

    ordered = sort_items([b, a0, a1], SortOrder.NAME_ASCENDING)

    assert [item.id for item in ordered] == ["2", "3", "1"]


def test_sort_orders_by_dates() -> None:
    old = _folder("old", "zeta", created=T0, modified=T0 + timedelta(days=5))
    new = _folder("new", "Alpha", created=T0 + timedelta(days=1), modified=T0 + timedelta(days=2))

    def ids(order: SortOrder) -> list[str]:
        return [item.id for item in sort_items([old, new], order)]

    assert ids(SortOrder.NAME_ASCENDING) == ["new", "old"]
    assert ids(SortOrder.NAME_DESCENDING) == ["old", "new"]
    assert ids(SortOrder.DATE_CREATED_NEWEST) == ["new", "old"]
    assert ids(SortOrder.DATE_CREATED_OLDEST) == ["old", "new"]
    assert ids(SortOrder.DATE_MODIFIED_NEWEST) == ["old", "new"]
    assert ids(SortOrder.DATE_MODIFIED_OLDEST) == ["new", "old"]


def test_sort_descending_keeps_ties_in_insertion_order() -> None:
    first = _folder("1", "same")
    second = _folder("2", "same")

    ordered = sort_items([first, second], SortOrder.NAME_DESCENDING)

    assert [item.id for item in ordered] == ["1", "2"]


def test_move_reparents_and_rejects_cycles() -> None:
    tree = FileTree()
    outer = tree.create("folder", name="Outer")
    inner = tree.create("folder", parent_id=outer.id, name="Inner")
    note = tree.create("file", "note")

    tree.move(note.id, inner.id)
    assert tree.resolve_path_to(note.id) == ["Outer", "Inner", "New Note.notes"]

    with pytest.raises(InvalidParentError):
        tree.move(outer.id, inner.id)
    with pytest.raises(InvalidParentError):
        tree.move(outer.id, outer.id)

    tree.move(inner.id, None)
    assert tree.resolve_path_to(note.id) == ["Inner", "New Note.notes"]


def test_find_searches_names_and_kinds() -> None:
    tree = FileTree()
    folder = tree.create("folder", name="Chemistry")
    tree.create("file", "pdf", folder.id, name="Chem Lab")
    tree.create("file", "note", name="chem notes")
    tree.create("whiteboard", name="Sketch")

    assert len(tree.find("chem")) == 3
    assert [item.name for item in tree.find("chem", kind="file", content_kind="pdf")] == [
        "Chem Lab.pdf"
    ]
    assert len(tree.find()) == 4


def test_duplicate_ids_are_dropped_on_load() -> None:
    tree = FileTree([_folder("F", "first"), _folder("F", "second")])

    assert len(tree) == 1
    assert tree.require("F").name == "first"


def test_descendants_of_collects_nested_items() -> None:
    tree = FileTree()
    root = tree.create("folder")
    child = tree.create("folder", parent_id=root.id)
    leaf = tree.create("whiteboard", parent_id=child.id)

    assert {item.id for item in tree.descendants_of(root.id)} == {child.id, leaf.id}
