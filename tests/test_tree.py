"""Tests for tree edits and the persisting TreeEditor."""

from __future__ import annotations

import asyncio
import copy

import pytest
from pathlib import Path

from notebox.models import DocumentMeta, FolderNode
from notebox.storage.tree_store import MetadataTreeStore
from notebox.tree import (
    TreeEditor,
    add_document,
    add_folder,
    contains_document,
    delete_document,
    delete_folder,
    find_document,
    find_folder,
    move_document,
    move_folder,
    rename_document,
    rename_folder,
    set_content_path,
)


@pytest.fixture
def tree() -> list[FolderNode]:
    return [
        FolderNode(
            id="f1",
            name="Work",
            documents=[
                DocumentMeta(id="d1", title="Plan", content_path="notes/d1.md"),
                DocumentMeta(id="d2", title="Todo"),
            ],
            children=[
                FolderNode(
                    id="f2",
                    name="Meetings",
                    documents=[DocumentMeta(id="d3", title="Standup")],
                    children=[FolderNode(id="f4", name="2024")],
                )
            ],
        ),
        FolderNode(id="f3", name="Home"),
    ]


class TestLookups:
    def test_find_folder_nested(self, tree):
        assert find_folder(tree, "f4").name == "2024"
        assert find_folder(tree, "nope") is None

    def test_find_document(self, tree):
        folder, doc = find_document(tree, "d3")
        assert folder.id == "f2"
        assert doc.title == "Standup"
        assert find_document(tree, "nope") is None

    def test_contains_document(self, tree):
        assert contains_document(tree, "d1")
        assert not contains_document(tree, "d9")


class TestMissingIds:
    def test_rename_missing_folder(self, tree):
        before = copy.deepcopy(tree)
        result = rename_folder(tree, "does-not-exist", "x")
        assert result == before
        assert result is tree

    @pytest.mark.parametrize(
        "edit",
        [
            lambda t: delete_folder(t, "nope"),
            lambda t: add_folder(t, "nope"),
            lambda t: add_document(t, "nope"),
            lambda t: rename_document(t, "f1", "nope", "x"),
            lambda t: rename_document(t, "nope", "d1", "x"),
            lambda t: delete_document(t, "f1", "nope"),
            lambda t: delete_document(t, "f3", "d1"),
            lambda t: set_content_path(t, "nope", "notes/x.md"),
            lambda t: move_document(t, "nope", "f3"),
            lambda t: move_document(t, "d1", "nope"),
            lambda t: move_folder(t, "nope", None),
            lambda t: move_folder(t, "f2", "nope"),
        ],
    )
    def test_noop_returns_same_tree(self, tree, edit):
        before = copy.deepcopy(tree)
        assert edit(tree) is tree
        assert tree == before


class TestFolderEdits:
    def test_add_root_folder(self, tree):
        result = add_folder(tree, folder=FolderNode(id="new", name="N"))
        assert [n.id for n in result] == ["f1", "f3", "new"]
        assert len(tree) == 2

    def test_add_nested_folder(self, tree):
        result = add_folder(tree, "f2", folder=FolderNode(id="new"))
        assert [c.id for c in find_folder(result, "f2").children] == ["f4", "new"]
        assert [c.id for c in find_folder(tree, "f2").children] == ["f4"]

    def test_add_folder_generates_id(self, tree):
        result = add_folder(tree)
        assert result[-1].id.startswith("folder-")
        assert result[-1].children == [] and result[-1].documents == []

    def test_rename_nested_folder(self, tree):
        result = rename_folder(tree, "f4", "2025")
        assert find_folder(result, "f4").name == "2025"
        assert find_folder(tree, "f4").name == "2024"

    def test_untouched_siblings_are_shared(self, tree):
        result = rename_folder(tree, "f4", "2025")
        assert result[1] is tree[1]
        assert result[0] is not tree[0]

    def test_delete_folder_removes_subtree(self, tree):
        result = delete_folder(tree, "f2")
        assert find_folder(result, "f2") is None
        assert find_folder(result, "f4") is None
        assert not contains_document(result, "d3")
        assert contains_document(result, "d1")
        assert None not in find_folder(result, "f1").children

    def test_delete_root_folder(self, tree):
        assert [n.id for n in delete_folder(tree, "f3")] == ["f1"]

    def test_move_folder_to_root(self, tree):
        result = move_folder(tree, "f2", None)
        assert [n.id for n in result] == ["f1", "f3", "f2"]
        assert find_folder(result, "f1").children == []
        assert contains_document(result, "d3")

    def test_move_folder_into_other(self, tree):
        result = move_folder(tree, "f4", "f3")
        assert [c.id for c in find_folder(result, "f3").children] == ["f4"]
        assert find_folder(result, "f2").children == []

    def test_move_folder_into_own_subtree_is_noop(self, tree):
        assert move_folder(tree, "f1", "f4") is tree
        assert move_folder(tree, "f1", "f1") is tree


class TestDocumentEdits:
    def test_add_document(self, tree):
        result = add_document(tree, "f3", document=DocumentMeta(id="d9", title="New"))
        assert find_folder(result, "f3").documents == [DocumentMeta(id="d9", title="New")]

    def test_add_document_default_has_no_path(self, tree):
        result = add_document(tree, "f3")
        doc = find_folder(result, "f3").documents[0]
        assert doc.id.startswith("note-")
        assert doc.content_path is None

    def test_rename_document(self, tree):
        result = rename_document(tree, "f2", "d3", "Retro")
        assert find_document(result, "d3")[1].title == "Retro"
        assert find_document(result, "d3")[1].id == "d3"
        assert find_document(tree, "d3")[1].title == "Standup"

    def test_delete_document_filters(self, tree):
        result = delete_document(tree, "f1", "d1")
        assert [d.id for d in find_folder(result, "f1").documents] == ["d2"]

    def test_set_content_path_anywhere(self, tree):
        result = set_content_path(tree, "d3", "notes/d3.md")
        assert find_document(result, "d3")[1].content_path == "notes/d3.md"

    def test_move_document(self, tree):
        result = move_document(tree, "d1", "f4")
        assert [d.id for d in find_folder(result, "f4").documents] == ["d1"]
        assert [d.id for d in find_folder(result, "f1").documents] == ["d2"]
        assert find_document(result, "d1")[1].content_path == "notes/d1.md"

    def test_move_document_same_folder_is_noop(self, tree):
        assert move_document(tree, "d1", "f1") is tree


class TestTreeEditor:
    @pytest.fixture
    def store(self, tmp_path: Path) -> MetadataTreeStore:
        return MetadataTreeStore(tmp_path / "notes-meta.json")

    @pytest.mark.asyncio
    async def test_edits_are_persisted(self, store: MetadataTreeStore):
        editor = TreeEditor(store)
        folder = await editor.add_folder(name="Inbox")
        assert folder.changed and folder.saved
        doc = await editor.add_document(folder.created_id, title="First")
        assert doc.created_id.startswith("note-")
        await editor.rename_document(folder.created_id, doc.created_id, "Renamed")

        loaded = await store.load()
        assert loaded == editor.tree
        assert loaded[0].name == "Inbox"
        assert loaded[0].documents[0].title == "Renamed"

    @pytest.mark.asyncio
    async def test_noop_does_not_save(self, store: MetadataTreeStore, tree):
        editor = TreeEditor(store, tree)
        result = await editor.rename_folder("does-not-exist", "x")
        assert result.changed is False
        assert result.saved is False
        assert result.tree is tree
        assert not await store.exists()

    @pytest.mark.asyncio
    async def test_add_to_missing_parent_creates_nothing(self, store: MetadataTreeStore, tree):
        editor = TreeEditor(store, tree)
        result = await editor.add_folder("ghost")
        assert result.created_id is None
        assert result.tree is tree

    @pytest.mark.asyncio
    async def test_save_failure_reported(self, tmp_path: Path, tree):
        blocker = tmp_path / "blocker"
        blocker.write_text("x", encoding="utf-8")
        editor = TreeEditor(MetadataTreeStore(blocker / "notes-meta.json"), tree)
        result = await editor.delete_folder("f3")
        assert result.changed is True
        assert result.saved is False
        assert [n.id for n in editor.tree] == ["f1"]

    @pytest.mark.asyncio
    async def test_back_to_back_edits_both_saved(self, store: MetadataTreeStore):
        editor = TreeEditor(store)
        first, second = await asyncio.gather(
            editor.add_folder(name="A"), editor.add_folder(name="B")
        )
        assert (first.saved, second.saved) == (True, True)
        assert [n.name for n in editor.tree] == ["A", "B"]
        loaded = await store.load()
        assert [n.name for n in loaded] in (["A"], ["A", "B"])

    @pytest.mark.asyncio
    async def test_reload(self, store: MetadataTreeStore, tree):
        await store.save(tree)
        editor = TreeEditor(store)
        assert await editor.reload() == tree

    @pytest.mark.asyncio
    async def test_move_and_delete(self, store: MetadataTreeStore, tree):
        editor = TreeEditor(store, tree)
        await editor.move_document("d2", "f3")
        await editor.move_folder("f4", None)
        await editor.delete_document("f3", "d2")
        loaded = await store.load()
        assert [n.id for n in loaded] == ["f1", "f3", "f4"]
        assert find_folder(loaded, "f3").documents == []
