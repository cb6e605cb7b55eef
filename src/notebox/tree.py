"""Structural edits over the folder/document tree.

Every edit is a pure function returning a new tree: nodes along the path to
the change are copied, untouched siblings are shared. An id that does not
exist leaves the tree unchanged (the very same list is returned), because UI
races such as a double click during a delete are expected.

``TreeEditor`` wraps the pure functions around the latest in-memory tree and
persists the whole result after every effective edit.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterator
from dataclasses import dataclass, replace

from notebox.models import DocumentMeta, FolderNode, Tree
from notebox.storage.tree_store import MetadataTreeStore

logger = logging.getLogger(__name__)

FolderFn = Callable[[FolderNode], FolderNode]


def _update_folder(tree: Tree, folder_id: str, fn: FolderFn) -> Tree:
    """Apply ``fn`` to the first folder with ``folder_id`` (depth-first).

    Returns ``tree`` itself when the folder is missing or ``fn`` returns the
    node unchanged.
    """
    for i, node in enumerate(tree):
        if node.id == folder_id:
            updated = fn(node)
            return tree if updated is node else [*tree[:i], updated, *tree[i + 1 :]]
        children = _update_folder(node.children, folder_id, fn)
        if children is not node.children:
            return [*tree[:i], replace(node, children=children), *tree[i + 1 :]]
    return tree


def _prune_folders(tree: Tree, keep: Callable[[FolderNode], bool]) -> Tree:
    """Drop every folder failing ``keep``, at any depth, with its subtree."""
    changed = False
    out: Tree = []
    for node in tree:
        if not keep(node):
            changed = True
            continue
        children = _prune_folders(node.children, keep)
        if children is not node.children:
            node = replace(node, children=children)
            changed = True
        out.append(node)
    return out if changed else tree


# ── Lookups ──────────────────────────────────────────────────


def find_folder(tree: Tree, folder_id: str) -> FolderNode | None:
    for node in tree:
        if node.id == folder_id:
            return node
        found = find_folder(node.children, folder_id)
        if found:
            return found
    return None


def iter_documents(tree: Tree) -> Iterator[tuple[FolderNode, DocumentMeta]]:
    """Yield (owning folder, document) pairs depth-first."""
    for node in tree:
        for doc in node.documents:
            yield node, doc
        yield from iter_documents(node.children)


def find_document(tree: Tree, document_id: str) -> tuple[FolderNode, DocumentMeta] | None:
    for folder, doc in iter_documents(tree):
        if doc.id == document_id:
            return folder, doc
    return None


def contains_document(tree: Tree, document_id: str) -> bool:
    return find_document(tree, document_id) is not None


# ── Folder edits ─────────────────────────────────────────────


def add_folder(tree: Tree, parent_id: str | None = None, *, folder: FolderNode | None = None) -> Tree:
    """Append a folder to ``parent_id``'s children, or to the root list."""
    folder = folder or FolderNode.create()
    if parent_id is None:
        return [*tree, folder]
    return _update_folder(tree, parent_id, lambda n: replace(n, children=[*n.children, folder]))


def rename_folder(tree: Tree, folder_id: str, name: str) -> Tree:
    return _update_folder(tree, folder_id, lambda n: replace(n, name=name))


def delete_folder(tree: Tree, folder_id: str) -> Tree:
    return _prune_folders(tree, lambda n: n.id != folder_id)


def move_folder(tree: Tree, folder_id: str, parent_id: str | None) -> Tree:
    """Re-parent a folder (``None`` = root). Moving into its own subtree is a no-op."""
    folder = find_folder(tree, folder_id)
    if folder is None:
        return tree
    if parent_id is not None and (parent_id == folder_id or find_folder([folder], parent_id)):
        return tree
    if parent_id is not None and find_folder(tree, parent_id) is None:
        return tree
    return add_folder(delete_folder(tree, folder_id), parent_id, folder=folder)


# ── Document edits ───────────────────────────────────────────


def add_document(tree: Tree, folder_id: str, *, document: DocumentMeta | None = None) -> Tree:
    document = document or DocumentMeta.create()
    return _update_folder(tree, folder_id, lambda n: replace(n, documents=[*n.documents, document]))


def _update_document(
    tree: Tree, folder_id: str, document_id: str, fn: Callable[[DocumentMeta], DocumentMeta]
) -> Tree:
    def _apply(node: FolderNode) -> FolderNode:
        if not any(d.id == document_id for d in node.documents):
            return node
        return replace(node, documents=[fn(d) if d.id == document_id else d for d in node.documents])

    return _update_folder(tree, folder_id, _apply)


def rename_document(tree: Tree, folder_id: str, document_id: str, title: str) -> Tree:
    return _update_document(tree, folder_id, document_id, lambda d: replace(d, title=title))


def delete_document(tree: Tree, folder_id: str, document_id: str) -> Tree:
    def _apply(node: FolderNode) -> FolderNode:
        documents = [d for d in node.documents if d.id != document_id]
        return node if len(documents) == len(node.documents) else replace(node, documents=documents)

    return _update_folder(tree, folder_id, _apply)


def set_content_path(tree: Tree, document_id: str, content_path: str) -> Tree:
    """Record a document's blob path, wherever the document lives."""
    found = find_document(tree, document_id)
    if found is None:
        return tree
    folder, _ = found
    return _update_document(
        tree, folder.id, document_id, lambda d: replace(d, content_path=content_path)
    )


def move_document(tree: Tree, document_id: str, target_folder_id: str) -> Tree:
    found = find_document(tree, document_id)
    if found is None or find_folder(tree, target_folder_id) is None:
        return tree
    folder, doc = found
    if folder.id == target_folder_id:
        return tree
    return add_document(delete_document(tree, folder.id, document_id), target_folder_id, document=doc)


# ── Persisting editor ────────────────────────────────────────


@dataclass
class EditResult:
    tree: Tree
    changed: bool
    saved: bool
    created_id: str | None = None


class TreeEditor:
    """Apply edits to the latest in-memory tree and save the whole result.

    No locking: two edits issued back to back without awaiting the first
    save each persist a full snapshot, and the last save wins.
    """

    def __init__(self, store: MetadataTreeStore, tree: Tree | None = None) -> None:
        self.store = store
        self.tree: Tree = tree if tree is not None else []

    async def reload(self) -> Tree:
        self.tree = await self.store.load()
        return self.tree

    async def _commit(self, new_tree: Tree, label: str, created_id: str | None = None) -> EditResult:
        if new_tree is self.tree:
            logger.debug("%s: target not found, tree unchanged", label)
            return EditResult(tree=self.tree, changed=False, saved=False)
        self.tree = new_tree
        saved = await self.store.save(new_tree)
        if not saved:
            logger.error("%s: tree changed in memory but could not be saved", label)
        return EditResult(tree=new_tree, changed=True, saved=saved, created_id=created_id)

    async def add_folder(self, parent_id: str | None = None, name: str | None = None) -> EditResult:
        folder = FolderNode.create(name) if name else FolderNode.create()
        return await self._commit(
            add_folder(self.tree, parent_id, folder=folder), "add_folder", folder.id
        )

    async def rename_folder(self, folder_id: str, name: str) -> EditResult:
        return await self._commit(rename_folder(self.tree, folder_id, name), "rename_folder")

    async def delete_folder(self, folder_id: str) -> EditResult:
        return await self._commit(delete_folder(self.tree, folder_id), "delete_folder")

    async def move_folder(self, folder_id: str, parent_id: str | None) -> EditResult:
        return await self._commit(move_folder(self.tree, folder_id, parent_id), "move_folder")

    async def add_document(self, folder_id: str, title: str | None = None) -> EditResult:
        document = DocumentMeta.create(title) if title else DocumentMeta.create()
        return await self._commit(
            add_document(self.tree, folder_id, document=document), "add_document", document.id
        )

    async def rename_document(self, folder_id: str, document_id: str, title: str) -> EditResult:
        return await self._commit(
            rename_document(self.tree, folder_id, document_id, title), "rename_document"
        )

    async def delete_document(self, folder_id: str, document_id: str) -> EditResult:
        return await self._commit(
            delete_document(self.tree, folder_id, document_id), "delete_document"
        )

    async def move_document(self, document_id: str, target_folder_id: str) -> EditResult:
        return await self._commit(
            move_document(self.tree, document_id, target_folder_id), "move_document"
        )

    async def set_content_path(self, document_id: str, content_path: str) -> EditResult:
        return await self._commit(
            set_content_path(self.tree, document_id, content_path), "set_content_path"
        )
