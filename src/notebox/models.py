"""Folder/document tree records and their JSON form.

The tree is a list of root ``FolderNode`` objects. Documents only carry the
address of their body (``content_path``); bodies live in the blob store.
"""

from __future__ import annotations

import secrets
import time
from dataclasses import dataclass, field
from typing import Any

DEFAULT_FOLDER_NAME = "New folder"
DEFAULT_DOCUMENT_TITLE = "New note"

# Legacy single-file trees name a folder's documents "notes".
_LEGACY_DOCUMENTS_KEY = "notes"


def new_id(prefix: str) -> str:
    """Timestamp + random suffix, unique enough for a single-user tree."""
    return f"{prefix}-{int(time.time() * 1000)}-{secrets.token_hex(3)}"


@dataclass
class DocumentMeta:
    """A document entry in the tree. ``content_path`` is None until first save."""

    id: str
    title: str = DEFAULT_DOCUMENT_TITLE
    content_path: str | None = None
    extra: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def create(cls, title: str = DEFAULT_DOCUMENT_TITLE) -> DocumentMeta:
        return cls(id=new_id("note"), title=title)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> DocumentMeta:
        rest = {k: v for k, v in data.items() if k not in ("id", "title", "contentPath")}
        # Inline bodies belong to the legacy format only.
        rest.pop("content", None)
        return cls(
            id=str(data["id"]),
            title=str(data.get("title", "")),
            content_path=data.get("contentPath") or None,
            extra=rest,
        )

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"id": self.id, "title": self.title}
        if self.content_path:
            data["contentPath"] = self.content_path
        data.update(self.extra)
        return data


@dataclass
class FolderNode:
    """A folder with ordered child folders and ordered documents."""

    id: str
    name: str = DEFAULT_FOLDER_NAME
    children: list[FolderNode] = field(default_factory=list)
    documents: list[DocumentMeta] = field(default_factory=list)
    extra: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def create(cls, name: str = DEFAULT_FOLDER_NAME) -> FolderNode:
        return cls(id=new_id("folder"), name=name)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> FolderNode:
        documents = data.get("documents")
        if documents is None:
            documents = data.get(_LEGACY_DOCUMENTS_KEY) or []
        rest = {
            k: v
            for k, v in data.items()
            if k not in ("id", "name", "children", "documents", _LEGACY_DOCUMENTS_KEY)
        }
        return cls(
            id=str(data["id"]),
            name=str(data.get("name", "")),
            children=[cls.from_dict(c) for c in data.get("children") or []],
            documents=[DocumentMeta.from_dict(d) for d in documents],
            extra=rest,
        )

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "id": self.id,
            "name": self.name,
            "children": [c.to_dict() for c in self.children],
            "documents": [d.to_dict() for d in self.documents],
        }
        data.update(self.extra)
        return data


Tree = list[FolderNode]


def tree_from_json(raw: list[dict[str, Any]]) -> Tree:
    return [FolderNode.from_dict(node) for node in raw]


def tree_to_json(tree: Tree) -> list[dict[str, Any]]:
    return [node.to_dict() for node in tree]


@dataclass
class SaveResult:
    """Outcome of a content write. ``content_path`` is the path actually used."""

    content_path: str | None
    ok: bool = True
    error: str | None = None
