"""One-shot upgrade of the legacy notes.json into notes-meta.json + notes/*.md.

Runs at startup before anything else touches the stores. The legacy file is
never deleted, so it stays available for manual recovery.
"""

from __future__ import annotations

import enum
import json
import logging
from pathlib import Path
from typing import Any

import aiofiles
import aiofiles.os

from notebox.models import DocumentMeta, FolderNode, Tree, new_id
from notebox.storage.blobs import ContentBlobStore
from notebox.storage.tree_store import MetadataTreeStore

logger = logging.getLogger(__name__)


class MigrationError(RuntimeError):
    """A legacy document body could not be written out."""


class MigrationState(enum.Enum):
    ALREADY_SPLIT = "already-split"
    NO_LEGACY = "no-legacy"
    MIGRATED = "migrated"
    FAILED = "failed"


class LegacyMigrator:
    """Rewrite the combined legacy tree into the split metadata/blob layout."""

    def __init__(
        self,
        legacy_path: Path,
        tree_store: MetadataTreeStore,
        blobs: ContentBlobStore,
    ) -> None:
        self.legacy_path = legacy_path
        self.tree_store = tree_store
        self.blobs = blobs

    async def run(self) -> MigrationState:
        """Migrate if needed. Never raises."""
        try:
            if await self.tree_store.exists():
                return MigrationState.ALREADY_SPLIT
            if not await aiofiles.os.path.isfile(self.legacy_path):
                return MigrationState.NO_LEGACY
            tree = await self._migrate()
            if not await self.tree_store.save(tree):
                raise MigrationError(f"could not write {self.tree_store.path}")
        except Exception as e:
            logger.error("Migration of %s failed: %s", self.legacy_path, e)
            return MigrationState.FAILED

        logger.info(
            "Migrated %s -> %s + %s/*.md",
            self.legacy_path.name,
            self.tree_store.path.name,
            self.blobs.notes_dirname,
        )
        return MigrationState.MIGRATED

    async def _migrate(self) -> Tree:
        async with aiofiles.open(self.legacy_path, encoding="utf-8") as f:
            legacy = json.loads(await f.read())
        if not isinstance(legacy, list):
            raise MigrationError("legacy tree is not a JSON array")
        return [await self._migrate_folder(node) for node in legacy]

    async def _migrate_folder(self, node: dict[str, Any]) -> FolderNode:
        raw_documents = node.get("documents")
        if raw_documents is None:
            raw_documents = node.get("notes") or []
        folder = FolderNode.from_dict({**node, "children": [], "documents": []})
        folder.documents = [await self._migrate_document(d) for d in raw_documents]
        folder.children = [await self._migrate_folder(c) for c in node.get("children") or []]
        return folder

    async def _migrate_document(self, raw: dict[str, Any]) -> DocumentMeta:
        doc_id = raw.get("id") or new_id("note")
        result = await self.blobs.save(doc_id, raw.get("content") or "")
        if not result.ok:
            raise MigrationError(f"could not write body of {doc_id}: {result.error}")
        meta = DocumentMeta.from_dict({**raw, "id": doc_id})
        meta.content_path = result.content_path
        return meta
