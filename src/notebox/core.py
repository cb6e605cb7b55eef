"""Notebox core: the storage boundary the UI talks to.

Responsibilities:
1. Own the stores for one data root (tree, bodies, attachments, sibling snapshots)
2. Run the legacy migration once at startup
3. Expose the boundary operations (load/save tree, content, attachments)
4. Hand out the tree editor and content sessions
5. Run attachment garbage collection on request (the scheduler calls it)
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

from notebox.config import NoteboxConfig
from notebox.gc import AttachmentCollector, GCReport
from notebox.migration import LegacyMigrator, MigrationState
from notebox.models import SaveResult, Tree
from notebox.session import ContentSession, SaveFailedHook
from notebox.storage.attachments import AttachmentStore
from notebox.storage.blobs import ContentBlobStore
from notebox.storage.snapshot import JsonSnapshot
from notebox.storage.tree_store import MetadataTreeStore
from notebox.tree import TreeEditor

logger = logging.getLogger(__name__)


class Notebox:
    """Local-first document store for one application data root."""

    def __init__(self, config: NoteboxConfig) -> None:
        self.config = config
        layout = config.layout
        self.layout = layout
        self.tree_store = MetadataTreeStore(layout.meta_path)
        self.blobs = ContentBlobStore(
            layout.root, notes_dirname=layout.notes_dir.name, images_dir=layout.images_dir
        )
        self.attachments = AttachmentStore(layout.images_dir)
        self.flashcards = JsonSnapshot(layout.flashcards_path)
        self.calendar = JsonSnapshot(layout.calendar_path)
        self.editor = TreeEditor(self.tree_store)
        self.collector = AttachmentCollector(layout.root, layout.notes_dir, layout.images_dir)
        self._migrator = LegacyMigrator(layout.legacy_path, self.tree_store, self.blobs)

    # ── Lifecycle ─────────────────────────────────────────────

    async def start(self) -> MigrationState:
        """Migrate if needed, then load the tree into the editor."""
        self.layout.root.mkdir(parents=True, exist_ok=True)
        state = await self._migrator.run()
        logger.info("Migration check: %s", state.value)
        await self.editor.reload()
        return state

    async def migrate(self) -> MigrationState:
        return await self._migrator.run()

    # ── Tree ──────────────────────────────────────────────────

    async def load_tree(self) -> Tree:
        return await self.tree_store.load()

    async def save_tree(self, tree: Tree) -> bool:
        saved = await self.tree_store.save(tree)
        if saved:
            self.editor.tree = tree
        return saved

    # ── Content ───────────────────────────────────────────────

    async def load_content(self, document_id: str, content_path: str | None = None) -> str:
        return await self.blobs.load(document_id, content_path)

    async def save_content(
        self, document_id: str, text: str, content_path: str | None = None
    ) -> SaveResult:
        return await self.blobs.save(document_id, text, content_path)

    def open_session(self, on_save_failed: SaveFailedHook | None = None) -> ContentSession:
        return ContentSession(
            self.blobs,
            self.editor,
            self.attachments,
            debounce_seconds=self.config.session.debounce_seconds,
            paste_guard_seconds=self.config.session.paste_guard_seconds,
            on_save_failed=on_save_failed,
        )

    # ── Attachments ───────────────────────────────────────────

    async def save_attachment(self, source: Path | str | bytes, name: str | None = None) -> Path | None:
        return await self.attachments.save(source, name)

    async def delete_attachment(self, path: Path | str) -> bool:
        return await self.attachments.delete(path)

    async def run_garbage_collection(self, dry_run: bool = False) -> GCReport:
        report = await self.collector.run(dry_run=dry_run)
        logger.info(
            "Attachment cleanup: deleted=%d/%d (used=%d)%s",
            report.deleted_count,
            report.total_files,
            report.used_count,
            " [dry run]" if dry_run else "",
        )
        return report

    # ── Sibling snapshots ─────────────────────────────────────

    async def load_flashcards(self) -> list[Any]:
        return await self.flashcards.load()

    async def save_flashcards(self, decks: list[Any]) -> bool:
        return await self.flashcards.save(decks)

    async def load_events(self) -> list[Any]:
        return await self.calendar.load()

    async def save_events(self, events: list[Any]) -> bool:
        return await self.calendar.save(events)
