"""Per-selection document state: lazy load, debounced save, paste handling.

States:
    IDLE     no document selected, empty body, no timer
    LOADING  body is being fetched for a new selection
    EDITING  body held locally; each edit restarts the debounce timer
    SAVING   a body write is in flight

Selecting another document cancels the pending debounce timer of the
previous one; a save that already started is left to complete. Saves start
in the order their timers fire; a manual ``save_now`` racing a timer save
is last-write-wins.
"""

from __future__ import annotations

import asyncio
import enum
import hashlib
import logging
import time
from collections.abc import Callable
from pathlib import Path

from notebox.models import DocumentMeta, SaveResult, Tree
from notebox.storage.attachments import AttachmentStore
from notebox.storage.blobs import ContentBlobStore
from notebox.tree import EditResult, TreeEditor, contains_document

logger = logging.getLogger(__name__)

SaveFailedHook = Callable[[str, SaveResult], None]


class SessionState(enum.Enum):
    IDLE = "idle"
    LOADING = "loading"
    EDITING = "editing"
    SAVING = "saving"


def _fingerprint(source: Path | str | bytes) -> str:
    if isinstance(source, (bytes, bytearray)):
        return "bytes:" + hashlib.sha256(source).hexdigest()[:16]
    return "path:" + str(Path(source).absolute())


class ContentSession:
    """The currently open document, owned by the UI layer."""

    def __init__(
        self,
        blobs: ContentBlobStore,
        editor: TreeEditor,
        attachments: AttachmentStore,
        *,
        debounce_seconds: float = 3.0,
        paste_guard_seconds: float = 0.5,
        on_save_failed: SaveFailedHook | None = None,
    ) -> None:
        self.blobs = blobs
        self.editor = editor
        self.attachments = attachments
        self.debounce_seconds = debounce_seconds
        self.paste_guard_seconds = paste_guard_seconds
        self.on_save_failed = on_save_failed

        self.state = SessionState.IDLE
        self.folder_id: str | None = None
        self.document_id: str | None = None
        self.content_path: str | None = None
        self.title = ""
        self.body = ""

        self._signature: tuple[str, str | None] | None = None
        self._timer: asyncio.TimerHandle | None = None
        self._in_flight: set[asyncio.Task] = set()
        self._selection = 0
        self._paste_lock = asyncio.Lock()
        self._recent_pastes: dict[str, float] = {}

    @property
    def has_pending_save(self) -> bool:
        return self._timer is not None

    # ── Selection ────────────────────────────────────────────

    def _cancel_timer(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def _clear(self) -> None:
        self._cancel_timer()
        self._selection += 1
        self.folder_id = self.document_id = self.content_path = None
        self.title = self.body = ""
        self._signature = None
        self.state = SessionState.IDLE

    async def select(self, folder_id: str | None, document: DocumentMeta | None) -> str:
        """Open ``document`` and return its body.

        The body is fetched only when ``(id, content_path)`` differs from
        the last loaded one.
        """
        if document is None:
            self._clear()
            return ""
        if document.id != self.document_id:
            self._cancel_timer()

        self.folder_id = folder_id
        self.title = document.title
        signature = (document.id, document.content_path)
        if signature == self._signature:
            logger.debug("Content cache hit for %s", document.id)
            if self.state is SessionState.IDLE:
                self.state = SessionState.EDITING
            return self.body

        self._selection += 1
        token = self._selection
        self.document_id = document.id
        self.content_path = document.content_path
        self.state = SessionState.LOADING
        body = await self.blobs.load(document.id, document.content_path)
        if token != self._selection:
            # A newer selection superseded this load.
            return body
        self.body = body
        self._signature = signature
        self.state = SessionState.EDITING
        return body

    def sync_with_tree(self, tree: Tree) -> None:
        """Drop the selection if the open document is no longer in ``tree``."""
        if self.document_id is not None and not contains_document(tree, self.document_id):
            logger.debug("Open document %s was removed from the tree", self.document_id)
            self._clear()

    # ── Editing ──────────────────────────────────────────────

    def edit(self, body: str) -> None:
        """Replace the body and (re)start the debounce timer."""
        if self.document_id is None:
            logger.warning("Ignoring edit with no document selected")
            return
        self.body = body
        if self.state is not SessionState.SAVING:
            self.state = SessionState.EDITING
        self._schedule_save()

    async def rename(self, title: str) -> EditResult | None:
        if self.document_id is None or self.folder_id is None:
            return None
        self.title = title
        return await self.editor.rename_document(self.folder_id, self.document_id, title)

    def _schedule_save(self) -> None:
        self._cancel_timer()
        loop = asyncio.get_running_loop()
        self._timer = loop.call_later(self.debounce_seconds, self._on_timer)
        logger.debug("Save of %s scheduled in %.1fs", self.document_id, self.debounce_seconds)

    def _on_timer(self) -> None:
        self._timer = None
        if self.document_id is None:
            return
        task = asyncio.create_task(self._save(self.document_id, self.content_path, self.body))
        self._in_flight.add(task)
        task.add_done_callback(self._in_flight.discard)

    # ── Saving ───────────────────────────────────────────────

    async def _save(self, document_id: str, content_path: str | None, body: str) -> SaveResult:
        if self.document_id == document_id:
            self.state = SessionState.SAVING
        result = await self.blobs.save(document_id, body, content_path)

        if not result.ok:
            logger.error("Saving %s failed: %s", document_id, result.error)
            if self.on_save_failed:
                self.on_save_failed(document_id, result)
        elif result.content_path != content_path:
            # First save of a new document: record where the body went.
            await self.editor.set_content_path(document_id, result.content_path)
            if self.document_id == document_id:
                self.content_path = result.content_path
                self._signature = (document_id, result.content_path)

        if self.document_id == document_id and self.state is SessionState.SAVING:
            self.state = SessionState.EDITING
        return result

    async def save_now(self) -> SaveResult | None:
        """Save immediately, leaving any pending debounce timer in place."""
        if self.document_id is None:
            return None
        return await self._save(self.document_id, self.content_path, self.body)

    async def flush(self) -> None:
        """Fire a pending debounce timer now and wait for every in-flight save."""
        if self._timer is not None:
            self._timer.cancel()
            self._on_timer()
        if self._in_flight:
            await asyncio.gather(*self._in_flight, return_exceptions=True)

    async def close(self) -> None:
        await self.flush()
        self._clear()

    # ── Attachments ──────────────────────────────────────────

    async def paste(self, source: Path | str | bytes, name: str | None = None) -> Path | None:
        """Store pasted/dropped binary data and reference it from the body.

        Repeats of the same payload inside the guard window are ignored.
        Distinct payloads arriving together are handled one at a time, in
        arrival order. If the follow-up save fails, the attachment is
        deleted and the body restored.
        """
        if self.document_id is None:
            return None
        key = _fingerprint(source)
        now = time.monotonic()
        self._recent_pastes = {
            k: t for k, t in self._recent_pastes.items() if now - t < self.paste_guard_seconds
        }
        if key in self._recent_pastes:
            logger.debug("Ignoring duplicate paste (%s)", key)
            return None
        self._recent_pastes[key] = now

        token = self._selection
        async with self._paste_lock:
            if token != self._selection:
                return None
            path = await self.attachments.save(source, name)
            if path is None:
                return None
            if token != self._selection:
                logger.info("Selection changed during paste; %s left for cleanup", path)
                return None

            previous = self.body
            label = Path(name).stem if name else "image"
            self.body = f"{previous}\n![{label}]({path.as_uri()})\n"
            result = await self.save_now()
            if result is not None and not result.ok:
                await self.attachments.delete(path)
                self.body = previous
                return None
            return path
