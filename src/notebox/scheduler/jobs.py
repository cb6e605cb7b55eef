"""Scheduler for periodic tasks using pure asyncio.

Jobs:
- Attachment cleanup: mark-and-sweep of unreferenced images, every ``gc.interval`` seconds
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from notebox.config import NoteboxConfig
    from notebox.core import Notebox

logger = logging.getLogger(__name__)


class Scheduler:
    """Simple asyncio-based scheduler for periodic tasks."""

    def __init__(self, notebox: Notebox, config: NoteboxConfig) -> None:
        self._notebox = notebox
        self._interval = config.gc.interval
        self._enabled = config.gc.enabled
        self.runs = 0

    async def start(self, shutdown_event: asyncio.Event) -> None:
        """Run scheduled jobs until shutdown_event is set."""
        if not self._enabled:
            logger.info("Scheduler disabled (gc.enabled = false)")
            await shutdown_event.wait()
            return

        logger.info("Scheduler started (attachment cleanup every %ds)", self._interval)

        while not shutdown_event.is_set():
            try:
                await asyncio.wait_for(shutdown_event.wait(), timeout=self._interval)
                break  # shutdown requested
            except asyncio.TimeoutError:
                pass  # interval elapsed, run jobs

            await self._cleanup_attachments()

        logger.info("Scheduler stopped.")

    async def _cleanup_attachments(self) -> None:
        try:
            await self._notebox.run_garbage_collection()
        except Exception as e:
            logger.error("Attachment cleanup job failed: %s", e)
        self.runs += 1
