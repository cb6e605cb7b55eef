"""Daemon process: always-on storage core.

Usage: python -m notebox serve

Manages:
- Startup migration (legacy notes.json → split layout)
- Scheduler (periodic attachment cleanup)
- PID file (prevent duplicate instances on one data root)
- Graceful shutdown (SIGTERM/SIGINT)
"""

from __future__ import annotations

import asyncio
import logging
import os
import signal
import sys

from notebox.config import NoteboxConfig, load_config
from notebox.core import Notebox
from notebox.scheduler.jobs import Scheduler

logger = logging.getLogger(__name__)


def _process_alive(pid: int) -> bool:
    try:
        os.kill(pid, 0)
    except ProcessLookupError:
        return False
    except PermissionError:
        # Exists, owned by another user.
        return True
    return True


class NoteboxDaemon:
    """Always-on daemon process."""

    def __init__(self, config: NoteboxConfig | None = None) -> None:
        self.config = config or load_config()
        self._shutdown_event = asyncio.Event()

    # ── PID file management ──────────────────────────────────

    def _write_pid(self) -> None:
        self.config.pid_file.parent.mkdir(parents=True, exist_ok=True)
        self.config.pid_file.write_text(str(os.getpid()))
        logger.info("PID file written: %s (pid=%d)", self.config.pid_file, os.getpid())

    def _remove_pid(self) -> None:
        if self.config.pid_file.exists():
            self.config.pid_file.unlink()

    def _check_existing(self) -> None:
        """Exit if another daemon owns this data root; drop a stale PID file."""
        pid_file = self.config.pid_file
        if not pid_file.exists():
            return
        try:
            pid = int(pid_file.read_text().strip())
        except ValueError:
            logger.warning("Removing unreadable PID file %s", pid_file)
            self._remove_pid()
            return
        if not _process_alive(pid):
            logger.info("Removing stale PID file %s (pid=%d)", pid_file, pid)
            self._remove_pid()
            return
        print(f"Notebox daemon already running for {self.config.data_dir} (pid={pid}). Exiting.", file=sys.stderr)
        sys.exit(1)

    # ── Signal handling ──────────────────────────────────────

    def _setup_signals(self) -> None:
        loop = asyncio.get_running_loop()
        for sig in (signal.SIGTERM, signal.SIGINT):
            loop.add_signal_handler(sig, self._handle_signal, sig)

    def _handle_signal(self, sig: signal.Signals) -> None:
        logger.info("Received %s, shutting down...", sig.name)
        self._shutdown_event.set()

    def stop(self) -> None:
        self._shutdown_event.set()

    # ── Main run loop ────────────────────────────────────────

    async def run(self) -> None:
        self._check_existing()
        self._write_pid()
        self._setup_signals()

        notebox = Notebox(self.config)
        scheduler = Scheduler(notebox, self.config)

        logger.info("Notebox daemon starting (data=%s)", self.config.data_dir)

        try:
            await notebox.start()
            await scheduler.start(self._shutdown_event)
        except asyncio.CancelledError:
            pass
        finally:
            self._remove_pid()
            logger.info("Notebox daemon stopped.")
