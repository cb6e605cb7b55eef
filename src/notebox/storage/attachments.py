"""Binary attachments (pasted/dropped images) under the attachment root."""

from __future__ import annotations

import asyncio
import logging
import shutil
import time
from pathlib import Path

import aiofiles
import aiofiles.os

logger = logging.getLogger(__name__)

_DEFAULT_NAME = "image"


class AttachmentStore:
    """Save attachments as ``<epoch-ms>_<name>`` files and delete them by path."""

    def __init__(self, root: Path) -> None:
        self.root = root

    def _is_inside(self, path: Path) -> bool:
        return path.resolve().is_relative_to(self.root.resolve())

    async def _target(self, name: str) -> Path:
        stamp = int(time.time() * 1000)
        path = self.root / f"{stamp}_{name}"
        while await aiofiles.os.path.exists(path):
            stamp += 1
            path = self.root / f"{stamp}_{name}"
        return path

    async def save(self, source: Path | str | bytes, name: str | None = None) -> Path | None:
        """Copy a file (path) or write a payload (bytes) into the root.

        Returns the absolute path of the stored file, or None on failure.
        """
        if isinstance(source, (bytes, bytearray)):
            base = Path(name or _DEFAULT_NAME).name or _DEFAULT_NAME
        else:
            source = Path(source)
            base = Path(name or source.name).name or _DEFAULT_NAME
        try:
            await aiofiles.os.makedirs(self.root, exist_ok=True)
            target = (await self._target(base)).absolute()
            if isinstance(source, (bytes, bytearray)):
                async with aiofiles.open(target, "wb") as f:
                    await f.write(source)
            else:
                await asyncio.to_thread(shutil.copyfile, source, target)
        except OSError as e:
            logger.error("Failed to save attachment %s: %s", base, e)
            return None
        logger.debug("Saved attachment %s", target)
        return target

    async def delete(self, path: Path | str) -> bool:
        """Remove an attachment. Returns whether a file was actually removed."""
        path = Path(path)
        if not self._is_inside(path):
            logger.warning("Refusing to delete %s: outside attachment root", path)
            return False
        try:
            if not await aiofiles.os.path.isfile(path):
                return False
            await aiofiles.os.remove(path)
        except OSError as e:
            logger.error("Failed to delete attachment %s: %s", path, e)
            return False
        return True
