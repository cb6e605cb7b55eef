"""Whole-snapshot JSON files: load the entire array, save the entire array."""

from __future__ import annotations

import json
import logging
import secrets
from pathlib import Path
from typing import Any

import aiofiles
import aiofiles.os

logger = logging.getLogger(__name__)


class JsonSnapshot:
    """A JSON array persisted as one file, replaced atomically on every save."""

    def __init__(self, path: Path) -> None:
        self.path = path

    async def exists(self) -> bool:
        return await aiofiles.os.path.isfile(self.path)

    async def load(self) -> list[Any]:
        """Return the stored array, or [] when missing or unreadable."""
        if not await self.exists():
            return []
        try:
            async with aiofiles.open(self.path, encoding="utf-8") as f:
                data = json.loads(await f.read())
        except (OSError, ValueError) as e:
            logger.error("Failed to load %s: %s", self.path, e)
            return []
        if not isinstance(data, list):
            logger.error("Ignoring %s: expected a JSON array, got %s", self.path, type(data).__name__)
            return []
        return data

    async def save(self, data: list[Any]) -> bool:
        """Overwrite the snapshot with ``data``. Returns False on failure."""
        # One temp file per save; concurrent saves each replace a complete file.
        tmp = self.path.with_name(f".{self.path.name}.{secrets.token_hex(4)}.tmp")
        try:
            payload = json.dumps(data, ensure_ascii=False, indent=2)
            await aiofiles.os.makedirs(self.path.parent, exist_ok=True)
            async with aiofiles.open(tmp, "w", encoding="utf-8") as f:
                await f.write(payload)
            await aiofiles.os.replace(tmp, self.path)
            return True
        except (OSError, TypeError, ValueError) as e:
            logger.error("Failed to save %s: %s", self.path, e)
            try:
                await aiofiles.os.remove(tmp)
            except OSError:
                pass
            return False
