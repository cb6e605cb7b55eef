"""Metadata tree persistence (notes-meta.json)."""

from __future__ import annotations

import logging
from pathlib import Path

from notebox.models import Tree, tree_from_json, tree_to_json
from notebox.storage.snapshot import JsonSnapshot

logger = logging.getLogger(__name__)


class MetadataTreeStore:
    """Load/save the folder/document hierarchy as a single snapshot.

    There is no partial update: callers edit the in-memory tree and save the
    whole result.
    """

    def __init__(self, path: Path) -> None:
        self._snapshot = JsonSnapshot(path)

    @property
    def path(self) -> Path:
        return self._snapshot.path

    async def exists(self) -> bool:
        return await self._snapshot.exists()

    async def load(self) -> Tree:
        raw = await self._snapshot.load()
        try:
            return tree_from_json(raw)
        except (KeyError, TypeError, AttributeError) as e:
            logger.error("Malformed metadata tree in %s: %s", self.path, e)
            return []

    async def save(self, tree: Tree) -> bool:
        return await self._snapshot.save(tree_to_json(tree))
