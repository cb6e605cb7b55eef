"""Document bodies stored as standalone markdown files under the data root."""

from __future__ import annotations

import logging
import re
from pathlib import Path, PurePosixPath

import aiofiles
import aiofiles.os

from notebox.models import SaveResult

logger = logging.getLogger(__name__)


def _file_uri_prefix(directory: str) -> str:
    return "file://" + ("" if directory.startswith("/") else "/") + directory


def rewrite_image_paths(text: str, images_dir: Path) -> str:
    """Point image references at another machine's attachment root to ours.

    Matches ``![alt](<...>/<data-dir-name>/images/<file>)`` written either as
    a ``file://`` URI or a raw absolute path (POSIX or drive-letter).
    """
    current = images_dir.resolve().as_posix()
    pattern = re.compile(
        r"!\[([^\]]*)\]\((?:file:///?)?((?:[A-Za-z]:)?/[^)\s]*?/"
        + re.escape(images_dir.parent.name)
        + r"/images)/([^)\s]+)\)"
    )

    def _sub(match: re.Match) -> str:
        alt, directory, file_part = match.group(1), match.group(2), match.group(3)
        if directory == current:
            return match.group(0)
        return f"![{alt}]({_file_uri_prefix(current)}/{file_part})"

    return pattern.sub(_sub, text)


class ContentBlobStore:
    """Byte-level get/put of document bodies addressed by a relative path."""

    def __init__(self, root: Path, notes_dirname: str = "notes", images_dir: Path | None = None) -> None:
        self.root = root
        self.notes_dirname = notes_dirname
        self.images_dir = images_dir or root / "images"

    def default_path(self, document_id: str) -> str:
        """Deterministic relative blob path for a document id."""
        return str(PurePosixPath(self.notes_dirname) / f"{document_id}.md")

    def resolve(self, content_path: str) -> Path:
        """Absolute path for a relative content path. Raises ValueError outside the root."""
        root = self.root.resolve()
        path = (root / content_path).resolve()
        if not path.is_relative_to(root):
            raise ValueError(f"Content path escapes data root: {content_path}")
        return path

    async def load(self, document_id: str, content_path: str | None = None) -> str:
        """Read a body. Missing or unreadable files read as empty text."""
        rel = content_path or self.default_path(document_id)
        try:
            path = self.resolve(rel)
            if not await aiofiles.os.path.isfile(path):
                return ""
            async with aiofiles.open(path, encoding="utf-8") as f:
                text = await f.read()
        except (OSError, ValueError) as e:
            logger.error("Failed to load content for %s (%s): %s", document_id, rel, e)
            return ""
        return rewrite_image_paths(text, self.images_dir)

    async def save(self, document_id: str, text: str, content_path: str | None = None) -> SaveResult:
        """Write a body unconditionally and report the relative path used."""
        rel = content_path or self.default_path(document_id)
        try:
            path = self.resolve(rel)
            await aiofiles.os.makedirs(path.parent, exist_ok=True)
            async with aiofiles.open(path, "w", encoding="utf-8") as f:
                await f.write(text or "")
        except (OSError, ValueError) as e:
            logger.error("Failed to save content for %s (%s): %s", document_id, rel, e)
            return SaveResult(content_path=None, ok=False, error=str(e))
        return SaveResult(content_path=rel)
