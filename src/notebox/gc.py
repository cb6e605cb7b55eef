"""Attachment garbage collection (mark-and-sweep).

Mark: read every markdown body under the notes directory and collect the
image references that resolve inside the attachment root. Sweep: delete
every attachment file that was not marked.

Best-effort and lock-free: an attachment whose referencing body has not yet
been flushed to disk when the sweep runs is deleted. Orphaned bodies of
deleted documents are not collected.
"""

from __future__ import annotations

import logging
import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from urllib.parse import unquote, urlparse
from urllib.request import url2pathname

import aiofiles
import aiofiles.os

logger = logging.getLogger(__name__)

IMAGE_REF_RE = re.compile(r"!\[[^\]]*\]\(([^)\s]+)\)")
_WINDOWS_ABS_RE = re.compile(r"^[A-Za-z]:[\\/]")
_URL_SCHEME_RE = re.compile(r"^[A-Za-z][A-Za-z0-9+.-]+:")


@dataclass
class GCReport:
    total_files: int = 0
    used_count: int = 0
    deleted_count: int = 0
    deleted_paths: list[str] = field(default_factory=list)
    error: str | None = None


def extract_image_refs(text: str) -> list[str]:
    """All ``![alt](ref)`` targets in a markdown body."""
    return IMAGE_REF_RE.findall(text)


def canonical_path(path: str | Path) -> str:
    return os.path.normcase(os.path.normpath(os.path.abspath(path)))


def normalize_ref(ref: str, data_root: Path) -> str | None:
    """Resolve a reference to a canonical absolute path, or None for URLs."""
    if ref.startswith("file:"):
        parsed = urlparse(ref)
        raw = url2pathname(parsed.path)
        if _WINDOWS_ABS_RE.match(raw.lstrip("/\\")) and os.name == "nt":
            raw = raw.lstrip("/\\")
        return canonical_path(raw)
    if _WINDOWS_ABS_RE.match(ref):
        if os.name != "nt":
            return None
        return canonical_path(ref)
    if _URL_SCHEME_RE.match(ref):
        return None
    ref = unquote(ref)
    if os.path.isabs(ref):
        return canonical_path(ref)
    return canonical_path(data_root / ref)


def _is_under(path: str, root: str) -> bool:
    try:
        return path != root and os.path.commonpath([path, root]) == root
    except ValueError:
        return False


async def _walk_files(root: Path, suffix: str | None = None) -> list[Path]:
    out: list[Path] = []
    if not await aiofiles.os.path.isdir(root):
        return out
    for name in sorted(await aiofiles.os.listdir(root)):
        path = root / name
        if await aiofiles.os.path.isdir(path):
            out.extend(await _walk_files(path, suffix))
        elif await aiofiles.os.path.isfile(path):
            if suffix is None or name.lower().endswith(suffix):
                out.append(path)
    return out


class AttachmentCollector:
    """Find and delete attachment files no document body references."""

    def __init__(self, data_root: Path, notes_dir: Path, attachments_dir: Path) -> None:
        self.data_root = data_root
        self.notes_dir = notes_dir
        self.attachments_dir = attachments_dir

    async def collect_used(self) -> set[str]:
        """Mark phase: canonical paths of attachments referenced by any body."""
        root = canonical_path(self.attachments_dir)
        used: set[str] = set()
        for md_file in await _walk_files(self.notes_dir, ".md"):
            try:
                async with aiofiles.open(md_file, encoding="utf-8") as f:
                    text = await f.read()
            except (OSError, ValueError) as e:
                logger.warning("GC: failed to read %s: %s", md_file, e)
                continue
            for ref in extract_image_refs(text):
                path = normalize_ref(ref, self.data_root)
                if path and _is_under(path, root):
                    used.add(path)
        return used

    async def run(self, dry_run: bool = False) -> GCReport:
        """Mark, then sweep. Never raises; failures end up in the report/log."""
        try:
            used = await self.collect_used()
            all_files = await _walk_files(self.attachments_dir)
        except Exception as e:
            logger.error("Attachment cleanup failed: %s", e)
            return GCReport(error=str(e))

        report = GCReport(total_files=len(all_files), used_count=len(used))
        for path in all_files:
            if canonical_path(path) in used:
                continue
            if not dry_run:
                try:
                    await aiofiles.os.remove(path)
                except OSError as e:
                    logger.warning("GC: failed to delete %s: %s", path, e)
                    continue
            report.deleted_paths.append(str(path))
        report.deleted_count = len(report.deleted_paths)
        return report
