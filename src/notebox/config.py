"""Configuration loading from environment variables and notebox.toml."""

from __future__ import annotations

import os
import sys
from dataclasses import dataclass, field

if sys.version_info >= (3, 11):
    import tomllib
else:
    import tomli as tomllib
from pathlib import Path

_DEFAULT_DATA_DIR = Path.home() / ".notebox" / "noteApp"
_CONFIG_FILENAME = "notebox.toml"


@dataclass(frozen=True)
class DataLayout:
    """Every persisted path, derived from the application data root."""

    root: Path

    @property
    def meta_path(self) -> Path:
        return self.root / "notes-meta.json"

    @property
    def legacy_path(self) -> Path:
        return self.root / "notes.json"

    @property
    def notes_dir(self) -> Path:
        return self.root / "notes"

    @property
    def images_dir(self) -> Path:
        return self.root / "images"

    @property
    def flashcards_path(self) -> Path:
        return self.root / "flashcards.json"

    @property
    def calendar_path(self) -> Path:
        return self.root / "calendar.json"


@dataclass
class SessionConfig:
    """Content session timing."""

    debounce_seconds: float = 3.0
    paste_guard_seconds: float = 0.5


@dataclass
class GCConfig:
    """Attachment garbage collection schedule."""

    interval: int = 6 * 60 * 60
    enabled: bool = True


@dataclass
class NoteboxConfig:
    """Top-level Notebox configuration."""

    session: SessionConfig = field(default_factory=SessionConfig)
    gc: GCConfig = field(default_factory=GCConfig)
    data_dir: Path = _DEFAULT_DATA_DIR
    pid_file: Path = Path.home() / ".notebox" / "notebox.pid"
    log_level: str = "INFO"

    @property
    def layout(self) -> DataLayout:
        # Attachment URIs are absolute, so the root must be too.
        return DataLayout(self.data_dir.expanduser().resolve())


def load_config(config_path: Path | None = None) -> NoteboxConfig:
    """Load configuration from environment variables and optional notebox.toml.

    Priority: environment variables > notebox.toml > defaults.
    """
    file_data: dict = {}
    if config_path and config_path.exists():
        file_data = tomllib.loads(config_path.read_text())
    else:
        for candidate in [
            Path.cwd() / _CONFIG_FILENAME,
            Path.home() / ".notebox" / _CONFIG_FILENAME,
        ]:
            if candidate.exists():
                file_data = tomllib.loads(candidate.read_text())
                break

    session_data = file_data.get("session", {})
    gc_data = file_data.get("gc", {})

    config = NoteboxConfig(
        session=SessionConfig(
            debounce_seconds=float(
                os.getenv("NOTEBOX_DEBOUNCE", session_data.get("debounce_seconds", 3.0))
            ),
            paste_guard_seconds=float(session_data.get("paste_guard_seconds", 0.5)),
        ),
        gc=GCConfig(
            interval=int(os.getenv("NOTEBOX_GC_INTERVAL", gc_data.get("interval", 6 * 60 * 60))),
            enabled=bool(gc_data.get("enabled", True)),
        ),
        data_dir=Path(
            os.getenv("NOTEBOX_DATA_DIR", file_data.get("data_dir", str(_DEFAULT_DATA_DIR)))
        ).expanduser().resolve(),
        pid_file=Path(
            file_data.get("pid_file", str(Path.home() / ".notebox" / "notebox.pid"))
        ).expanduser(),
        log_level=os.getenv("NOTEBOX_LOG_LEVEL", file_data.get("log_level", "INFO")),
    )
    return config
