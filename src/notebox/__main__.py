"""Entry point: python -m notebox [serve|migrate|gc|tree]

- "serve":   Daemon mode (startup migration + periodic attachment cleanup)
- "migrate": Run the legacy migration once
- "gc":      Run attachment cleanup once (add --dry-run to only report)
- "tree":    Print the folder/document tree
"""

from __future__ import annotations

import asyncio
import logging
import sys

from notebox.config import load_config
from notebox.models import Tree


def _setup_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )


def _run_serve() -> None:
    """Daemon mode: migration + scheduler."""
    config = load_config()
    _setup_logging(config.log_level)

    from notebox.daemon import NoteboxDaemon

    daemon = NoteboxDaemon(config)
    asyncio.run(daemon.run())


def _run_migrate() -> None:
    config = load_config()
    _setup_logging(config.log_level)

    from notebox.core import Notebox

    state = asyncio.run(Notebox(config).migrate())
    print(f"migration: {state.value}")


def _run_gc(dry_run: bool) -> None:
    config = load_config()
    _setup_logging(config.log_level)

    from notebox.core import Notebox

    report = asyncio.run(Notebox(config).run_garbage_collection(dry_run=dry_run))
    verb = "would delete" if dry_run else "deleted"
    print(f"attachments: total={report.total_files} used={report.used_count} {verb}={report.deleted_count}")
    for path in report.deleted_paths:
        print(f"  {path}")


def _print_tree(tree: Tree, depth: int = 0) -> None:
    pad = "  " * depth
    for folder in tree:
        print(f"{pad}{folder.name}/  [{folder.id}]")
        for doc in folder.documents:
            print(f"{pad}  - {doc.title}  [{doc.id}] {doc.content_path or '(unsaved)'}")
        _print_tree(folder.children, depth + 1)


def _run_tree() -> None:
    config = load_config()
    _setup_logging(config.log_level)

    from notebox.core import Notebox

    _print_tree(asyncio.run(Notebox(config).load_tree()))


def main() -> None:
    cmd = sys.argv[1] if len(sys.argv) > 1 else "serve"

    if cmd == "serve":
        _run_serve()
    elif cmd == "migrate":
        _run_migrate()
    elif cmd == "gc":
        _run_gc(dry_run="--dry-run" in sys.argv[2:])
    elif cmd == "tree":
        _run_tree()
    else:
        print("Usage: python -m notebox [serve|migrate|gc|tree]")
        print("  serve    - Daemon mode with startup migration + periodic cleanup (default)")
        print("  migrate  - Migrate legacy notes.json once")
        print("  gc       - Delete unreferenced attachments once (--dry-run to preview)")
        print("  tree     - Print the note tree")
        sys.exit(1)


if __name__ == "__main__":
    main()
