"""File helpers for watcher tests."""

import os
from pathlib import Path


def write_file(path: Path, content: str = "data", mtime: float = None) -> Path:
    """Write a file and optionally pin its modification time (seconds)."""
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content)
    if mtime is not None:
        set_mtime(path, mtime)
    return path


def set_mtime(path: Path, mtime: float) -> None:
    ns = int(mtime * 1_000_000_000)
    os.utime(path, ns=(ns, ns))
