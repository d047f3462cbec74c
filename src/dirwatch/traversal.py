"""Traversal strategies that list the files a scan should consider."""
from __future__ import annotations

import logging
import os
import stat
from fnmatch import fnmatch
from pathlib import Path
from typing import Callable, Iterator, NamedTuple, Optional

from .events import FileRecord

logger = logging.getLogger(__name__)


class ScanEntry(NamedTuple):
    path: Path
    record: FileRecord


ScanStrategy = Callable[[Path, str], Iterator[ScanEntry]]


def glob_scan(root: Path, pattern: str) -> Iterator[ScanEntry]:
    """Yield the immediate children of ``root`` matching ``pattern``.

    Directories are skipped and never descended into. Entries that vanish or
    cannot be stat'ed between listing and stat are left out of the result.
    """

    try:
        with os.scandir(root) as listing:
            names = [item.name for item in listing]
    except OSError as exc:
        _log_walk_error(exc)
        return
    for name in names:
        if not fnmatch(name, pattern):
            continue
        entry = _stat_entry(root / name)
        if entry is not None:
            yield entry


def walk_scan(root: Path, pattern: str) -> Iterator[ScanEntry]:
    """Yield every file below ``root`` whose base name matches ``pattern``."""

    for dirpath, _dirnames, filenames in os.walk(root, onerror=_log_walk_error):
        for name in filenames:
            if not fnmatch(name, pattern):
                continue
            entry = _stat_entry(Path(dirpath) / name)
            if entry is not None:
                yield entry


def select_strategy(recursive: bool) -> ScanStrategy:
    return walk_scan if recursive else glob_scan


def _stat_entry(path: Path) -> Optional[ScanEntry]:
    try:
        stat_result = path.stat()
    except OSError as exc:
        logger.debug("Skipping %s: %s", path, exc)
        return None
    if stat.S_ISDIR(stat_result.st_mode):
        return None
    return ScanEntry(path, FileRecord.from_stat(path, stat_result))


def _log_walk_error(exc: OSError) -> None:
    logger.debug("Skipping unreadable directory %s: %s", exc.filename, exc)
