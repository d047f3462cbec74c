"""Snapshot store and the diff step that keeps it current."""
from __future__ import annotations

from collections.abc import Mapping
from datetime import datetime
from pathlib import Path
from typing import Dict, Iterable, Iterator, List, Optional, Set

from .events import EventBatch, EventType, FileEvent, FileRecord
from .traversal import ScanEntry


class Snapshot(Mapping):
    """Last known state of the watched directory, keyed by path.

    Read access follows the mapping protocol. Only :func:`compute_changes`
    mutates a snapshot.
    """

    def __init__(self, records: Optional[Iterable[FileRecord]] = None):
        self._records: Dict[Path, FileRecord] = {}
        for record in records or ():
            self.record(record)

    def __getitem__(self, path: Path) -> FileRecord:
        return self._records[path]

    def __iter__(self) -> Iterator[Path]:
        return iter(self._records)

    def __len__(self) -> int:
        return len(self._records)

    def __repr__(self) -> str:
        return f"Snapshot({len(self._records)} files)"

    def record(self, record: FileRecord) -> None:
        self._records[record.path] = record

    def discard(self, path: Path) -> Optional[FileRecord]:
        return self._records.pop(path, None)


def compute_changes(
    snapshot: Snapshot,
    entries: Iterable[ScanEntry],
    at: Optional[datetime] = None,
) -> EventBatch:
    """Compare a fresh scan with ``snapshot`` and bring the snapshot up to date.

    Events keep traversal discovery order. Deletions are appended after every
    entry has been consumed, since absence is only known once the scan ends.
    A path whose modification time ties or goes backwards yields no event and
    keeps its previous record.
    """

    scan_started = at or datetime.now()
    events: List[FileEvent] = []
    touched: Set[Path] = set()

    for path, record in entries:
        touched.add(path)
        previous = snapshot.get(path)
        if previous is None:
            events.append(FileEvent(EventType.ADDED, path, record))
        elif record.is_newer_than(previous):
            events.append(FileEvent(EventType.CHANGED, path, record))
        else:
            continue
        snapshot.record(record)

    for path in [path for path in snapshot if path not in touched]:
        events.append(FileEvent(EventType.DELETED, path, snapshot.discard(path)))

    return EventBatch(at=scan_started, events=tuple(events))
