"""Event models shared across watcher components."""
from __future__ import annotations

import os
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Iterator, Optional, Tuple


class EventType(str, Enum):
    """Types of changes reported by the watcher."""

    ADDED = "added"
    CHANGED = "changed"
    DELETED = "deleted"

    def __str__(self) -> str:
        return self.value.capitalize()


@dataclass(frozen=True)
class FileRecord:
    """Last observed metadata for a single file."""

    path: Path
    mtime_ns: int
    size: int

    @classmethod
    def from_stat(cls, path: Path, stat_result: os.stat_result) -> "FileRecord":
        return cls(path=path, mtime_ns=stat_result.st_mtime_ns, size=stat_result.st_size)

    @property
    def mtime(self) -> float:
        return self.mtime_ns / 1_000_000_000

    def is_newer_than(self, other: "FileRecord") -> bool:
        """Only a strictly later modification time counts as newer."""

        return self.mtime_ns > other.mtime_ns


@dataclass(frozen=True)
class FileEvent:
    """A single change observed in the watched directory.

    ``record`` is the freshly scanned metadata for added and changed files and
    the last known metadata for deleted ones.
    """

    event_type: EventType
    path: Path
    record: Optional[FileRecord] = None

    def __str__(self) -> str:
        return f"{self.event_type} {self.path}"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "event_type": self.event_type.value,
            "path": str(self.path),
            "mtime": self.record.mtime if self.record else None,
            "size": self.record.size if self.record else None,
        }


@dataclass(frozen=True)
class EventBatch:
    """All events found by one scan, stamped with the time the scan started."""

    at: datetime
    events: Tuple[FileEvent, ...] = field(default_factory=tuple)

    def __len__(self) -> int:
        return len(self.events)

    def __iter__(self) -> Iterator[FileEvent]:
        return iter(self.events)

    def by_type(self, event_type: EventType) -> Tuple[FileEvent, ...]:
        return tuple(event for event in self.events if event.event_type is event_type)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "at": self.at.isoformat(),
            "events": [event.to_dict() for event in self.events],
        }
