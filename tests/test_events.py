"""Tests for event models."""

import os
from datetime import datetime
from pathlib import Path

from dirwatch.events import EventBatch, EventType, FileEvent, FileRecord


class TestFileRecord:
    """Tests for FileRecord."""

    def test_from_stat(self, tmp_path):
        path = tmp_path / "a.txt"
        path.write_text("hello")
        st = os.stat(path)

        record = FileRecord.from_stat(path, st)

        assert record.path == path
        assert record.size == 5
        assert record.mtime_ns == st.st_mtime_ns

    def test_mtime_in_seconds(self):
        record = FileRecord(Path("/a"), mtime_ns=1_500_000_000, size=0)
        assert record.mtime == 1.5

    def test_newer_only_when_strictly_later(self):
        old = FileRecord(Path("/a"), mtime_ns=100, size=1)
        same = FileRecord(Path("/a"), mtime_ns=100, size=99)
        later = FileRecord(Path("/a"), mtime_ns=101, size=1)
        earlier = FileRecord(Path("/a"), mtime_ns=99, size=1)

        assert later.is_newer_than(old)
        assert not same.is_newer_than(old)
        assert not earlier.is_newer_than(old)


class TestFileEvent:
    """Tests for FileEvent."""

    def test_str(self):
        event = FileEvent(EventType.DELETED, Path("/data/a.txt"))
        assert str(event) == f"Deleted {Path('/data/a.txt')}"

    def test_event_type_str(self):
        assert str(EventType.ADDED) == "Added"
        assert str(EventType.CHANGED) == "Changed"
        assert EventType("deleted") is EventType.DELETED

    def test_to_dict(self):
        record = FileRecord(Path("/a"), mtime_ns=2_000_000_000, size=7)
        event = FileEvent(EventType.ADDED, Path("/a"), record)

        assert event.to_dict() == {
            "event_type": "added",
            "path": str(Path("/a")),
            "mtime": 2.0,
            "size": 7,
        }

    def test_to_dict_without_record(self):
        event = FileEvent(EventType.DELETED, Path("/a"))
        data = event.to_dict()
        assert data["mtime"] is None
        assert data["size"] is None


class TestEventBatch:
    """Tests for EventBatch."""

    def test_len_and_iter(self):
        events = (
            FileEvent(EventType.ADDED, Path("/a")),
            FileEvent(EventType.DELETED, Path("/b")),
        )
        batch = EventBatch(at=datetime(2024, 1, 1), events=events)

        assert len(batch) == 2
        assert list(batch) == list(events)

    def test_empty_by_default(self):
        batch = EventBatch(at=datetime.now())
        assert len(batch) == 0
        assert batch.events == ()

    def test_by_type(self):
        batch = EventBatch(
            at=datetime.now(),
            events=(
                FileEvent(EventType.ADDED, Path("/a")),
                FileEvent(EventType.CHANGED, Path("/b")),
                FileEvent(EventType.ADDED, Path("/c")),
            ),
        )
        added = batch.by_type(EventType.ADDED)
        assert [e.path for e in added] == [Path("/a"), Path("/c")]
        assert batch.by_type(EventType.DELETED) == ()

    def test_to_dict(self):
        at = datetime(2024, 5, 6, 7, 8, 9)
        batch = EventBatch(at=at, events=(FileEvent(EventType.DELETED, Path("/a")),))

        data = batch.to_dict()

        assert data["at"] == "2024-05-06T07:08:09"
        assert data["events"][0]["event_type"] == "deleted"
