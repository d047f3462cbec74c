"""Tests for traversal strategies."""

import os
import sys

import pytest

from dirwatch.traversal import ScanEntry, glob_scan, select_strategy, walk_scan

from helpers import write_file


class TestGlobScan:
    """Tests for the shallow strategy."""

    def test_matches_immediate_children(self, watched):
        write_file(watched / "a.txt")
        write_file(watched / "b.log")
        write_file(watched / "sub" / "c.txt")

        paths = {entry.path for entry in glob_scan(watched, "*.txt")}

        assert paths == {watched / "a.txt"}

    def test_excludes_directories(self, watched):
        (watched / "dir.txt").mkdir()
        write_file(watched / "file.txt")

        paths = {entry.path for entry in glob_scan(watched, "*")}

        assert paths == {watched / "file.txt"}

    def test_question_mark_and_brackets(self, watched):
        for name in ("a1.txt", "a2.txt", "a3.txt", "ab.txt"):
            write_file(watched / name)

        assert {e.path.name for e in glob_scan(watched, "a?.txt")} == {"a1.txt", "a2.txt", "a3.txt", "ab.txt"}
        assert {e.path.name for e in glob_scan(watched, "a[12].txt")} == {"a1.txt", "a2.txt"}

    def test_includes_hidden_files(self, watched):
        write_file(watched / ".hidden")
        assert {e.path.name for e in glob_scan(watched, "*")} == {".hidden"}

    def test_entries_carry_records(self, watched):
        path = write_file(watched / "a.txt", "abc", mtime=1_000_000)

        entry = next(glob_scan(watched, "*"))

        assert isinstance(entry, ScanEntry)
        assert entry.record.path == path
        assert entry.record.size == 3
        assert entry.record.mtime == 1_000_000

    def test_missing_root_yields_nothing(self, tmp_path):
        assert list(glob_scan(tmp_path / "gone", "*")) == []

    def test_is_lazy_single_pass(self, watched):
        write_file(watched / "a.txt")
        scan = glob_scan(watched, "*")

        assert len(list(scan)) == 1
        assert list(scan) == []

    def test_file_removed_during_scan_is_skipped(self, watched):
        write_file(watched / "a.txt")
        write_file(watched / "b.txt")
        scan = glob_scan(watched, "*.txt")

        first = next(scan)
        for name in ("a.txt", "b.txt"):
            if (watched / name) != first.path:
                (watched / name).unlink()

        assert list(scan) == []


class TestWalkScan:
    """Tests for the recursive strategy."""

    def test_walks_subtree(self, watched):
        write_file(watched / "a.txt")
        write_file(watched / "one" / "b.txt")
        write_file(watched / "one" / "two" / "c.txt")
        write_file(watched / "one" / "two" / "d.log")

        paths = {entry.path for entry in walk_scan(watched, "*.txt")}

        assert paths == {
            watched / "a.txt",
            watched / "one" / "b.txt",
            watched / "one" / "two" / "c.txt",
        }

    def test_pattern_matches_base_name_only(self, watched):
        write_file(watched / "match" / "file.dat")

        assert list(walk_scan(watched, "match*")) == []

    def test_excludes_directories(self, watched):
        (watched / "folder.txt").mkdir()
        assert list(walk_scan(watched, "*.txt")) == []

    def test_missing_root_yields_nothing(self, tmp_path):
        assert list(walk_scan(tmp_path / "gone", "*")) == []

    @pytest.mark.skipif(sys.platform == "win32" or os.geteuid() == 0, reason="requires POSIX permissions as non-root")
    def test_unreadable_directory_does_not_abort(self, watched):
        write_file(watched / "a.txt")
        locked = watched / "locked"
        write_file(locked / "b.txt")
        locked.chmod(0)
        try:
            paths = {entry.path for entry in walk_scan(watched, "*.txt")}
        finally:
            locked.chmod(0o755)

        assert paths == {watched / "a.txt"}

    @pytest.mark.skipif(sys.platform == "win32", reason="symlinks need privileges on Windows")
    def test_broken_symlink_is_skipped(self, watched):
        write_file(watched / "a.txt")
        os.symlink(watched / "missing.txt", watched / "dangling.txt")

        paths = {entry.path for entry in walk_scan(watched, "*.txt")}

        assert paths == {watched / "a.txt"}


class TestSelectStrategy:
    """Tests for select_strategy."""

    def test_recursive(self):
        assert select_strategy(True) is walk_scan

    def test_shallow(self):
        assert select_strategy(False) is glob_scan
