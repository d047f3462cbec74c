"""Shared fixtures for watcher tests."""

import pytest


@pytest.fixture
def watched(tmp_path):
    """An empty directory to watch, inside the test's temporary directory."""
    root = tmp_path / "watched"
    root.mkdir()
    return root
