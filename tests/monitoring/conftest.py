"""Shared fixtures for monitoring tests."""

from pathlib import Path

import pytest

from log_viewer.monitoring.models import StreamIdentity
from log_viewer.monitoring.position_tracker import PositionTracker


@pytest.fixture
def position_tracker() -> PositionTracker:
    """Create an empty PositionTracker."""
    return PositionTracker(lock_stripes=4)


@pytest.fixture
def identity() -> StreamIdentity:
    return StreamIdentity(project="test-project", session="session-1")


@pytest.fixture
def jsonl_file(tmp_path: Path) -> Path:
    """Create a log file with three well-formed entries."""
    log_file = tmp_path / "test-project" / "session-1.jsonl"
    log_file.parent.mkdir()
    log_file.write_text('{"uuid":"a"}\n{"uuid":"b"}\n{"uuid":"c"}\n')
    return log_file
