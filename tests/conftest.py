"""Shared fixtures for log viewer tests."""

from collections.abc import Iterator
from pathlib import Path

import pytest
from log_fixtures import FakeEventSource

from log_viewer.monitoring import WatchConfig
from log_viewer.watch_manager import WatchManager


@pytest.fixture
def projects_dir(tmp_path: Path) -> Path:
    """Create an empty projects directory."""
    root = tmp_path / "projects"
    root.mkdir()
    return root


@pytest.fixture
def session_file(projects_dir: Path) -> Path:
    """Path of a not-yet-created session log in project groupA."""
    return projects_dir / "groupA" / "s1.jsonl"


@pytest.fixture
def fake_source() -> FakeEventSource:
    return FakeEventSource()


@pytest.fixture
def watch_config() -> WatchConfig:
    return WatchConfig(rescan_interval_seconds=0)


@pytest.fixture
def watch_manager(
    projects_dir: Path, watch_config: WatchConfig, fake_source: FakeEventSource
) -> Iterator[WatchManager]:
    """WatchManager over projects_dir fed by the fake event source."""
    manager = WatchManager(projects_dir, watch_config, event_source=fake_source)
    manager.start()
    yield manager
    manager.stop()
