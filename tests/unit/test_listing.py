"""Tests for project and session listings."""

import json
from datetime import UTC, datetime
from pathlib import Path

import pytest
from log_fixtures import append_lines, make_entry

from log_viewer.listing import (
    UNTITLED_SESSION,
    ProjectIndex,
    list_sessions,
    load_session,
    summarize_project,
)


@pytest.fixture
def populated_root(projects_dir: Path) -> Path:
    """Two projects with sessions of different ages plus one empty project."""
    append_lines(
        projects_dir / "older" / "s1.jsonl",
        make_entry("o1", timestamp="2025-01-01T10:00:00Z"),
    )
    append_lines(
        projects_dir / "newer" / "first.jsonl",
        json.dumps({"type": "summary", "summary": "Fix the build", "leafUuid": "x"}),
        make_entry("n1", timestamp="2025-03-01T09:00:00Z"),
        make_entry("n2", timestamp="2025-03-01T09:05:00Z"),
    )
    append_lines(
        projects_dir / "newer" / "second.jsonl",
        make_entry("n3", timestamp="2025-03-02T12:00:00Z"),
    )
    (projects_dir / "newer" / "notes.txt").write_text("not a session")
    (projects_dir / "empty").mkdir()
    return projects_dir


class TestSummarizeProject:
    def test_counts_sessions_and_latest_activity(self, populated_root: Path) -> None:
        summary = summarize_project(populated_root / "newer")

        assert summary.name == "newer"
        assert summary.session_count == 2
        assert summary.latest_activity == datetime(2025, 3, 2, 12, 0, tzinfo=UTC)

    def test_only_head_lines_are_inspected(self, projects_dir: Path) -> None:
        lines = [make_entry(f"u{i}") for i in range(5)]
        lines.append(make_entry("late", timestamp="2025-05-05T00:00:00Z"))
        append_lines(projects_dir / "p" / "s.jsonl", *lines)

        assert summarize_project(projects_dir / "p").latest_activity is None


class TestListSessions:
    def test_newest_first_with_summary(self, populated_root: Path) -> None:
        sessions = list_sessions(populated_root, "newer")

        assert [s.id for s in sessions] == ["second", "first"]
        first = sessions[1]
        assert first.summary == "Fix the build"
        assert first.timestamp == datetime(2025, 3, 1, 9, 0, tzinfo=UTC)
        assert first.message_count == 3
        assert first.project_name == "newer"
        assert sessions[0].summary == UNTITLED_SESSION

    def test_session_without_timestamp_uses_now(self, projects_dir: Path) -> None:
        append_lines(projects_dir / "p" / "s.jsonl", make_entry("a"))
        before = datetime.now(UTC)

        (session,) = list_sessions(projects_dir, "p")

        assert session.timestamp >= before
        assert session.summary == UNTITLED_SESSION

    def test_unknown_project(self, projects_dir: Path) -> None:
        with pytest.raises(LookupError):
            list_sessions(projects_dir, "missing")

    @pytest.mark.parametrize("name", ["..", ".", "", "a/b", "..\\x"])
    def test_rejects_names_outside_root(self, projects_dir: Path, name: str) -> None:
        with pytest.raises(LookupError):
            list_sessions(projects_dir, name)


class TestLoadSession:
    def test_returns_every_valid_entry(self, populated_root: Path) -> None:
        append_lines(populated_root / "newer" / "second.jsonl", "garbage")

        entries = load_session(populated_root, "newer", "second")

        assert [e.uuid for e in entries] == ["n3"]

    def test_unknown_session(self, populated_root: Path) -> None:
        with pytest.raises(LookupError):
            load_session(populated_root, "newer", "missing")

    def test_session_name_cannot_escape_project(self, populated_root: Path) -> None:
        with pytest.raises(LookupError):
            load_session(populated_root, "newer", "../older/s1")


class TestProjectIndex:
    def test_refresh_sorts_by_latest_activity(self, populated_root: Path) -> None:
        index = ProjectIndex(populated_root)
        assert index.projects == []
        assert index.last_refresh is None

        projects = index.refresh()

        assert [p.name for p in projects] == ["newer", "older", "empty"]
        assert projects[2].session_count == 0
        assert projects[2].latest_activity is None
        assert index.projects == projects
        assert index.last_refresh is not None

    def test_refresh_ignores_plain_files(self, projects_dir: Path) -> None:
        (projects_dir / "stray.jsonl").write_text(make_entry("a") + "\n")
        assert ProjectIndex(projects_dir).refresh() == []

    def test_refresh_missing_root_raises(self, tmp_path: Path) -> None:
        with pytest.raises(OSError):
            ProjectIndex(tmp_path / "missing").refresh()
