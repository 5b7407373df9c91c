"""Project and session listings for the REST API.

Listings are read straight from disk on request. The project list is also
cached on the ProjectIndex so other consumers can read the last refresh
without walking the tree again.
"""

import logging
import threading
from dataclasses import dataclass
from datetime import UTC, datetime
from pathlib import Path

from .monitoring import IncrementalLogReader, LogEntry

logger = logging.getLogger(__name__)

UNTITLED_SESSION = "Untitled Session"

_reader = IncrementalLogReader()


@dataclass
class ProjectSummary:
    name: str
    path: str
    session_count: int
    latest_activity: datetime | None


@dataclass
class SessionSummary:
    id: str
    summary: str
    timestamp: datetime
    message_count: int
    project_name: str


def _log_files(directory: Path, extension: str) -> list[Path]:
    return sorted(p for p in directory.iterdir() if p.is_file() and p.suffix == extension)


def _project_dir(root: Path, project: str) -> Path:
    """Resolve a project directory, refusing names that escape the root."""
    if not project or "/" in project or "\\" in project or project in (".", ".."):
        raise LookupError(f"Unknown project: {project}")
    path = root / project
    if not path.is_dir():
        raise LookupError(f"Unknown project: {project}")
    return path


def summarize_project(project_dir: Path, extension: str = ".jsonl") -> ProjectSummary:
    """Count a project's sessions and find its latest timestamp.

    Only the first five lines of each session are inspected.
    """
    latest: datetime | None = None
    log_files = _log_files(project_dir, extension)
    for log_file in log_files:
        for entry in _reader.read_head(log_file, 5):
            if entry.timestamp is not None and (latest is None or entry.timestamp > latest):
                latest = entry.timestamp

    return ProjectSummary(
        name=project_dir.name,
        path=str(project_dir),
        session_count=len(log_files),
        latest_activity=latest,
    )


def list_sessions(root: str | Path, project: str, extension: str = ".jsonl") -> list[SessionSummary]:
    """List the sessions of a project, newest first.

    The summary comes from a "summary" entry and the timestamp from the first
    timestamped entry, both within the first 10 lines. Sessions without a
    timestamp are stamped with the current time.

    Raises:
        LookupError: If the project does not exist.
    """
    project_dir = _project_dir(Path(root), project)
    sessions: list[SessionSummary] = []

    for log_file in _log_files(project_dir, extension):
        try:
            with log_file.open("rb") as f:
                message_count = sum(1 for _ in f)
        except OSError as e:
            logger.warning(f"Skipping unreadable session {log_file}: {e}")
            continue

        summary = UNTITLED_SESSION
        timestamp = datetime.now(UTC)
        for entry in _reader.read_head(log_file, 10):
            if entry.entry_type == "summary" and entry.summary:
                summary = entry.summary
            if entry.timestamp is not None:
                timestamp = entry.timestamp
                break

        sessions.append(
            SessionSummary(
                id=log_file.stem,
                summary=summary,
                timestamp=timestamp,
                message_count=message_count,
                project_name=project,
            )
        )

    sessions.sort(key=lambda s: s.timestamp, reverse=True)
    return sessions


def load_session(
    root: str | Path, project: str, session: str, extension: str = ".jsonl"
) -> list[LogEntry]:
    """Return every parseable entry of one session.

    Raises:
        LookupError: If the project or session does not exist.
        OSError: If the session file cannot be read.
    """
    project_dir = _project_dir(Path(root), project)
    log_path = project_dir / f"{session}{extension}"
    if "/" in session or "\\" in session or not log_path.is_file():
        raise LookupError(f"Unknown session: {project}/{session}")
    return _reader.read_all(log_path)


class ProjectIndex:
    """Cached list of projects under the watched root.

    Attributes:
        root: Projects directory.
        extension: Suffix identifying session files.
    """

    def __init__(self, root: str | Path, extension: str = ".jsonl"):
        self.root = Path(root)
        self.extension = extension
        self._projects: list[ProjectSummary] = []
        self._lock = threading.Lock()
        self.last_refresh: datetime | None = None

    @property
    def projects(self) -> list[ProjectSummary]:
        """Projects found by the last refresh."""
        with self._lock:
            return list(self._projects)

    def refresh(self) -> list[ProjectSummary]:
        """Rebuild the cached project list, most recently active first.

        Raises:
            OSError: If the root directory cannot be listed.
        """
        projects = [
            summarize_project(entry, self.extension)
            for entry in sorted(self.root.iterdir())
            if entry.is_dir()
        ]
        # Projects without any timestamp go last
        floor = datetime.min.replace(tzinfo=UTC)
        projects.sort(
            key=lambda p: (p.latest_activity is not None, p.latest_activity or floor),
            reverse=True,
        )

        with self._lock:
            self._projects = projects
            self.last_refresh = datetime.now(UTC)

        logger.debug(f"Refreshed project index ({len(projects)} projects)")
        return list(projects)
