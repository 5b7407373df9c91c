"""Data models for the log tailing engine.

This module defines the core data structures shared by the reader, the
position tracker and the broadcaster: parsed log entries, stream identities,
tracked read positions and the broadcast envelope sent to live viewers.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

LOG_ENTRY_EVENT = "log_entry"


class LogEntry(BaseModel):
    """One parsed JSON object from a log line.

    Every field is optional because the schema belongs to the tool writing
    the logs. Recognized fields are exposed under snake_case names and
    serialized back under their wire names; unknown fields are kept as-is.
    Only wire names are accepted on input and values are never coerced, so
    a key such as "session_id" stays an unknown field.
    """

    model_config = ConfigDict(extra="allow", strict=True, frozen=True)

    entry_type: str | None = Field(default=None, alias="type")
    summary: str | None = None
    parent_uuid: str | None = Field(default=None, alias="parentUuid")
    is_sidechain: bool | None = Field(default=None, alias="isSidechain")
    user_type: str | None = Field(default=None, alias="userType")
    cwd: str | None = None
    session_id: str | None = Field(default=None, alias="sessionId")
    version: str | None = None
    message: Any = None
    uuid: str | None = None
    timestamp: datetime | None = None
    request_id: str | None = Field(default=None, alias="requestId")
    leaf_uuid: str | None = Field(default=None, alias="leafUuid")
    tool_use_result: Any = Field(default=None, alias="toolUseResult")

    @field_validator("timestamp")
    @classmethod
    def _assume_utc(cls, value: datetime | None) -> datetime | None:
        if value is not None and value.tzinfo is None:
            return value.replace(tzinfo=UTC)
        return value

    def to_wire(self) -> dict[str, Any]:
        """Return the entry as a JSON-compatible dict keyed by wire names."""
        return self.model_dump(mode="json", by_alias=True, exclude_unset=True)


@dataclass(frozen=True)
class StreamIdentity:
    """Composite key identifying one tailed file under the watched root.

    Attributes:
        project: Name of the file's parent directory.
        session: File stem of the log file.
    """

    project: str
    session: str

    @classmethod
    def from_path(cls, path: str | Path) -> StreamIdentity | None:
        """Derive the identity of a log file, or None if it has no parent name."""
        path = Path(path)
        project = path.parent.name
        if not project:
            return None
        return cls(project=project, session=path.stem or "unknown")

    def __str__(self) -> str:
        return f"{self.project}:{self.session}"


@dataclass
class TrackedPosition:
    """Read position of one stream.

    Attributes:
        identity: Stream the position belongs to.
        file_path: Path of the file last read for this stream.
        offset: Byte offset just past the last processed line.
        mtime: File modification time observed at the last advance.
        updated_at: Wall-clock time of the last advance.
    """

    identity: StreamIdentity
    file_path: str
    offset: int = 0
    mtime: float = 0.0
    updated_at: float = field(default_factory=time.time)


@dataclass(frozen=True)
class BroadcastEvent:
    """Immutable envelope delivered to every live subscriber.

    Attributes:
        event_type: Kind tag, currently always "log_entry".
        project: Project (group) the entry came from.
        session: Session (stream) the entry came from, if known.
        entry: The parsed log entry, if any.
        timestamp: When the event was emitted.
    """

    event_type: str
    project: str
    session: str | None = None
    entry: LogEntry | None = None
    timestamp: datetime = field(default_factory=lambda: datetime.now(UTC))

    @classmethod
    def log_entry(cls, identity: StreamIdentity, entry: LogEntry) -> BroadcastEvent:
        return cls(
            event_type=LOG_ENTRY_EVENT,
            project=identity.project,
            session=identity.session,
            entry=entry,
        )

    def to_wire(self) -> dict[str, Any]:
        """Return the wire shape sent to viewers."""
        return {
            "type": self.event_type,
            "project": self.project,
            "session": self.session,
            "entry": self.entry.to_wire() if self.entry is not None else None,
            "timestamp": self.timestamp.isoformat().replace("+00:00", "Z"),
        }
