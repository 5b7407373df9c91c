"""Log tailing engine for the log viewer.

This package provides incremental reading and position tracking for JSONL
log files that grow while they are being watched.

Key Components:
    - models: LogEntry, stream identities, tracked positions, broadcast events
    - config: Configuration dataclass for the watch manager
    - position_tracker: Striped-lock position map
    - log_reader: Incremental JSONL reading by byte offset

Example:
    >>> from log_viewer.monitoring import IncrementalLogReader, PositionTracker
    >>> tracker = PositionTracker()
    >>> reader = IncrementalLogReader()
    >>> entries = reader.read_new("/path/to/project/session.jsonl", 0)
"""

from __future__ import annotations

from .config import WatchConfig
from .log_reader import IncrementalLogReader, ReadBatch
from .models import BroadcastEvent, LogEntry, StreamIdentity, TrackedPosition
from .position_tracker import PositionTracker

__all__ = [
    "WatchConfig",
    "PositionTracker",
    "IncrementalLogReader",
    "ReadBatch",
    "LogEntry",
    "StreamIdentity",
    "TrackedPosition",
    "BroadcastEvent",
]
