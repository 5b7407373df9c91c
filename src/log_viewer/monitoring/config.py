"""Configuration for the log tailing engine.

This module defines the configuration dataclass that controls how changed
files are recognized, how much is emitted per notification and how large
each subscriber's delivery buffer is.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass
class WatchConfig:
    """Configuration for the watch manager and broadcaster.

    Attributes:
        extension: File suffix identifying a tailed log file (default: .jsonl).
        max_entries_per_event: Entries emitted per stream per dispatch (default: 10).
        broadcast_capacity: Pending events buffered per subscriber (default: 1000).
        rescan_interval_seconds: Seconds between re-scans of tracked streams,
            0 disables re-scanning (default: 5.0).
        use_polling: Use watchdog's polling observer instead of native events
            (default: False).
        lock_stripes: Number of locks guarding the position map (default: 16).
    """

    extension: str = ".jsonl"
    max_entries_per_event: int = 10
    broadcast_capacity: int = 1000
    rescan_interval_seconds: float = 5.0
    use_polling: bool = False
    lock_stripes: int = 16
