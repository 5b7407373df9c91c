"""Position tracking for incremental log reading.

This module keeps the last processed byte offset of every tailed stream in
memory. Positions are guarded by a fixed set of striped locks so that updates
to unrelated files never wait on each other, while a dispatch for one stream
can hold its lock across the whole lookup-read-advance sequence.
"""

from __future__ import annotations

import logging
import threading
import time
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

from .models import StreamIdentity, TrackedPosition

logger = logging.getLogger(__name__)


class PositionTracker:
    """Concurrent map from stream identity to its tracked read position.

    Attributes:
        _positions: Tracked positions keyed by stream identity.
        _stripes: Re-entrant locks, one of which guards each identity.
    """

    def __init__(self, lock_stripes: int = 16):
        """Initialize position tracker.

        Args:
            lock_stripes: Number of locks the identities are spread across.
        """
        if lock_stripes < 1:
            raise ValueError("lock_stripes must be at least 1")
        self._positions: dict[StreamIdentity, TrackedPosition] = {}
        self._stripes = [threading.RLock() for _ in range(lock_stripes)]

    def _lock_for(self, identity: StreamIdentity) -> threading.RLock:
        return self._stripes[hash(identity) % len(self._stripes)]

    @contextmanager
    def hold(self, identity: StreamIdentity) -> Iterator[int]:
        """Hold the identity's lock and yield its current offset.

        Any advance made for the same identity inside the block is atomic
        with the offset read at entry.

        Args:
            identity: Stream to lock.

        Yields:
            The tracked offset at the time the lock was acquired.
        """
        with self._lock_for(identity):
            yield self.get_offset(identity)

    def get_offset(self, identity: StreamIdentity) -> int:
        """Return the tracked offset for a stream, 0 if it was never seen."""
        position = self._positions.get(identity)
        return position.offset if position is not None else 0

    def get_position(self, identity: StreamIdentity) -> TrackedPosition | None:
        """Get the tracked position for a stream.

        Returns:
            TrackedPosition if found, None if the stream was never seen.
        """
        return self._positions.get(identity)

    def advance(
        self,
        identity: StreamIdentity,
        new_offset: int,
        mtime: float,
        file_path: str | Path | None = None,
    ) -> TrackedPosition:
        """Record a new offset and modification time for a stream.

        Offsets are expected to grow. A smaller offset means the file was
        truncated or rewritten; it is logged and applied.

        Args:
            identity: Stream to update.
            new_offset: Byte offset just past the last processed line.
            mtime: File modification time observed for this read.
            file_path: Path of the file, kept from the previous position if None.

        Returns:
            The stored position.
        """
        with self._lock_for(identity):
            current = self._positions.get(identity)
            if current is not None and new_offset < current.offset:
                logger.warning(
                    f"Offset for {identity} moved backwards "
                    f"({current.offset} -> {new_offset})"
                )

            if file_path is None:
                file_path = current.file_path if current is not None else ""

            position = TrackedPosition(
                identity=identity,
                file_path=str(file_path),
                offset=new_offset,
                mtime=mtime,
                updated_at=time.time(),
            )
            self._positions[identity] = position

        logger.debug(f"Advanced {identity} to offset {new_offset}")
        return position

    def get_all_positions(self) -> list[TrackedPosition]:
        """Get all tracked positions.

        Returns:
            List of all TrackedPosition objects currently tracked.
        """
        return list(self._positions.values())

    def __len__(self) -> int:
        return len(self._positions)
