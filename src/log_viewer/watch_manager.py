"""Watch manager turning file-system notifications into broadcast events.

The watch manager owns the position tracker and the broadcaster. Each batch
of changed paths coming from the event source is filtered to log files, read
from the last tracked offset, capped per stream, published, and only then
recorded as processed.
"""

import logging
import os
from collections.abc import Callable, Iterable
from pathlib import Path
from typing import Protocol

from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer
from watchdog.observers.api import BaseObserver
from watchdog.observers.polling import PollingObserver

from .events import Broadcaster, Subscription
from .monitoring import (
    BroadcastEvent,
    IncrementalLogReader,
    PositionTracker,
    StreamIdentity,
    WatchConfig,
)

logger = logging.getLogger(__name__)

PathBatchCallback = Callable[[list[Path]], object]


class EventSource(Protocol):
    """Anything that reports batches of created or modified paths."""

    def start(self, callback: PathBatchCallback) -> None: ...

    def stop(self) -> None: ...


class _ChangeHandler(FileSystemEventHandler):
    """Forwards created/modified/moved-in file events as path batches."""

    def __init__(self, callback: PathBatchCallback):
        super().__init__()
        self._callback = callback

    def _forward(self, path: str | bytes) -> None:
        try:
            self._callback([Path(os.fsdecode(path))])
        except Exception as e:
            # Keep the observer thread alive whatever the dispatcher does
            logger.error(f"Error handling file system event for {path!r}: {e}")

    def on_created(self, event: FileSystemEvent) -> None:
        if not event.is_directory:
            self._forward(event.src_path)

    def on_modified(self, event: FileSystemEvent) -> None:
        if not event.is_directory:
            self._forward(event.src_path)

    def on_moved(self, event: FileSystemEvent) -> None:
        if not event.is_directory:
            self._forward(event.dest_path)


class WatchdogEventSource:
    """Recursive watchdog observer over the projects directory.

    Attributes:
        root: Directory watched recursively.
        use_polling: Use PollingObserver instead of the native observer.
    """

    def __init__(self, root: str | Path, use_polling: bool = False, timeout: float = 1.0):
        self.root = Path(root)
        self.use_polling = use_polling
        self.timeout = timeout
        self._observer: BaseObserver | None = None

    def start(self, callback: PathBatchCallback) -> None:
        if self._observer is not None:
            raise RuntimeError("Event source is already running")

        observer_cls = PollingObserver if self.use_polling else Observer
        observer = observer_cls(timeout=self.timeout)
        observer.schedule(_ChangeHandler(callback), str(self.root), recursive=True)
        observer.start()
        self._observer = observer
        logger.info(
            f"Watching {self.root} "
            f"({'polling' if self.use_polling else 'native'} observer)"
        )

    def stop(self) -> None:
        observer, self._observer = self._observer, None
        if observer is None:
            return
        observer.stop()
        observer.join(timeout=5.0)
        logger.info(f"Stopped watching {self.root}")


class WatchManager:
    """Tails every log file under a projects directory and broadcasts new entries.

    Attributes:
        projects_dir: Root directory holding one directory per project.
        config: Watch configuration.
        positions: Tracked read positions, read by downstream consumers.
        broadcaster: Fan-out bus the live connections subscribe to.
    """

    def __init__(
        self,
        projects_dir: str | Path,
        config: WatchConfig | None = None,
        event_source: EventSource | None = None,
    ):
        """Initialize the watch manager.

        Args:
            projects_dir: Root directory to watch.
            config: Watch configuration, defaults to WatchConfig().
            event_source: Source of change notifications, defaults to a
                watchdog observer on projects_dir.

        Raises:
            FileNotFoundError: If projects_dir does not exist.
            NotADirectoryError: If projects_dir is not a directory.
        """
        self.projects_dir = Path(projects_dir)
        if not self.projects_dir.exists():
            raise FileNotFoundError(f"Projects directory does not exist: {self.projects_dir}")
        if not self.projects_dir.is_dir():
            raise NotADirectoryError(f"Projects path is not a directory: {self.projects_dir}")

        self.config = config or WatchConfig()
        self.positions = PositionTracker(lock_stripes=self.config.lock_stripes)
        self.reader = IncrementalLogReader()
        self.broadcaster = Broadcaster(capacity=self.config.broadcast_capacity)
        self.event_source = event_source or WatchdogEventSource(
            self.projects_dir, use_polling=self.config.use_polling
        )
        self._running = False

    def start(self) -> None:
        """Start receiving change notifications."""
        if self._running:
            raise RuntimeError("WatchManager is already running")
        self.event_source.start(self.handle_paths)
        self._running = True

    def stop(self) -> None:
        """Stop notifications and close every live subscription."""
        if not self._running:
            return
        self._running = False
        self.event_source.stop()
        self.broadcaster.close()

    def is_running(self) -> bool:
        return self._running

    def subscribe(self) -> Subscription:
        """Subscribe to entries published from now on."""
        return self.broadcaster.subscribe()

    def is_log_file(self, path: Path) -> bool:
        return path.suffix == self.config.extension

    def handle_paths(self, paths: Iterable[str | Path]) -> int:
        """Process one batch of changed paths.

        Paths that are not log files are ignored. A failure on one path is
        logged and does not affect the others.

        Args:
            paths: Created or modified paths reported by the event source.

        Returns:
            Number of events published for the batch.
        """
        published = 0
        for raw_path in paths:
            path = Path(raw_path)
            if not self.is_log_file(path):
                continue
            identity = StreamIdentity.from_path(path)
            if identity is None:
                continue
            try:
                published += self._dispatch(identity, path)
            except Exception as e:
                logger.error(f"Error processing {path}: {e}")
        return published

    def _dispatch(self, identity: StreamIdentity, path: Path) -> int:
        """Emit up to max_entries_per_event new entries of one stream."""
        try:
            stat = path.stat()
        except OSError as e:
            logger.debug(f"Skipping {path}: {e}")
            return 0

        with self.positions.hold(identity) as offset:
            if stat.st_size < offset:
                logger.info(f"{path} shrank below offset {offset}, reading from start")
                self.positions.advance(identity, 0, stat.st_mtime, file_path=path)
                offset = 0

            batch = self.reader.read_batch(path, offset)
            entries = batch.entries

            emitted = 0
            last_offset = offset
            for entry, end_offset in entries[: self.config.max_entries_per_event]:
                event = BroadcastEvent.log_entry(identity, entry)
                if self.broadcaster.publish(event) == 0:
                    break
                emitted += 1
                last_offset = end_offset

            # Everything was delivered: also consume trailing lines that held no entry
            if emitted == len(entries):
                last_offset = max(last_offset, batch.scanned_to)

            self.positions.advance(identity, last_offset, stat.st_mtime, file_path=path)

        if emitted:
            remaining = len(entries) - emitted
            logger.debug(
                f"Published {emitted} entries for {identity}"
                + (f" ({remaining} deferred)" if remaining else "")
            )
        return emitted

    def rescan(self) -> int:
        """Re-dispatch tracked streams whose file size no longer matches their offset.

        Picks up entries left behind by the per-dispatch cap when no further
        notification arrives. Skipped while nobody is subscribed.

        Returns:
            Number of events published.
        """
        if self.broadcaster.get_subscriber_count() == 0:
            return 0

        published = 0
        for position in self.positions.get_all_positions():
            path = Path(position.file_path)
            try:
                size = path.stat().st_size
            except OSError:
                continue
            if size != position.offset:
                published += self.handle_paths([path])
        if published:
            logger.debug(f"Re-scan published {published} deferred entries")
        return published
