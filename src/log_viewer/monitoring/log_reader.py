"""Incremental JSONL reading by byte offset.

This module turns the newly appended part of a log file into parsed
LogEntry objects, each paired with the byte offset just past its line so the
caller can advance its tracked position one line at a time.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator
from pathlib import Path
from typing import NamedTuple

from pydantic import ValidationError

from .models import LogEntry

logger = logging.getLogger(__name__)


class ReadBatch(NamedTuple):
    """Result of one incremental read.

    Attributes:
        entries: Parsed entries paired with the offset just past their line.
        scanned_to: Offset just past the last complete line that was scanned,
            whether or not it held a valid entry.
    """

    entries: list[tuple[LogEntry, int]]
    scanned_to: int


def iter_lines(content: bytes) -> Iterator[tuple[int, int, bytes]]:
    """Split a buffer on newlines, tracking byte positions.

    Yields:
        Tuples of (start, end, line) where end is the offset after the
        trailing newline, or the end of the buffer for an unterminated line.
        The line itself excludes the newline.
    """
    start = 0
    size = len(content)
    while start < size:
        newline = content.find(b"\n", start)
        if newline == -1:
            yield start, size, content[start:]
            return
        yield start, newline + 1, content[start:newline]
        start = newline + 1


def parse_line(line: bytes | str) -> LogEntry | None:
    """Parse one log line into a LogEntry.

    Lines that are not valid UTF-8, do not look like a JSON object, fail to
    parse, or carry a recognized field of the wrong type are discarded.

    Returns:
        The parsed entry, or None if the line is not a valid entry.
    """
    if isinstance(line, bytes):
        try:
            line = line.decode("utf-8")
        except UnicodeDecodeError:
            return None
    text = line.strip()
    if not (text.startswith("{") and text.endswith("}")):
        return None
    try:
        return LogEntry.model_validate_json(text)
    except ValidationError:
        return None


class IncrementalLogReader:
    """Reads newly appended JSONL entries from log files.

    The reader is stateless: callers pass the offset to start from and decide
    themselves how far to advance, which keeps offset bookkeeping in the
    PositionTracker.
    """

    def read_batch(self, path: str | Path, from_offset: int = 0) -> ReadBatch:
        """Read entries from lines starting at or after an offset.

        Args:
            path: Log file to read.
            from_offset: Byte offset of the first unprocessed line.

        Returns:
            ReadBatch with the (entry, end_offset) pairs in file order and the
            end of the last newline-terminated line scanned. Empty, with
            scanned_to equal to from_offset, when the file cannot be read.
        """
        log_path = Path(path)
        try:
            content = log_path.read_bytes()
        except OSError as e:
            logger.warning(f"Could not read log file {log_path}: {e}")
            return ReadBatch([], from_offset)

        entries: list[tuple[LogEntry, int]] = []
        scanned_to = from_offset
        skipped = 0
        for start, end, line in iter_lines(content):
            if start < from_offset:
                continue
            if content[end - 1 : end] == b"\n":
                scanned_to = end
            entry = parse_line(line)
            if entry is None:
                if line.strip():
                    skipped += 1
                continue
            entries.append((entry, end))

        if skipped:
            logger.debug(f"Skipped {skipped} malformed lines in {log_path}")
        if entries:
            logger.debug(
                f"Read {len(entries)} new entries from {log_path} "
                f"(offset {from_offset} -> {entries[-1][1]})"
            )
        return ReadBatch(entries, scanned_to)

    def read_new(
        self, path: str | Path, from_offset: int = 0
    ) -> list[tuple[LogEntry, int]]:
        """Return only the (entry, end_offset) pairs of read_batch()."""
        return self.read_batch(path, from_offset).entries

    def read_all(self, path: str | Path) -> list[LogEntry]:
        """Parse every valid entry in a log file.

        Raises:
            OSError: If the file cannot be read.
        """
        content = Path(path).read_bytes()
        return [
            entry
            for _, _, line in iter_lines(content)
            if (entry := parse_line(line)) is not None
        ]

    def read_head(self, path: str | Path, n: int = 10) -> list[LogEntry]:
        """Parse valid entries among the first N lines of a log file.

        Returns:
            Entries found in the first N lines, empty on read errors.
        """
        entries: list[LogEntry] = []
        try:
            with Path(path).open("rb") as f:
                for _ in range(n):
                    line = f.readline()
                    if not line:
                        break
                    entry = parse_line(line)
                    if entry is not None:
                        entries.append(entry)
        except OSError as e:
            logger.error(f"Error reading first {n} lines from {path}: {e}")
        return entries
