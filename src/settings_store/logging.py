"""Settings diagnostics — structured log plus an on-disk trail.

Settings files get wiped in the field for reasons that are hard to
reproduce: a crash mid-write, a full disk, a sandbox that silently
refuses writes.  The store therefore keeps two records of what it did:

- **Logger** — an in-memory buffer of structured ``LogEntry`` records,
  queryable by level and source.
- **DiagnosticLog** — an append-only ``settings.log`` next to the
  settings file, one timestamped line per event, which survives the
  process and can be attached to a bug report.

Design choices:
    - **IntEnum for levels** so they compare naturally with ``<``.
    - **Frozen dataclass for entries** — log records should be immutable.
    - **Writing the trail never raises** — a broken log must not turn a
      recoverable settings failure into a crash.
"""

from __future__ import annotations

import time
import traceback
from collections import deque
from contextlib import suppress
from dataclasses import dataclass, field
from enum import IntEnum
from pathlib import Path

from settings_store.storage import Storage

DEFAULT_CAPACITY = 1000
_TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"


class LogLevel(IntEnum):
    """Severity levels for log entries."""

    DEBUG = 0
    INFO = 1
    WARNING = 2
    ERROR = 3


@dataclass(frozen=True)
class LogEntry:
    """A single structured log record.

    Attributes:
        level: The severity of this event.
        message: A human-readable description of what happened.
        source: The component that generated the event (e.g. "recovery").
        timestamp: Wall-clock time of the event in seconds.

    """

    level: LogLevel
    message: str
    source: str
    timestamp: float = field(default_factory=time.time)

    def __str__(self) -> str:
        """Format as ``[LEVEL] source: message``."""
        return f"[{self.level.name}] {self.source}: {self.message}"


class DiagnosticLog:
    """Append-only text trail written through a storage backend."""

    def __init__(self, storage: Storage, path: Path) -> None:
        """Create a trail that appends to *path*."""
        self._storage = storage
        self._path = path

    @property
    def path(self) -> Path:
        """Return the log file location."""
        return self._path

    def append(self, text: str) -> None:
        """Append one timestamped line.

        Failures are swallowed, including text the backend cannot encode
        (e.g. a file name carrying undecodable bytes).
        """
        stamp = time.strftime(_TIMESTAMP_FORMAT, time.localtime())
        with suppress(OSError, ValueError):
            self._storage.append_text(self._path, f"[{stamp}] {text}\n")


class Logger:
    """Bounded log buffer with filtering and an optional on-disk trail.

    Entries at ``trail_level`` or above are also appended to the
    ``DiagnosticLog``.  Exceptions passed with ``error=`` are written to
    the trail with their full traceback.
    """

    def __init__(
        self,
        trail: DiagnosticLog | None = None,
        *,
        trail_level: LogLevel = LogLevel.INFO,
        capacity: int = DEFAULT_CAPACITY,
    ) -> None:
        """Create an empty logger."""
        self._entries: deque[LogEntry] = deque(maxlen=capacity)
        self._trail = trail
        self.trail_level = trail_level

    @property
    def entries(self) -> list[LogEntry]:
        """Return all buffered entries in chronological order."""
        return list(self._entries)

    def log(
        self,
        level: LogLevel,
        message: str,
        *,
        source: str,
        error: BaseException | None = None,
    ) -> None:
        """Record an event.

        Args:
            level: Severity of the event.
            message: Human-readable event description.
            source: Component that generated the event.
            error: Exception to attach to the on-disk trail.

        """
        self._entries.append(LogEntry(level=level, message=message, source=source))
        if self._trail is None or level < self.trail_level:
            return
        text = f"[{level.name}] {source}: {message}"
        if error is not None:
            trace = "".join(traceback.format_exception(error)).rstrip()
            text = f"{text}\n{trace}"
        self._trail.append(text)

    def filter(
        self,
        *,
        min_level: LogLevel | None = None,
        source: str | None = None,
    ) -> list[LogEntry]:
        """Return entries matching the given criteria.

        Args:
            min_level: If set, only return entries at or above this level.
            source: If set, only return entries from this source.

        Returns:
            A filtered list of log entries.

        """
        result = list(self._entries)
        if min_level is not None:
            result = [e for e in result if e.level >= min_level]
        if source is not None:
            result = [e for e in result if e.source == source]
        return result

    def clear(self) -> None:
        """Remove all buffered entries (the on-disk trail is kept)."""
        self._entries.clear()
