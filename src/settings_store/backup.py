"""Backup history — timestamped copies of every saved snapshot.

After each save the primary file is copied into ``settings_backups/``
under a name derived from the current time in milliseconds.  The folder
is capped: once it holds ``max_backups`` files, the oldest are deleted.

Rotation runs on a single background worker so ``save()`` returns as
soon as the primary file is on disk.  Jobs execute strictly one at a
time in submission order, and every job takes the store's own lock
first, so a rotation can never copy a primary file that a foreground
save or load is in the middle of rewriting.
"""

from __future__ import annotations

import threading
from collections.abc import Callable
from concurrent.futures import Future, ThreadPoolExecutor
from pathlib import Path
from typing import Any

from settings_store.config import MAX_BACKUPS
from settings_store.errors import IOFailure
from settings_store.logging import Logger, LogLevel
from settings_store.storage import FileEntry, Storage

_SOURCE = "backup"
BACKUP_SUFFIX = ".bin"


def newest_first(entries: list[FileEntry]) -> list[FileEntry]:
    """Sort by modification time, most recent first; ties break on name."""
    return sorted(entries, key=lambda e: (e.modified, e.name), reverse=True)


def _succeeded(future: Future[Any]) -> bool:
    return future.done() and not future.cancelled() and future.exception() is None


class BackupWorker:
    """A one-thread FIFO job queue.

    Jobs are fire-and-forget from the submitter's point of view.  The
    worker keeps the futures of unfinished and failed jobs so ``wait()``
    can act as an explicit synchronisation point that reports failures
    even when later jobs succeeded.  Shutting the worker down is the
    embedding application's call.
    """

    def __init__(self, name: str = "settings-backup") -> None:
        """Create the worker; its thread starts with the first job."""
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix=name)
        self._pending: list[Future[Any]] = []
        self._guard = threading.Lock()

    def submit(self, job: Callable[..., Any], *args: Any) -> Future[Any]:
        """Queue *job* and return its future."""
        future = self._executor.submit(job, *args)
        with self._guard:
            self._pending = [f for f in self._pending if not _succeeded(f)]
            self._pending.append(future)
        return future

    def wait(self, timeout: float | None = None) -> None:
        """Block until every job queued so far has finished.

        Raises:
            Exception: The error of the first failed job, if any.
            TimeoutError: If *timeout* elapses first.

        """
        with self._guard:
            pending, self._pending = self._pending, []
        for future in pending:
            future.result(timeout=timeout)

    def shutdown(self, *, wait: bool = True) -> None:
        """Stop accepting jobs; optionally drain the queue."""
        self._executor.shutdown(wait=wait)


class BackupManager:
    """Copies the primary snapshot into a capped history folder."""

    def __init__(
        self,
        storage: Storage,
        folder: Path,
        *,
        lock: threading.RLock,
        worker: BackupWorker,
        logger: Logger,
        clock: Callable[[], float],
        max_backups: int = MAX_BACKUPS,
    ) -> None:
        """Create a manager rotating into *folder*.

        Args:
            storage: File backend.
            folder: History folder.
            lock: The store's exclusion lock, taken by every rotation.
            worker: Queue the rotations run on.
            logger: Destination for diagnostics.
            clock: Wall clock in seconds used to name copies.
            max_backups: History cap.

        """
        self._storage = storage
        self._folder = folder
        self._lock = lock
        self._worker = worker
        self._logger = logger
        self._clock = clock
        self._max_backups = max_backups

    @property
    def folder(self) -> Path:
        """Return the history folder."""
        return self._folder

    def schedule(self, source: Path) -> Future[Any]:
        """Queue a rotation that snapshots *source*."""
        return self._worker.submit(self.rotate, source)

    def history(self) -> list[FileEntry]:
        """Return the history folder's files, newest first."""
        return newest_first(self._storage.list_dir(self._folder))

    def _target_name(self) -> Path:
        millis = int(self._clock() * 1000)
        target = self._folder / f"{millis}{BACKUP_SUFFIX}"
        while self._storage.exists(target):
            millis += 1
            target = self._folder / f"{millis}{BACKUP_SUFFIX}"
        return target

    def rotate(self, source: Path) -> Path:
        """Copy *source* into the history and prune the oldest copies.

        The listing is taken before the copy, so pruning continues while
        the earlier copies number ``max_backups`` or more; afterwards the
        folder holds at most ``max_backups`` files including the new one.

        Returns:
            The path of the new history file.

        Raises:
            IOFailure: If copying or pruning fails.

        """
        with self._lock:
            previous = self.history()
            target = self._target_name()
            try:
                self._storage.copy(source, target)
                while len(previous) >= self._max_backups:
                    self._storage.delete(previous.pop().path)
            except OSError as exc:
                msg = f"Backup rotation of {source} failed: {exc}"
                self._logger.log(LogLevel.ERROR, msg, source=_SOURCE, error=exc)
                raise IOFailure(msg) from exc
            self._logger.log(
                LogLevel.DEBUG,
                f"Backed up {source} to {target.name}; {len(previous) + 1} in history",
                source=_SOURCE,
            )
            return target
