"""Tests for backup rotation and the background worker.

After every save the primary file is copied into a capped history
folder.  Rotation runs on a single FIFO worker and takes the store's
lock, so it never overlaps a foreground save.
"""

from __future__ import annotations

import threading
from pathlib import Path

import pytest

from helpers import DATA_DIR, FakeClock
from settings_store.backup import BackupManager, BackupWorker, newest_first
from settings_store.errors import IOFailure
from settings_store.logging import Logger
from settings_store.storage import FileEntry, MemoryStorage

PRIMARY = DATA_DIR / "settings.bin"
FOLDER = DATA_DIR / "settings_backups"
CAP = 10
JOB_COUNT = 20
FIXED_TIME = 1_700_000_000.0


def _manager(
    storage: MemoryStorage,
    *,
    clock: object,
    lock: threading.RLock | None = None,
    cap: int = CAP,
) -> BackupManager:
    return BackupManager(
        storage,
        FOLDER,
        lock=lock or threading.RLock(),
        worker=BackupWorker(),
        logger=Logger(),
        clock=clock,  # type: ignore[arg-type]
        max_backups=cap,
    )


class TestNewestFirst:
    """Verify candidate ordering."""

    def test_sorted_by_mtime(self) -> None:
        """Most recent modification comes first."""
        old = FileEntry(Path("/b/9.bin"), modified=1.0, size=1)
        new = FileEntry(Path("/b/1.bin"), modified=2.0, size=1)
        assert newest_first([old, new]) == [new, old]

    def test_ties_break_on_name(self) -> None:
        """Equal times fall back to the name, highest first."""
        a = FileEntry(Path("/b/a.bin"), modified=1.0, size=1)
        b = FileEntry(Path("/b/b.bin"), modified=1.0, size=1)
        assert newest_first([a, b]) == [b, a]


class TestRotate:
    """Verify the rotation job itself."""

    def test_copy_named_by_millis(self) -> None:
        """The history copy is named after the clock in milliseconds."""
        storage = MemoryStorage()
        storage.write_bytes(PRIMARY, b"snapshot")
        target = _manager(storage, clock=lambda: FIXED_TIME).rotate(PRIMARY)
        assert target == FOLDER / "1700000000000.bin"
        assert storage.read_bytes(target) == b"snapshot"

    def test_name_collision_bumps(self) -> None:
        """Two rotations in the same millisecond get distinct names."""
        storage = MemoryStorage()
        storage.write_bytes(PRIMARY, b"snapshot")
        manager = _manager(storage, clock=lambda: FIXED_TIME)
        first = manager.rotate(PRIMARY)
        second = manager.rotate(PRIMARY)
        assert first != second
        assert second.name == "1700000000001.bin"

    def test_cap_prunes_oldest(self) -> None:
        """The folder never holds more than the cap; oldest go first."""
        clock = FakeClock()
        storage = MemoryStorage(clock=clock)
        storage.write_bytes(PRIMARY, b"snapshot")
        manager = _manager(storage, clock=clock)
        created = [manager.rotate(PRIMARY) for _ in range(CAP + 5)]
        remaining = {entry.path for entry in manager.history()}
        assert remaining == set(created[-CAP:])

    def test_failure_raises_io_failure(self) -> None:
        """A failed copy is logged and raised."""
        storage = MemoryStorage()
        storage.write_bytes(PRIMARY, b"snapshot")
        storage.read_only = True
        manager = _manager(storage, clock=lambda: FIXED_TIME)
        with pytest.raises(IOFailure):
            manager.rotate(PRIMARY)

    def test_rotation_waits_for_lock(self) -> None:
        """A scheduled rotation cannot run while the lock is held."""
        storage = MemoryStorage()
        storage.write_bytes(PRIMARY, b"snapshot")
        lock = threading.RLock()
        manager = _manager(storage, clock=lambda: FIXED_TIME, lock=lock)
        with lock:
            future = manager.schedule(PRIMARY)
            with pytest.raises(TimeoutError):
                future.result(timeout=0.2)
            assert manager.history() == []
        future.result(timeout=5)
        assert len(manager.history()) == 1


class TestBackupWorker:
    """Verify the single-thread FIFO queue."""

    def test_jobs_run_in_submission_order(self) -> None:
        """Jobs execute one at a time in the order submitted."""
        worker = BackupWorker()
        seen: list[int] = []
        for i in range(JOB_COUNT):
            worker.submit(seen.append, i)
        worker.wait()
        assert seen == list(range(JOB_COUNT))
        worker.shutdown()

    def test_wait_reraises_job_error(self) -> None:
        """A failed job surfaces at the synchronisation point."""
        worker = BackupWorker()

        def fail() -> None:
            msg = "rotation broke"
            raise IOFailure(msg)

        worker.submit(fail)
        with pytest.raises(IOFailure, match="rotation broke"):
            worker.wait()
        worker.shutdown()

    def test_wait_with_nothing_pending(self) -> None:
        """Waiting on an idle worker returns immediately."""
        worker = BackupWorker()
        worker.wait()
        worker.shutdown()

    def test_failure_survives_later_success(self) -> None:
        """A failed job is still reported after a later job succeeds."""
        worker = BackupWorker()

        def fail() -> None:
            msg = "disk full"
            raise OSError(msg)

        worker.submit(fail).exception(timeout=5)
        worker.submit(lambda: None).result(timeout=5)
        with pytest.raises(OSError, match="disk full"):
            worker.wait()
        worker.wait()
        worker.shutdown()
