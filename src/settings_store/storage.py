"""Storage backends — the file operations the settings store relies on.

The store never touches ``open()`` directly.  Everything goes through a
small ``Storage`` protocol so the same recovery and rotation logic runs
against the real disk or against an in-memory volume in tests:

    - ``exists`` / ``length`` — probe a path.
    - ``read_bytes`` / ``write_bytes`` — whole-file I/O.
    - ``append_text`` — grow a text log.
    - ``copy`` — atomic copy (temp file, then rename over the target).
    - ``delete`` — remove a file, ignoring one that is already gone.
    - ``list_dir`` — children of a folder with modification times.

All backends report failures as ``OSError`` subclasses; wrapping them
into the store's own error types is the caller's job.
"""

from __future__ import annotations

import os
import shutil
import time
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol

_TMP_SUFFIX = ".tmp"


@dataclass(frozen=True)
class FileEntry:
    """Read-only snapshot of a file returned by ``list_dir``.

    Attributes:
        path: Full path of the file.
        modified: Last modification time in seconds since the epoch.
        size: Length of the file in bytes.

    """

    path: Path
    modified: float
    size: int

    @property
    def name(self) -> str:
        """Return the final path component."""
        return self.path.name


class Storage(Protocol):
    """Operations every storage backend provides."""

    def exists(self, path: Path) -> bool: ...

    def length(self, path: Path) -> int: ...

    def read_bytes(self, path: Path) -> bytes: ...

    def write_bytes(self, path: Path, data: bytes) -> None: ...

    def append_text(self, path: Path, text: str) -> None: ...

    def copy(self, source: Path, target: Path) -> None: ...

    def delete(self, path: Path) -> None: ...

    def list_dir(self, path: Path) -> list[FileEntry]: ...

    def modified(self, path: Path) -> float: ...


class DiskStorage:
    """Storage backed by the local file system."""

    def exists(self, path: Path) -> bool:
        """Return whether *path* is an existing file."""
        return path.is_file()

    def length(self, path: Path) -> int:
        """Return the size of *path* in bytes (0 if it is missing)."""
        try:
            return path.stat().st_size
        except FileNotFoundError:
            return 0

    def read_bytes(self, path: Path) -> bytes:
        """Read the whole file."""
        return path.read_bytes()

    def write_bytes(self, path: Path, data: bytes) -> None:
        """Write *data* to *path*, creating parent folders as needed."""
        path.parent.mkdir(parents=True, exist_ok=True)
        with path.open("wb") as stream:
            stream.write(data)
            stream.flush()
            os.fsync(stream.fileno())

    def append_text(self, path: Path, text: str) -> None:
        """Append UTF-8 *text* to *path*."""
        path.parent.mkdir(parents=True, exist_ok=True)
        with path.open("a", encoding="utf-8") as stream:
            stream.write(text)

    def copy(self, source: Path, target: Path) -> None:
        """Copy *source* over *target* atomically.

        The bytes land in a sibling temp file first and are renamed into
        place, so *target* is never observed half-written.
        """
        target.parent.mkdir(parents=True, exist_ok=True)
        tmp = target.with_name(target.name + _TMP_SUFFIX)
        try:
            shutil.copyfile(source, tmp)
            os.replace(tmp, target)
        except OSError:
            tmp.unlink(missing_ok=True)
            raise

    def delete(self, path: Path) -> None:
        """Delete *path* if it exists."""
        path.unlink(missing_ok=True)

    def list_dir(self, path: Path) -> list[FileEntry]:
        """List the regular files in *path* (empty if the folder is missing)."""
        if not path.is_dir():
            return []
        entries: list[FileEntry] = []
        for child in path.iterdir():
            if not child.is_file() or child.name.endswith(_TMP_SUFFIX):
                continue
            stat = child.stat()
            entries.append(FileEntry(path=child, modified=stat.st_mtime, size=stat.st_size))
        return entries

    def modified(self, path: Path) -> float:
        """Return the modification time of *path*."""
        return path.stat().st_mtime


@dataclass
class _MemoryFile:
    data: bytes
    modified: float


class MemoryStorage:
    """A volatile volume that keeps every file in a dict.

    Modification times come from an injectable *clock* so tests can
    order files deterministically.  Setting ``read_only`` makes every
    mutation fail with ``PermissionError``, which is how a locked-down
    browser profile or a full SD card looks to the store.
    """

    def __init__(self, *, clock: Callable[[], float] = time.time) -> None:
        """Create an empty volume."""
        self._files: dict[Path, _MemoryFile] = {}
        self._clock = clock
        self.read_only = False

    def _check_writable(self, path: Path) -> None:
        if self.read_only:
            msg = f"Read-only storage: {path}"
            raise PermissionError(msg)

    def _get(self, path: Path) -> _MemoryFile:
        try:
            return self._files[path]
        except KeyError:
            raise FileNotFoundError(str(path)) from None

    def exists(self, path: Path) -> bool:
        """Return whether *path* holds a file."""
        return path in self._files

    def length(self, path: Path) -> int:
        """Return the size of *path* in bytes (0 if it is missing)."""
        entry = self._files.get(path)
        return len(entry.data) if entry else 0

    def read_bytes(self, path: Path) -> bytes:
        """Return the contents of *path*."""
        return self._get(path).data

    def write_bytes(self, path: Path, data: bytes) -> None:
        """Replace the contents of *path*."""
        self._check_writable(path)
        self._files[path] = _MemoryFile(bytes(data), self._clock())

    def append_text(self, path: Path, text: str) -> None:
        """Append UTF-8 *text* to *path*."""
        self._check_writable(path)
        previous = self._files.get(path)
        head = previous.data if previous else b""
        self._files[path] = _MemoryFile(head + text.encode("utf-8"), self._clock())

    def copy(self, source: Path, target: Path) -> None:
        """Copy *source* to *target*; the copy gets a fresh timestamp."""
        self._check_writable(target)
        self._files[target] = _MemoryFile(self._get(source).data, self._clock())

    def delete(self, path: Path) -> None:
        """Delete *path* if it exists."""
        self._check_writable(path)
        self._files.pop(path, None)

    def list_dir(self, path: Path) -> list[FileEntry]:
        """List the files directly inside *path*."""
        return [
            FileEntry(path=child, modified=entry.modified, size=len(entry.data))
            for child, entry in self._files.items()
            if child.parent == path
        ]

    def modified(self, path: Path) -> float:
        """Return the modification time of *path*."""
        return self._get(path).modified

    def touch(self, path: Path, modified: float) -> None:
        """Set the modification time of an existing file."""
        self._get(path).modified = modified
