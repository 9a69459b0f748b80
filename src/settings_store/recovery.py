"""Recovery loader — find the newest snapshot that still parses.

Loading walks a fixed chain of candidates:

1. **Fresh install** — neither ``settings.bin`` nor
   ``settings_backup.bin`` exists.  Nothing to load, nothing wrong.
2. **Primary** — decode ``settings.bin``.  On success, copy it over
   ``settings_backup.bin`` so the known-good pointer tracks the last
   file that actually loaded.
3. **Backups** — otherwise gather every file in ``settings_backups/``
   plus ``settings_backup.bin``, newest first, and adopt the first one
   that decodes.  The winner is copied back over the primary file so
   the next start loads it directly.

If every candidate fails the outcome is ``NONE``: the caller starts
with an empty store and reports the failure once.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum
from pathlib import Path

from settings_store.backup import newest_first
from settings_store.codec import read_snapshot
from settings_store.config import SettingsLayout
from settings_store.errors import CorruptFormat, SettingsError
from settings_store.logging import Logger, LogLevel
from settings_store.storage import FileEntry, Storage
from settings_store.values import Value

_SOURCE = "recovery"


class LoadSource(StrEnum):
    """Where the loaded values came from."""

    FRESH = "fresh"
    PRIMARY = "primary"
    BACKUP = "backup"
    NONE = "none"


@dataclass
class LoadOutcome:
    """Result of one pass through the recovery chain.

    Attributes:
        source: Which step of the chain produced the values.
        values: The adopted entries (empty for FRESH and NONE).
        path: The file the values were read from, if any.
        failures: Every candidate that was tried and rejected.

    """

    source: LoadSource
    values: dict[str, Value] = field(default_factory=dict)  # pyright: ignore[reportUnknownVariableType]
    path: Path | None = None
    failures: list[tuple[Path, SettingsError]] = field(default_factory=list)  # pyright: ignore[reportUnknownVariableType]

    @property
    def exhausted(self) -> bool:
        """Return whether every candidate failed."""
        return self.source is LoadSource.NONE

    def error(self) -> CorruptFormat:
        """Summarise an exhausted chain as a single error."""
        tried = ", ".join(path.name for path, _ in self.failures) or "none"
        msg = f"No readable settings snapshot (tried: {tried})"
        error = CorruptFormat(msg)
        if self.failures:
            error.__cause__ = self.failures[-1][1]
        return error


class RecoveryLoader:
    """Run the load chain against one settings layout."""

    def __init__(self, storage: Storage, layout: SettingsLayout, logger: Logger) -> None:
        """Create a loader for *layout*."""
        self._storage = storage
        self._layout = layout
        self._logger = logger

    def candidates(self) -> list[FileEntry]:
        """Return the backup candidates, newest first."""
        entries = self._storage.list_dir(self._layout.backup_folder)
        backup = self._layout.backup_file
        if self._storage.exists(backup):
            entries.append(
                FileEntry(
                    path=backup,
                    modified=self._storage.modified(backup),
                    size=self._storage.length(backup),
                ),
            )
        return newest_first(entries)

    def load(self) -> LoadOutcome:
        """Walk the chain and return what was adopted."""
        primary = self._layout.settings_file
        backup = self._layout.backup_file
        if not self._storage.exists(primary) and not self._storage.exists(backup):
            self._log(LogLevel.INFO, f"No settings files found: {primary} and {backup}")
            return LoadOutcome(source=LoadSource.FRESH)

        result = read_snapshot(self._storage, primary)
        if result.error is None:
            values = result.unwrap()
            self._log(LogLevel.INFO, f"Loaded {len(values)} values")
            self._refresh(primary, backup, "Backed up")
            return LoadOutcome(source=LoadSource.PRIMARY, values=values, path=primary)

        outcome = LoadOutcome(source=LoadSource.NONE, failures=[(primary, result.error)])
        self._log(
            LogLevel.ERROR,
            f"Failed to load base file {primary}, attempting to load backup",
            error=result.error,
        )
        for candidate in self.candidates():
            self._log(
                LogLevel.INFO,
                f"Attempting to load backup file '{candidate.path}'. Length: {candidate.size}",
            )
            result = read_snapshot(self._storage, candidate.path)
            if result.error is not None:
                outcome.failures.append((candidate.path, result.error))
                self._log(
                    LogLevel.WARNING,
                    f"| Failed to load backup file {candidate.path}",
                    error=result.error,
                )
                continue
            outcome.source = LoadSource.BACKUP
            outcome.values = result.unwrap()
            outcome.path = candidate.path
            self._refresh(candidate.path, primary, "| Restored")
            self._log(
                LogLevel.INFO,
                "| Loaded backup settings file after load failure. "
                f"New settings file length: {self._storage.length(primary)}",
            )
            return outcome
        self._log(LogLevel.ERROR, "Every settings backup failed to load")
        return outcome

    def _refresh(self, source: Path, target: Path, verb: str) -> None:
        """Copy *source* over *target*; a failed copy is logged, not fatal."""
        try:
            self._storage.copy(source, target)
        except OSError as exc:
            self._log(LogLevel.WARNING, f"Could not copy {source} to {target}", error=exc)
            return
        self._log(
            LogLevel.INFO,
            f"{verb} {source} to {target} ({self._storage.length(target)} bytes)",
        )

    def _log(self, level: LogLevel, message: str, *, error: BaseException | None = None) -> None:
        self._logger.log(level, message, source=_SOURCE, error=error)
