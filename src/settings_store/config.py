"""Settings configuration and on-disk layout.

``SettingsConfig`` holds the knobs an application picks once at start-up.
``SettingsLayout`` turns the data directory into the four paths the store
owns::

    <data_dir>/settings.bin                 primary snapshot
    <data_dir>/settings_backup.bin          last known-good snapshot
    <data_dir>/settings_backups/<ms>.bin    rotating history
    <data_dir>/settings.log                 diagnostic trail
"""

from __future__ import annotations

import sys
from dataclasses import dataclass
from pathlib import Path

from settings_store.env import Environment

MAX_BACKUPS = 10
"""Number of snapshots kept in the rotating history."""

OVERRIDE_PROPERTY = "settingsOverride"
DEBUG_PROPERTY = "settingsDebug"

SETTINGS_FILE = "settings.bin"
BACKUP_FILE = "settings_backup.bin"
BACKUP_FOLDER = "settings_backups"
LOG_FILE = "settings.log"


def app_data_directory(
    app_name: str,
    environment: Environment | None = None,
    *,
    platform: str | None = None,
) -> Path:
    """Return the per-user data directory for *app_name*.

    Args:
        app_name: Folder name for the application.
        environment: Properties to read APPDATA / XDG_DATA_HOME / HOME from.
        platform: Override for ``sys.platform`` (for tests).

    Returns:
        The directory path (not created).

    """
    env = environment if environment is not None else Environment.from_os()
    platform = platform or sys.platform
    home = Path(env.get("HOME") or Path.home())
    if platform.startswith("win"):
        appdata = env.get("APPDATA")
        base = Path(appdata) if appdata else home / "AppData" / "Roaming"
    elif platform == "darwin":
        base = home / "Library" / "Application Support"
    else:
        xdg = env.get("XDG_DATA_HOME")
        base = Path(xdg) if xdg else home / ".local" / "share"
    return base / app_name


@dataclass(frozen=True)
class SettingsLayout:
    """Paths of every file the store reads or writes."""

    data_dir: Path

    @property
    def settings_file(self) -> Path:
        """Return the primary snapshot path."""
        return self.data_dir / SETTINGS_FILE

    @property
    def backup_file(self) -> Path:
        """Return the known-good snapshot path."""
        return self.data_dir / BACKUP_FILE

    @property
    def backup_folder(self) -> Path:
        """Return the rotating history folder."""
        return self.data_dir / BACKUP_FOLDER

    @property
    def log_file(self) -> Path:
        """Return the diagnostic trail path."""
        return self.data_dir / LOG_FILE


@dataclass(frozen=True)
class SettingsConfig:
    """Start-up options for a ``Settings`` instance.

    Attributes:
        app_name: Application folder name under the platform data dir.
        data_dir: Explicit data directory; overrides ``app_name``.
        autosave: Whether ``autosave()`` flushes pending changes.
        max_backups: Size of the rotating history.
        override_property: Property listing keys to override.
        debug_property: Property that turns on debug diagnostics.

    """

    app_name: str = "app"
    data_dir: Path | None = None
    autosave: bool = True
    max_backups: int = MAX_BACKUPS
    override_property: str = OVERRIDE_PROPERTY
    debug_property: str = DEBUG_PROPERTY

    def layout(self, environment: Environment | None = None) -> SettingsLayout:
        """Resolve the on-disk layout."""
        data_dir = self.data_dir or app_data_directory(self.app_name, environment)
        return SettingsLayout(data_dir=Path(data_dir))
