"""Durable local settings store with corruption recovery and rotating backups.

Re-exports public symbols so callers can write::

    from settings_store import Settings, SettingsConfig, Value
"""

from settings_store.backup import BackupManager, BackupWorker
from settings_store.codec import DecodeResult, decode, encode, read_snapshot
from settings_store.config import MAX_BACKUPS, SettingsConfig, SettingsLayout, app_data_directory
from settings_store.context import Keybinds, SettingsContext
from settings_store.env import Environment
from settings_store.errors import (
    CorruptFormat,
    InvalidValueType,
    IOFailure,
    MissingFile,
    SettingsError,
)
from settings_store.jsoncodec import JsonCodec
from settings_store.logging import DiagnosticLog, LogEntry, Logger, LogLevel
from settings_store.overrides import OverrideLayer
from settings_store.recovery import LoadOutcome, LoadSource, RecoveryLoader
from settings_store.settings import Settings
from settings_store.storage import DiskStorage, FileEntry, MemoryStorage, Storage
from settings_store.values import Value, ValueKind

__all__ = [
    "MAX_BACKUPS",
    "BackupManager",
    "BackupWorker",
    "CorruptFormat",
    "DecodeResult",
    "DiagnosticLog",
    "DiskStorage",
    "Environment",
    "FileEntry",
    "IOFailure",
    "InvalidValueType",
    "JsonCodec",
    "Keybinds",
    "LoadOutcome",
    "LoadSource",
    "LogEntry",
    "LogLevel",
    "Logger",
    "MemoryStorage",
    "MissingFile",
    "OverrideLayer",
    "RecoveryLoader",
    "Settings",
    "SettingsConfig",
    "SettingsContext",
    "SettingsError",
    "SettingsLayout",
    "Storage",
    "Value",
    "ValueKind",
    "app_data_directory",
    "decode",
    "encode",
    "read_snapshot",
]
