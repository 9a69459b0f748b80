"""Collaborators a ``Settings`` instance works with.

The context is built once by the embedding application and passed in
explicitly; nothing is looked up through module-level globals.  Tests
swap in ``MemoryStorage``, a hand-made ``Environment``, or a fake
clock through the same object.
"""

from __future__ import annotations

import time
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Protocol

from settings_store.backup import BackupWorker
from settings_store.env import Environment
from settings_store.jsoncodec import JsonCodec
from settings_store.storage import DiskStorage, Storage


class Keybinds(Protocol):
    """Key-binding persistence loaded and saved alongside settings."""

    def load(self) -> None: ...

    def save(self) -> None: ...


@dataclass
class SettingsContext:
    """Shared services for the settings store.

    Attributes:
        storage: File backend.
        environment: Property source for overrides and debug switches.
        worker: Background queue running backup rotation.
        codec: Structured codec used by ``put_json`` / ``get_json``.
        keybinds: Optional sibling persistence step.
        clock: Wall clock in seconds, used to name backups.

    """

    storage: Storage = field(default_factory=DiskStorage)
    environment: Environment = field(default_factory=Environment.from_os)
    worker: BackupWorker = field(default_factory=BackupWorker)
    codec: JsonCodec = field(default_factory=JsonCodec)
    keybinds: Keybinds | None = None
    clock: Callable[[], float] = time.time
