"""Shared builders for the settings store tests."""

from pathlib import Path

from settings_store.config import SettingsConfig
from settings_store.context import SettingsContext
from settings_store.env import Environment
from settings_store.settings import Settings
from settings_store.storage import MemoryStorage, Storage

DATA_DIR = Path("/data")
START_TIME = 1_700_000_000.0


class FakeClock:
    """A clock that moves forward one second every time it is read."""

    def __init__(self, start: float = START_TIME) -> None:
        """Start the clock at *start*."""
        self.now = start

    def __call__(self) -> float:
        """Advance and return the current time."""
        self.now += 1.0
        return self.now


def make_settings(
    storage: Storage | None = None,
    *,
    data_dir: Path = DATA_DIR,
    environment: Environment | None = None,
    clock: FakeClock | None = None,
    **config: object,
) -> Settings:
    """Build a Settings instance on an isolated volume and environment."""
    clock = clock or FakeClock()
    context = SettingsContext(
        storage=storage if storage is not None else MemoryStorage(clock=clock),
        environment=environment or Environment(),
        clock=clock,
    )
    return Settings(SettingsConfig(data_dir=data_dir, **config), context)  # type: ignore[arg-type]
