"""Environment properties — where override values come from.

Settings can be shadowed at launch without touching the settings file:
the embedding application exports a property naming the keys to
override, plus one property per key::

    settingsOverride=volume,fullscreen
    volume=0.2
    fullscreen=false

Key design properties:
    - **Snapshot, not live view** — ``Environment.from_os()`` copies
      ``os.environ`` once.  Later changes to the process environment
      are invisible until a new snapshot is taken.
    - **Strings only** — both names and values are strings (no types).
"""

import os
from collections.abc import Mapping


class Environment:
    """A snapshot of string properties.

    The snapshot is independent of the real process environment and of
    the mapping it was built from.
    """

    def __init__(self, initial: Mapping[str, str] | None = None) -> None:
        """Create an environment, optionally pre-populated.

        Args:
            initial: Starting properties (copied, not referenced).

        """
        self._vars: dict[str, str] = dict(initial) if initial else {}

    @classmethod
    def from_os(cls) -> "Environment":
        """Return a snapshot of the current process environment."""
        return cls(os.environ)

    def get(self, key: str, default: str | None = None) -> str | None:
        """Return the value for *key*, or *default* if not set."""
        return self._vars.get(key, default)

    def has(self, key: str) -> bool:
        """Return whether *key* is set."""
        return key in self._vars

    def set(self, key: str, value: str) -> None:
        """Set *key* to *value* in this snapshot only."""
        self._vars[key] = value

    def __len__(self) -> int:
        """Return the number of properties."""
        return len(self._vars)
