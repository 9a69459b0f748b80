"""Error taxonomy for the settings store.

Every failure the store can report derives from ``SettingsError`` so an
embedding application can catch the whole family at once.

- **CorruptFormat** — a snapshot's bytes do not follow the binary framing
  (non-positive entry count, unknown type tag, truncation, trailing data).
- **IOFailure** — the underlying read, write, copy, or delete failed.
- **InvalidValueType** — a caller tried to store something that is not one
  of the six value kinds.
- **MissingFile** — a snapshot that was asked for does not exist.  A
  missing primary *and* backup on load is the fresh-install path, not an
  error, so this is only raised for explicitly requested files.
"""


class SettingsError(Exception):
    """Raise when any settings store operation fails."""


class CorruptFormat(SettingsError):
    """Raise when a snapshot violates the binary framing."""


class IOFailure(SettingsError):
    """Raise when reading or writing a settings file fails."""


class InvalidValueType(SettingsError, TypeError):
    """Raise when a value is not one of the storable kinds."""


class MissingFile(SettingsError, FileNotFoundError):
    """Raise when a requested snapshot file does not exist."""
