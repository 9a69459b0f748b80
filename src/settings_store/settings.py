"""Settings — the durable key-value store applications talk to.

A ``Settings`` instance combines the pieces of this package:

    get(key)  ──► override layer ──► value table ──► default
    load()    ──► recovery chain ──► value table (+ overrides rebuilt)
    save()    ──► codec ──► settings.bin ──► backup rotation (background)

Concurrency model:
    One reentrant lock guards every public operation.  The background
    backup job takes the *same* lock, so it can never copy a primary
    file that a foreground save is still writing, and a load can never
    run while a rotation is pruning the history.

Failure model:
    Corrupt or unreadable files on load are handled by the recovery
    chain; only a chain with no usable candidate is reported.  A failed
    save deletes the half-written primary file so it can never be
    mistaken for a valid snapshot.  Reported errors go to the error
    handler if one is registered (at most once per instance, so a
    read-only disk does not produce a storm of callbacks), otherwise
    they propagate to the caller.
"""

from __future__ import annotations

import threading
from collections.abc import Callable, Iterator, Mapping
from contextlib import suppress
from pathlib import Path
from typing import Any

from settings_store.backup import BackupManager
from settings_store.codec import encode
from settings_store.config import SettingsConfig
from settings_store.context import SettingsContext
from settings_store.errors import InvalidValueType, IOFailure
from settings_store.logging import DiagnosticLog, Logger, LogLevel
from settings_store.overrides import OverrideLayer
from settings_store.recovery import LoadOutcome, RecoveryLoader
from settings_store.values import (
    INT32_MAX,
    INT32_MIN,
    INT64_MAX,
    INT64_MIN,
    Value,
    ValueKind,
    check_text,
    to_float32,
)

_SOURCE = "settings"
_MISSING: Any = object()

_TRUE_WORDS = frozenset({"true", "1", "yes", "on"})
_FALSE_WORDS = frozenset({"false", "0", "no", "off"})

ErrorHandler = Callable[[BaseException], None]


def _parse_bool(raw: str) -> bool:
    word = raw.strip().lower()
    if word in _TRUE_WORDS:
        return True
    if word in _FALSE_WORDS:
        return False
    msg = f"not a boolean: {raw!r}"
    raise ValueError(msg)


def _parse_int32(raw: str) -> int:
    number = int(raw.strip())
    if not INT32_MIN <= number <= INT32_MAX:
        msg = f"{number} is out of range for INT32"
        raise ValueError(msg)
    return number


def _parse_int64(raw: str) -> int:
    number = int(raw.strip())
    if not INT64_MIN <= number <= INT64_MAX:
        msg = f"{number} is out of range for INT64"
        raise ValueError(msg)
    return number


def _parse_float32(raw: str) -> float:
    try:
        return to_float32(float(raw.strip()))
    except InvalidValueType as exc:
        raise ValueError(str(exc)) from exc


class Settings:
    """A persisted table of typed settings with crash recovery.

    Typical use::

        settings = Settings(SettingsConfig(app_name="mygame"))
        settings.defaults({"volume": 1.0, "fullscreen": False})
        settings.load()
        settings.put("volume", 0.8)
        settings.autosave()
    """

    def __init__(
        self,
        config: SettingsConfig | None = None,
        context: SettingsContext | None = None,
    ) -> None:
        """Create an empty, not-yet-loaded store.

        Args:
            config: Start-up options; defaults to ``SettingsConfig()``.
            context: Collaborators; defaults to disk storage, the process
                environment, and a private backup worker.

        """
        self._config = config or SettingsConfig()
        self._context = context or SettingsContext()
        env = self._context.environment
        storage = self._context.storage
        self._layout = self._config.layout(env)
        self._lock = threading.RLock()
        self._debug = env.has(self._config.debug_property)
        self.logger = Logger(
            DiagnosticLog(storage, self._layout.log_file),
            trail_level=LogLevel.DEBUG if self._debug else LogLevel.INFO,
        )

        self._values: dict[str, Value] = {}
        self._defaults: dict[str, object] = {}
        self._overrides = OverrideLayer()
        self._loader = RecoveryLoader(storage, self._layout, self.logger)
        self._backups = BackupManager(
            storage,
            self._layout.backup_folder,
            lock=self._lock,
            worker=self._context.worker,
            logger=self.logger,
            clock=self._context.clock,
            max_backups=self._config.max_backups,
        )

        self._modified = False
        self._loaded = False
        self._has_errored = False
        self._should_autosave = self._config.autosave
        self._error_handler: ErrorHandler | None = None
        self._last_load: LoadOutcome | None = None

    # -- Configuration ---------------------------------------------------------

    def set_error_handler(self, handler: ErrorHandler | None) -> None:
        """Route load/save failures to *handler* instead of raising.

        Only the first failure is delivered; later ones are logged.
        """
        self._error_handler = handler

    def set_autosave(self, enabled: bool) -> None:  # noqa: FBT001
        """Enable or disable ``autosave()``."""
        self._should_autosave = enabled

    @property
    def modified(self) -> bool:
        """Return whether there are unsaved changes."""
        return self._modified

    @property
    def loaded(self) -> bool:
        """Return whether ``load()`` has run (successfully or not)."""
        return self._loaded

    @property
    def last_load(self) -> LoadOutcome | None:
        """Return how the most recent ``load()`` found its values."""
        return self._last_load

    @property
    def data_directory(self) -> Path:
        """Return the folder holding every settings file."""
        return self._layout.data_dir

    @property
    def settings_file(self) -> Path:
        """Return the primary snapshot path."""
        return self._layout.settings_file

    @property
    def backup_file(self) -> Path:
        """Return the known-good snapshot path."""
        return self._layout.backup_file

    @property
    def backup_folder(self) -> Path:
        """Return the rotating history folder."""
        return self._layout.backup_folder

    @property
    def overrides(self) -> Mapping[str, str]:
        """Return the active overrides (read-only)."""
        return self._overrides.view

    # -- Persistence -------------------------------------------------------------

    def load(self) -> None:
        """Load values (and key bindings) from disk.

        The store counts as loaded afterwards even if every snapshot was
        unreadable; it then starts empty.
        """
        with self._lock:
            if self._debug:
                self.logger.log(LogLevel.WARNING, "Settings debug enabled!", source=_SOURCE)
            try:
                self._load_values()
                if self._context.keybinds is not None:
                    self._context.keybinds.load()
            except Exception as error:  # noqa: BLE001
                self._report("Error in load", error)
            finally:
                self._loaded = True

    def _load_values(self) -> None:
        outcome = self._loader.load()
        self._last_load = outcome
        self._values = dict(outcome.values)
        self._modified = False
        count = self._overrides.populate(
            self._context.environment,
            self._config.override_property,
        )
        if count:
            self.logger.log(LogLevel.DEBUG, f"Loaded {count} override values", source=_SOURCE)
        else:
            self.logger.log(LogLevel.DEBUG, "No settings override.", source=_SOURCE)
        if outcome.exhausted:
            raise outcome.error()

    def force_save(self) -> None:
        """Write every value to disk now, if the store has been loaded.

        Saving before ``load()`` is a no-op: writing an empty table
        would clobber settings that were never read.
        """
        with self._lock:
            if not self._loaded:
                return
            try:
                if self._context.keybinds is not None:
                    self._context.keybinds.save()
                self._save_values()
            except Exception as error:  # noqa: BLE001
                self._report(f"Error in force_save to {self.settings_file}", error)
                return
            self._modified = False

    def _save_values(self) -> None:
        storage = self._context.storage
        primary = self.settings_file
        data = encode(self._values)
        try:
            storage.write_bytes(primary, data)
        except OSError as exc:
            # The file is now suspect; never leave it claiming validity.
            with suppress(OSError):
                storage.delete(primary)
            msg = f"Error writing preferences: {primary}"
            raise IOFailure(msg) from exc
        self.logger.log(
            LogLevel.INFO,
            f"Saving {len(self._values)} values; {len(data)} bytes",
            source=_SOURCE,
        )
        self._backups.schedule(primary)

    def manual_save(self) -> None:
        """Save if the store has been loaded at some point."""
        with self._lock:
            if self._loaded:
                self.force_save()

    def autosave(self) -> None:
        """Save if there are unsaved changes and autosave is enabled."""
        with self._lock:
            if self._modified and self._should_autosave:
                self.force_save()

    def wait_for_backups(self, timeout: float | None = None) -> None:
        """Block until every queued backup rotation has finished.

        Must not be called while holding the store's lock from another
        operation (e.g. inside an error handler), since rotations need it.

        Raises:
            IOFailure: If a rotation failed.

        """
        self._context.worker.wait(timeout)

    def _report(self, message: str, error: Exception) -> None:
        self.logger.log(LogLevel.ERROR, f"{message}: {error}", source=_SOURCE, error=error)
        if self._error_handler is None:
            raise error
        if not self._has_errored:
            self._error_handler(error)
        self._has_errored = True

    # -- Defaults ---------------------------------------------------------------

    def defaults(self, values: Mapping[str, object] | None = None, /, **pairs: object) -> None:
        """Register fallback values used by typed getters without a default."""
        with self._lock:
            if values:
                self._defaults.update(values)
            self._defaults.update(pairs)

    def get_default(self, key: str) -> object | None:
        """Return the registered default for *key*, or None."""
        with self._lock:
            return self._defaults.get(key)

    # -- Raw access -------------------------------------------------------------

    def _warn_unloaded(self, operation: str, key: str) -> None:
        if not self._loaded and self._debug:
            self.logger.log(
                LogLevel.DEBUG,
                f"Call to Settings.{operation}({key!r}) before settings loaded",
                source=_SOURCE,
            )

    def get(self, key: str, default: Value | None = None) -> Value | None:
        """Return the value for *key*: override, then stored value, then *default*.

        Overrides are always STRING values.
        """
        with self._lock:
            self._warn_unloaded("get", key)
            raw = self._overrides.get(key)
            if raw is not None:
                return Value.string(raw)
            return self._values.get(key, default)

    def has(self, key: str) -> bool:
        """Return whether *key* is stored or overridden."""
        with self._lock:
            self._warn_unloaded("has", key)
            return key in self._values or key in self._overrides

    def put(self, key: str, value: object) -> None:
        """Store *value* under *key*.

        *value* may be a ``Value`` or a native bool, int, float, str, or
        bytes-like object.

        Raises:
            InvalidValueType: If *value* is none of the storable kinds, or
                *key* is not a str that fits the file format.

        """
        check_text(key, what="key")
        tagged = Value.of(value)
        with self._lock:
            self._values[key] = tagged
            self._modified = True

    def put_all(self, values: Mapping[str, object]) -> None:
        """Store every entry of *values*."""
        with self._lock:
            for key, value in values.items():
                self.put(key, value)

    def remove(self, key: str) -> None:
        """Delete *key* from the store (overrides are unaffected)."""
        with self._lock:
            self._values.pop(key, None)
            self._modified = True

    def clear(self) -> None:
        """Delete every stored value; defaults and overrides are kept.

        Saving an empty store writes a snapshot that does not load, so the
        next ``load()`` restores the newest backup instead.  Put at least
        one value before saving if the cleared state must persist.
        """
        with self._lock:
            self._values.clear()
            self._modified = True

    def keys(self) -> list[str]:
        """Return the stored keys (overrides are not included)."""
        with self._lock:
            return list(self._values)

    def key_size(self) -> int:
        """Return the number of stored values."""
        with self._lock:
            return len(self._values)

    def __len__(self) -> int:
        """Return the number of stored values."""
        return self.key_size()

    def __iter__(self) -> Iterator[str]:
        """Iterate over a snapshot of the stored keys."""
        return iter(self.keys())

    def __contains__(self, key: object) -> bool:
        """Return whether *key* is stored or overridden."""
        return isinstance(key, str) and self.has(key)

    # -- Typed access -----------------------------------------------------------

    def _typed(
        self,
        key: str,
        default: Any,
        kinds: tuple[ValueKind, ...],
        parse: Callable[[str], Any],
        fallback: Any,
    ) -> Any:
        if default is _MISSING:
            default = self.get_default(key)
            if default is None:
                default = fallback
        with self._lock:
            self._warn_unloaded("get", key)
            raw = self._overrides.get(key)
            if raw is not None:
                try:
                    return parse(raw)
                except ValueError as exc:
                    self.logger.log(
                        LogLevel.WARNING,
                        f"Ignoring override {key}={raw!r}: {exc}",
                        source=_SOURCE,
                    )
            value = self._values.get(key)
        if value is None:
            return default
        if value.kind not in kinds:
            wanted = "/".join(kind.name for kind in kinds)
            msg = f"Setting {key!r} holds {value.kind.name}, not {wanted}"
            raise InvalidValueType(msg)
        return value.data

    def get_bool(self, key: str, default: bool = _MISSING) -> bool:  # noqa: FBT001
        """Return a BOOL setting (registered default, else False)."""
        return self._typed(key, default, (ValueKind.BOOL,), _parse_bool, False)

    def get_int(self, key: str, default: int = _MISSING) -> int:
        """Return an INT32 setting (registered default, else 0)."""
        return self._typed(key, default, (ValueKind.INT32,), _parse_int32, 0)

    def get_long(self, key: str, default: int = _MISSING) -> int:
        """Return an INT64 (or INT32) setting (registered default, else 0)."""
        return self._typed(key, default, (ValueKind.INT64, ValueKind.INT32), _parse_int64, 0)

    def get_float(self, key: str, default: float = _MISSING) -> float:
        """Return a FLOAT32 setting (registered default, else 0.0)."""
        return self._typed(key, default, (ValueKind.FLOAT32,), _parse_float32, 0.0)

    def get_string(self, key: str, default: str | None = _MISSING) -> str | None:
        """Return a STRING setting (registered default, else None)."""
        return self._typed(key, default, (ValueKind.STRING,), str, None)

    def get_bytes(self, key: str, default: bytes | None = _MISSING) -> bytes | None:
        """Return a BYTES setting (registered default, else None)."""
        return self._typed(key, default, (ValueKind.BYTES,), str.encode, None)

    def get_bool_once(self, key: str) -> bool:
        """Return the flag's current value, then set it to True.

        The first call on an unset flag returns False; every later call
        returns True.
        """
        with self._lock:
            value = self.get_bool(key, False)
            self.put(key, True)
            return value

    def run_once(self, key: str, action: Callable[[], object]) -> None:
        """Run *action* only while the flag *key* is still unset, then set it."""
        if not self.get_bool(key, False):
            action()
            self.put(key, True)

    # -- Structured values ------------------------------------------------------

    def put_json(self, key: str, value: Any) -> None:
        """Serialize *value* with the context's codec and store it as BYTES."""
        self.put(key, self._context.codec.serialize(value))

    def get_json(
        self,
        key: str,
        type_: Callable[..., Any] | None = None,
        default: Any = None,
    ) -> Any:
        """Return a structured value stored with ``put_json``.

        Any failure to read or decode is logged and *default* returned.
        """
        try:
            if not self.has(key):
                return default
            data = self.get_bytes(key)
            if data is None:
                return default
            return self._context.codec.deserialize(data, type_)
        except Exception as exc:  # noqa: BLE001
            name = getattr(type_, "__name__", type_)
            self.logger.log(
                LogLevel.ERROR,
                f"Failed to read JSON key={key} type={name}",
                source=_SOURCE,
                error=exc,
            )
            return default
