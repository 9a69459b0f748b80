"""Binary codec — the on-disk framing of one settings snapshot.

A snapshot file is a single big-endian record stream::

    int32   entry_count            (must be > 0)
    entry_count times:
        str     key                (uint16 length + UTF-8 bytes)
        byte    type tag           (see ``ValueKind``)
        payload
            BOOL    -> 1 byte (0 or non-zero)
            INT32   -> 4 bytes
            INT64   -> 8 bytes
            FLOAT32 -> 4 bytes IEEE-754
            STRING  -> uint16 length + UTF-8 bytes
            BYTES   -> int32 length + raw bytes
    end of file

Anything else is corruption: a non-positive count, an unknown tag, a
record cut short, or bytes left over after the last declared entry.
The count check exists because a crashed write most often leaves a file
of zeroes behind, which would otherwise parse as an empty store.

``decode`` does not raise for corrupt input.  Corruption is an expected
condition that the recovery loader handles, so the result is returned
as a ``DecodeResult`` holding either the values or the reason.
"""

from __future__ import annotations

import struct
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path

from settings_store.errors import CorruptFormat, IOFailure, MissingFile, SettingsError
from settings_store.storage import Storage
from settings_store.values import Value, ValueKind, check_text

_INT8 = struct.Struct(">b")
_UINT16 = struct.Struct(">H")
_INT32 = struct.Struct(">i")
_INT64 = struct.Struct(">q")
_FLOAT32 = struct.Struct(">f")


@dataclass(frozen=True)
class DecodeResult:
    """Outcome of decoding a snapshot: values on success, an error otherwise."""

    values: dict[str, Value] | None = None
    error: SettingsError | None = None

    @property
    def ok(self) -> bool:
        """Return whether decoding succeeded."""
        return self.error is None

    def unwrap(self) -> dict[str, Value]:
        """Return the decoded values.

        Raises:
            SettingsError: The stored error, if decoding failed.

        """
        if self.error is not None:
            raise self.error
        return dict(self.values or {})


# -- Encoding ------------------------------------------------------------------


def _encode_text(text: str) -> bytes:
    raw = text.encode("utf-8")
    return _UINT16.pack(len(raw)) + raw


def encode(values: Mapping[str, Value]) -> bytes:
    """Serialize *values* into the snapshot framing.

    Args:
        values: The entries to write, in any order.

    Returns:
        The snapshot bytes.

    Raises:
        InvalidValueType: If a key is not a str or is too long.

    """
    chunks = [_INT32.pack(len(values))]
    for key, value in values.items():
        check_text(key, what="key")
        chunks.append(_encode_text(key))
        chunks.append(_INT8.pack(value.kind))
        match value.kind:
            case ValueKind.BOOL:
                chunks.append(b"\x01" if value.data else b"\x00")
            case ValueKind.INT32:
                chunks.append(_INT32.pack(value.data))
            case ValueKind.INT64:
                chunks.append(_INT64.pack(value.data))
            case ValueKind.FLOAT32:
                chunks.append(_FLOAT32.pack(value.data))
            case ValueKind.STRING:
                chunks.append(_encode_text(value.data))  # type: ignore[arg-type]
            case ValueKind.BYTES:
                chunks.append(_INT32.pack(len(value.data)))  # type: ignore[arg-type]
                chunks.append(value.data)  # type: ignore[arg-type]
    return b"".join(chunks)


# -- Decoding ------------------------------------------------------------------


class _Reader:
    """Cursor over a snapshot buffer; every read is bounds-checked."""

    def __init__(self, data: bytes) -> None:
        self._view = memoryview(data)
        self._offset = 0

    @property
    def remaining(self) -> int:
        return len(self._view) - self._offset

    def take(self, count: int) -> bytes:
        if count < 0 or count > self.remaining:
            msg = f"Unexpected end of data at offset {self._offset} (wanted {count} bytes)"
            raise CorruptFormat(msg)
        chunk = self._view[self._offset : self._offset + count].tobytes()
        self._offset += count
        return chunk

    def unpack(self, fmt: struct.Struct) -> int | float:
        return fmt.unpack(self.take(fmt.size))[0]

    def text(self) -> str:
        length = int(self.unpack(_UINT16))
        raw = self.take(length)
        try:
            return raw.decode("utf-8")
        except UnicodeDecodeError as exc:
            msg = f"Invalid UTF-8 string: {exc.reason}"
            raise CorruptFormat(msg) from exc


def _read_value(reader: _Reader) -> Value:
    tag = int(reader.unpack(_INT8))
    match tag:
        case ValueKind.BOOL:
            return Value.boolean(reader.take(1) != b"\x00")
        case ValueKind.INT32:
            return Value.int32(int(reader.unpack(_INT32)))
        case ValueKind.INT64:
            return Value.int64(int(reader.unpack(_INT64)))
        case ValueKind.FLOAT32:
            return Value.float32(float(reader.unpack(_FLOAT32)))
        case ValueKind.STRING:
            return Value.string(reader.text())
        case ValueKind.BYTES:
            length = int(reader.unpack(_INT32))
            return Value.blob(reader.take(length))
        case _:
            msg = f"Unknown key type: {tag}"
            raise CorruptFormat(msg)


def decode(data: bytes) -> DecodeResult:
    """Parse a snapshot.

    Nothing is handed back unless the whole buffer parses: a failure at
    any record discards every entry read before it.

    Args:
        data: The raw snapshot bytes.

    Returns:
        A ``DecodeResult`` with the entries, or with a ``CorruptFormat``
        describing the first violation.

    """
    reader = _Reader(data)
    values: dict[str, Value] = {}
    try:
        count = int(reader.unpack(_INT32))
        if count <= 0:
            msg = f"Bad header: {count} values are not allowed"
            raise CorruptFormat(msg)
        for _ in range(count):
            key = reader.text()
            values[key] = _read_value(reader)
        if reader.remaining:
            msg = f"Trailing settings data; expected EOF, but {reader.remaining} bytes remain"
            raise CorruptFormat(msg)
    except CorruptFormat as exc:
        return DecodeResult(error=exc)
    return DecodeResult(values=values)


def read_snapshot(storage: Storage, path: Path) -> DecodeResult:
    """Read and decode the snapshot at *path*.

    I/O problems are folded into the result the same way corruption is,
    so callers walking a list of candidate files need only one check.

    Args:
        storage: Backend to read through.
        path: Snapshot file to read.

    Returns:
        The decode result; ``error`` is ``MissingFile``, ``IOFailure``
        or ``CorruptFormat`` on failure.

    """
    try:
        data = storage.read_bytes(path)
    except FileNotFoundError:
        return DecodeResult(error=MissingFile(f"No such settings file: {path}"))
    except OSError as exc:
        failure = IOFailure(f"Cannot read {path}: {exc}")
        failure.__cause__ = exc
        return DecodeResult(error=failure)
    return decode(data)
