"""Setting values — a closed tagged union over six kinds.

A stored setting is always exactly one of:

    ============  ===  ==========================================
    Kind          Tag  Python payload
    ============  ===  ==========================================
    ``BOOL``      0    ``bool``
    ``INT32``     1    ``int`` in ``[-2**31, 2**31)``
    ``INT64``     2    ``int`` in ``[-2**63, 2**63)``
    ``FLOAT32``   3    ``float`` rounded to single precision
    ``STRING``    4    ``str`` (UTF-8 form at most 65535 bytes)
    ``BYTES``     5    ``bytes``
    ============  ===  ==========================================

The tag is also the byte written to disk, so ``ValueKind`` doubles as the
codec's type table.  Python has a single ``int`` and a single ``float``
type, which is why the kind travels alongside the payload instead of
being recovered from ``type(payload)`` at save time.
"""

from __future__ import annotations

import math
import struct
from dataclasses import dataclass
from enum import IntEnum

from settings_store.errors import InvalidValueType

INT32_MIN = -(2**31)
INT32_MAX = 2**31 - 1
INT64_MIN = -(2**63)
INT64_MAX = 2**63 - 1

MAX_STRING_BYTES = 0xFFFF
"""Longest UTF-8 encoding a 2-byte length prefix can describe."""

_FLOAT32 = struct.Struct(">f")

Payload = bool | int | float | str | bytes


class ValueKind(IntEnum):
    """The six storable kinds; each value is the on-disk type tag."""

    BOOL = 0
    INT32 = 1
    INT64 = 2
    FLOAT32 = 3
    STRING = 4
    BYTES = 5


def to_float32(number: float) -> float:
    """Round *number* to the nearest single-precision value.

    Raises:
        InvalidValueType: If the value is finite but overflows float32.

    """
    try:
        return _FLOAT32.unpack(_FLOAT32.pack(number))[0]
    except OverflowError as exc:
        msg = f"{number!r} does not fit in a 32-bit float"
        raise InvalidValueType(msg) from exc


def check_text(text: str, *, what: str = "string") -> None:
    """Verify *text* fits behind a 2-byte length prefix.

    Raises:
        InvalidValueType: If *text* is not a str or is too long.

    """
    if not isinstance(text, str):
        msg = f"{what} must be str, not {type(text).__name__}"
        raise InvalidValueType(msg)
    try:
        encoded = text.encode("utf-8")
    except UnicodeEncodeError as exc:
        msg = f"{what} is not encodable as UTF-8"
        raise InvalidValueType(msg) from exc
    if len(encoded) > MAX_STRING_BYTES:
        msg = f"{what} exceeds {MAX_STRING_BYTES} UTF-8 bytes"
        raise InvalidValueType(msg)


@dataclass(frozen=True)
class Value:
    """A tagged setting value.

    Construct through the named constructors (``Value.int64(5)``) when
    the kind matters, or through ``Value.of`` to infer it from a native
    Python object.
    """

    kind: ValueKind
    data: Payload

    def __post_init__(self) -> None:
        """Validate that *data* is a legal payload for *kind*."""
        try:
            kind = ValueKind(self.kind)
        except ValueError:
            msg = f"Unknown value kind: {self.kind!r}"
            raise InvalidValueType(msg) from None
        object.__setattr__(self, "kind", kind)
        data = self.data
        match kind:
            case ValueKind.BOOL:
                if not isinstance(data, bool):
                    self._reject("bool")
            case ValueKind.INT32 | ValueKind.INT64:
                if isinstance(data, bool) or not isinstance(data, int):
                    self._reject("int")
                low, high = (
                    (INT32_MIN, INT32_MAX) if kind is ValueKind.INT32 else (INT64_MIN, INT64_MAX)
                )
                if not low <= data <= high:
                    msg = f"{data} is out of range for {kind.name}"
                    raise InvalidValueType(msg)
            case ValueKind.FLOAT32:
                if isinstance(data, bool) or not isinstance(data, (int, float)):
                    self._reject("float")
                number = float(data)
                object.__setattr__(self, "data", to_float32(number))
            case ValueKind.STRING:
                check_text(data)  # type: ignore[arg-type]
            case ValueKind.BYTES:
                if not isinstance(data, (bytes, bytearray, memoryview)):
                    self._reject("bytes")
                object.__setattr__(self, "data", bytes(data))

    def _reject(self, expected: str) -> None:
        msg = f"{self.kind.name} needs a {expected} payload, got {type(self.data).__name__}"
        raise InvalidValueType(msg)

    def __eq__(self, other: object) -> bool:
        """Compare kind and payload; NaN floats compare equal to each other."""
        if not isinstance(other, Value):
            return NotImplemented
        if self.kind is not other.kind:
            return False
        if self.kind is ValueKind.FLOAT32 and math.isnan(self.data) and math.isnan(other.data):  # type: ignore[arg-type]
            return True
        return self.data == other.data

    def __hash__(self) -> int:
        """Hash by kind and payload."""
        if self.kind is ValueKind.FLOAT32 and math.isnan(self.data):  # type: ignore[arg-type]
            return hash((self.kind, "nan"))
        return hash((self.kind, self.data))

    def __str__(self) -> str:
        """Format as ``KIND:payload``."""
        return f"{self.kind.name}:{self.data!r}"

    # -- Named constructors -------------------------------------------------

    @classmethod
    def boolean(cls, data: bool) -> Value:  # noqa: FBT001
        """Build a BOOL value."""
        return cls(ValueKind.BOOL, data)

    @classmethod
    def int32(cls, data: int) -> Value:
        """Build an INT32 value."""
        return cls(ValueKind.INT32, data)

    @classmethod
    def int64(cls, data: int) -> Value:
        """Build an INT64 value."""
        return cls(ValueKind.INT64, data)

    @classmethod
    def float32(cls, data: float) -> Value:
        """Build a FLOAT32 value (rounded to single precision)."""
        return cls(ValueKind.FLOAT32, data)

    @classmethod
    def string(cls, data: str) -> Value:
        """Build a STRING value."""
        return cls(ValueKind.STRING, data)

    @classmethod
    def blob(cls, data: bytes) -> Value:
        """Build a BYTES value."""
        return cls(ValueKind.BYTES, data)

    @classmethod
    def of(cls, obj: object) -> Value:
        """Infer a value from a native Python object.

        ``bool`` is checked before ``int`` because it is an ``int``
        subclass.  Integers take the narrowest of INT32/INT64 that fits.

        Raises:
            InvalidValueType: If *obj* maps to none of the six kinds.

        """
        match obj:
            case Value():
                return obj
            case bool():
                return cls.boolean(obj)
            case int():
                if INT32_MIN <= obj <= INT32_MAX:
                    return cls.int32(obj)
                return cls.int64(obj)
            case float():
                return cls.float32(obj)
            case str():
                return cls.string(obj)
            case bytes() | bytearray() | memoryview():
                return cls.blob(bytes(obj))
            case _:
                msg = f"Invalid object stored: {type(obj).__name__}"
                raise InvalidValueType(msg)
