"""Structured values stored as JSON inside a BYTES setting.

The six value kinds cover flags and numbers; anything richer (lists of
recent files, window geometry, a server list) is serialized to bytes
first and stored under the BYTES kind.
"""

from __future__ import annotations

import dataclasses
import json
from collections.abc import Callable
from typing import Any


class JsonCodec:
    """Serialize plain data and dataclasses to UTF-8 JSON bytes."""

    def serialize(self, value: Any) -> bytes:
        """Encode *value*; dataclass instances are converted with ``asdict``."""
        if dataclasses.is_dataclass(value) and not isinstance(value, type):
            value = dataclasses.asdict(value)
        return json.dumps(value, sort_keys=True, separators=(",", ":")).encode("utf-8")

    def deserialize(self, data: bytes, type_: Callable[..., Any] | None = None) -> Any:
        """Decode *data*, optionally rebuilding an object with *type_*.

        Dict payloads are passed to *type_* as keyword arguments, any
        other payload as the single positional argument.
        """
        obj = json.loads(data.decode("utf-8"))
        if type_ is None:
            return obj
        if isinstance(obj, dict):
            return type_(**obj)
        return type_(obj)
