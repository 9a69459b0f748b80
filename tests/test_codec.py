"""Tests for the binary snapshot codec.

A snapshot is an entry count followed by key/tag/payload records.  The
decoder must reject anything that does not parse exactly, because a
half-written file that *looks* valid would silently wipe settings.
"""

import struct
from pathlib import Path

import pytest

from settings_store.codec import DecodeResult, decode, encode, read_snapshot
from settings_store.errors import CorruptFormat, IOFailure, MissingFile
from settings_store.storage import MemoryStorage
from settings_store.values import INT32_MIN, INT64_MAX, Value

ALL_KINDS = {
    "flag": Value.boolean(True),
    "count": Value.int32(INT32_MIN),
    "stamp": Value.int64(INT64_MAX),
    "volume": Value.float32(0.8),
    "name": Value.string("héllo wörld"),
    "blob": Value.blob(bytes(range(256))),
}
UNKNOWN_TAG = 9


def _single_int_entry() -> bytes:
    return encode({"a": Value.int32(1)})


class TestEncode:
    """Verify the exact byte layout."""

    def test_layout_of_one_entry(self) -> None:
        """Count, key, tag, and payload are big-endian."""
        assert _single_int_entry() == (
            b"\x00\x00\x00\x01"  # entry count
            b"\x00\x01a"  # key length + key
            b"\x01"  # INT32 tag
            b"\x00\x00\x00\x01"  # payload
        )

    def test_bytes_payload_has_int32_length(self) -> None:
        """BYTES payloads carry a 4-byte length."""
        data = encode({"b": Value.blob(b"xyz")})
        assert data.endswith(b"\x05\x00\x00\x00\x03xyz")

    def test_string_payload_has_uint16_length(self) -> None:
        """STRING payloads carry a 2-byte length of the UTF-8 form."""
        data = encode({"s": Value.string("é")})
        assert data.endswith(b"\x04\x00\x02\xc3\xa9")

    def test_deterministic(self) -> None:
        """Encoding the same table twice gives identical bytes."""
        assert encode(ALL_KINDS) == encode(dict(ALL_KINDS))


class TestRoundTrip:
    """Verify decode(encode(x)) == x."""

    def test_all_kinds(self) -> None:
        """Every kind survives a round trip with its tag intact."""
        result = decode(encode(ALL_KINDS))
        assert result.ok
        assert result.unwrap() == ALL_KINDS

    @pytest.mark.parametrize("size", [1, 2, 50])
    def test_many_entries(self, size: int) -> None:
        """Tables of different sizes round-trip."""
        values = {f"key{i}": Value.of(i * 1.5 if i % 2 else f"v{i}") for i in range(size)}
        assert decode(encode(values)).unwrap() == values


class TestCorruption:
    """Verify every structural violation is rejected."""

    def test_zero_count(self) -> None:
        """A zeroed file is the classic crash artifact and must fail."""
        result = decode(b"\x00" * 16)
        assert not result.ok
        assert isinstance(result.error, CorruptFormat)
        assert "Bad header" in str(result.error)

    def test_negative_count(self) -> None:
        """A negative count is rejected."""
        assert not decode(struct.pack(">i", -1)).ok

    def test_empty_file(self) -> None:
        """A file too short for the header is rejected."""
        assert not decode(b"").ok

    def test_trailing_byte(self) -> None:
        """Bytes after the last declared entry are rejected."""
        result = decode(_single_int_entry() + b"\x00")
        assert not result.ok
        assert "Trailing" in str(result.error)

    def test_unknown_tag(self) -> None:
        """A tag outside 0..5 is rejected."""
        data = bytearray(_single_int_entry())
        data[7] = UNKNOWN_TAG
        result = decode(bytes(data))
        assert not result.ok
        assert f"Unknown key type: {UNKNOWN_TAG}" in str(result.error)

    def test_count_larger_than_records(self) -> None:
        """Declaring more entries than the file holds is rejected."""
        data = bytearray(_single_int_entry())
        data[3] = 2
        assert not decode(bytes(data)).ok

    def test_truncated_payload(self) -> None:
        """A record cut short is rejected."""
        assert not decode(_single_int_entry()[:-1]).ok

    def test_invalid_utf8_key(self) -> None:
        """Keys must be valid UTF-8."""
        data = b"\x00\x00\x00\x01\x00\x01\xff\x00\x01"
        assert not decode(data).ok

    def test_no_partial_values(self) -> None:
        """A failed decode exposes no entries."""
        data = encode({"a": Value.int32(1), "b": Value.int32(2)}) + b"junk"
        result = decode(data)
        assert result.values is None
        with pytest.raises(CorruptFormat):
            result.unwrap()


class TestReadSnapshot:
    """Verify file-level decoding folds I/O errors into the result."""

    def test_missing_file(self) -> None:
        """A missing file yields MissingFile."""
        result = read_snapshot(MemoryStorage(), Path("/nope.bin"))
        assert isinstance(result.error, MissingFile)

    def test_read_error(self) -> None:
        """Other OS errors yield IOFailure."""

        class Broken(MemoryStorage):
            def read_bytes(self, path: Path) -> bytes:
                raise PermissionError(str(path))

        result = read_snapshot(Broken(), Path("/x.bin"))
        assert isinstance(result.error, IOFailure)

    def test_valid_file(self) -> None:
        """A valid file decodes."""
        storage = MemoryStorage()
        storage.write_bytes(Path("/s.bin"), encode(ALL_KINDS))
        assert read_snapshot(storage, Path("/s.bin")) == DecodeResult(values=ALL_KINDS)
