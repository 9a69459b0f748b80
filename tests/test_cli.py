"""Tests for the settings-store command line tool."""

from pathlib import Path

import pytest

from helpers import DATA_DIR, FakeClock
from settings_store.cli import build_parser, check_directory, format_entries, main
from settings_store.codec import decode, encode
from settings_store.storage import MemoryStorage
from settings_store.values import Value

SNAPSHOT = encode({"volume": Value.float32(0.5), "name": Value.string("ada")})
LONG_BLOB = bytes(range(20))


class TestFormatEntries:
    """Verify snapshot rendering."""

    def test_sorted_lines(self) -> None:
        """Entries are listed by key with their kind."""
        text = format_entries(decode(SNAPSHOT))
        assert text.splitlines() == ["name (STRING) = 'ada'", "volume (FLOAT32) = 0.5"]

    def test_bytes_are_previewed(self) -> None:
        """Long BYTES payloads are shortened to a hex preview."""
        text = format_entries(decode(encode({"blob": Value.blob(LONG_BLOB)})))
        assert text.startswith("blob (BYTES) = <20 bytes> 000102")
        assert text.endswith("...")

    def test_corrupt(self) -> None:
        """A corrupt snapshot renders its reason."""
        assert format_entries(decode(b"\x00\x00\x00\x00")).startswith("corrupt: Bad header")


class TestCheckDirectory:
    """Verify the per-file health report."""

    def test_missing_files(self) -> None:
        """An empty directory reports both fixed files as missing."""
        rows = check_directory(MemoryStorage(), DATA_DIR)
        assert rows == [("settings.bin", "missing"), ("settings_backup.bin", "missing")]

    def test_mixed_health(self) -> None:
        """Good, corrupt, and history files are each classified."""
        storage = MemoryStorage(clock=FakeClock())
        storage.write_bytes(DATA_DIR / "settings.bin", b"junk")
        storage.write_bytes(DATA_DIR / "settings_backups" / "1.bin", SNAPSHOT)
        storage.write_bytes(DATA_DIR / "settings_backups" / "2.bin", SNAPSHOT)
        rows = dict(check_directory(storage, DATA_DIR))
        assert rows["settings.bin"].startswith("corrupt:")
        assert rows["settings_backup.bin"] == "missing"
        assert rows["settings_backups/2.bin"] == "ok (2 values)"

    def test_history_newest_first(self) -> None:
        """History rows follow the fixed files, newest first."""
        storage = MemoryStorage(clock=FakeClock())
        storage.write_bytes(DATA_DIR / "settings_backups" / "a.bin", SNAPSHOT)
        storage.write_bytes(DATA_DIR / "settings_backups" / "b.bin", SNAPSHOT)
        labels = [label for label, _ in check_directory(storage, DATA_DIR)]
        assert labels[2:] == ["settings_backups/b.bin", "settings_backups/a.bin"]


class TestMain:
    """Verify the CLI entry point against real files."""

    def test_show(self, tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
        """show prints every entry and exits 0."""
        path = tmp_path / "settings.bin"
        path.write_bytes(SNAPSHOT)
        assert main(["show", str(path)]) == 0
        assert "volume (FLOAT32) = 0.5" in capsys.readouterr().out

    def test_show_missing(self, tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
        """show on a missing file exits 1."""
        assert main(["show", str(tmp_path / "nope.bin")]) == 1
        assert "corrupt: No such settings file" in capsys.readouterr().out

    def test_check(self, tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
        """check exits 0 when any snapshot loads."""
        (tmp_path / "settings_backup.bin").write_bytes(SNAPSHOT)
        assert main(["check", str(tmp_path)]) == 0
        out = capsys.readouterr().out
        assert "settings.bin" in out
        assert "ok (2 values)" in out

    def test_check_nothing_loads(self, tmp_path: Path) -> None:
        """check exits 1 when no snapshot loads."""
        assert main(["check", str(tmp_path)]) == 1

    def test_command_required(self) -> None:
        """A subcommand is mandatory."""
        with pytest.raises(SystemExit):
            build_parser().parse_args([])
