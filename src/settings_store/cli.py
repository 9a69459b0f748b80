"""Command line inspection of settings files.

Two read-only subcommands help diagnose a wiped or corrupted install::

    settings-store show PATH     list every entry of one snapshot
    settings-store check DIR     report which snapshots in DIR still load

The formatting helpers are pure functions returning strings; ``main``
is the thin I/O wrapper around them.
"""

from __future__ import annotations

import argparse
from collections.abc import Sequence
from pathlib import Path

from settings_store.backup import newest_first
from settings_store.codec import DecodeResult, read_snapshot
from settings_store.config import SettingsLayout
from settings_store.storage import DiskStorage, FileEntry, Storage

_PREVIEW_BYTES = 16


def format_entries(result: DecodeResult) -> str:
    """Render a decoded snapshot as ``key (KIND) = value`` lines."""
    if result.error is not None:
        return f"corrupt: {result.error}"
    lines = []
    for key, value in sorted(result.unwrap().items()):
        data = value.data
        if isinstance(data, bytes):
            shown = data[:_PREVIEW_BYTES].hex()
            suffix = "..." if len(data) > _PREVIEW_BYTES else ""
            text = f"<{len(data)} bytes> {shown}{suffix}"
        else:
            text = repr(data)
        lines.append(f"{key} ({value.kind.name}) = {text}")
    return "\n".join(lines)


def check_directory(storage: Storage, data_dir: Path) -> list[tuple[str, str]]:
    """Return ``(file, status)`` rows for every snapshot under *data_dir*.

    The primary and known-good files come first, then the history
    newest first.  Status is ``ok (N values)``, ``missing``, or the
    corruption reason.
    """
    layout = SettingsLayout(data_dir=data_dir)
    rows: list[tuple[str, str]] = []
    history: list[FileEntry] = newest_first(storage.list_dir(layout.backup_folder))
    paths = [layout.settings_file, layout.backup_file, *(entry.path for entry in history)]
    for path in paths:
        label = str(path.relative_to(data_dir))
        if not storage.exists(path):
            rows.append((label, "missing"))
            continue
        result = read_snapshot(storage, path)
        if result.error is not None:
            rows.append((label, f"corrupt: {result.error}"))
        else:
            rows.append((label, f"ok ({len(result.unwrap())} values)"))
    return rows


def build_parser() -> argparse.ArgumentParser:
    """Create the argument parser."""
    parser = argparse.ArgumentParser(
        prog="settings-store",
        description="Inspect settings snapshots and their backups.",
    )
    sub = parser.add_subparsers(dest="command", required=True)
    show = sub.add_parser("show", help="List the entries of one snapshot file")
    show.add_argument("path", type=Path)
    check = sub.add_parser("check", help="Check every snapshot in a data directory")
    check.add_argument("data_dir", type=Path)
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    """Run the CLI and return the process exit status."""
    args = build_parser().parse_args(argv)
    storage = DiskStorage()
    if args.command == "show":
        result = read_snapshot(storage, args.path)
        print(format_entries(result))  # noqa: T201
        return 0 if result.ok else 1

    rows = check_directory(storage, args.data_dir)
    width = max(len(label) for label, _ in rows)
    for label, status in rows:
        print(f"{label.ljust(width)}  {status}")  # noqa: T201
    return 0 if any(status.startswith("ok") for _, status in rows) else 1
