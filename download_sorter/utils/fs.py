"""Filesystem helpers used by DownloadSorter."""
from __future__ import annotations

from pathlib import Path
from typing import Iterator


def ensure_directory(path: Path) -> Path:
    """Ensure that *path* exists as a directory and return it."""

    path.mkdir(parents=True, exist_ok=True)
    return path


def iter_files(directory: Path) -> Iterator[Path]:
    """Yield the regular files directly inside *directory*, sorted by name.

    Directories are skipped, so category folders are never revisited.
    """

    for child in sorted(directory.iterdir(), key=lambda p: p.name):
        if child.is_dir():
            continue
        yield child


__all__ = ["ensure_directory", "iter_files"]
