"""Locate the user's downloads folder."""
from __future__ import annotations

import os
import re
import shlex
from pathlib import Path
from typing import Iterator, Mapping

_USER_DIRS_ENTRY = re.compile(r"^\s*XDG_DOWNLOAD_DIR\s*=\s*(.+?)\s*$")


def _expand(value: str, home: Path) -> Path:
    value = value.replace("$HOME", str(home)).replace("${HOME}", str(home))
    return Path(value).expanduser()


def _read_user_dirs(config_home: Path, home: Path) -> Path | None:
    """Read ``XDG_DOWNLOAD_DIR`` from ``user-dirs.dirs`` if present."""

    user_dirs = config_home / "user-dirs.dirs"
    try:
        lines = user_dirs.read_text(encoding="utf-8").splitlines()
    except (OSError, UnicodeDecodeError):
        return None
    for line in lines:
        match = _USER_DIRS_ENTRY.match(line)
        if not match:
            continue
        try:
            parts = shlex.split(match.group(1))
        except ValueError:
            return None
        return _expand(parts[0], home) if parts else None
    return None


def _candidates(environ: Mapping[str, str], home: Path) -> Iterator[Path]:
    explicit = environ.get("XDG_DOWNLOAD_DIR")
    if explicit:
        yield _expand(explicit, home)
    config_home = Path(environ.get("XDG_CONFIG_HOME") or home / ".config")
    from_user_dirs = _read_user_dirs(config_home, home)
    if from_user_dirs is not None:
        yield from_user_dirs
    yield home / "Downloads"


def resolve_downloads_directory(
    environ: Mapping[str, str] | None = None,
    home: Path | None = None,
) -> Path | None:
    """Return the downloads folder, or ``None`` if none exists."""

    environ = os.environ if environ is None else environ
    home = home or Path.home()
    for candidate in _candidates(environ, home):
        if candidate.is_dir():
            return candidate
    return None


__all__ = ["resolve_downloads_directory"]
