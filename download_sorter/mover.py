"""Move files into their category folders."""
from __future__ import annotations

import errno
import logging
import os
from pathlib import Path

from .logger import log_event
from .models import FileEntry
from .utils.fs import ensure_directory

LOGGER_NAME = "download_sorter.mover"

# Filesystems without hard links (FAT, some network mounts).
_NO_HARD_LINKS = {errno.EPERM, errno.ENOTSUP, errno.EOPNOTSUPP, errno.ENOSYS}


class MoveError(Exception):
    """A file could not be moved into its category folder."""

    def __init__(self, source: Path, destination: Path, reason: str) -> None:
        super().__init__(f"Cannot move {source} -> {destination}: {reason}")
        self.source = source
        self.destination = destination
        self.reason = reason


class Mover:
    """Rename files into ``<watched_dir>/<category>/`` without overwriting."""

    def __init__(self, logger: logging.Logger | None = None) -> None:
        self.logger = logger or logging.getLogger(LOGGER_NAME)

    def move_to_category(self, entry: FileEntry, watched_dir: Path, category: str) -> Path | None:
        """Non-raising wrapper around :meth:`move`.

        Failures are logged and ``None`` is returned; the file stays where it
        was. Callers that need the failure reason use :meth:`move` and
        :meth:`log_failure` instead.
        """

        try:
            return self.move(entry, watched_dir, category)
        except MoveError as exc:
            self.log_failure(exc, category)
            return None

    def log_failure(self, exc: MoveError, category: str) -> None:
        log_event(
            self.logger,
            level=logging.ERROR,
            action="move.failed",
            message=f"Failed to move {exc.source}: {exc.reason}",
            path=exc.source,
            extra={"destination": str(exc.destination), "category": category},
        )

    def move(self, entry: FileEntry, watched_dir: Path, category: str) -> Path:
        """Move *entry* into *category*, raising :class:`MoveError` on failure."""

        destination_dir = watched_dir / category
        destination = destination_dir / entry.path.name
        try:
            ensure_directory(destination_dir)
        except OSError as exc:
            raise MoveError(entry.path, destination, _describe(exc)) from exc

        if entry.path.is_symlink():
            self._rename(entry.path, destination)
        else:
            self._link_then_unlink(entry.path, destination)

        log_event(
            self.logger,
            level=logging.INFO,
            action="move.rename",
            message=f"Moved {entry.path} -> {destination}",
            path=destination,
            extra={"category": category},
        )
        return destination

    def _link_then_unlink(self, source: Path, destination: Path) -> None:
        # link() refuses an existing destination atomically, unlike rename().
        try:
            os.link(source, destination)
        except FileExistsError as exc:
            raise MoveError(source, destination, "destination already exists") from exc
        except OSError as exc:
            if exc.errno not in _NO_HARD_LINKS:
                raise MoveError(source, destination, _describe(exc)) from exc
            self._rename(source, destination)
            return

        try:
            source.unlink()
        except OSError as exc:
            destination.unlink(missing_ok=True)
            raise MoveError(source, destination, _describe(exc)) from exc

    @staticmethod
    def _rename(source: Path, destination: Path) -> None:
        # Path.rename replaces an existing file on POSIX, so check first.
        if destination.exists() or destination.is_symlink():
            raise MoveError(source, destination, "destination already exists")
        try:
            source.rename(destination)
        except OSError as exc:
            raise MoveError(source, destination, _describe(exc)) from exc


def _describe(exc: OSError) -> str:
    if exc.errno == errno.EXDEV:
        return "destination is on another device"
    if isinstance(exc, FileExistsError):
        return "destination already exists"
    if isinstance(exc, PermissionError):
        return "permission denied"
    if isinstance(exc, FileNotFoundError):
        return "file disappeared"
    return exc.strerror or repr(exc)


__all__ = ["MoveError", "Mover"]
