"""Detection of downloads that are still being written."""
from __future__ import annotations

from typing import Iterable

from .models import FileEntry

# crdownload: Chrome/Edge, part: Firefox, partial: generic transfer tools.
IN_FLIGHT_EXTENSIONS: frozenset[str] = frozenset({"crdownload", "tmp", "part", "partial"})


class SettlingDetector:
    """Report whether a directory snapshot still holds partial downloads.

    Besides the marker files themselves, a file is in flight when the same
    snapshot holds ``<name>.<marker>``: Firefox creates an empty ``paper.pdf``
    next to ``paper.pdf.part`` and renames the marker over it when done.
    """

    def __init__(self, sentinels: Iterable[str] = IN_FLIGHT_EXTENSIONS) -> None:
        self.sentinels = frozenset(sentinels)

    def is_marker(self, entry: FileEntry) -> bool:
        return entry.extension in self.sentinels

    def pending_names(self, entries: Iterable[FileEntry]) -> frozenset[str]:
        """Names the markers in *entries* will be renamed to."""

        return frozenset(entry.path.stem for entry in entries if self.is_marker(entry))

    def is_in_flight(self, entry: FileEntry, pending: frozenset[str] = frozenset()) -> bool:
        return self.is_marker(entry) or entry.name in pending

    def first_in_flight(self, entries: Iterable[FileEntry]) -> FileEntry | None:
        """Return the first in-flight entry of *entries*, if any."""

        snapshot = list(entries)
        pending = self.pending_names(snapshot)
        for entry in snapshot:
            if self.is_in_flight(entry, pending):
                return entry
        return None

    def has_in_flight(self, entries: Iterable[FileEntry]) -> bool:
        return self.first_in_flight(entries) is not None


__all__ = ["IN_FLIGHT_EXTENSIONS", "SettlingDetector"]
