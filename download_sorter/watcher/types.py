"""Shared type definitions for the watcher subsystem."""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum, auto
from pathlib import Path
import time


class EventType(Enum):
    """Normalized filesystem event types that the watcher understands."""

    CREATED = auto()
    MODIFIED = auto()
    DELETED = auto()
    MOVED = auto()


@dataclass(slots=True)
class FileSystemEvent:
    """Container describing a single filesystem change event."""

    path: Path
    event_type: EventType
    timestamp: float = field(default_factory=lambda: time.time())
    is_directory: bool = False
    dest_path: Path | None = None

    def lands_in(self, directory: Path) -> bool:
        """Return True if this event put a new file directly into *directory*."""

        if self.is_directory:
            return False
        if self.event_type is EventType.CREATED:
            return self.path.parent == directory
        if self.event_type is EventType.MOVED and self.dest_path is not None:
            return self.dest_path.parent == directory
        return False


@dataclass(slots=True)
class NotificationError:
    """A watcher-internal failure delivered through the notification stream."""

    message: str
    error: str | None = None
    timestamp: float = field(default_factory=lambda: time.time())


class NotificationChannelClosed(RuntimeError):
    """The notification stream can no longer deliver events."""


class WatchSetupError(RuntimeError):
    """Watching the directory could not be started."""


__all__ = [
    "EventType",
    "FileSystemEvent",
    "NotificationChannelClosed",
    "NotificationError",
    "WatchSetupError",
]
