"""Watcher subsystem for DownloadSorter."""
from .backend import NotificationStream, Subscription, subscribe
from .loop import LoopState, WatchLoop
from .types import (
    EventType,
    FileSystemEvent,
    NotificationChannelClosed,
    NotificationError,
    WatchSetupError,
)

__all__ = [
    "EventType",
    "FileSystemEvent",
    "LoopState",
    "NotificationChannelClosed",
    "NotificationError",
    "NotificationStream",
    "Subscription",
    "WatchLoop",
    "WatchSetupError",
    "subscribe",
]
