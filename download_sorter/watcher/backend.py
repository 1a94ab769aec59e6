"""Filesystem notification subscription backed by watchdog."""
from __future__ import annotations

import logging
import os
import threading
from pathlib import Path
from queue import Empty, Queue
from typing import Callable

from watchdog.events import (
    EVENT_TYPE_CREATED,
    EVENT_TYPE_DELETED,
    EVENT_TYPE_MODIFIED,
    EVENT_TYPE_MOVED,
    FileSystemEventHandler,
)
from watchdog.events import FileSystemEvent as WatchdogEvent
from watchdog.observers import Observer

from ..logger import log_event
from .types import EventType, FileSystemEvent, NotificationChannelClosed, NotificationError

LOGGER_NAME = "download_sorter.watcher"

_EVENT_TYPES = {
    EVENT_TYPE_CREATED: EventType.CREATED,
    EVENT_TYPE_MODIFIED: EventType.MODIFIED,
    EVENT_TYPE_DELETED: EventType.DELETED,
    EVENT_TYPE_MOVED: EventType.MOVED,
}

Notification = FileSystemEvent | NotificationError


class NotificationStream:
    """Queue of notifications consumed by a single reader.

    Producers call :meth:`publish` from any thread. :meth:`receive` raises
    :class:`queue.Empty` on timeout and :class:`NotificationChannelClosed`
    once the stream is closed (or its producer died) and fully drained.
    """

    def __init__(self, is_alive: Callable[[], bool] | None = None) -> None:
        self._queue: Queue[Notification] = Queue()
        self._closed = threading.Event()
        self._is_alive = is_alive or (lambda: True)

    def publish(self, item: Notification) -> None:
        self._queue.put(item)

    def close(self) -> None:
        self._closed.set()

    @property
    def closed(self) -> bool:
        return self._closed.is_set()

    def receive(self, timeout: float) -> Notification:
        try:
            return self._queue.get(timeout=max(timeout, 0.0))
        except Empty:
            if self._closed.is_set() or not self._is_alive():
                raise NotificationChannelClosed("notification channel is closed") from None
            raise


class _StreamHandler(FileSystemEventHandler):
    """Translate watchdog events and push them onto a stream."""

    def __init__(self, stream: NotificationStream) -> None:
        super().__init__()
        self._stream = stream

    def on_any_event(self, event: WatchdogEvent) -> None:
        event_type = _EVENT_TYPES.get(event.event_type)
        if event_type is None:
            return
        try:
            dest = getattr(event, "dest_path", "") or None
            normalized = FileSystemEvent(
                path=Path(os.fsdecode(event.src_path)),
                event_type=event_type,
                is_directory=event.is_directory,
                dest_path=Path(os.fsdecode(dest)) if dest else None,
            )
        except (TypeError, ValueError) as exc:
            self._stream.publish(
                NotificationError(message="Could not decode watcher event", error=repr(exc))
            )
            return
        self._stream.publish(normalized)


class Subscription:
    """A running watchdog observer feeding a :class:`NotificationStream`."""

    def __init__(self, path: Path, *, recursive: bool = False, logger: logging.Logger | None = None) -> None:
        self.path = path
        self.recursive = recursive
        self.logger = logger or logging.getLogger(LOGGER_NAME)
        self._observer = Observer()
        self.stream = NotificationStream(is_alive=self._observer_alive)
        self._observer.schedule(_StreamHandler(self.stream), str(path), recursive=recursive)

    def start(self) -> "Subscription":
        self._observer.start()
        log_event(
            self.logger,
            level=logging.DEBUG,
            action="watcher.subscribed",
            message=f"Watching {self.path}",
            path=self.path,
            extra={"recursive": self.recursive},
        )
        return self

    def stop(self) -> None:
        self.stream.close()
        if self._observer.is_alive():
            self._observer.stop()
            self._observer.join()

    def _observer_alive(self) -> bool:
        if not self._observer.is_alive():
            return False
        return all(emitter.is_alive() for emitter in self._observer.emitters)


def subscribe(path: Path, recursive: bool = False) -> Subscription:
    """Start watching *path* and return the live subscription."""

    if not Path(path).is_dir():
        raise NotADirectoryError(f"Not a directory: {path}")
    subscription = Subscription(Path(path), recursive=recursive)
    try:
        return subscription.start()
    except Exception:
        subscription.stop()
        raise


__all__ = ["NotificationStream", "Subscription", "subscribe"]
