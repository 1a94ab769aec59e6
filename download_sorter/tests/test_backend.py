"""Tests for the watchdog backed notification stream."""
from __future__ import annotations

import time
from pathlib import Path
from queue import Empty

import pytest

from download_sorter.watcher.backend import NotificationStream, subscribe
from download_sorter.watcher.types import (
    EventType,
    FileSystemEvent,
    NotificationChannelClosed,
    NotificationError,
)


def wait_for(stream: NotificationStream, predicate, *, timeout: float = 5.0) -> list:
    received: list = []
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        try:
            item = stream.receive(timeout=0.1)
        except Empty:
            continue
        received.append(item)
        if predicate(item):
            return received
    return received


def test_stream_times_out_then_reports_closure() -> None:
    stream = NotificationStream()
    with pytest.raises(Empty):
        stream.receive(timeout=0.01)

    stream.publish(NotificationError(message="boom"))
    stream.close()

    assert isinstance(stream.receive(timeout=0.01), NotificationError)
    with pytest.raises(NotificationChannelClosed):
        stream.receive(timeout=0.01)


def test_stream_reports_dead_producer() -> None:
    stream = NotificationStream(is_alive=lambda: False)

    with pytest.raises(NotificationChannelClosed):
        stream.receive(timeout=0.01)


def test_subscribe_delivers_creation_events(downloads: Path) -> None:
    subscription = subscribe(downloads, recursive=False)
    try:
        target = downloads / "report.pdf"
        target.write_text("pdf", encoding="utf-8")

        received = wait_for(
            subscription.stream,
            lambda item: isinstance(item, FileSystemEvent)
            and item.event_type is EventType.CREATED
            and item.path == target,
        )
    finally:
        subscription.stop()

    assert received
    last = received[-1]
    assert isinstance(last, FileSystemEvent)
    assert last.lands_in(downloads)
    assert subscription.stream.closed


def test_subscribe_rejects_missing_directory(tmp_path: Path) -> None:
    with pytest.raises(NotADirectoryError):
        subscribe(tmp_path / "missing")
