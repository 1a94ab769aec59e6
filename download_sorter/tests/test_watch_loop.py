"""Tests for :mod:`download_sorter.watcher.loop`."""
from __future__ import annotations

import json
import logging
import threading
import time
from pathlib import Path
from typing import Callable

import pytest

from download_sorter.models import SortOutcome, SortReport
from download_sorter.watcher.backend import NotificationStream
from download_sorter.watcher.loop import LoopState, WatchLoop
from download_sorter.watcher.types import (
    EventType,
    FileSystemEvent,
    NotificationChannelClosed,
    NotificationError,
    WatchSetupError,
)


class ScriptedPass:
    """Sort pass double returning a fixed sequence of outcomes."""

    def __init__(self, *outcomes: SortOutcome) -> None:
        self.outcomes = list(outcomes)
        self.calls = 0
        self.after: Callable[["ScriptedPass"], None] | None = None

    def run(self) -> SortReport:
        self.calls += 1
        outcome = self.outcomes.pop(0) if self.outcomes else SortOutcome.COMPLETED
        if self.after:
            self.after(self)
        return SortReport(outcome=outcome)


class FakeSubscription:
    def __init__(self) -> None:
        self.stream = NotificationStream()
        self.stopped = False
        self.requests: list[tuple[Path, bool]] = []

    def __call__(self, path: Path, recursive: bool) -> "FakeSubscription":
        self.requests.append((path, recursive))
        return self

    def stop(self) -> None:
        self.stopped = True
        self.stream.close()


def make_loop(directory: Path, sort_pass: ScriptedPass, subscription, **kwargs) -> WatchLoop:
    kwargs.setdefault("poll_interval", 0.01)
    kwargs.setdefault("settle_interval", 0.0)
    return WatchLoop(directory, sort_pass, subscriber=subscription, **kwargs)


def stop_after(loop: WatchLoop, calls: int) -> Callable[[ScriptedPass], None]:
    def hook(sort_pass: ScriptedPass) -> None:
        if sort_pass.calls >= calls:
            loop.stop()

    return hook


def created(path: Path, *, is_directory: bool = False) -> FileSystemEvent:
    return FileSystemEvent(path=path, event_type=EventType.CREATED, is_directory=is_directory)


def test_startup_pass_runs_before_subscribing(downloads: Path) -> None:
    sort_pass = ScriptedPass()
    subscription = FakeSubscription()
    loop = make_loop(downloads, sort_pass, subscription)
    sort_pass.after = stop_after(loop, 1)

    loop.run()

    assert sort_pass.calls == 1
    assert subscription.requests == [(downloads, False)]
    assert subscription.stopped
    assert loop.state is LoopState.STOPPED


def test_creation_event_triggers_pass(downloads: Path) -> None:
    sort_pass = ScriptedPass()
    subscription = FakeSubscription()
    loop = make_loop(downloads, sort_pass, subscription)
    sort_pass.after = stop_after(loop, 2)
    subscription.stream.publish(created(downloads / "report.pdf"))

    loop.run()

    assert sort_pass.calls == 2


def test_file_renamed_into_directory_triggers_pass(downloads: Path) -> None:
    sort_pass = ScriptedPass()
    subscription = FakeSubscription()
    loop = make_loop(downloads, sort_pass, subscription)
    sort_pass.after = stop_after(loop, 2)
    subscription.stream.publish(
        FileSystemEvent(
            path=downloads / "setup.exe.crdownload",
            event_type=EventType.MOVED,
            dest_path=downloads / "setup.exe",
        )
    )

    loop.run()

    assert sort_pass.calls == 2


def test_deferred_pass_is_retried_until_completed(downloads: Path) -> None:
    sort_pass = ScriptedPass(SortOutcome.DEFERRED, SortOutcome.DEFERRED, SortOutcome.COMPLETED)
    states: list[LoopState] = []
    subscription = FakeSubscription()
    loop = make_loop(downloads, sort_pass, subscription, settle_interval=0.01)

    def hook(pass_: ScriptedPass) -> None:
        states.append(loop.state)
        if pass_.calls >= 3:
            loop.stop()

    sort_pass.after = hook
    loop.run()

    assert sort_pass.calls == loop.passes == 3
    assert states == [LoopState.IDLE, LoopState.DRAINING, LoopState.DRAINING]


def test_events_are_absorbed_while_draining(downloads: Path) -> None:
    sort_pass = ScriptedPass(SortOutcome.DEFERRED, SortOutcome.COMPLETED)
    subscription = FakeSubscription()
    loop = make_loop(downloads, sort_pass, subscription, settle_interval=0.2)
    sort_pass.after = stop_after(loop, 2)
    for name in ("a.pdf", "b.pdf", "c.pdf"):
        subscription.stream.publish(created(downloads / name))

    loop.run()

    assert sort_pass.calls == loop.passes == 2


def test_irrelevant_events_and_errors_do_not_trigger_passes(
    downloads: Path, caplog: pytest.LogCaptureFixture
) -> None:
    sort_pass = ScriptedPass()
    subscription = FakeSubscription()
    loop = make_loop(downloads, sort_pass, subscription)
    sort_pass.after = stop_after(loop, 2)
    stream = subscription.stream
    stream.publish(created(downloads / "Documents", is_directory=True))
    stream.publish(created(downloads / "Documents" / "report.pdf"))
    stream.publish(FileSystemEvent(path=downloads / "report.pdf", event_type=EventType.MODIFIED))
    stream.publish(FileSystemEvent(path=downloads / "old.pdf", event_type=EventType.DELETED))
    stream.publish(NotificationError(message="inotify overflow"))
    stream.publish(created(downloads / "new.zip"))

    with caplog.at_level(logging.INFO, logger="download_sorter"):
        loop.run()

    assert sort_pass.calls == 2
    actions = [json.loads(record.getMessage())["action"] for record in caplog.records]
    assert "watch.error" in actions


def test_subscription_failure_is_fatal(downloads: Path) -> None:
    sort_pass = ScriptedPass()

    def broken(path: Path, recursive: bool):
        raise OSError("inotify watch limit reached")

    loop = make_loop(downloads, sort_pass, broken)

    with pytest.raises(WatchSetupError):
        loop.run()

    assert sort_pass.calls == 1
    assert loop.state is LoopState.STOPPED


def test_closed_channel_stops_loop(downloads: Path) -> None:
    sort_pass = ScriptedPass()
    subscription = FakeSubscription()
    subscription.stream.close()
    loop = make_loop(downloads, sort_pass, subscription)

    with pytest.raises(NotificationChannelClosed):
        loop.run()

    assert subscription.stopped
    assert loop.state is LoopState.STOPPED


def test_stop_cancels_pending_retry(downloads: Path) -> None:
    sort_pass = ScriptedPass(SortOutcome.DEFERRED, SortOutcome.DEFERRED)
    subscription = FakeSubscription()
    loop = make_loop(downloads, sort_pass, subscription, poll_interval=0.05, settle_interval=30)
    worker = threading.Thread(target=loop.run, daemon=True)
    worker.start()

    deadline = time.monotonic() + 2
    while loop.state is not LoopState.DRAINING and time.monotonic() < deadline:
        time.sleep(0.01)
    loop.stop()
    worker.join(timeout=2)

    assert not worker.is_alive()
    assert sort_pass.calls == loop.passes == 1
    assert loop.state is LoopState.STOPPED


def test_invalid_intervals_are_rejected(downloads: Path) -> None:
    with pytest.raises(ValueError):
        WatchLoop(downloads, ScriptedPass(), poll_interval=0)
    with pytest.raises(ValueError):
        WatchLoop(downloads, ScriptedPass(), settle_interval=-1)
