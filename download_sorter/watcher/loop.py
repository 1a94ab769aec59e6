"""Watch a directory and sort it whenever new files land."""
from __future__ import annotations

import logging
import threading
import time
from enum import Enum
from pathlib import Path
from queue import Empty
from typing import Callable, Protocol

from ..logger import log_event
from ..models import SortReport
from .backend import NotificationStream, subscribe
from .types import FileSystemEvent, NotificationChannelClosed, NotificationError, WatchSetupError

LOGGER_NAME = "download_sorter.watcher"


class LoopState(str, Enum):
    IDLE = "idle"
    DRAINING = "draining"
    STOPPED = "stopped"


class SupportsRun(Protocol):
    def run(self) -> SortReport: ...


class SupportsStream(Protocol):
    stream: NotificationStream

    def stop(self) -> None: ...


Subscriber = Callable[[Path, bool], SupportsStream]


class WatchLoop:
    """Run sort passes in response to directory notifications.

    A pass that finds a partial download puts the loop into ``DRAINING``: a
    re-check is scheduled ``settle_interval`` seconds later and repeated until a
    pass completes. Notifications keep being consumed while draining; new files
    are picked up by the re-check because every pass re-lists the directory.
    """

    def __init__(
        self,
        directory: Path,
        sort_pass: SupportsRun,
        *,
        subscriber: Subscriber = subscribe,
        poll_interval: float = 1.0,
        settle_interval: float = 1.0,
        logger: logging.Logger | None = None,
    ) -> None:
        if poll_interval <= 0:
            raise ValueError("poll_interval must be positive")
        if settle_interval < 0:
            raise ValueError("settle_interval must not be negative")

        self.directory = Path(directory)
        self.sort_pass = sort_pass
        self.poll_interval = poll_interval
        self.settle_interval = settle_interval
        self.logger = logger or logging.getLogger(LOGGER_NAME)
        self.state = LoopState.IDLE
        self.passes = 0
        self._subscriber = subscriber
        self._retry_at: float | None = None
        self._stop_event = threading.Event()

    def run(self) -> None:
        """Sort once, then watch until :meth:`stop` or a fatal channel error.

        Raises :class:`WatchSetupError` if the subscription cannot be made and
        :class:`NotificationChannelClosed` if the notification channel breaks.
        """

        self._stop_event.clear()
        self.state = LoopState.IDLE
        self._run_pass()

        try:
            subscription = self._subscriber(self.directory, False)
        except Exception as exc:
            self.state = LoopState.STOPPED
            log_event(
                self.logger,
                level=logging.ERROR,
                action="watch.setup_failed",
                message=f"Failed to watch {self.directory}",
                path=self.directory,
                extra={"error": repr(exc)},
            )
            raise WatchSetupError(f"Cannot watch {self.directory}: {exc}") from exc

        log_event(
            self.logger,
            level=logging.INFO,
            action="watch.started",
            message=f"Beginning to monitor {self.directory} for changes",
            path=self.directory,
        )
        try:
            self._consume(subscription.stream)
        finally:
            subscription.stop()
            self._retry_at = None
            self.state = LoopState.STOPPED
            log_event(
                self.logger,
                level=logging.INFO,
                action="watch.stopped",
                message=f"Stopped monitoring {self.directory}",
                path=self.directory,
            )

    def stop(self) -> None:
        """Ask the loop to exit and cancel any pending re-check."""

        self._stop_event.set()
        self._retry_at = None

    @property
    def stopping(self) -> bool:
        return self._stop_event.is_set()

    def _consume(self, stream: NotificationStream) -> None:
        while not self._stop_event.is_set():
            try:
                item = stream.receive(timeout=self._next_timeout())
            except Empty:
                item = None
            except NotificationChannelClosed as exc:
                if self._stop_event.is_set():
                    return
                log_event(
                    self.logger,
                    level=logging.ERROR,
                    action="watch.channel_closed",
                    message="Notification channel failed; stopping",
                    path=self.directory,
                    extra={"error": repr(exc)},
                )
                raise

            if isinstance(item, NotificationError):
                log_event(
                    self.logger,
                    level=logging.ERROR,
                    action="watch.error",
                    message=f"Watch error: {item.message}",
                    extra={"error": item.error},
                )
            elif item is not None:
                self._handle_event(item)

            if self._retry_due():
                self._run_pass()

    def _handle_event(self, event: FileSystemEvent) -> None:
        log_event(
            self.logger,
            level=logging.DEBUG,
            action="watch.event",
            message=f"Event detected: {event.event_type.name} {event.path}",
            path=event.dest_path or event.path,
        )
        if not event.lands_in(self.directory):
            return
        if self.state is LoopState.DRAINING:
            # The scheduled re-check re-lists the directory and covers this file.
            return
        self._run_pass()

    def _run_pass(self) -> None:
        if self._stop_event.is_set():
            return
        self.passes += 1
        try:
            report = self.sort_pass.run()
        except Exception as exc:  # pragma: no cover - defensive
            log_event(
                self.logger,
                level=logging.ERROR,
                action="watch.pass_error",
                message="Sort pass raised an exception",
                path=self.directory,
                extra={"error": repr(exc)},
            )
            self.state = LoopState.IDLE
            self._retry_at = None
            return

        if report.deferred:
            self.state = LoopState.DRAINING
            self._retry_at = time.monotonic() + self.settle_interval
            log_event(
                self.logger,
                level=logging.INFO,
                action="watch.settling",
                message=f"Waiting {self.settle_interval}s for downloads to finish",
                path=report.in_flight,
            )
        else:
            self.state = LoopState.IDLE
            self._retry_at = None

    def _retry_due(self) -> bool:
        return (
            self.state is LoopState.DRAINING
            and self._retry_at is not None
            and time.monotonic() >= self._retry_at
        )

    def _next_timeout(self) -> float:
        if self._retry_at is None:
            return self.poll_interval
        return max(0.0, min(self.poll_interval, self._retry_at - time.monotonic()))


__all__ = ["LoopState", "WatchLoop"]
