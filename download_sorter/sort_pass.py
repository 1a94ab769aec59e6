"""A single scan-classify-move pass over the watched directory."""
from __future__ import annotations

import logging
import time
from pathlib import Path
from typing import Callable, Iterable

from .categories import FALLBACK_CATEGORY, ClassificationTable
from .config import DEFAULT_CONFIG_PATH
from .filters import SystemFileFilter
from .logger import log_event
from .models import FileEntry, SortOutcome, SortReport
from .mover import MoveError, Mover
from .settling import SettlingDetector
from .utils.fs import iter_files

LOGGER_NAME = "download_sorter.sort_pass"

Lister = Callable[[Path], Iterable[Path]]


def list_entries(directory: Path, lister: Lister = iter_files) -> list[FileEntry]:
    """Snapshot the files directly inside *directory*."""

    return [FileEntry.from_path(path) for path in lister(directory)]


class SortPass:
    """Organize the current contents of one directory.

    The classification table is reloaded on every :meth:`run`, so edits to the
    config file apply on the next pass. The pass stops at the first partial
    download it meets; files sorted before that point stay sorted.
    """

    def __init__(
        self,
        directory: Path,
        *,
        config_path: str | Path = DEFAULT_CONFIG_PATH,
        fallback_category: str = FALLBACK_CATEGORY,
        lister: Lister = iter_files,
        mover: Mover | None = None,
        detector: SettlingDetector | None = None,
        system_filter: SystemFileFilter | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        self.directory = Path(directory)
        self.config_path = Path(config_path)
        self.fallback_category = fallback_category
        self._lister = lister
        self.logger = logger or logging.getLogger(LOGGER_NAME)
        self.mover = mover or Mover()
        self.detector = detector or SettlingDetector()
        self.system_filter = system_filter or SystemFileFilter()

    def run(self) -> SortReport:
        started = time.monotonic()
        table = ClassificationTable.load(self.config_path)
        report = SortReport()

        try:
            entries = list_entries(self.directory, self._lister)
        except OSError as exc:
            log_event(
                self.logger,
                level=logging.ERROR,
                action="sort.list_failed",
                message=f"Failed to read contents of {self.directory}",
                path=self.directory,
                extra={"error": repr(exc)},
            )
            return report

        pending = self.detector.pending_names(entries)
        for entry in entries:
            if self.detector.is_in_flight(entry, pending):
                report.outcome = SortOutcome.DEFERRED
                report.in_flight = entry.path
                log_event(
                    self.logger,
                    level=logging.INFO,
                    action="sort.deferred",
                    message=f"Download in progress: {entry.path}",
                    path=entry.path,
                )
                break

            skip_reason = self.system_filter.reason(entry.name)
            if skip_reason:
                report.skipped.append(entry.path)
                log_event(
                    self.logger,
                    level=logging.DEBUG,
                    action="sort.skip",
                    message=f"Skipping {entry.path} ({skip_reason})",
                    path=entry.path,
                )
                continue

            category = table.lookup(entry.extension)
            if category is None:
                category = self.fallback_category
                log_event(
                    self.logger,
                    level=logging.INFO,
                    action="sort.uncategorised",
                    message=f"Uncategorised file: {entry.path}",
                    path=entry.path,
                )

            try:
                report.moved.append(self.mover.move(entry, self.directory, category))
            except MoveError as exc:
                report.failed.append((entry.path, exc.reason))
                self.mover.log_failure(exc, category)

        log_event(
            self.logger,
            level=logging.INFO,
            action="sort.finished",
            message=f"Sort pass {report.outcome.value}",
            path=self.directory,
            duration_ms=round((time.monotonic() - started) * 1000, 3),
            extra=report.to_dict(),
        )
        return report


__all__ = ["SortPass", "list_entries"]
