"""Command line interface for DownloadSorter."""
from __future__ import annotations

import argparse
import logging
from pathlib import Path

from .config import DEFAULT_CONFIG_PATH, DEFAULT_LOG_PATH, SorterOptions
from .filters import FilterRule, SystemFileFilter
from .locations import resolve_downloads_directory
from .logger import configure_logging, install_excepthook, log_event
from .sort_pass import SortPass
from .watcher.backend import subscribe
from .watcher.loop import WatchLoop
from .watcher.types import NotificationChannelClosed, WatchSetupError

EXIT_DEFERRED = 3


def main(argv: list[str] | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)

    log_path = None if args.no_log_file else args.log_file
    logger = configure_logging(log_path, level=logging.DEBUG if args.verbose else logging.INFO)
    install_excepthook(logger)

    directory = args.directory or resolve_downloads_directory()
    if directory is None or not directory.is_dir():
        log_event(
            logger,
            level=logging.ERROR,
            action="startup.no_directory",
            message="Failed to get download directory",
            path=directory,
        )
        return 0

    options = SorterOptions(
        directory=directory,
        config_path=args.config,
        poll_interval=args.poll_interval,
        settle_interval=args.settle_interval,
        log_path=log_path,
    )
    handler = getattr(args, "handler", _handle_watch)
    return handler(options, logger)


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="download-sorter",
        description="Sort a downloads folder into category subfolders by file extension",
    )
    parser.add_argument("--directory", type=Path, help="Directory to organize (default: Downloads)")
    parser.add_argument("--config", type=Path, default=DEFAULT_CONFIG_PATH, help="Category config JSON")
    parser.add_argument("--log-file", type=Path, default=DEFAULT_LOG_PATH)
    parser.add_argument("--no-log-file", action="store_true", help="Only log to stdout")
    parser.add_argument("--poll-interval", type=float, default=1.0, help=argparse.SUPPRESS)
    parser.add_argument("--settle-interval", type=float, default=1.0, help="Seconds between re-checks while downloads finish")
    parser.add_argument("-v", "--verbose", action="store_true")

    subparsers = parser.add_subparsers(dest="command")

    watch = subparsers.add_parser("watch", help="Sort now, then keep watching (default)")
    watch.set_defaults(handler=_handle_watch)

    sort = subparsers.add_parser("sort", help="Run a single sort pass and exit")
    sort.set_defaults(handler=_handle_sort)

    return parser


def _build_sort_pass(options: SorterOptions) -> SortPass:
    # Rotated logs (app.log.1, ...) share the prefix.
    own_files = [FilterRule(name, "startsWith", "sorter file") for name in options.own_files()]
    return SortPass(
        options.directory,
        config_path=options.config_path,
        fallback_category=options.fallback_category,
        system_filter=SystemFileFilter(own_files),
    )


def _handle_sort(options: SorterOptions, logger: logging.Logger) -> int:
    report = _build_sort_pass(options).run()
    return EXIT_DEFERRED if report.deferred else 0


def _handle_watch(options: SorterOptions, logger: logging.Logger) -> int:
    loop = WatchLoop(
        options.directory,
        _build_sort_pass(options),
        subscriber=subscribe,
        poll_interval=options.poll_interval,
        settle_interval=options.settle_interval,
    )
    try:
        loop.run()
    except KeyboardInterrupt:
        loop.stop()
        log_event(logger, level=logging.INFO, action="process.interrupted", message="Interrupted; exiting")
        return 0
    except (WatchSetupError, NotificationChannelClosed) as exc:
        log_event(
            logger,
            level=logging.ERROR,
            action="process.fatal",
            message=str(exc),
            path=options.directory,
        )
        return 1
    return 0


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
