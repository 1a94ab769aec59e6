"""DownloadSorter package exports."""

from .categories import ClassificationTable
from .cli import main as cli_main
from .models import FileEntry, SortOutcome, SortReport
from .sort_pass import SortPass
from .watcher import WatchLoop

__all__ = [
    "ClassificationTable",
    "FileEntry",
    "SortOutcome",
    "SortPass",
    "SortReport",
    "WatchLoop",
    "cli_main",
]
