"""Runtime options for DownloadSorter."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

DEFAULT_CONFIG_PATH = Path("config.json")
DEFAULT_LOG_PATH = Path("app.log")


@dataclass
class SorterOptions:
    """Options that control how the sorter behaves."""

    directory: Path
    config_path: Path = DEFAULT_CONFIG_PATH
    poll_interval: float = 1.0
    settle_interval: float = 1.0
    fallback_category: str = "Other"
    log_path: Path | None = DEFAULT_LOG_PATH

    def own_files(self) -> list[str]:
        """Names of the sorter's own files that live in the watched directory."""

        watched = self.directory.resolve()
        return [
            path.name
            for path in (self.config_path, self.log_path)
            if path is not None and path.resolve().parent == watched
        ]
