"""Core dataclasses shared across DownloadSorter modules."""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path


def extension_of(path: Path) -> str:
    """Return the lower-cased extension of *path* without the leading dot."""

    return path.suffix[1:].lower()


@dataclass(frozen=True, slots=True)
class Category:
    """Destination folder name plus the extensions it claims."""

    name: str
    extensions: tuple[str, ...]

    def claims(self, extension: str) -> bool:
        return extension in self.extensions


@dataclass(frozen=True, slots=True)
class FileEntry:
    """A file discovered in the watched directory during a single pass."""

    path: Path
    extension: str

    @classmethod
    def from_path(cls, path: Path) -> "FileEntry":
        return cls(path=path, extension=extension_of(path))

    @property
    def name(self) -> str:
        return self.path.name


class SortOutcome(str, Enum):
    """Result of one sort pass."""

    COMPLETED = "completed"
    DEFERRED = "deferred"


@dataclass(slots=True)
class SortReport:
    """Aggregated result produced by :class:`~download_sorter.sort_pass.SortPass`."""

    outcome: SortOutcome = SortOutcome.COMPLETED
    moved: list[Path] = field(default_factory=list)
    skipped: list[Path] = field(default_factory=list)
    failed: list[tuple[Path, str]] = field(default_factory=list)
    in_flight: Path | None = None

    @property
    def deferred(self) -> bool:
        return self.outcome is SortOutcome.DEFERRED

    def to_dict(self) -> dict[str, object]:
        """Serialize the report for log output."""

        return {
            "outcome": self.outcome.value,
            "moved": len(self.moved),
            "skipped": len(self.skipped),
            "failed": len(self.failed),
            "in_flight": str(self.in_flight) if self.in_flight else None,
        }
