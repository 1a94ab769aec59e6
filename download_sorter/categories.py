"""Extension based category table."""
from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Iterable, Iterator, Mapping, Sequence

from .config import DEFAULT_CONFIG_PATH
from .logger import log_event
from .models import Category

LOGGER_NAME = "download_sorter.categories"

FALLBACK_CATEGORY = "Other"

DEFAULT_CATEGORIES: Mapping[str, Sequence[str]] = {
    "Documents": ("txt", "pdf", "docx", "xlsx", "odt"),
    "Archives": ("zip", "rar", "7z"),
    "Executables": ("exe", "msi"),
    "Images": ("png", "jpg", "jpeg", "gif", "bmp", "svg", "webp"),
    "Videos": ("mp4", "mov", "avi", "webm", "mkv", "wmv"),
    "Audio": ("mp3", "wav", "ogg", "flac", "m4a"),
}


class ConfigurationError(ValueError):
    """Raised internally when a category source has the wrong shape."""


def normalise_extension(value: str) -> str:
    return value.strip().lstrip(".").lower()


class ClassificationTable:
    """Ordered mapping from category name to the extensions it claims.

    Lookups walk the categories in declaration order and return the first
    match, so an extension listed under two categories always resolves to the
    one declared first.
    """

    def __init__(self, categories: Iterable[Category]) -> None:
        self.categories: tuple[Category, ...] = tuple(categories)

    @classmethod
    def from_mapping(cls, mapping: Mapping[str, Iterable[str]]) -> "ClassificationTable":
        return cls(
            Category(name=name, extensions=tuple(normalise_extension(ext) for ext in extensions))
            for name, extensions in mapping.items()
        )

    @classmethod
    def default(cls) -> "ClassificationTable":
        return cls.from_mapping(DEFAULT_CATEGORIES)

    @classmethod
    def load(
        cls,
        source: str | Path = DEFAULT_CONFIG_PATH,
        *,
        logger: logging.Logger | None = None,
    ) -> "ClassificationTable":
        """Load the table from *source*, falling back to the built-in defaults.

        Never raises: a missing, unreadable or malformed source is logged and
        replaced by :data:`DEFAULT_CATEGORIES`.
        """

        logger = logger or logging.getLogger(LOGGER_NAME)
        path = Path(source)
        try:
            raw = json.loads(path.read_text(encoding="utf-8"))
            table = cls.from_mapping(_validate(raw))
        except FileNotFoundError:
            log_event(
                logger,
                level=logging.INFO,
                action="config.missing",
                message="Category config not found; using built-in defaults",
                path=path,
            )
            table = cls.default()
        except (OSError, UnicodeDecodeError) as exc:
            log_event(
                logger,
                level=logging.WARNING,
                action="config.unreadable",
                message="Failed to read category config; using built-in defaults",
                path=path,
                extra={"error": repr(exc)},
            )
            table = cls.default()
        except json.JSONDecodeError as exc:
            log_event(
                logger,
                level=logging.WARNING,
                action="config.invalid_json",
                message="Category config is not valid JSON; using built-in defaults",
                path=path,
                extra={"error": exc.msg, "line": exc.lineno, "column": exc.colno},
            )
            table = cls.default()
        except RecursionError:
            log_event(
                logger,
                level=logging.WARNING,
                action="config.invalid_json",
                message="Category config is nested too deeply; using built-in defaults",
                path=path,
            )
            table = cls.default()
        except ConfigurationError as exc:
            log_event(
                logger,
                level=logging.WARNING,
                action="config.invalid_structure",
                message="Category config has the wrong structure; using built-in defaults",
                path=path,
                extra={"error": str(exc)},
            )
            table = cls.default()

        for category in table:
            log_event(
                logger,
                level=logging.INFO,
                action="config.category",
                message=f"{category.name}: {', '.join(category.extensions)}",
            )
        for extension, names in table.overlaps().items():
            log_event(
                logger,
                level=logging.WARNING,
                action="config.overlap",
                message=f"Extension {extension!r} is claimed by several categories; {names[0]!r} wins",
                extra={"extension": extension, "categories": list(names)},
            )
        return table

    def lookup(self, extension: str) -> str | None:
        """Return the first category claiming *extension*, or ``None``."""

        for category in self.categories:
            if category.claims(extension):
                return category.name
        return None

    def overlaps(self) -> dict[str, tuple[str, ...]]:
        """Map every extension claimed more than once to its claimants."""

        owners: dict[str, list[str]] = {}
        for category in self.categories:
            for extension in dict.fromkeys(category.extensions):
                owners.setdefault(extension, []).append(category.name)
        return {ext: tuple(names) for ext, names in owners.items() if len(names) > 1}

    def as_dict(self) -> dict[str, list[str]]:
        return {category.name: list(category.extensions) for category in self.categories}

    def __iter__(self) -> Iterator[Category]:
        return iter(self.categories)

    def __len__(self) -> int:
        return len(self.categories)


def _validate(raw: Any) -> Mapping[str, list[str]]:
    if not isinstance(raw, dict):
        raise ConfigurationError(f"expected an object at the top level, got {type(raw).__name__}")
    if not raw:
        raise ConfigurationError("no categories defined")
    for name, extensions in raw.items():
        if not name.strip():
            raise ConfigurationError("category names must not be empty")
        if name in {".", ".."} or "/" in name or "\\" in name:
            raise ConfigurationError(f"category {name!r} is not a plain folder name")
        if not isinstance(extensions, list):
            raise ConfigurationError(f"category {name!r} must map to a list of extensions")
        for extension in extensions:
            if not isinstance(extension, str) or not normalise_extension(extension):
                raise ConfigurationError(f"category {name!r} has an invalid extension {extension!r}")
    return raw


__all__ = [
    "ClassificationTable",
    "DEFAULT_CATEGORIES",
    "FALLBACK_CATEGORY",
    "normalise_extension",
]
