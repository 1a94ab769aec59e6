from __future__ import annotations

import logging
import sys
from pathlib import Path

import pytest

from download_sorter.logger import LOGGER_NAME


@pytest.fixture(autouse=True)
def _reset_package_logger():
    original_hook = sys.excepthook
    yield
    logger = logging.getLogger(LOGGER_NAME)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
    logger.propagate = True
    logger.setLevel(logging.NOTSET)
    sys.excepthook = original_hook


@pytest.fixture()
def downloads(tmp_path: Path) -> Path:
    directory = tmp_path / "Downloads"
    directory.mkdir()
    return directory


@pytest.fixture()
def missing_config(tmp_path: Path) -> Path:
    return tmp_path / "no-config.json"
