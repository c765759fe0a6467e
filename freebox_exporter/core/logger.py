"""Logging setup: daily rotated log file plus console output."""

from __future__ import annotations

import gzip
import logging
import os
import shutil
import sys
from logging.handlers import TimedRotatingFileHandler
from pathlib import Path

from ..const import LOG_FILE_NAME

_LEVELS = {
    "off": logging.CRITICAL + 10,
    "error": logging.ERROR,
    "warn": logging.WARNING,
    "info": logging.INFO,
    "debug": logging.DEBUG,
    "trace": logging.DEBUG,
}

_FORMAT = "%(asctime)s %(levelname)-7s [%(threadName)s] %(name)s: %(message)s"

# Third-party loggers that are only interesting when debugging
_NOISY_LOGGERS = ("urllib3", "prometheus_client")


def level_from_name(name: str) -> int:
    """Map a configured level name (case-insensitive) to a logging level."""
    try:
        return _LEVELS[name.lower()]
    except KeyError as err:
        raise ValueError(f"Unknown log level {name!r}") from err


class ThirdPartyFilter(logging.Filter):
    """Drop records from noisy libraries unless they are DEBUG or lower."""

    def filter(self, record: logging.LogRecord) -> bool:
        if record.name.split(".")[0] in _NOISY_LOGGERS:
            return record.levelno <= logging.DEBUG
        return True


def _gzip_namer(name: str) -> str:
    return f"{name}.gz"


def _gzip_rotator(source: str, dest: str) -> None:
    with open(source, "rb") as src, gzip.open(dest, "wb") as dst:
        shutil.copyfileobj(src, dst)
    os.remove(source)


def setup_logging(data_directory: Path | str | None, level: str = "info", retention_days: int = 31) -> None:
    """Configure the root logger.

    Args:
        data_directory: Directory for the rotated log file. None logs to
            the console only.
        level: One of off, error, warn, info, debug, trace.
        retention_days: Number of rotated daily files kept.
    """
    root = logging.getLogger()
    for handler in list(root.handlers):
        root.removeHandler(handler)
        handler.close()

    numeric_level = level_from_name(level)
    root.setLevel(numeric_level)
    formatter = logging.Formatter(_FORMAT)
    third_party = ThirdPartyFilter()

    console = logging.StreamHandler(sys.stdout)
    console.setFormatter(formatter)
    console.setLevel(max(numeric_level, logging.INFO))
    console.addFilter(third_party)
    root.addHandler(console)

    if data_directory is None or numeric_level > logging.CRITICAL:
        return

    file_handler = TimedRotatingFileHandler(
        Path(data_directory) / LOG_FILE_NAME,
        when="midnight",
        backupCount=max(retention_days, 0),
        encoding="utf-8",
    )
    file_handler.namer = _gzip_namer
    file_handler.rotator = _gzip_rotator
    file_handler.setFormatter(formatter)
    file_handler.addFilter(third_party)
    root.addHandler(file_handler)
