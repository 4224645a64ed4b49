"""Logging setup for Track Finder.

Everything logs under one "Track Finder" logger tree so a host application
can silence or redirect the engine with a single ``logging.getLogger`` call.
The CLI prints resolved paths on stdout; log lines always go to stderr.
"""

from __future__ import annotations

import logging
import sys
from pathlib import Path

from trackfinder.utils.constants import APP_NAME

_LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def setup_logger(
    log_level: str = "INFO",
    log_file: str | None = None,
) -> logging.Logger:
    """Attach handlers to the engine's root logger.

    Only the first call configures anything; later calls (e.g. a host that
    builds several resolvers) return the logger untouched.

    Args:
        log_level: Level name from the config (DEBUG, INFO, WARNING, ERROR).
        log_file: Optional log file; ``~`` is expanded and parent folders
            are created.

    Returns:
        The "Track Finder" logger.
    """
    logger = logging.getLogger(APP_NAME)
    if logger.handlers:
        return logger

    level = getattr(logging, log_level.upper(), logging.INFO)
    logger.setLevel(level)
    formatter = logging.Formatter(fmt=_LOG_FORMAT, datefmt=_DATE_FORMAT)

    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stderr)]
    if log_file:
        log_path = Path(log_file).expanduser()
        log_path.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_path, encoding="utf-8"))

    for handler in handlers:
        handler.setLevel(level)
        handler.setFormatter(formatter)
        logger.addHandler(handler)

    return logger


def get_logger(module_name: str | None = None) -> logging.Logger:
    """Child logger such as "Track Finder.core.scanner"."""
    base = logging.getLogger(APP_NAME)
    if module_name:
        return base.getChild(module_name)
    return base
