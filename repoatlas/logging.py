"""Logging utilities for repoatlas commands.

The JSON report owns stdout, so every handler installed here writes to stderr
or to a file.
"""

from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import Iterable

_LOGGER_NAME = "repoatlas"
_STREAM_FORMAT = "[repoatlas] %(levelname)s %(message)s"
_FILE_FORMAT = "%(asctime)s %(levelname)s %(name)s [%(threadName)s]: %(message)s"

# Report warnings carrying this marker mean the results are partial.
BUDGET_EXHAUSTED_MARKER = "time budget exhausted"


def get_logger(name: str | None = None) -> logging.Logger:
    """Return a module-scoped logger under the repoatlas hierarchy."""
    full_name = f"{_LOGGER_NAME}.{name}" if name else _LOGGER_NAME
    return logging.getLogger(full_name)


def resolve_level(*, verbose: bool = False, quiet: bool = False) -> int:
    """Map CLI flags to a level; ``verbose`` wins when both are set."""
    if verbose:
        return logging.DEBUG
    if quiet:
        return logging.WARNING
    return logging.INFO


def configure_logging(
    *, verbose: bool = False, quiet: bool = False, log_file: Path | None = None
) -> logging.Logger:
    """Attach a stderr handler (and an optional file sink) to the repoatlas logger."""
    level = resolve_level(verbose=verbose, quiet=quiet)
    logger = logging.getLogger(_LOGGER_NAME)
    logger.setLevel(level)
    logger.propagate = False

    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    stream_handler = logging.StreamHandler(sys.stderr)
    stream_handler.setLevel(level)
    stream_handler.setFormatter(logging.Formatter(_STREAM_FORMAT))
    logger.addHandler(stream_handler)

    if log_file is not None:
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        # Pack threads interleave, so the file sink always records everything.
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(logging.Formatter(_FILE_FORMAT))
        logger.addHandler(file_handler)
        logger.setLevel(logging.DEBUG)

    return logger


def log_report_warnings(logger: logging.Logger, warnings: Iterable[str]) -> None:
    """Echo report warnings; partial-result ones survive ``--quiet``."""
    for message in warnings:
        level = logging.WARNING if BUDGET_EXHAUSTED_MARKER in message else logging.INFO
        logger.log(level, message)


__all__ = [
    "BUDGET_EXHAUSTED_MARKER",
    "configure_logging",
    "get_logger",
    "log_report_warnings",
    "resolve_level",
]
