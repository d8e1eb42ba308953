"""Logging setup for the command line entry point."""

from __future__ import annotations

import logging
import sys

LOGGER_NAME = "ytstreams"

_LEVELS = {
    "error": logging.ERROR,
    "warn": logging.WARNING,
    "info": logging.INFO,
    "debug": logging.DEBUG,
    "trace": logging.DEBUG,
}

_initialized = False


def parse_log_level(level: str) -> int:
    """Map error/warn/info/debug/trace (any case) to a logging level.

    Raises:
        ValueError: On any other name.
    """
    try:
        return _LEVELS[level.strip().lower()]
    except KeyError:
        raise ValueError(
            f"Invalid log level: {level} (expected one of error, warn, info, debug, trace)"
        ) from None


def init_logging(level: str = "info") -> None:
    """Attach a stderr handler to the package logger. Later calls are no-ops."""
    global _initialized
    numeric = parse_log_level(level)
    if _initialized:
        return
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter("[%(levelname)s] %(name)s: %(message)s"))
    logger = logging.getLogger(LOGGER_NAME)
    logger.addHandler(handler)
    logger.setLevel(numeric)
    _initialized = True
    logger.info("Logging initialized at level: %s", level.lower())
