"""Logging configuration using loguru."""

from __future__ import annotations

import sys

from loguru import logger


def configure_logging(*, verbose: bool = False, log_file: str | None = None) -> None:
    """Send tablekit logs to stderr, and optionally to a file.

    ``verbose`` lowers the level to DEBUG, which includes every
    announcement and session lifecycle step.
    """
    logger.remove()
    level = "DEBUG" if verbose else "INFO"
    logger.add(sys.stderr, level=level, format="{level.icon} {message}")
    if log_file:
        logger.add(log_file, level="DEBUG", rotation="10 MB")
