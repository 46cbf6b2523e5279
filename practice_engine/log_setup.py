"""
Loguru sink configuration for the practice engine.

Library code only calls ``logger``; sinks are installed by the entry point.
"""
from __future__ import annotations

import sys

from loguru import logger

DEFAULT_FORMAT = "<dim>{time:HH:mm:ss}</dim> | <level>{level: <8}</level> | {name}:{function} | {message}"


def configure_logging(level: str = "INFO", fmt: str = DEFAULT_FORMAT) -> None:
    """
    Replace the default loguru handler with a single stderr sink.

    Args:
        level: Minimum level to emit (DEBUG, INFO, WARNING, ...)
        fmt: Loguru format string
    """
    logger.remove()
    logger.add(sys.stderr, level=level.upper(), format=fmt)
