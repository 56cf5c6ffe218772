"""Loguru setup shared by scripts and tests."""

import sys
from typing import Any

from loguru import logger

LOG_FORMAT = "<green>{time:HH:mm:ss}</green> | <level>{level: <8}</level> | <level>{message}</level>"


def setup_logging(level: str = "INFO", sink: Any = sys.stdout) -> None:
    """Replace the default loguru handler with the project format."""
    logger.remove()
    logger.add(sink, colorize=True, format=LOG_FORMAT, level=level)
