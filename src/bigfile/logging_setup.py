"""Logging setup for the bigfile command line tools."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from rich.console import Console
from rich.logging import RichHandler

if TYPE_CHECKING:
    from .config import BigfileConfig

LOGGER_NAME = "bigfile"


def setup_logging(config: BigfileConfig, *, console: Console | None = None) -> logging.Logger:
    """Set up the bigfile logger.

    Args:
        config: Configuration holding the log file and level.
        console: Console for the rich handler. A new one if None.

    Returns:
        Configured logger instance.

    """
    config.validate()

    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(config.log_level_number)

    # Clear existing handlers to avoid duplicates if setup runs again
    if logger.handlers:
        logger.handlers.clear()

    console_handler = RichHandler(
        console=console or Console(stderr=True),
        show_time=True,
        show_path=False,
    )
    console_handler.setLevel(logging.INFO)
    logger.addHandler(console_handler)

    config.log_file.parent.mkdir(parents=True, exist_ok=True)
    file_handler = logging.FileHandler(config.log_file)
    file_handler.setLevel(logging.DEBUG)
    file_handler.setFormatter(logging.Formatter("%(asctime)s | %(levelname)s | %(message)s"))
    logger.addHandler(file_handler)

    return logger
