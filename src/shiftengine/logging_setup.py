"""Logging configuration for the scheduling engine.

Levels used across the package:
    DEBUG: per-block candidate choices, skipped demand rows, rotation offsets
    INFO: run start/end, assignment and shortage counts
    WARNING: shortages, days left unstaffed, pairing fallbacks
    ERROR: precondition failures
"""

import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any, Optional

ROOT_LOGGER_NAME = "shiftengine"


class ColoredFormatter(logging.Formatter):
    """Formatter with ANSI colors for console output."""

    COLORS = {
        logging.DEBUG: "\033[36m",
        logging.INFO: "\033[32m",
        logging.WARNING: "\033[33m",
        logging.ERROR: "\033[31m",
        logging.CRITICAL: "\033[35m",
    }
    RESET = "\033[0m"

    def format(self, record):
        color = self.COLORS.get(record.levelno, "")
        message = super().format(record)
        if color and sys.stderr.isatty():
            return f"{color}{message}{self.RESET}"
        return message


def setup_logging(
    level: str = "INFO",
    log_file: Optional[str] = None,
    console_level: Optional[str] = None,
    max_bytes: int = 5 * 1024 * 1024,
    backup_count: int = 3,
) -> logging.Logger:
    """Configure the package logger.

    Args:
        level: Minimum level written to the log file.
        log_file: Path to a rotating log file (None disables file logging).
        console_level: Console level (defaults to level).
        max_bytes: Size at which the log file is rotated.
        backup_count: Number of rotated files to keep.

    Returns:
        The configured ``shiftengine`` logger.
    """
    logger = logging.getLogger(ROOT_LOGGER_NAME)
    logger.setLevel(logging.DEBUG)
    logger.handlers.clear()

    file_level = getattr(logging, level.upper(), logging.INFO)
    cons_level = getattr(logging, (console_level or level).upper(), logging.INFO)

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(cons_level)
    console_handler.setFormatter(ColoredFormatter(
        "[%(asctime)s] %(levelname)-7s %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    ))
    logger.addHandler(console_handler)

    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = RotatingFileHandler(
            log_path,
            maxBytes=max_bytes,
            backupCount=backup_count,
            encoding="utf-8",
        )
        file_handler.setLevel(file_level)
        file_handler.setFormatter(logging.Formatter(
            "%(asctime)s | %(levelname)-8s | %(name)s:%(funcName)s:%(lineno)d | %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        ))
        logger.addHandler(file_handler)

    logger.debug(
        "Logging initialized: console=%s, file=%s",
        logging.getLevelName(cons_level),
        logging.getLevelName(file_level) if log_file else "disabled",
    )
    return logger


def get_logger(name: str) -> logging.Logger:
    """Get a logger for a module of the package.

    Args:
        name: Module name, usually ``__name__``.
    """
    return logging.getLogger(name)


class RunLogger:
    """Structured logger for the phases of one generation run."""

    def __init__(self, name: str = f"{ROOT_LOGGER_NAME}.run"):
        self.logger = logging.getLogger(name)

    def phase(self, name: str) -> None:
        """Log the start of a major phase."""
        self.logger.info("%s %s %s", "=" * 10, name, "=" * 10)

    def step(self, description: str, *args: Any) -> None:
        """Log a step within a phase."""
        self.logger.info("  > " + description, *args)

    def detail(self, key: str, value: Any) -> None:
        """Log a detail at DEBUG level."""
        self.logger.debug("    %s: %s", key, value)
