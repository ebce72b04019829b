"""Logging configuration for the music catalog application.

Sync runs log from the ``library-sync`` worker thread, so every record
carries the short name of the thread it was emitted on.
"""

import logging
import logging.handlers
import sys
from pathlib import Path
from typing import Any, Optional

CONSOLE_FORMAT = (
    "%(asctime)s - %(thread_tag)-6s %(location)-28s - %(levelname)s - %(message)s"
)
FILE_FORMAT = (
    "%(asctime)s - %(thread_tag)-6s %(location)-28s - %(levelname)-8s - %(message)s"
)

# Loggers of libraries we depend on, and the level they are capped at
THIRD_PARTY_LEVELS = {
    "sqlalchemy": logging.WARNING,
    "sqlalchemy.engine": logging.WARNING,
    "sqlalchemy.pool": logging.WARNING,
    "alembic": logging.WARNING,
    "mutagen": logging.WARNING,
}


class LocationFormatter(logging.Formatter):
    """Formatter adding ``location`` (file:line) and ``thread_tag`` fields."""

    def format(self, record: Any) -> str:
        """Format log record with location and thread fields."""
        record.location = f"{record.filename}:{record.lineno}"
        record.thread_tag = (
            "sync" if record.threadName.startswith("library-sync") else "main"
        )
        return super().format(record)


class ColoredFormatter(LocationFormatter):
    """Colored log formatter for terminal output."""

    COLORS = {
        "DEBUG": "\033[36m",  # Cyan
        "INFO": "\033[32m",  # Green
        "WARNING": "\033[33m",  # Yellow
        "ERROR": "\033[31m",  # Red
        "CRITICAL": "\033[35m",  # Magenta
    }
    RESET = "\033[0m"

    def format(self, record: Any) -> str:
        """Format log record with a colored, padded level name."""
        levelname = record.levelname
        color = self.COLORS.get(levelname, self.RESET)
        record.levelname = f"{color}{levelname:<8}{self.RESET}"
        try:
            return super().format(record)
        finally:
            record.levelname = levelname


def setup_logging(
    log_level: str = "INFO",
    log_file: Optional[Path] = None,
    console_output: bool = True,
    max_file_size: int = 10 * 1024 * 1024,  # 10MB
    backup_count: int = 5,
) -> None:
    """Set up application logging.

    Console records go to stderr so they never mix with command output on
    stdout.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_file: Optional path to a rotating log file
        console_output: Whether to log to the console
        max_file_size: Maximum size of log file before rotation
        backup_count: Number of rotated log files to keep
    """
    numeric_level = getattr(logging, log_level.upper(), logging.INFO)

    root_logger = logging.getLogger()
    root_logger.setLevel(numeric_level)
    root_logger.handlers.clear()

    if console_output:
        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setLevel(numeric_level)
        formatter_class = (
            ColoredFormatter if sys.stderr.isatty() else LocationFormatter
        )
        console_handler.setFormatter(
            formatter_class(fmt=CONSOLE_FORMAT, datefmt="%H:%M:%S")
        )
        root_logger.addHandler(console_handler)

    if log_file:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.handlers.RotatingFileHandler(
            log_file,
            maxBytes=max_file_size,
            backupCount=backup_count,
            encoding="utf-8",
        )
        file_handler.setLevel(numeric_level)
        file_handler.setFormatter(
            LocationFormatter(fmt=FILE_FORMAT, datefmt="%Y-%m-%d %H:%M:%S")
        )
        root_logger.addHandler(file_handler)

    logger = logging.getLogger(__name__)
    logger.debug("Logging initialized - Level: %s", log_level)
    if log_file:
        logger.info("Log file: %s", log_file)


def configure_third_party_loggers() -> None:
    """Cap third-party library loggers to reduce noise."""
    for name, level in THIRD_PARTY_LEVELS.items():
        logging.getLogger(name).setLevel(level)
