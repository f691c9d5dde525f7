"""Logging configuration for the svn bisect tool."""

import logging
import sys

from .colors import Colors

LOGGER_NAME = "svn-bisect-tool"


class ColoredFormatter(logging.Formatter):
    """Custom formatter with colors based on log level."""

    def _level_color(self, levelno: int) -> str:
        # Looked up per record so Colors.init() after import is honored
        return {
            logging.DEBUG: Colors.DIM,
            logging.INFO: Colors.CYAN,
            logging.WARNING: Colors.YELLOW,
            logging.ERROR: Colors.RED,
            logging.CRITICAL: Colors.BG_RED + Colors.WHITE,
        }.get(levelno, Colors.RESET)

    def format(self, record):
        color = self._level_color(record.levelno)
        record = logging.makeLogRecord(record.__dict__)
        record.levelname = f"{color}{record.levelname}{Colors.RESET}"
        if record.levelno >= logging.WARNING:
            record.msg = f"{color}{record.getMessage()}{Colors.RESET}"
            record.args = None
        return super().format(record)


def get_logger() -> logging.Logger:
    """Return the tool's logger without reconfiguring it."""
    return logging.getLogger(LOGGER_NAME)


def setup_logging(verbose: bool = False) -> logging.Logger:
    """Set up logging with optional verbose mode.

    Args:
        verbose: If True, show DEBUG level messages with level prefix.
                 If False, show INFO+ messages without prefix.

    Returns:
        Configured logger instance.
    """
    logger = get_logger()

    # Remove existing handlers to avoid duplicates
    logger.handlers.clear()
    logger.propagate = False

    logger.setLevel(logging.DEBUG if verbose else logging.INFO)

    # Use stdout instead of stderr for consistent output ordering with print()
    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(logging.DEBUG if verbose else logging.INFO)

    if verbose:
        fmt = "%(levelname)s %(message)s"
    else:
        fmt = "%(message)s"
    handler.setFormatter(ColoredFormatter(fmt))

    logger.addHandler(handler)
    return logger
