"""
log.py - Logging setup, status lines and per-status statistics

All modules log through the "mediatidy" logger. Lines have a fixed-width
status column followed by the message, for example:

    MOVE             /photos/in/img_1.jpg > /photos/2021-03/20210303-img-1.jpg

Status lines that refer to a file also add the file to the statistics for
that status, so a run can end with a per-status summary table.
"""

import logging
import re
import sys
from pathlib import Path

LOGGER_NAME = "mediatidy"
STATUS_WIDTH = 16


def set_up_logging(destination_dir: Path, verbose: bool, console: bool = True):
    """
    Set up logging to a file in the destination directory.

    Args:
        destination_dir (Path): Directory where log file will be created
        verbose (bool): Whether to enable verbose (DEBUG) logging
        console (bool): Whether to also echo log lines to stdout

    Returns:
        logging.Logger: Configured logger instance

    This function creates a logger that writes to a file named 'events.log'
    in the destination directory. The logging level is set based on the verbose flag.
    """
    logger = logging.getLogger(LOGGER_NAME)

    level = logging.DEBUG if verbose else logging.INFO
    logfile = destination_dir / "events.log"

    # Ensure the log directory exists
    try:
        logfile.parent.mkdir(parents=True, exist_ok=True)
    except Exception as e:
        print(f"Failed to create log directory: {e}")
        sys.exit(1)

    logger.setLevel(level)

    # Drop handlers from a previous session in the same process
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    # Message-only lines, the status column carries the context
    formatter = logging.Formatter("%(message)s")

    fh = logging.FileHandler(logfile, encoding="utf-8")
    fh.setLevel(level)
    fh.setFormatter(formatter)
    logger.addHandler(fh)

    if console:
        ch = logging.StreamHandler(sys.stdout)
        ch.setLevel(level)
        ch.setFormatter(formatter)
        logger.addHandler(ch)

    return logger


def format_status(status: str) -> str:
    """
    Render a status as an upper-case, fixed-width column.

    Example:
        "ok location" -> "OK-LOCATION     "
    """
    upper = re.sub(r"[^A-Z0-9]+", "-", str(status).upper().strip())
    return upper.ljust(STATUS_WIDTH)[:STATUS_WIDTH]


def as_message(*parts) -> str:
    """Join message parts with single spaces, skipping empty ones."""
    return " ".join(text for text in (str(part).strip() for part in parts) if text)


class Statistics:
    """Per-status counters of files and bytes."""

    def __init__(self, name: str = "statistics"):
        self.name = name
        self.data = {}

    def add(self, key: str, size: int):
        count, total = self.data.get(key, (0, 0))
        self.data[key] = (count + 1, total + max(size, 0))

    def count(self, key: str) -> int:
        return self.data.get(key, (0, 0))[0]

    def bytes(self, key: str) -> int:
        return self.data.get(key, (0, 0))[1]

    def items(self):
        return sorted(self.data.items())

    def __repr__(self):
        return f"Statistics({self.name!r}, {self.data!r})"


class StatusLog:
    """
    Thin wrapper around the mediatidy logger that writes status lines and
    keeps the statistics of the current action.
    """

    def __init__(self, logger: logging.Logger = None):
        self.logger = logger or logging.getLogger(LOGGER_NAME)
        self.statistics = Statistics()
        self.errors = []

    def reset_statistics(self, name: str) -> Statistics:
        """Start a new statistics set, returning the previous one."""
        previous = self.statistics
        self.statistics = Statistics(name)
        self.errors = []
        return previous

    def debug(self, status, *parts):
        self.logger.debug(f"{format_status(status)} {as_message(*parts)}")

    def info(self, status, *parts):
        self.logger.info(f"{format_status(status)} {as_message(*parts)}")

    def error(self, status, *parts):
        message = as_message(*parts)
        self.errors.append(f"{status} {message}")
        self.logger.error(f"{format_status(status)} {message}")

    def label(self, status: str = ""):
        self.logger.info(f"{format_status(status)} " + "-" * 64)

    def stat(self, status, path: Path):
        """Record a file in the statistics without logging a line."""
        self.statistics.add(format_status(status).strip(), _size(path))

    def info_stat(self, status, path: Path, *parts):
        self.logger.info(f"{format_status(status)} {as_message(path, *parts)}")
        self.stat(status, path)

    def debug_stat(self, status, path: Path, *parts):
        self.logger.debug(f"{format_status(status)} {as_message(path, *parts)}")
        self.stat(status, path)

    def summary(self):
        """Log the statistics table of the current action."""
        for key, (count, size) in self.statistics.items():
            self.info(key, f"{count} files, {size // (1024 * 1024)} MB")


def _size(path: Path) -> int:
    # Directories and vanished files count as zero bytes
    try:
        path = Path(path)
        return 0 if path.is_dir() else path.stat().st_size
    except OSError:
        return 0
