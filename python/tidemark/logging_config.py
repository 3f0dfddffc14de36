"""
Logging for the tidemark driver.

One run of `python -m tidemark` is one refresh cycle. Its log lands in a
daily file, .tidemark/logs/tidemark-YYYY-MM-DD.log unless --log-dir says
otherwise. The file gets the INFO refresh summary; --verbose lowers it to
DEBUG, which adds the per-path added/changed/deleted/excluded lists.

stderr always gets warnings and errors so a build pipeline can see why a
cycle failed. With --verbose it mirrors the file. stdout is never used:
it carries the JSON report.
"""

import logging
import logging.handlers
import sys
from datetime import datetime
from pathlib import Path
from typing import Optional

DEFAULT_LOG_DIR = Path(".tidemark") / "logs"
BACKUP_DAYS = 30

FILE_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s:%(funcName)s:%(lineno)d | %(message)s"
CONSOLE_FORMAT = "tidemark: %(levelname)s: %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# Set on every handler configure_logging() installs
_OWNED = "_tidemark_owned"


class FlushingHandler(logging.handlers.TimedRotatingFileHandler):
    """Daily log file that is flushed after every record."""

    def emit(self, record):
        super().emit(record)
        self.flush()


def _remove_owned_handlers(logger: logging.Logger) -> None:
    for handler in list(logger.handlers):
        if getattr(handler, _OWNED, False):
            logger.removeHandler(handler)
            handler.close()


def configure_logging(log_dir: Optional[Path] = None, verbose: bool = False) -> logging.Logger:
    """
    Point the "tidemark" logger at a daily file and at stderr.

    Calling it again replaces the handlers from the previous call, so each
    driver run logs through handlers bound to the current stderr. Handlers
    added by anyone else are left alone.

    Args:
        log_dir: Directory for log files (default: .tidemark/logs under the
            working directory)
        verbose: Log DEBUG to the file and mirror everything to stderr

    Returns:
        Configured "tidemark" logger
    """
    log_dir = Path(log_dir) if log_dir is not None else Path.cwd() / DEFAULT_LOG_DIR
    log_dir.mkdir(parents=True, exist_ok=True)
    level = logging.DEBUG if verbose else logging.INFO

    logger = logging.getLogger("tidemark")
    _remove_owned_handlers(logger)
    logger.setLevel(level)

    log_file = log_dir / f"tidemark-{datetime.now().strftime('%Y-%m-%d')}.log"
    file_handler = FlushingHandler(
        log_file,
        when="midnight",
        interval=1,
        backupCount=BACKUP_DAYS,
        encoding="utf-8",
    )
    file_handler.setFormatter(logging.Formatter(FILE_FORMAT, datefmt=DATE_FORMAT))

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(logging.DEBUG if verbose else logging.WARNING)
    console_handler.setFormatter(logging.Formatter(CONSOLE_FORMAT))

    for handler in (file_handler, console_handler):
        setattr(handler, _OWNED, True)
        logger.addHandler(handler)

    logger.debug(f"Logging to {log_file} at {logging.getLevelName(level)}")
    return logger
