"""
Logging utilities with size-based file rotation and automatic cleanup.

Key Features:
    - One shared log file per process run, grouped in date directories
    - Rotation that survives permission errors instead of crashing the app
    - Log level and file logging controlled by environment variables
    - Automatic removal of logs older than a week
"""

import datetime
import logging
import os
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path

LOG_DIR = Path(os.getenv("LOG_DIR", "logs"))
LOG_FILE_BASENAME = "kanban_app"

LOG_FORMAT = (
    "%(asctime)s - %(name)s - %(levelname)s - [%(filename)s:%(lineno)d] - %(message)s"
)
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
CONSOLE_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
DEFAULT_LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
LOG_TO_FILE = os.getenv("LOG_TO_FILE", "true").lower() in ("1", "true", "yes")

MAX_LOG_SIZE_MB = 5
MAX_LOG_SIZE_BYTES = MAX_LOG_SIZE_MB * 1024 * 1024
MAX_BACKUP_COUNT = 10

# All loggers of one run share this file
_GLOBAL_LOG_FILE: Path | None = None


def _global_log_file() -> Path:
    global _GLOBAL_LOG_FILE
    if _GLOBAL_LOG_FILE is None:
        now = datetime.datetime.now()
        date_dir = LOG_DIR / now.strftime("%Y-%m-%d")
        date_dir.mkdir(parents=True, exist_ok=True)
        run_timestamp = now.strftime("%Y-%m-%d_%H-%M-%S")
        _GLOBAL_LOG_FILE = date_dir / f"{LOG_FILE_BASENAME}_{run_timestamp}.log"
    return _GLOBAL_LOG_FILE


class SafeRotatingFileHandler(RotatingFileHandler):
    """Size-based rotation handler that keeps writing when rollover fails."""

    def doRollover(self):
        try:
            super().doRollover()
        except (OSError, PermissionError) as e:
            # The logger itself cannot be used here
            sys.stderr.write(
                f"Log rotation failed: {e}. Continuing with current log file.\n"
            )
            sys.stderr.flush()


def _get_log_level(level_str: str) -> int:
    level_map = {
        "DEBUG": logging.DEBUG,
        "INFO": logging.INFO,
        "WARNING": logging.WARNING,
        "ERROR": logging.ERROR,
        "CRITICAL": logging.CRITICAL,
    }
    return level_map.get(level_str.upper(), logging.INFO)


def setup_logger(name: str, level: str = None) -> logging.Logger:
    """Set up logger with a console handler and, unless disabled, a file handler."""
    logger = logging.getLogger(name)
    log_level = _get_log_level(level or DEFAULT_LOG_LEVEL)
    logger.setLevel(log_level)

    # Avoid adding handlers multiple times
    if logger.handlers:
        return logger

    console_handler = logging.StreamHandler()
    console_handler.setLevel(log_level)
    console_handler.setFormatter(logging.Formatter(CONSOLE_FORMAT, DATE_FORMAT))
    logger.addHandler(console_handler)

    if LOG_TO_FILE:
        file_handler = SafeRotatingFileHandler(
            _global_log_file(),
            maxBytes=MAX_LOG_SIZE_BYTES,
            backupCount=MAX_BACKUP_COUNT,
            encoding="utf-8",
        )
        file_handler.setLevel(log_level)
        file_handler.setFormatter(logging.Formatter(LOG_FORMAT, DATE_FORMAT))
        logger.addHandler(file_handler)
        cleanup_old_logs(keep_days=7)

    return logger


def cleanup_old_logs(keep_days: int = 7):
    """Delete date directories and log files older than ``keep_days``."""
    if not LOG_DIR.exists():
        return
    cutoff_time = datetime.datetime.now() - datetime.timedelta(days=keep_days)
    deleted_count = 0
    failed_count = 0

    for date_dir in LOG_DIR.iterdir():
        if not date_dir.is_dir():
            continue
        try:
            dir_date = datetime.datetime.strptime(date_dir.name, "%Y-%m-%d")
        except ValueError:
            # Not one of ours
            continue
        if dir_date >= cutoff_time:
            continue
        for log_file in date_dir.iterdir():
            try:
                log_file.unlink()
                deleted_count += 1
            except (PermissionError, FileNotFoundError):
                failed_count += 1
        try:
            date_dir.rmdir()
        except OSError:
            failed_count += 1

    if deleted_count > 0 or failed_count > 0:
        sys.stderr.write(
            f"Log cleanup completed: {deleted_count} files deleted, {failed_count} files failed to delete\n"
        )
