import logging
import logging.handlers
import sys
from pathlib import Path
from typing import Optional

from markpad.core.config import (
    LOG_BACKUP_COUNT,
    LOG_DATE_FORMAT,
    LOG_FILE_NAME,
    LOG_FILE_SIZE,
    LOG_FORMAT,
)


def setup_logging(log_dir: Optional[Path] = None, debug_mode: bool = False) -> Optional[Path]:
    """
    Configure the root logger with a console handler and, when log_dir is
    given, a rotating file handler. Returns the log file path, if any.
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(logging.DEBUG if debug_mode else logging.INFO)

    formatter = logging.Formatter(LOG_FORMAT, datefmt=LOG_DATE_FORMAT)

    # Clean up existing handlers to avoid duplicates when called twice
    if root_logger.hasHandlers():
        root_logger.handlers.clear()

    log_file = None
    if log_dir is not None:
        log_dir.mkdir(parents=True, exist_ok=True)
        log_file = log_dir / LOG_FILE_NAME
        file_handler = logging.handlers.RotatingFileHandler(
            log_file,
            maxBytes=LOG_FILE_SIZE,
            backupCount=LOG_BACKUP_COUNT,
            encoding='utf-8'
        )
        file_handler.setFormatter(formatter)
        file_handler.setLevel(logging.DEBUG)  # Always capture detailed logs to file
        root_logger.addHandler(file_handler)

    # Console goes to stderr so rendered HTML on stdout stays clean
    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setFormatter(formatter)
    console_handler.setLevel(logging.DEBUG if debug_mode else logging.WARNING)
    root_logger.addHandler(console_handler)

    if log_file:
        logging.info(f"Logging initialized. Log file: {log_file}")

    return log_file
