"""Logging configuration for vidscribe."""

from __future__ import annotations

import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path

from vidscribe.infra.storage import ensure_directory

DEFAULT_LOG_FORMAT = "%(asctime)s - %(levelname)s - [%(name)s:%(lineno)d] - %(message)s"
DEFAULT_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
DEFAULT_LOG_FILE = "vidscribe.log"
NOISY_LOGGERS = ("httpx", "httpcore", "urllib3", "filelock", "huggingface_hub", "transformers")


def setup_logging(
    level: int = logging.INFO,
    *,
    console_level: int | None = None,
    log_dir: Path | None = None,
    log_file: str = DEFAULT_LOG_FILE,
    max_bytes: int = 10 * 1024 * 1024,
    backup_count: int = 5,
) -> Path | None:
    """
    Configure the root logger with a stderr handler and, when ``log_dir`` is
    given, a rotating file handler. ``console_level`` raises the stderr threshold
    independently of the file handler.

    Calling this again replaces previously installed handlers.

    Returns:
        The log file path, or None when file logging is disabled.
    """
    root = logging.getLogger()
    for handler in root.handlers[:]:
        root.removeHandler(handler)
        handler.close()

    root.setLevel(level)
    formatter = logging.Formatter(DEFAULT_LOG_FORMAT, datefmt=DEFAULT_DATE_FORMAT)

    stream_handler = logging.StreamHandler(sys.stderr)
    stream_handler.setFormatter(formatter)
    stream_handler.setLevel(level if console_level is None else console_level)
    root.addHandler(stream_handler)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    if log_dir is None:
        return None

    log_path = ensure_directory(log_dir) / log_file
    file_handler = RotatingFileHandler(
        log_path,
        maxBytes=max_bytes,
        backupCount=backup_count,
        encoding="utf-8",
    )
    file_handler.setFormatter(formatter)
    root.addHandler(file_handler)
    root.info("Logging initialized. Log file: %s", log_path)
    return log_path
