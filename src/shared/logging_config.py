"""Logging configuration and setup.

This module provides thread-safe logging configuration with file rotation
and console output. Brand workers log through the root logger with a
``[slug]`` prefix, so a single configuration covers every thread.
"""

import logging
import threading
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional

from src.shared.constants import LOGGING

__all__ = [
    'LOG_FORMAT',
    'setup_logging',
]


LOG_FORMAT = '%(asctime)s - %(levelname)s - %(message)s'

# Brand workers may race to configure logging
_logging_lock = threading.Lock()


def setup_logging(
    log_file: Optional[str] = LOGGING.DEFAULT_LOG_FILE,
    max_bytes: int = LOGGING.MAX_BYTES,
    backup_count: int = LOGGING.BACKUP_COUNT,
    level: int = logging.INFO,
) -> None:
    """Setup logging configuration with rotation.

    Idempotent and thread-safe: calling it repeatedly never adds duplicate
    handlers. A file handler whose rotation settings differ from the
    requested ones is replaced.

    Args:
        log_file: Path to log file, or None for console only
        max_bytes: Maximum file size before rotation (default: 10MB)
        backup_count: Number of backup files to keep (default: 5)
        level: Root logger level
    """
    with _logging_lock:
        root_logger = logging.getLogger()
        root_logger.setLevel(level)
        formatter = logging.Formatter(LOG_FORMAT)

        if log_file:
            log_path = Path(log_file)
            has_file_handler = False
            for handler in root_logger.handlers[:]:
                if isinstance(handler, RotatingFileHandler) and handler.baseFilename == str(log_path.absolute()):
                    if handler.maxBytes == max_bytes and handler.backupCount == backup_count:
                        has_file_handler = True
                        break
                    root_logger.removeHandler(handler)
                    handler.close()

            if not has_file_handler:
                log_path.parent.mkdir(parents=True, exist_ok=True)
                file_handler = RotatingFileHandler(
                    log_file,
                    maxBytes=max_bytes,
                    backupCount=backup_count
                )
                file_handler.setFormatter(formatter)
                root_logger.addHandler(file_handler)

        # FileHandler is the base of every file-based handler
        has_console_handler = any(
            isinstance(h, logging.StreamHandler) and not isinstance(h, logging.FileHandler)
            for h in root_logger.handlers
        )
        if not has_console_handler:
            console_handler = logging.StreamHandler()
            console_handler.setFormatter(formatter)
            root_logger.addHandler(console_handler)

        # urllib3 retries are ours to report
        logging.getLogger("urllib3").setLevel(logging.WARNING)
