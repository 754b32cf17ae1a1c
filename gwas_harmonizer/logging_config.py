"""
Centralized logging configuration for the harmonization pipeline.

Provides:
- Console handler: message-only output (INFO, or DEBUG when verbose)
- File handler: captures all details with rotation (DEBUG level)
"""

import logging
from datetime import datetime
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional


# Module-level state
_logging_initialized = False
_log_file_path: Optional[str] = None


def setup_logging(
    log_dir: Optional[Path] = None,
    job_name: str = "gwas_harmonizer",
    verbose: bool = False,
    max_bytes: int = 5 * 1024 * 1024,  # 5MB
    backup_count: int = 3,
) -> Optional[str]:
    """
    Initialize logging with a console handler and, if ``log_dir`` is given,
    a rotating file handler.

    Args:
        log_dir: Directory for log files. No file handler if None.
        job_name: Name prefix for log file.
        verbose: Show DEBUG messages on the console.
        max_bytes: Maximum size per log file before rotation.
        backup_count: Number of backup files to keep.

    Returns:
        Path to the log file, or None when logging only to the console.
    """
    global _logging_initialized, _log_file_path

    if _logging_initialized:
        return _log_file_path

    root_logger = logging.getLogger()
    root_logger.setLevel(logging.DEBUG)
    root_logger.handlers.clear()

    console_handler = logging.StreamHandler()
    console_handler.setLevel(logging.DEBUG if verbose else logging.INFO)
    console_handler.setFormatter(logging.Formatter("%(message)s"))
    root_logger.addHandler(console_handler)

    if log_dir is not None:
        log_dir.mkdir(parents=True, exist_ok=True)
        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        log_file = log_dir / f"{job_name}_{timestamp}.log"
        _log_file_path = str(log_file)

        file_handler = RotatingFileHandler(
            log_file,
            maxBytes=max_bytes,
            backupCount=backup_count,
        )
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(
            logging.Formatter("%(asctime)s - %(threadName)s - %(name)s - %(levelname)s - %(message)s")
        )
        root_logger.addHandler(file_handler)

    # Suppress noisy third-party loggers
    for noisy_logger in ["urllib3", "requests"]:
        logging.getLogger(noisy_logger).setLevel(logging.WARNING)

    _logging_initialized = True

    return _log_file_path


def reset_logging():
    """Reset logging state. Useful for testing."""
    global _logging_initialized, _log_file_path
    _logging_initialized = False
    _log_file_path = None

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
