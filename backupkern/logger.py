"""Logging configuration for backupkern.

This module provides logging setup and utility functions for the backup system.
Supports DEBUG, INFO, WARNING and ERROR log levels with separate log and
error files, plus console output. Rotated log files are gzip-compressed.
"""

import gzip
import logging
import os
import shutil
from datetime import datetime
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional, Sequence

from backupkern.config import LoggingConfig


# Logger name for the backupkern package
LOGGER_NAME = "backupkern"

# Valid log levels
VALID_LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR"}


class LoggingError(Exception):
    """Raised when logging setup fails."""
    pass


class GzipRotatingFileHandler(RotatingFileHandler):
    """
    Rotating file handler that compresses rotated files with gzip.

    Rotated files are named with a .gz extension.
    """

    def rotation_filename(self, default_name: str) -> str:
        return default_name + ".gz"

    def rotate(self, source: str, dest: str) -> None:
        """
        Compress source into dest and remove source.

        If compression fails the file is renamed without compression.
        """
        if not os.path.exists(source):
            return

        try:
            with open(source, 'rb') as f_in:
                with gzip.open(dest, 'wb') as f_out:
                    shutil.copyfileobj(f_in, f_out)
            os.remove(source)
        except OSError:
            if os.path.exists(source):
                fallback_dest = dest[:-3] if dest.endswith('.gz') else dest
                try:
                    os.rename(source, fallback_dest)
                except OSError:
                    pass  # Best effort - don't fail logging


def _ensure_log_directory(log_path: Path) -> None:
    """Ensure the parent directory for a log file exists."""
    log_dir = log_path.parent
    if not log_dir.exists():
        try:
            log_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise LoggingError(f"Failed to create log directory {log_dir}: {e}")


def _get_log_level(level_str: str) -> int:
    """Convert log level string to logging constant."""
    level_str = level_str.upper()
    if level_str not in VALID_LOG_LEVELS:
        raise LoggingError(
            f"Invalid log level '{level_str}'. Must be one of: {', '.join(sorted(VALID_LOG_LEVELS))}"
        )
    return getattr(logging, level_str)


def setup_logging(
    config: Optional[LoggingConfig] = None,
    level: Optional[str] = None,
) -> logging.Logger:
    """
    Configure logging for backupkern.

    Sets up logging with:
    - A rotating file handler for general logs (log_file)
    - A rotating file handler for error logs only (error_log_file)
    - Console output for immediate feedback
    - Automatic gzip compression of rotated files

    Args:
        config: LoggingConfig with paths, level and rotation settings.
                Defaults to LoggingConfig().
        level: Overrides config.level when given (e.g. "DEBUG" for --verbose)

    Returns:
        Configured logger instance

    Raises:
        LoggingError: If the level is invalid or a log directory or file
                      cannot be created
    """
    if config is None:
        config = LoggingConfig()
    if level is None:
        level = config.level

    # Expand ~ in paths
    log_file = Path(os.path.expanduser(str(config.log_file)))
    error_log_file = Path(os.path.expanduser(str(config.error_log_file)))

    # Validate before touching the filesystem
    log_level = _get_log_level(level)

    _ensure_log_directory(log_file)
    _ensure_log_directory(error_log_file)

    try:
        file_handler = GzipRotatingFileHandler(
            log_file,
            maxBytes=config.log_max_bytes,
            backupCount=config.log_backup_count,
            encoding="utf-8",
        )
    except OSError as e:
        raise LoggingError(f"Cannot open log file {log_file}: {e}")

    try:
        error_handler = GzipRotatingFileHandler(
            error_log_file,
            maxBytes=config.log_max_bytes,
            backupCount=config.log_backup_count,
            encoding="utf-8",
        )
    except OSError as e:
        file_handler.close()
        raise LoggingError(f"Cannot open error log file {error_log_file}: {e}")

    logger = logging.getLogger(LOGGER_NAME)

    # Clear any existing handlers to avoid duplicates
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    logger.setLevel(logging.DEBUG)  # Allow all levels, handlers will filter

    detailed_formatter = logging.Formatter(
        "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S"
    )

    file_handler.setLevel(log_level)
    file_handler.setFormatter(detailed_formatter)
    logger.addHandler(file_handler)

    error_handler.setLevel(logging.ERROR)
    error_handler.setFormatter(detailed_formatter)
    logger.addHandler(error_handler)

    console_handler = logging.StreamHandler()
    console_handler.setLevel(log_level)
    console_handler.setFormatter(logging.Formatter("%(levelname)s: %(message)s"))
    logger.addHandler(console_handler)

    return logger


def get_logger() -> logging.Logger:
    """
    Get the backupkern logger instance.

    Returns:
        The backupkern logger. If setup_logging hasn't been called,
        returns a logger with default configuration.
    """
    return logging.getLogger(LOGGER_NAME)


def log_backup_start(
    logger: logging.Logger,
    source_root: Path,
    destination_candidates: Sequence[Path],
    prefix: str,
) -> None:
    """
    Log the start of a backup run.

    Args:
        logger: Logger instance
        source_root: Root of the tree being backed up
        destination_candidates: Configured destination roots
        prefix: Snapshot name prefix
    """
    timestamp = datetime.now().strftime("%Y-%m-%d %H:%M:%S")
    candidates_str = ", ".join(str(c) for c in destination_candidates) or "(none)"
    logger.info(f"Backup started at {timestamp}")
    logger.info(f"Source: {source_root}")
    logger.info(f"Destination candidates: {candidates_str}")
    logger.info(f"Snapshot prefix: {prefix}")


def _format_size(total_size: int) -> str:
    if total_size >= 1024 * 1024 * 1024:
        return f"{total_size / (1024 * 1024 * 1024):.2f} GB"
    elif total_size >= 1024 * 1024:
        return f"{total_size / (1024 * 1024):.2f} MB"
    elif total_size >= 1024:
        return f"{total_size / 1024:.2f} KB"
    return f"{total_size} bytes"


def log_backup_completion(
    logger: logging.Logger,
    duration_seconds: float,
    files_linked: int,
    files_copied: int,
    files_failed: int,
    bytes_copied: int,
    snapshot_path: Optional[Path] = None,
) -> None:
    """
    Log the completion of a backup run.

    Args:
        logger: Logger instance
        duration_seconds: How long the run took
        files_linked: Files hard-linked from the previous generation
        files_copied: Files physically copied
        files_failed: Files that could not be backed up
        bytes_copied: Bytes written by copies
        snapshot_path: Path to the created snapshot
    """
    if files_failed:
        logger.warning(f"Backup completed with {files_failed} failed file(s)")
    else:
        logger.info("Backup completed successfully")
    logger.info(f"Duration: {duration_seconds:.2f} seconds")
    logger.info(f"Files linked: {files_linked}")
    logger.info(f"Files copied: {files_copied} ({_format_size(bytes_copied)})")
    if snapshot_path:
        logger.info(f"Snapshot: {snapshot_path}")


def log_backup_error(
    logger: logging.Logger,
    error: Exception,
    context: Optional[str] = None,
) -> None:
    """
    Log an error that stopped the run.

    Args:
        logger: Logger instance
        error: The exception that occurred
        context: Additional context about what was happening
    """
    if context:
        logger.error(f"Backup failed during {context}: {error}")
    else:
        logger.error(f"Backup failed: {error}")


def log_file_error(
    logger: logging.Logger,
    path: Path,
    kind: str,
    error: Exception,
) -> None:
    """Log a per-file failure; the run carries on."""
    logger.error(f"{kind} failed for {path}: {error}")
