"""Main backup orchestration for backupkern.

This module provides the main backup function that ties the components
together:
- Load configuration
- Set up logging
- Create the snapshot (destination selection, previous generation lookup,
  tree walk)
- Map fatal failures to exit codes

Configuration and destination failures stop the run before anything is
written. Failures on single files never stop the run; they are reported
on the result and turn the exit code into EXIT_PARTIAL_FAILURE.
"""

from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Callable, Optional

from backupkern.config import (
    Configuration,
    ConfigurationError,
    ValidationError,
    parse_config,
)
from backupkern.destination import NoDestinationError
from backupkern.logger import (
    LoggingError,
    setup_logging,
    get_logger,
    log_backup_start,
    log_backup_completion,
    log_backup_error,
)
from backupkern.snapshot import SnapshotEngine, SnapshotError, SnapshotResult


EXIT_SUCCESS = 0
EXIT_CONFIG_ERROR = 1
EXIT_DESTINATION_ERROR = 2
EXIT_SNAPSHOT_ERROR = 3
EXIT_PARTIAL_FAILURE = 4


@dataclass
class BackupResult:
    """Result of a backup run."""
    success: bool
    exit_code: int
    snapshot_result: Optional[SnapshotResult] = None
    error_message: Optional[str] = None


def run_backup(
    config_path: Optional[Path] = None,
    config: Optional[Configuration] = None,
    log_level: Optional[str] = None,
    clock: Optional[Callable[[], datetime]] = None,
) -> BackupResult:
    """
    Run a complete backup.

    Args:
        config_path: Path to configuration file. If None, uses default path.
        config: Pre-loaded Configuration object. If provided, config_path is ignored.
        log_level: Overrides the configured log level (e.g. "DEBUG")
        clock: Time source used to name the snapshot (defaults to datetime.now)

    Returns:
        BackupResult with success status, exit code and the snapshot result.
        success is True only if every eligible file was backed up.
    """
    if config is None:
        try:
            config = parse_config(config_path)
        except (ConfigurationError, ValidationError) as e:
            return BackupResult(
                success=False,
                exit_code=EXIT_CONFIG_ERROR,
                error_message=str(e),
            )

    try:
        logger = setup_logging(config.logging, level=log_level)
    except LoggingError as e:
        # If logging setup fails, continue with basic logging
        logger = get_logger()
        logger.warning(f"Failed to set up logging: {e}")

    log_backup_start(
        logger,
        config.source_root,
        config.destination_candidates,
        config.snapshot_prefix,
    )
    logger.debug(f"Configuration: {config}")

    engine = SnapshotEngine(
        source_root=config.source_root,
        destination_candidates=config.destination_candidates,
        prefix=config.snapshot_prefix,
        exclusions=config.exclusions,
        verify_content=config.verify_content,
        clock=clock,
    )

    try:
        snapshot_result = engine.create_snapshot()
    except NoDestinationError as e:
        log_backup_error(logger, e, "destination selection")
        return BackupResult(
            success=False,
            exit_code=EXIT_DESTINATION_ERROR,
            error_message=str(e),
        )
    except SnapshotError as e:
        log_backup_error(logger, e, "snapshot creation")
        return BackupResult(
            success=False,
            exit_code=EXIT_SNAPSHOT_ERROR,
            error_message=str(e),
        )

    log_backup_completion(
        logger,
        duration_seconds=snapshot_result.duration_seconds,
        files_linked=snapshot_result.files_linked,
        files_copied=snapshot_result.files_copied,
        files_failed=len(snapshot_result.errors),
        bytes_copied=snapshot_result.bytes_copied,
        snapshot_path=snapshot_result.snapshot_path,
    )

    if snapshot_result.errors:
        return BackupResult(
            success=False,
            exit_code=EXIT_PARTIAL_FAILURE,
            snapshot_result=snapshot_result,
            error_message=f"{len(snapshot_result.errors)} file(s) could not be backed up",
        )

    return BackupResult(
        success=True,
        exit_code=EXIT_SUCCESS,
        snapshot_result=snapshot_result,
    )
