"""backupkern - Generational hard-link snapshots of a directory tree."""

__version__ = "0.1.0"

from backupkern.config import (
    Configuration,
    ConfigurationError,
    ValidationError,
    LoggingConfig,
    parse_config,
    parse_config_string,
    format_config,
    create_default_config,
)
from backupkern.exclusion import ExclusionFilter
from backupkern.compare import files_equal, contents_equal
from backupkern.materialize import (
    FileMaterializer,
    MaterializeAction,
    MaterializeError,
    CopyError,
    LinkError,
    copy_file,
)
from backupkern.generation import (
    GenerationInfo,
    snapshot_name,
    latest_generation,
    list_generations,
)
from backupkern.destination import NoDestinationError, select_destination
from backupkern.walker import TreeWalker, WalkEntry, TraversalEntryError
from backupkern.snapshot import (
    SnapshotEngine,
    SnapshotError,
    SnapshotResult,
    PathStripError,
    FileError,
    ErrorKind,
)
from backupkern.logger import (
    LoggingError,
    setup_logging,
    get_logger,
)
from backupkern.backup import (
    BackupResult,
    run_backup,
    EXIT_SUCCESS,
    EXIT_CONFIG_ERROR,
    EXIT_DESTINATION_ERROR,
    EXIT_SNAPSHOT_ERROR,
    EXIT_PARTIAL_FAILURE,
)

__all__ = [
    "Configuration",
    "ConfigurationError",
    "ValidationError",
    "LoggingConfig",
    "parse_config",
    "parse_config_string",
    "format_config",
    "create_default_config",
    "ExclusionFilter",
    "files_equal",
    "contents_equal",
    "FileMaterializer",
    "MaterializeAction",
    "MaterializeError",
    "CopyError",
    "LinkError",
    "copy_file",
    "GenerationInfo",
    "snapshot_name",
    "latest_generation",
    "list_generations",
    "NoDestinationError",
    "select_destination",
    "TreeWalker",
    "WalkEntry",
    "TraversalEntryError",
    "SnapshotEngine",
    "SnapshotError",
    "SnapshotResult",
    "PathStripError",
    "FileError",
    "ErrorKind",
    "LoggingError",
    "setup_logging",
    "get_logger",
    "BackupResult",
    "run_backup",
    "EXIT_SUCCESS",
    "EXIT_CONFIG_ERROR",
    "EXIT_DESTINATION_ERROR",
    "EXIT_SNAPSHOT_ERROR",
    "EXIT_PARTIAL_FAILURE",
]
