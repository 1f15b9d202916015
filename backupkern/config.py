"""Configuration management for backupkern.

This module provides dataclasses for configuration and functions for
parsing/formatting TOML configuration files.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional
import os
import tomllib


class ConfigurationError(Exception):
    """Raised when configuration file is missing or malformed."""
    pass


class ValidationError(Exception):
    """Raised when configuration values have invalid types."""
    pass


@dataclass
class LoggingConfig:
    """Configuration for logging."""
    level: str = "INFO"  # "DEBUG", "INFO", "WARNING", "ERROR"
    log_file: Path = field(
        default_factory=lambda: Path.home() / ".local/log/backupkern.log"
    )
    error_log_file: Path = field(
        default_factory=lambda: Path.home() / ".local/log/backupkern.err"
    )
    log_max_size_mb: int = 10  # Maximum log file size in MB before rotation
    log_backup_count: int = 5  # Number of rotated log files to keep

    @property
    def log_max_bytes(self) -> int:
        """Return max size in bytes for use with RotatingFileHandler."""
        return self.log_max_size_mb * 1024 * 1024


@dataclass
class Configuration:
    """
    Main configuration for backupkern.

    destination_candidates are tried in order by the destination selector;
    exclusions are path prefixes, matched per path component.
    """
    source_root: Path
    destination_candidates: List[Path]
    snapshot_prefix: str
    exclusions: List[Path] = field(default_factory=list)
    verify_content: bool = False
    logging: LoggingConfig = field(default_factory=LoggingConfig)


# Default config file path
DEFAULT_CONFIG_PATH = Path.home() / "backupkern.toml"

# Required keys in configuration
REQUIRED_KEYS = ["from", "to", "prefix"]


def _validate_type(value: Any, expected_type: type, key: str) -> None:
    """Validate that a value has the expected type."""
    if not isinstance(value, expected_type):
        raise ValidationError(
            f"Key '{key}' has invalid type: expected {expected_type.__name__}, "
            f"got {type(value).__name__}"
        )


def _expand(path_str: str) -> Path:
    return Path(os.path.expanduser(path_str))


def _parse_exclusions(data: Dict[str, Any]) -> List[Path]:
    """Parse the [exclude] table into a list of exclusion prefixes."""
    exclude_data = data.get("exclude", {})
    _validate_type(exclude_data, dict, "exclude")

    locations = exclude_data.get("locations", [])
    _validate_type(locations, list, "exclude.locations")
    for i, location in enumerate(locations):
        _validate_type(location, str, f"exclude.locations[{i}]")

    return [_expand(location) for location in locations]


def _parse_logging_config(data: Dict[str, Any]) -> LoggingConfig:
    """Parse logging configuration from dict."""
    logging_data = data.get("logging", {})
    _validate_type(logging_data, dict, "logging")

    level = logging_data.get("level", "INFO")
    _validate_type(level, str, "logging.level")

    log_file = logging_data.get(
        "log_file",
        str(Path.home() / ".local/log/backupkern.log")
    )
    _validate_type(log_file, str, "logging.log_file")

    error_log_file = logging_data.get(
        "error_log_file",
        str(Path.home() / ".local/log/backupkern.err")
    )
    _validate_type(error_log_file, str, "logging.error_log_file")

    log_max_size_mb = logging_data.get("log_max_size_mb", 10)
    _validate_type(log_max_size_mb, int, "logging.log_max_size_mb")

    log_backup_count = logging_data.get("log_backup_count", 5)
    _validate_type(log_backup_count, int, "logging.log_backup_count")

    return LoggingConfig(
        level=level,
        log_file=Path(log_file),
        error_log_file=Path(error_log_file),
        log_max_size_mb=log_max_size_mb,
        log_backup_count=log_backup_count,
    )


def parse_config_string(toml_content: str) -> Configuration:
    """
    Parse TOML string into Configuration object.

    Args:
        toml_content: TOML formatted string

    Returns:
        Configuration object

    Raises:
        ConfigurationError: If the TOML is malformed or a required key is missing
        ValidationError: If value has wrong type
    """
    try:
        data = tomllib.loads(toml_content)
    except tomllib.TOMLDecodeError as e:
        raise ConfigurationError(f"Invalid TOML format: {e}")

    for key in REQUIRED_KEYS:
        if key not in data:
            raise ConfigurationError(f"Missing required configuration key: '{key}'")

    source = data["from"]
    _validate_type(source, str, "from")

    # An empty list parses fine; the engine refuses to run without a candidate
    candidates = data["to"]
    _validate_type(candidates, list, "to")
    for i, candidate in enumerate(candidates):
        _validate_type(candidate, str, f"to[{i}]")

    prefix = data["prefix"]
    _validate_type(prefix, str, "prefix")

    verify_content = data.get("verify_content", False)
    _validate_type(verify_content, bool, "verify_content")

    return Configuration(
        source_root=_expand(source),
        destination_candidates=[_expand(c) for c in candidates],
        snapshot_prefix=prefix,
        exclusions=_parse_exclusions(data),
        verify_content=verify_content,
        logging=_parse_logging_config(data),
    )


def parse_config(config_path: Optional[Path] = None) -> Configuration:
    """
    Parse TOML configuration file into Configuration object.

    Args:
        config_path: Path to config file. Defaults to ~/backupkern.toml

    Returns:
        Configuration object

    Raises:
        ConfigurationError: If file doesn't exist, can't be read or a
                            required key is missing
        ValidationError: If value has wrong type
    """
    if config_path is None:
        config_path = DEFAULT_CONFIG_PATH

    if not config_path.exists():
        raise ConfigurationError(
            f"Configuration file not found: {config_path}"
        )

    try:
        content = config_path.read_text()
    except PermissionError:
        raise ConfigurationError(
            f"Permission denied reading configuration file: {config_path}"
        )
    except (OSError, UnicodeDecodeError) as e:
        raise ConfigurationError(
            f"Error reading configuration file {config_path}: {e}"
        )

    return parse_config_string(content)


def _escape_toml_string(s: str) -> str:
    """Escape a string for TOML basic string format."""
    # Must escape backslashes first, then quotes
    return s.replace("\\", "\\\\").replace('"', '\\"')


def _format_string_list(key: str, values: List[str]) -> List[str]:
    if not values:
        return [f"{key} = []"]
    lines = [f"{key} = ["]
    for value in values:
        lines.append(f'    "{_escape_toml_string(value)}",')
    lines.append("]")
    return lines


def format_config(config: Configuration) -> str:
    """
    Format Configuration object back to TOML string.

    Used for round-trip testing and config generation.

    Args:
        config: Configuration object to format

    Returns:
        TOML formatted string
    """
    lines = []

    lines.append(f'from = "{_escape_toml_string(str(config.source_root))}"')
    lines.extend(
        _format_string_list("to", [str(c) for c in config.destination_candidates])
    )
    lines.append(f'prefix = "{_escape_toml_string(config.snapshot_prefix)}"')
    lines.append(f"verify_content = {'true' if config.verify_content else 'false'}")
    lines.append("")

    lines.append("[exclude]")
    lines.extend(
        _format_string_list("locations", [str(e) for e in config.exclusions])
    )
    lines.append("")

    lines.append("[logging]")
    lines.append(f'level = "{_escape_toml_string(config.logging.level)}"')
    lines.append(f'log_file = "{_escape_toml_string(str(config.logging.log_file))}"')
    lines.append(f'error_log_file = "{_escape_toml_string(str(config.logging.error_log_file))}"')
    lines.append(f"log_max_size_mb = {config.logging.log_max_size_mb}")
    lines.append(f"log_backup_count = {config.logging.log_backup_count}")

    return "\n".join(lines)


def create_default_config() -> str:
    """
    Generate default configuration TOML for `backupkern init`.

    Returns:
        TOML formatted string with default configuration
    """
    return '''# backupkern configuration file

# Directory tree to back up
from = "~"

# Candidate destination roots. Every entry that currently exists as a
# directory is a candidate; the last one found wins.
to = [
    "/mnt/backup",
]

# Snapshots are named <prefix>_YYYY-MM-DD_HH-MM-SS
prefix = "home"

# Also compare file bytes before hard-linking an unchanged file
verify_content = false

[exclude]
# Path prefixes that are never backed up
locations = [
    "~/.cache",
]

[logging]
# Log level: DEBUG, INFO, WARNING, ERROR
level = "INFO"
log_file = "~/.local/log/backupkern.log"
error_log_file = "~/.local/log/backupkern.err"
# Log rotation settings
log_max_size_mb = 10
log_backup_count = 5
'''
