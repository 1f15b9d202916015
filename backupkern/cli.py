"""Command-line interface for backupkern.

Commands:
- run: Take a snapshot now
- list: List snapshots in the selected destination
- init: Create default config
"""

import argparse
import json
import os
import sys
from pathlib import Path
from typing import List, Optional

from backupkern import __version__
from backupkern.backup import run_backup
from backupkern.config import (
    Configuration,
    ConfigurationError,
    ValidationError,
    parse_config,
    create_default_config,
    DEFAULT_CONFIG_PATH,
)
from backupkern.destination import NoDestinationError, select_destination
from backupkern.generation import list_generations


EXIT_SUCCESS = 0
EXIT_CONFIG_ERROR = 1
EXIT_DESTINATION_ERROR = 2
EXIT_GENERAL_ERROR = 1


def _expanded_path(value: str) -> Path:
    return Path(os.path.expanduser(value))


def create_parser() -> argparse.ArgumentParser:
    """Create and configure the argument parser with all subcommands."""
    parser = argparse.ArgumentParser(
        prog='backupkern',
        description='Generational hard-link snapshots of a directory tree'
    )
    parser.add_argument(
        '--version',
        action='version',
        version=f'%(prog)s {__version__}'
    )
    parser.add_argument(
        '--config', '-c',
        type=_expanded_path,
        help='Path to config file (default: ~/backupkern.toml)',
        metavar='PATH'
    )
    parser.add_argument(
        '--verbose', '-v',
        action='store_true',
        help='Verbose output'
    )

    subparsers = parser.add_subparsers(dest='command', help='Available commands')

    subparsers.add_parser(
        'run',
        help='Take a snapshot now'
    )

    list_parser = subparsers.add_parser(
        'list',
        help='List snapshots'
    )
    list_parser.add_argument(
        '--json',
        action='store_true',
        help='Output as JSON'
    )

    init_parser = subparsers.add_parser(
        'init',
        help='Create default config'
    )
    init_parser.add_argument(
        '--force', '-f',
        action='store_true',
        help='Overwrite existing config file'
    )

    return parser


def load_config(config_path: Optional[Path], verbose: bool = False) -> Optional[Configuration]:
    """
    Load configuration from file.

    Returns None and prints error on failure.
    """
    try:
        config = parse_config(config_path)
        if verbose:
            print(f"Loaded config from: {config_path or DEFAULT_CONFIG_PATH}")
        return config
    except ConfigurationError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return None
    except ValidationError as e:
        print(f"Validation error: {e}", file=sys.stderr)
        return None


def cmd_run(args: argparse.Namespace) -> int:
    """Execute the 'run' command - take a snapshot now."""
    result = run_backup(
        config_path=args.config,
        log_level="DEBUG" if args.verbose else None,
    )

    snapshot = result.snapshot_result
    if snapshot is None:
        print(f"Backup failed: {result.error_message}", file=sys.stderr)
        return result.exit_code

    print(f"Snapshot: {snapshot.snapshot_path}")
    print(f"  Linked: {snapshot.files_linked}")
    print(f"  Copied: {snapshot.files_copied}")
    if args.verbose:
        print(f"  Excluded entries: {snapshot.entries_excluded}")
        print(f"  Duration: {snapshot.duration_seconds:.2f}s")

    if snapshot.errors:
        print(f"  Failed: {len(snapshot.errors)}", file=sys.stderr)
        for error in snapshot.errors[:20]:
            print(f"    {error.kind.value}: {error.path}", file=sys.stderr)
        if len(snapshot.errors) > 20:
            print(f"    ... and {len(snapshot.errors) - 20} more", file=sys.stderr)

    return result.exit_code


def cmd_list(args: argparse.Namespace) -> int:
    """Execute the 'list' command - list snapshots in the selected destination."""
    config = load_config(args.config, args.verbose)
    if config is None:
        return EXIT_CONFIG_ERROR

    try:
        destination = select_destination(config.destination_candidates)
    except NoDestinationError as e:
        print(f"Destination error: {e}", file=sys.stderr)
        return EXIT_DESTINATION_ERROR

    generations = list_generations(destination)

    if args.json:
        output = []
        for gen in generations:
            output.append({
                "name": gen.name,
                "path": str(gen.path),
                "size_bytes": gen.size_bytes,
                "file_count": gen.file_count,
            })
        print(json.dumps(output, indent=2))
        return EXIT_SUCCESS

    if not generations:
        print(f"No snapshots found in {destination}.")
        return EXIT_SUCCESS

    width = max(len(gen.name) for gen in generations)
    print(f"{'Snapshot':<{width}} {'Size':>12} {'Files':>10}")
    print("-" * (width + 24))
    for gen in generations:
        print(f"{gen.name:<{width}} {_format_size(gen.size_bytes):>12} {gen.file_count:>10}")
    print("-" * (width + 24))
    print(f"Total: {len(generations)} snapshot(s) in {destination}")

    return EXIT_SUCCESS


def cmd_init(args: argparse.Namespace) -> int:
    """Execute the 'init' command - create default config."""
    config_path = args.config or DEFAULT_CONFIG_PATH

    if config_path.exists() and not args.force:
        print(f"Config file already exists: {config_path}", file=sys.stderr)
        print("Use --force to overwrite.", file=sys.stderr)
        return EXIT_GENERAL_ERROR

    config_path.parent.mkdir(parents=True, exist_ok=True)
    config_path.write_text(create_default_config())

    print(f"Created default config: {config_path}")
    print("Edit this file to configure your backup settings.")

    return EXIT_SUCCESS


def _format_size(size_bytes: int) -> str:
    """Format size in bytes to human-readable string."""
    if size_bytes < 1024:
        return f"{size_bytes} B"
    elif size_bytes < 1024 * 1024:
        return f"{size_bytes / 1024:.1f} KB"
    elif size_bytes < 1024 * 1024 * 1024:
        return f"{size_bytes / (1024 * 1024):.1f} MB"
    else:
        return f"{size_bytes / (1024 * 1024 * 1024):.1f} GB"


def main(argv: Optional[List[str]] = None) -> int:
    """
    Main CLI entry point.

    Args:
        argv: Command line arguments (defaults to sys.argv[1:])

    Returns:
        Exit code (0 for success, non-zero for failure)
    """
    parser = create_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return EXIT_SUCCESS

    try:
        if args.command == 'run':
            return cmd_run(args)
        elif args.command == 'list':
            return cmd_list(args)
        elif args.command == 'init':
            return cmd_init(args)
        else:
            print(f"Unknown command: {args.command}", file=sys.stderr)
            return EXIT_GENERAL_ERROR
    except KeyboardInterrupt:
        print("\nInterrupted.", file=sys.stderr)
        return 130  # Standard exit code for SIGINT


if __name__ == "__main__":
    sys.exit(main())
