"""Snapshot naming and lookup of previous generations.

Snapshots are named ``<prefix>_YYYY-MM-DD_HH-MM-SS``. The timestamp is
fixed width, so sorting names lexicographically sorts them by time.
"""

from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import List, Optional, Tuple
import logging
import os


logger = logging.getLogger(__name__)

# Timestamp format for snapshot directories
TIMESTAMP_FORMAT = "%Y-%m-%d_%H-%M-%S"


@dataclass
class GenerationInfo:
    """Information about an existing snapshot directory."""
    path: Path
    name: str
    file_count: int
    size_bytes: int


def snapshot_name(prefix: str, now: Optional[datetime] = None) -> str:
    """
    Build the directory name for a snapshot taken at now.

    Args:
        prefix: Configured snapshot prefix
        now: Local time of the run (defaults to the current time)

    Returns:
        Name in the form <prefix>_YYYY-MM-DD_HH-MM-SS
    """
    if now is None:
        now = datetime.now()
    return f"{prefix}_{now.strftime(TIMESTAMP_FORMAT)}"


def latest_generation(destination_root: Path) -> Optional[Path]:
    """
    Find the most recent snapshot under destination_root.

    Every direct child counts, whatever its type; the lexicographically
    greatest one is returned. A root that cannot be listed means there is
    no previous generation.

    Args:
        destination_root: Root the current run writes its snapshot into

    Returns:
        Path of the latest child, or None
    """
    try:
        children = [Path(entry.path) for entry in os.scandir(destination_root)]
    except OSError as e:
        logger.debug(f"Cannot list {destination_root}: {e}")
        return None

    if not children:
        return None
    return max(children)


def list_generations(destination_root: Path) -> List[GenerationInfo]:
    """
    List the snapshot directories under destination_root, newest first.

    Unlike latest_generation, plain files are skipped here.

    Args:
        destination_root: Destination root to inspect

    Returns:
        List of GenerationInfo, most recent first
    """
    destination_root = Path(destination_root)
    if not destination_root.is_dir():
        return []

    generations = []
    for entry in destination_root.iterdir():
        if not entry.is_dir() or entry.is_symlink():
            continue
        file_count, size_bytes = _directory_stats(entry)
        generations.append(GenerationInfo(
            path=entry,
            name=entry.name,
            file_count=file_count,
            size_bytes=size_bytes,
        ))

    generations.sort(key=lambda g: g.name, reverse=True)
    return generations


def _directory_stats(path: Path) -> Tuple[int, int]:
    """
    Count files and their apparent size below path.

    Hard-linked files are counted in every snapshot they appear in.
    """
    file_count = 0
    total_size = 0
    # followlinks=False prevents following symlinks
    for root, dirs, files in os.walk(path, followlinks=False):
        for f in files:
            try:
                total_size += os.lstat(os.path.join(root, f)).st_size
                file_count += 1
            except OSError:
                # Skip files we can't stat
                continue
    return file_count, total_size
