"""Snapshot engine for backupkern.

This module provides the SnapshotEngine class that creates generational
snapshots of a source tree. Files unchanged since the latest previous
snapshot are hard-linked from it; new or modified files are copied.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Callable, List, Optional, Sequence
import logging
import time

from backupkern.destination import select_destination
from backupkern.exclusion import ExclusionFilter
from backupkern.generation import latest_generation, snapshot_name
from backupkern.logger import log_file_error
from backupkern.materialize import (
    CopyError,
    FileMaterializer,
    LinkError,
    MaterializeAction,
)
from backupkern.walker import TraversalEntryError, TreeWalker


logger = logging.getLogger(__name__)


class SnapshotError(Exception):
    """Raised when snapshot creation fails as a whole."""
    pass


class PathStripError(SnapshotError):
    """Raised when a traversed path does not lie under the source root."""
    pass


class ErrorKind(Enum):
    """Kind of a per-file failure."""
    COPY = "copy"
    LINK = "link"
    TRAVERSAL = "traversal"


@dataclass
class FileError:
    """A file that could not be backed up in this run."""
    path: Path
    kind: ErrorKind
    message: str


@dataclass
class SnapshotResult:
    """Result of a snapshot operation."""
    snapshot_path: Path
    destination_root: Path
    prior_generation: Optional[Path]
    files_linked: int = 0
    files_copied: int = 0
    entries_excluded: int = 0  # a pruned directory counts once
    bytes_copied: int = 0
    duration_seconds: float = 0.0
    errors: List[FileError] = field(default_factory=list)

    @property
    def files_processed(self) -> int:
        """Files present in the new snapshot (linked or copied)."""
        return self.files_linked + self.files_copied

    @property
    def success(self) -> bool:
        """True if every eligible file made it into the snapshot."""
        return not self.errors


class SnapshotEngine:
    """
    Creates generational snapshots with hard links.

    The engine creates snapshot directories named
    <prefix>_YYYY-MM-DD_HH-MM-SS under the selected destination root.
    Each run walks the source tree once, one file at a time; a failure on
    one file is recorded and the walk continues.
    """

    def __init__(
        self,
        source_root: Path,
        destination_candidates: Sequence[Path],
        prefix: str,
        exclusions: Sequence[Path] = (),
        verify_content: bool = False,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        """
        Initialize the snapshot engine.

        Args:
            source_root: Root of the tree to back up
            destination_candidates: Candidate destination roots, in order
            prefix: Snapshot name prefix
            exclusions: Path prefixes that are never backed up
            verify_content: Compare bytes as well as metadata before linking
            clock: Returns the local time used to name the snapshot
        """
        self.source_root = Path(source_root)
        self.destination_candidates = [Path(c) for c in destination_candidates]
        self.prefix = prefix
        self.exclusion_filter = ExclusionFilter(exclusions)
        self.materializer = FileMaterializer(verify_content=verify_content)
        self.clock = clock or datetime.now

    def create_snapshot(self) -> SnapshotResult:
        """
        Create a new snapshot.

        Process:
        1. Compute the snapshot name from the current local time
        2. Select the destination root
        3. Find the latest previous snapshot under that root
        4. Create the new snapshot directory
        5. Walk the source tree, linking or copying each eligible file

        Returns:
            SnapshotResult with counts and the per-file errors

        Raises:
            NoDestinationError: If no destination candidate is usable
            PathStripError: If a traversed path is outside the source root
            SnapshotError: If the source root is missing or the snapshot
                           directory cannot be created
        """
        start_time = time.time()

        name = snapshot_name(self.prefix, self.clock())
        destination_root = select_destination(self.destination_candidates)
        new_root = destination_root / name

        if not self.source_root.is_dir():
            raise SnapshotError(f"Source directory does not exist: {self.source_root}")

        # Must be resolved before new_root exists, or it would find itself
        prior = latest_generation(destination_root)
        logger.info(f"Destination: {destination_root}")
        logger.info(f"Latest generation: {prior if prior is not None else 'none'}")

        try:
            new_root.mkdir(exist_ok=True)
        except OSError as e:
            raise SnapshotError(f"Cannot create snapshot directory {new_root}: {e}")

        result = SnapshotResult(
            snapshot_path=new_root,
            destination_root=destination_root,
            prior_generation=prior,
        )

        def on_traversal_error(error: TraversalEntryError) -> None:
            log_file_error(logger, error.path, ErrorKind.TRAVERSAL.value, error)
            result.errors.append(FileError(
                path=error.path,
                kind=ErrorKind.TRAVERSAL,
                message=str(error),
            ))

        walker = TreeWalker(self.source_root, self.exclusion_filter)
        for entry in walker.walk(onerror=on_traversal_error):
            try:
                suffix = entry.path.relative_to(self.source_root)
            except ValueError:
                raise PathStripError(
                    f"{entry.path} is not under source root {self.source_root}"
                )

            destination_path = new_root / suffix
            try:
                outcome = self.materializer.materialize(
                    entry.path, destination_path, suffix, prior
                )
            except LinkError as e:
                self._record(result, entry.path, ErrorKind.LINK, e)
                continue
            except CopyError as e:
                self._record(result, entry.path, ErrorKind.COPY, e)
                continue

            if outcome.action is MaterializeAction.LINKED:
                result.files_linked += 1
            else:
                result.files_copied += 1
                result.bytes_copied += outcome.bytes_copied
            logger.info(f"{outcome.action.value}: {suffix}")

        result.entries_excluded = walker.excluded_count
        result.duration_seconds = time.time() - start_time
        return result

    @staticmethod
    def _record(result: SnapshotResult, path: Path, kind: ErrorKind, error: Exception) -> None:
        log_file_error(logger, path, kind.value, error)
        result.errors.append(FileError(path=path, kind=kind, message=str(error)))
