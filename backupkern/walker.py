"""Source tree traversal for backupkern.

The walker enumerates every non-directory entry below the source root in
sorted, depth-first order, using an explicit stack of directories rather
than recursion. Excluded entries are skipped before anything else touches
them; an excluded directory is not descended into, since every path below
it would be excluded as well.
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Iterator, List, Optional
import logging
import os

from backupkern.exclusion import ExclusionFilter


logger = logging.getLogger(__name__)


class TraversalEntryError(Exception):
    """Raised when a single step of the directory walk fails."""

    def __init__(self, path: Path, message: str):
        super().__init__(message)
        self.path = path


@dataclass
class WalkEntry:
    """A file found in the source tree."""
    path: Path


class TreeWalker:
    """
    Lazily yields the files of a source tree.

    Attributes:
        root: Source root; it is never yielded itself
        exclusion_filter: Filter applied to every entry before it is used
        excluded_count: Entries skipped by the filter during the last walk; a
                        pruned directory counts once, not per file below it
    """

    def __init__(self, root: Path, exclusion_filter: Optional[ExclusionFilter] = None):
        self.root = Path(root)
        self.exclusion_filter = exclusion_filter or ExclusionFilter([])
        self.excluded_count = 0

    def walk(
        self,
        onerror: Optional[Callable[[TraversalEntryError], None]] = None,
    ) -> Iterator[WalkEntry]:
        """
        Yield every eligible file under the root.

        Directories, including symlinks to directories, are never yielded.
        Real directories are descended into; symlinked ones are not.

        Args:
            onerror: Called with a TraversalEntryError for each directory
                     that can't be listed or entry that can't be inspected;
                     the walk then carries on with the next entry

        Yields:
            WalkEntry for each file that is not excluded
        """
        self.excluded_count = 0
        stack: List[Path] = [self.root]

        while stack:
            directory = stack.pop()
            try:
                with os.scandir(directory) as it:
                    entries = sorted(it, key=lambda e: e.name)
            except OSError as e:
                self._report(onerror, TraversalEntryError(
                    directory, f"Cannot list directory {directory}: {e}"
                ))
                continue

            subdirectories = []
            for entry in entries:
                path = directory / entry.name

                if self.exclusion_filter.is_excluded(path):
                    self.excluded_count += 1
                    continue

                try:
                    is_dir = entry.is_dir()
                    is_link = entry.is_symlink()
                except OSError as e:
                    self._report(onerror, TraversalEntryError(
                        path, f"Cannot inspect {path}: {e}"
                    ))
                    continue

                if is_dir:
                    if not is_link:
                        subdirectories.append(path)
                    continue

                yield WalkEntry(path=path)

            # Reversed so the stack pops subdirectories in sorted order
            stack.extend(reversed(subdirectories))

    def _report(
        self,
        onerror: Optional[Callable[[TraversalEntryError], None]],
        error: TraversalEntryError,
    ) -> None:
        if onerror is not None:
            onerror(error)
        else:
            logger.warning(str(error))
