"""Path-prefix exclusion for backupkern.

A path is excluded when it equals one of the configured locations or lies
anywhere beneath one. Matching is done on whole path components, so
``/data/cache`` excludes ``/data/cache/x`` but not ``/data/cache2/x``.
There is no globbing.
"""

from pathlib import PurePath
from typing import Iterable, List, Union


class ExclusionFilter:
    """Decides whether a path is left out of a snapshot."""

    def __init__(self, locations: Iterable[Union[str, PurePath]]):
        self.locations: List[PurePath] = [PurePath(l) for l in locations]

    def is_excluded(self, path: Union[str, PurePath]) -> bool:
        """
        Return True if path is one of the locations or nested under one.

        Args:
            path: Path of a traversed entry, as produced by the walker

        Returns:
            True if the path should not be backed up
        """
        path = PurePath(path)
        for location in self.locations:
            if path == location or location in path.parents:
                return True
        return False
