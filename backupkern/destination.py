"""Destination selection for backupkern.

This module picks the destination root a run writes into from the
configured list of candidates.
"""

from pathlib import Path
from typing import Optional, Sequence, Union
import logging


logger = logging.getLogger(__name__)


class NoDestinationError(Exception):
    """Raised when no configured destination is a usable directory."""
    pass


def select_destination(candidates: Sequence[Union[str, Path]]) -> Path:
    """
    Pick the destination root for this run.

    Candidates are checked in configured order and every one that exists
    as a directory replaces the previous pick, so the last existing
    candidate wins. Later entries therefore act as overrides, e.g. an
    external drive listed after a local fallback is preferred whenever it
    is mounted.

    Args:
        candidates: Configured destination roots, in order

    Returns:
        The selected destination root

    Raises:
        NoDestinationError: If candidates is empty or none of them is an
                            existing directory
    """
    if not candidates:
        raise NoDestinationError("No locations to backup to.")

    selected: Optional[Path] = None
    for candidate in candidates:
        candidate = Path(candidate)
        if candidate.is_dir():
            selected = candidate
        else:
            logger.debug(f"Destination candidate not available: {candidate}")

    if selected is None:
        tried = ", ".join(str(c) for c in candidates)
        raise NoDestinationError(f"No locations to backup to. Tried: {tried}")

    return selected
