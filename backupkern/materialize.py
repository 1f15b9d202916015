"""Placing a single file into a new snapshot.

A file that is unchanged since the previous generation is hard-linked from
it; anything else is copied with its timestamps and permission bits so the
next run can recognise it as unchanged.
"""

from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Optional
import logging
import os
import shutil
import tempfile

from backupkern.compare import files_equal


logger = logging.getLogger(__name__)


class MaterializeError(Exception):
    """Raised when a file could not be placed in the snapshot."""
    pass


class CopyError(MaterializeError):
    """Raised when copying a file (or preparing its directory) fails."""
    pass


class LinkError(MaterializeError):
    """Raised when hard-linking from the previous generation fails."""
    pass


class MaterializeAction(Enum):
    """How a file ended up in the snapshot."""
    LINKED = "linked"
    COPIED = "copied"


@dataclass
class Materialized:
    """Outcome of placing one file."""
    action: MaterializeAction
    bytes_copied: int = 0


def copy_file(source: Path, destination: Path) -> int:
    """
    Copy a file's bytes, modification time and permission bits.

    The data is written to a temporary file next to the destination and
    linked into place only after the copied size matches the source, so a
    partially written file never appears under the destination name. An
    existing file at the destination is never replaced.

    Args:
        source: File to copy
        destination: Path to create

    Returns:
        Number of bytes copied

    Raises:
        CopyError: If any step fails or the destination already exists;
                   the temporary file is removed in every case
    """
    source = Path(source)
    destination = Path(destination)

    try:
        fd, tmp_name = tempfile.mkstemp(
            prefix=f".{destination.name}.", suffix=".partial", dir=destination.parent
        )
    except OSError as e:
        raise CopyError(f"Cannot create temporary file for {destination}: {e}")
    os.close(fd)
    tmp_path = Path(tmp_name)

    try:
        expected = os.stat(source).st_size
        shutil.copyfile(source, tmp_path)
        written = tmp_path.stat().st_size
        if written != expected:
            raise CopyError(
                f"Partial copy of {source}: wrote {written} of {expected} bytes"
            )
        shutil.copystat(source, tmp_path)
        os.link(tmp_path, destination)
        return written
    except FileExistsError:
        raise CopyError(f"Destination already exists: {destination}")
    except (OSError, shutil.Error) as e:
        raise CopyError(f"Failed to copy {source} to {destination}: {e}")
    finally:
        _discard(tmp_path)


def _discard(path: Path) -> None:
    try:
        path.unlink()
    except FileNotFoundError:
        pass
    except OSError as e:
        logger.warning(f"Could not remove partial copy {path}: {e}")


class FileMaterializer:
    """
    Produces one destination file by hard link or by copy.

    Attributes:
        verify_content: Require identical bytes, not just identical
                        metadata, before hard-linking
    """

    def __init__(self, verify_content: bool = False):
        self.verify_content = verify_content

    def materialize(
        self,
        source_file: Path,
        destination_path: Path,
        suffix: Path,
        prior_generation: Optional[Path] = None,
    ) -> Materialized:
        """
        Place source_file at destination_path.

        Missing parent directories of destination_path are created first.
        If prior_generation holds an unchanged copy at the same suffix, it
        is hard-linked; otherwise source_file is copied.

        Args:
            source_file: File in the source tree
            destination_path: Target path inside the new snapshot
            suffix: Path of the file relative to the source root
            prior_generation: Latest previous snapshot, if any

        Returns:
            Materialized describing the action taken

        Raises:
            LinkError: If the hard link could not be created
            CopyError: If the copy or directory creation failed
        """
        source_file = Path(source_file)
        destination_path = Path(destination_path)

        try:
            destination_path.parent.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise CopyError(
                f"Cannot create directory {destination_path.parent}: {e}"
            )

        if prior_generation is not None:
            candidate = Path(prior_generation) / suffix
            if files_equal(candidate, source_file, verify_content=self.verify_content):
                try:
                    os.link(candidate, destination_path)
                except OSError as e:
                    raise LinkError(
                        f"Failed to link {candidate} to {destination_path}: {e}"
                    )
                return Materialized(MaterializeAction.LINKED)

        written = copy_file(source_file, destination_path)
        return Materialized(MaterializeAction.COPIED, bytes_copied=written)
