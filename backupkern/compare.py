"""Change detection between a source file and its previous backup.

Two entries count as the same file when both are regular files with the
same name, size, permission bits and modification time. Only metadata is
looked at unless content verification is switched on, in which case the
bytes are compared as well once all metadata agrees.
"""

from pathlib import Path
import os
import stat


def contents_equal(file1: Path, file2: Path, chunk_size: int = 65536) -> bool:
    """
    Compare two files by content.

    Args:
        file1: First file path
        file2: Second file path
        chunk_size: Size of chunks to read at a time

    Returns:
        True if both files could be read and have identical bytes
    """
    try:
        with open(file1, 'rb') as f1, open(file2, 'rb') as f2:
            while True:
                chunk1 = f1.read(chunk_size)
                chunk2 = f2.read(chunk_size)
                if chunk1 != chunk2:
                    return False
                if not chunk1:  # EOF reached
                    return True
    except OSError:
        return False


def files_equal(a: Path, b: Path, verify_content: bool = False) -> bool:
    """
    Decide whether b is unchanged with respect to a.

    Returns False as soon as any axis disagrees: differing names, either
    side not a regular file (or missing), differing size, differing
    permission bits, or an unreadable modification time. Modification
    times must match to the nanosecond.

    Args:
        a: Candidate in the previous generation
        b: Current source file
        verify_content: Also require byte-identical content

    Returns:
        True if the two entries are considered the same file
    """
    a = Path(a)
    b = Path(b)

    if a.name != b.name:
        return False

    try:
        a_stat = os.stat(a)
        b_stat = os.stat(b)
    except OSError:
        return False

    if not stat.S_ISREG(a_stat.st_mode) or not stat.S_ISREG(b_stat.st_mode):
        return False

    if a_stat.st_size != b_stat.st_size:
        return False

    if stat.S_IMODE(a_stat.st_mode) != stat.S_IMODE(b_stat.st_mode):
        return False

    if a_stat.st_mtime_ns != b_stat.st_mtime_ns:
        return False

    if verify_content:
        return contents_equal(a, b)

    return True
