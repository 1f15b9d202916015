"""Unit tests for placing single files into a snapshot."""

import os
import tempfile
from pathlib import Path
from unittest.mock import patch

import pytest

from backupkern.materialize import (
    CopyError,
    FileMaterializer,
    LinkError,
    MaterializeAction,
    copy_file,
)


MTIME_NS = 1_600_000_000_000_000_000


@pytest.fixture
def workspace():
    with tempfile.TemporaryDirectory() as tmpdir:
        base = Path(tmpdir)
        for name in ("src", "prior", "new"):
            (base / name).mkdir()
        yield base


def write(path: Path, content: bytes, mode: int = 0o640) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(content)
    os.chmod(path, mode)
    os.utime(path, ns=(MTIME_NS, MTIME_NS))
    return path


class TestCopyFile:
    """Tests for copy_file."""

    def test_copies_bytes_mode_and_mtime(self, workspace):
        src = write(workspace / "src" / "f.bin", b"payload", mode=0o600)
        dst = workspace / "new" / "f.bin"

        written = copy_file(src, dst)

        assert written == len(b"payload")
        assert dst.read_bytes() == b"payload"
        st = dst.stat()
        assert st.st_mtime_ns == MTIME_NS
        assert st.st_mode & 0o777 == 0o600
        assert st.st_ino != src.stat().st_ino

    def test_no_partial_file_left_on_failure(self, workspace):
        dst = workspace / "new" / "f.bin"

        with pytest.raises(CopyError):
            copy_file(workspace / "src" / "missing", dst)

        assert list((workspace / "new").iterdir()) == []

    def test_existing_destination_is_kept(self, workspace):
        src = write(workspace / "src" / "f.bin", b"payload")
        dst = write(workspace / "new" / "f.bin", b"earlier")

        with pytest.raises(CopyError, match="already exists"):
            copy_file(src, dst)

        assert dst.read_bytes() == b"earlier"
        assert list((workspace / "new").iterdir()) == [dst]

    def test_size_mismatch_is_an_error(self, workspace):
        src = write(workspace / "src" / "f.bin", b"payload")
        dst = workspace / "new" / "f.bin"

        # Truncate the copy to simulate a short write
        def short_copy(source, target):
            Path(target).write_bytes(b"pay")

        with patch("backupkern.materialize.shutil.copyfile", side_effect=short_copy):
            with pytest.raises(CopyError, match="Partial copy"):
                copy_file(src, dst)

        assert not dst.exists()
        assert list((workspace / "new").iterdir()) == []


class TestFileMaterializer:
    """Tests for FileMaterializer.materialize."""

    def test_copies_without_prior_generation(self, workspace):
        src = write(workspace / "src" / "a" / "f.txt", b"x")
        dst = workspace / "new" / "a" / "f.txt"

        outcome = FileMaterializer().materialize(src, dst, Path("a/f.txt"))

        assert outcome.action is MaterializeAction.COPIED
        assert outcome.bytes_copied == 1
        assert dst.read_bytes() == b"x"

    def test_links_unchanged_file(self, workspace):
        src = write(workspace / "src" / "a" / "f.txt", b"x")
        prior_file = write(workspace / "prior" / "a" / "f.txt", b"x")
        dst = workspace / "new" / "a" / "f.txt"

        outcome = FileMaterializer().materialize(
            src, dst, Path("a/f.txt"), workspace / "prior"
        )

        assert outcome.action is MaterializeAction.LINKED
        assert outcome.bytes_copied == 0
        assert dst.stat().st_ino == prior_file.stat().st_ino

    def test_copies_changed_file(self, workspace):
        src = write(workspace / "src" / "f.txt", b"new content")
        prior_file = write(workspace / "prior" / "f.txt", b"old")
        dst = workspace / "new" / "f.txt"

        outcome = FileMaterializer().materialize(
            src, dst, Path("f.txt"), workspace / "prior"
        )

        assert outcome.action is MaterializeAction.COPIED
        assert dst.stat().st_ino != prior_file.stat().st_ino
        assert dst.read_bytes() == b"new content"

    def test_verify_content_forces_copy(self, workspace):
        src = write(workspace / "src" / "f.txt", b"aaa")
        write(workspace / "prior" / "f.txt", b"bbb")
        dst = workspace / "new" / "f.txt"

        outcome = FileMaterializer(verify_content=True).materialize(
            src, dst, Path("f.txt"), workspace / "prior"
        )

        assert outcome.action is MaterializeAction.COPIED
        assert dst.read_bytes() == b"aaa"

    def test_link_failure_raises_link_error(self, workspace):
        src = write(workspace / "src" / "f.txt", b"x")
        write(workspace / "prior" / "f.txt", b"x")
        dst = workspace / "new" / "f.txt"

        with patch("backupkern.materialize.os.link", side_effect=OSError("EXDEV")):
            with pytest.raises(LinkError):
                FileMaterializer().materialize(
                    src, dst, Path("f.txt"), workspace / "prior"
                )

    def test_link_onto_existing_file_fails(self, workspace):
        """A destination that already exists is never overwritten by a link."""
        src = write(workspace / "src" / "f.txt", b"x")
        write(workspace / "prior" / "f.txt", b"x")
        dst = write(workspace / "new" / "f.txt", b"already")

        with pytest.raises(LinkError):
            FileMaterializer().materialize(
                src, dst, Path("f.txt"), workspace / "prior"
            )
        assert dst.read_bytes() == b"already"

    def test_copy_never_overwrites_existing_file(self, workspace):
        """A changed file is never copied over an existing destination."""
        src = write(workspace / "src" / "f.txt", b"newer content")
        write(workspace / "prior" / "f.txt", b"old")
        dst = write(workspace / "new" / "f.txt", b"old")

        with pytest.raises(CopyError, match="already exists"):
            FileMaterializer().materialize(
                src, dst, Path("f.txt"), workspace / "prior"
            )
        assert dst.read_bytes() == b"old"
        assert [p.name for p in (workspace / "new").iterdir()] == ["f.txt"]

    def test_unreadable_source_raises_copy_error(self, workspace):
        src = workspace / "src" / "dangling"
        src.symlink_to(workspace / "src" / "nowhere")
        dst = workspace / "new" / "dangling"

        with pytest.raises(CopyError):
            FileMaterializer().materialize(src, dst, Path("dangling"))

    def test_parent_that_is_a_file_raises_copy_error(self, workspace):
        src = write(workspace / "src" / "d" / "f.txt", b"x")
        write(workspace / "new" / "d", b"blocking file")

        with pytest.raises(CopyError, match="Cannot create directory"):
            FileMaterializer().materialize(
                src, workspace / "new" / "d" / "f.txt", Path("d/f.txt")
            )
