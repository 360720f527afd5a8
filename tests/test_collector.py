"""Tests for file metadata collection."""

from __future__ import annotations

import os
import stat
from datetime import UTC, datetime
from pathlib import Path
from types import SimpleNamespace
from unittest.mock import patch

import pytest

from cleanup_advisor.collector import MetadataCollector, build_record, decode_attributes
from cleanup_advisor.errors import FatalConfigError, PathNotFoundError
from cleanup_advisor.models import FileAttribute


@pytest.fixture
def tree(tmp_path: Path) -> Path:
    """Create a small directory tree.

    root/
        a.txt (10 bytes)
        b.LOG (1000 bytes)
        sub/
            c.tmp (100 bytes)
            deeper/
                d.bak (5 bytes)
    """
    (tmp_path / "a.txt").write_bytes(b"x" * 10)
    (tmp_path / "b.LOG").write_bytes(b"x" * 1000)
    sub = tmp_path / "sub"
    sub.mkdir()
    (sub / "c.tmp").write_bytes(b"x" * 100)
    deeper = sub / "deeper"
    deeper.mkdir()
    (deeper / "d.bak").write_bytes(b"x" * 5)
    return tmp_path


class TestCollect:
    """Tests for MetadataCollector.collect."""

    def test_missing_root_raises(self, tmp_path: Path) -> None:
        """A missing root fails before anything is enumerated."""
        collector = MetadataCollector()
        with patch("cleanup_advisor.collector.os.scandir") as scandir:
            with pytest.raises(PathNotFoundError) as exc_info:
                collector.collect(tmp_path / "missing")
        scandir.assert_not_called()
        assert isinstance(exc_info.value, FatalConfigError)
        assert exc_info.value.path == tmp_path / "missing"

    def test_file_root_raises(self, tree: Path) -> None:
        """A regular file is not a valid scan root."""
        with pytest.raises(PathNotFoundError):
            MetadataCollector().collect(tree / "a.txt")

    def test_non_recursive(self, tree: Path) -> None:
        """Only top-level files are returned without recursion."""
        records = MetadataCollector().collect(tree)
        assert [r.filename for r in records] == ["a.txt", "b.LOG"]

    def test_recursive(self, tree: Path) -> None:
        """Recursion includes nested files; directories are never records."""
        records = MetadataCollector(recurse=True).collect(tree)
        assert [r.filename for r in records] == ["a.txt", "b.LOG", "c.tmp", "d.bak"]

    def test_sibling_subtrees_depth_first(self, tmp_path: Path) -> None:
        """Each subdirectory is finished before its next sibling is entered."""
        for rel in ("z.txt", "a/a1.txt", "a/inner/a2.txt", "a/inner/deep/a3.txt", "b/b1.txt", "b/inner/b2.txt"):
            path = tmp_path / rel
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text("x")

        records = MetadataCollector(recurse=True).collect(tmp_path)

        assert [r.filename for r in records] == ["z.txt", "a1.txt", "a2.txt", "a3.txt", "b1.txt", "b2.txt"]

    def test_min_size(self, tree: Path) -> None:
        """Files below the minimum size are excluded."""
        records = MetadataCollector(recurse=True, min_size=100).collect(tree)
        assert sorted(r.filename for r in records) == ["b.LOG", "c.tmp"]

    def test_min_size_excludes_everything(self, tree: Path) -> None:
        """An empty result is returned, not an error."""
        assert MetadataCollector(recurse=True, min_size=10**9).collect(tree) == []

    def test_record_fields(self, tree: Path) -> None:
        """Records carry resolved paths, lowercased extensions and sizes."""
        stamp = datetime(2024, 3, 1, 12, 0, tzinfo=UTC).timestamp()
        os.utime(tree / "b.LOG", (stamp, stamp))

        record = next(r for r in MetadataCollector().collect(tree) if r.filename == "b.LOG")

        assert record.path == (tree / "b.LOG").resolve()
        assert record.path.is_absolute()
        assert record.name == "b"
        assert record.extension == ".log"
        assert record.size == 1000
        assert record.modified == datetime(2024, 3, 1, 12, 0, tzinfo=UTC)
        assert record.accessed == datetime(2024, 3, 1, 12, 0, tzinfo=UTC)
        assert record.created.tzinfo is not None

    def test_unreadable_directory_skipped(self, tree: Path) -> None:
        """A directory that cannot be listed is skipped and counted."""
        real_scandir = os.scandir

        def fake_scandir(path: Path) -> object:
            if Path(path).name == "sub":
                raise PermissionError("denied")
            return real_scandir(path)

        collector = MetadataCollector(recurse=True)
        with patch("cleanup_advisor.collector.os.scandir", side_effect=fake_scandir):
            records = collector.collect(tree)

        assert [r.filename for r in records] == ["a.txt", "b.LOG"]
        assert collector.skipped == 1

    def test_symlinks_ignored(self, tree: Path) -> None:
        """Symbolic links are not regular files and are not followed."""
        (tree / "link.txt").symlink_to(tree / "a.txt")
        records = MetadataCollector().collect(tree)
        assert "link.txt" not in [r.filename for r in records]


class TestAttributes:
    """Tests for attribute decoding."""

    def test_windows_attributes(self) -> None:
        """Windows attribute bits are decoded into flags."""
        st = SimpleNamespace(
            st_file_attributes=stat.FILE_ATTRIBUTE_SYSTEM | stat.FILE_ATTRIBUTE_HIDDEN,
            st_mode=stat.S_IFREG | 0o644,
        )
        flags = decode_attributes("pagefile.sys", st)
        assert FileAttribute.SYSTEM in flags
        assert FileAttribute.HIDDEN in flags
        assert FileAttribute.READONLY not in flags

    def test_posix_hidden(self) -> None:
        """A leading dot marks a hidden file."""
        st = SimpleNamespace(st_mode=stat.S_IFREG | 0o644)
        assert decode_attributes(".bashrc", st) == FileAttribute.HIDDEN

    def test_posix_readonly(self) -> None:
        """A file without any write bit is read-only."""
        st = SimpleNamespace(st_mode=stat.S_IFREG | 0o444)
        assert decode_attributes("notes.txt", st) == FileAttribute.READONLY

    def test_readonly_on_disk(self, tmp_path: Path) -> None:
        """Read-only files on disk are detected by the collector."""
        path = tmp_path / "locked.txt"
        path.write_text("data")
        path.chmod(0o444)
        try:
            (record,) = MetadataCollector().collect(tmp_path)
        finally:
            path.chmod(0o644)
        assert FileAttribute.READONLY in record.attributes

    def test_describe(self) -> None:
        """Attribute sets render as readable names."""
        assert FileAttribute.NONE.describe() == "Normal"
        assert (FileAttribute.READONLY | FileAttribute.HIDDEN).describe() == "Readonly, Hidden"


class TestBuildRecord:
    """Tests for build_record."""

    def test_missing_access_time(self) -> None:
        """A zero access time is treated as unavailable."""
        st = SimpleNamespace(
            st_mode=stat.S_IFREG | 0o644,
            st_size=42,
            st_ctime=1_700_000_000.0,
            st_mtime=1_700_000_000.0,
            st_atime=0,
        )
        record = build_record(Path("/data/file.txt"), st)
        assert record.accessed is None
        assert record.created == datetime.fromtimestamp(1_700_000_000.0, tz=UTC)
