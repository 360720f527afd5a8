"""Collect file metadata under a scan root."""

from __future__ import annotations

import logging
import os
import stat
from collections import deque
from collections.abc import Iterator
from datetime import UTC, datetime
from pathlib import Path

from .errors import PathNotFoundError
from .models import FileAttribute, FileRecord

logger = logging.getLogger(__name__)

# Windows st_file_attributes bits mapped to flags
_WINDOWS_ATTRIBUTES: tuple[tuple[str, FileAttribute], ...] = (
    ("FILE_ATTRIBUTE_READONLY", FileAttribute.READONLY),
    ("FILE_ATTRIBUTE_HIDDEN", FileAttribute.HIDDEN),
    ("FILE_ATTRIBUTE_SYSTEM", FileAttribute.SYSTEM),
    ("FILE_ATTRIBUTE_ARCHIVE", FileAttribute.ARCHIVE),
    ("FILE_ATTRIBUTE_TEMPORARY", FileAttribute.TEMPORARY),
    ("FILE_ATTRIBUTE_COMPRESSED", FileAttribute.COMPRESSED),
    ("FILE_ATTRIBUTE_ENCRYPTED", FileAttribute.ENCRYPTED),
    ("FILE_ATTRIBUTE_OFFLINE", FileAttribute.OFFLINE),
    ("FILE_ATTRIBUTE_REPARSE_POINT", FileAttribute.REPARSE_POINT),
    ("FILE_ATTRIBUTE_NOT_CONTENT_INDEXED", FileAttribute.NOT_CONTENT_INDEXED),
)

_WRITE_BITS = stat.S_IWUSR | stat.S_IWGRP | stat.S_IWOTH


def decode_attributes(name: str, st: os.stat_result) -> FileAttribute:
    """Decode platform attribute metadata into a flag set.

    Windows exposes ``st_file_attributes``; elsewhere a leading dot marks a
    hidden file and missing write bits mark it read-only.
    """
    raw = getattr(st, "st_file_attributes", None)
    if raw is not None:
        flags = FileAttribute.NONE
        for const_name, flag in _WINDOWS_ATTRIBUTES:
            if raw & getattr(stat, const_name, 0):
                flags |= flag
        return flags

    flags = FileAttribute.NONE
    if name.startswith("."):
        flags |= FileAttribute.HIDDEN
    if not st.st_mode & _WRITE_BITS:
        flags |= FileAttribute.READONLY
    return flags


def _timestamp(value: float) -> datetime:
    return datetime.fromtimestamp(value, tz=UTC)


def build_record(path: Path, st: os.stat_result) -> FileRecord:
    """Create a FileRecord from a path and its stat result."""
    # st_birthtime only exists on some platforms; st_ctime is the closest substitute
    created = getattr(st, "st_birthtime", None) or st.st_ctime
    accessed = _timestamp(st.st_atime) if st.st_atime else None

    return FileRecord(
        path=path,
        name=path.stem,
        extension=path.suffix.lower(),
        size=st.st_size,
        created=_timestamp(created),
        modified=_timestamp(st.st_mtime),
        accessed=accessed,
        attributes=decode_attributes(path.name, st),
    )


class MetadataCollector:
    """Enumerates regular files under a root and snapshots their metadata."""

    def __init__(self, *, recurse: bool = False, min_size: int = 0) -> None:
        """Initialize the collector.

        Args:
            recurse: Whether to descend into subdirectories.
            min_size: Files smaller than this many bytes are excluded.

        """
        self.recurse = recurse
        self.min_size = min_size
        self.skipped = 0

    def collect(self, root: Path) -> list[FileRecord]:
        """Collect records for every matching file under root.

        Unreadable entries are logged and skipped, so the result may be
        partial.

        Args:
            root: Directory to scan.

        Returns:
            Records in enumeration order.

        Raises:
            PathNotFoundError: If root does not exist or is not a directory.

        """
        if not root.is_dir():
            raise PathNotFoundError(root)

        root = root.resolve()
        self.skipped = 0
        records: list[FileRecord] = []

        for path in self._walk(root):
            try:
                st = path.stat(follow_symlinks=False)
            except OSError as e:
                self._skip(path, e)
                continue

            if not stat.S_ISREG(st.st_mode):
                continue
            if st.st_size < self.min_size:
                continue

            records.append(build_record(path, st))

        if self.skipped:
            logger.info("Skipped %d unreadable entries under %s", self.skipped, root)
        logger.debug("Collected %d files under %s", len(records), root)

        return records

    def _walk(self, root: Path) -> Iterator[Path]:
        """Yield candidate paths in a stable, sorted order."""
        pending = deque([root])
        while pending:
            directory = pending.popleft()
            try:
                with os.scandir(directory) as it:
                    entries = sorted(it, key=lambda e: e.name)
            except OSError as e:
                self._skip(directory, e)
                continue

            subdirs: list[Path] = []
            for entry in entries:
                path = Path(entry.path)
                try:
                    is_dir = entry.is_dir(follow_symlinks=False)
                except OSError as e:
                    self._skip(path, e)
                    continue
                if is_dir:
                    subdirs.append(path)
                else:
                    yield path

            if self.recurse:
                pending.extendleft(reversed(subdirs))

    def _skip(self, path: Path, error: OSError) -> None:
        self.skipped += 1
        logger.debug("Skipping unreadable entry %s: %s", path, error)
