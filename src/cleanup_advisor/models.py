"""Data types shared by the collector, scoring engine and report renderer."""

from __future__ import annotations

import enum
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path


class FileAttribute(enum.Flag):
    """Filesystem attribute flags decoded from platform metadata."""

    NONE = 0
    READONLY = enum.auto()
    HIDDEN = enum.auto()
    SYSTEM = enum.auto()
    ARCHIVE = enum.auto()
    TEMPORARY = enum.auto()
    COMPRESSED = enum.auto()
    ENCRYPTED = enum.auto()
    OFFLINE = enum.auto()
    REPARSE_POINT = enum.auto()
    NOT_CONTENT_INDEXED = enum.auto()

    def describe(self) -> str:
        """Render the set as comma-joined names, ``Normal`` when empty."""
        names = [member.name.title().replace("_", "") for member in FileAttribute if member and member in self]
        return ", ".join(names) if names else "Normal"


@dataclass(frozen=True)
class FileRecord:
    """Immutable metadata snapshot of one regular file."""

    path: Path
    name: str  # base name without extension
    extension: str  # lowercased, with leading dot, "" when absent
    size: int
    created: datetime
    modified: datetime
    accessed: datetime | None
    attributes: FileAttribute = FileAttribute.NONE

    @property
    def filename(self) -> str:
        return self.path.name


@dataclass(frozen=True)
class ScoreBreakdown:
    """Factor values and normalized safety score for one file."""

    record: FileRecord
    age: float
    access_age: float
    extension: float
    temp_dir: int
    redundancy: float
    group_size: int
    size_bonus: float
    recent_write_penalty: float
    recent_create_penalty: float
    attributes_penalty: float
    raw_score: float
    score: float

    @property
    def rationale(self) -> str:
        """Human-readable list of every factor value."""
        return "; ".join([
            f"Age={self.age:.2f}",
            f"AccessAge={self.access_age:.2f}",
            f"Ext={self.extension:.2f}",
            f"TempDir={self.temp_dir}",
            f"Redundancy={self.redundancy:.2f} (group={self.group_size})",
            f"SizeBonus={self.size_bonus:.2f}",
            f"RecentWrite={self.recent_write_penalty:.2f}",
            f"RecentCreate={self.recent_create_penalty:.2f}",
            f"Attr={self.attributes_penalty:.2f}",
        ])
