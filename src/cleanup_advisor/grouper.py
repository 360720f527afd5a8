"""Group files whose names differ only by a backup/copy/version suffix."""

from __future__ import annotations

import re
from collections.abc import Iterable

from .models import FileRecord

# One trailing token, introduced by a separator or an opening parenthesis:
# "report_old", "report - Copy", "report (copy)", "report.v2"
_SUFFIX_PATTERN = re.compile(
    r"^(?P<stem>.+?)(?:[\s._-]+\(?|\()(?:copy|backup|bak|old|temp|tmp|log|v\d+)\)?$",
    re.IGNORECASE,
)

# Group size at which the redundancy factor saturates
SATURATION_GROUP_SIZE = 10

StemGroups = dict[str, list[FileRecord]]


def normalize_stem(name: str) -> str:
    """Strip one recognized disposability suffix from a base name.

    Args:
        name: File name without extension.

    Returns:
        Lowercased stem used as the grouping key.

    """
    match = _SUFFIX_PATTERN.match(name)
    stem = match.group("stem") if match else name
    return stem.strip().lower()


def build_stem_groups(records: Iterable[FileRecord]) -> StemGroups:
    """Map each normalized stem to the records sharing it, in input order."""
    groups: StemGroups = {}
    for record in records:
        groups.setdefault(normalize_stem(record.name), []).append(record)
    return groups


def group_size(record: FileRecord, groups: StemGroups) -> int:
    """Number of records sharing this record's stem (at least 1)."""
    return max(1, len(groups.get(normalize_stem(record.name), ())))


def redundancy_factor(size: int) -> float:
    """Convert a group size into a [0, 1] factor; a lone file scores 0."""
    return min(1.0, max(0, size - 1) / (SATURATION_GROUP_SIZE - 1))
