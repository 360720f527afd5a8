"""Weighted multi-factor deletion-safety scoring.

Each file gets six positive factors and three penalties, all in [0, 1]
(the temp-directory factor is 0 or 1). The weighted sum is min-max
normalized against the extremes the configured weights can produce, so
the final score always lies in [0, 100]:

    raw  = sum(w_i * factor_i) - sum(w_j * penalty_j)
    norm = (raw + max_negative) / (max_positive + max_negative) * 100

All ages are measured against a single timestamp captured at scan start.
"""

from __future__ import annotations

from datetime import datetime
from pathlib import PurePath

from .config import ClassificationRules, WeightConfig
from .grouper import StemGroups, group_size, redundancy_factor
from .models import FileAttribute, FileRecord, ScoreBreakdown

SECONDS_PER_DAY = 86400
STALE_DAYS = 180

RECENT_DAYS = 7
SOMEWHAT_RECENT_DAYS = 30

MB = 1024 * 1024
SIZE_BONUS_MIN_MB = 100
SIZE_BONUS_SPAN_MB = 900
SIZE_BONUS_MIN_AGE_DAYS = 90

NEUTRAL_EXTENSION = 0.4

ATTRIBUTE_PENALTIES: tuple[tuple[FileAttribute, float], ...] = (
    (FileAttribute.SYSTEM, 0.7),
    (FileAttribute.HIDDEN, 0.2),
    (FileAttribute.READONLY, 0.2),
)
MODULE_EXTENSION_PENALTY = 0.5


def days_between(now: datetime, then: datetime) -> float:
    """Days elapsed from then to now, floored at zero."""
    return max(0.0, (now - then).total_seconds() / SECONDS_PER_DAY)


def age_factor(days: float) -> float:
    return min(1.0, days / STALE_DAYS)


def recency_penalty(days: float) -> float:
    """1 within a week, 0.5 within a month, else 0."""
    if days < RECENT_DAYS:
        return 1.0
    if days < SOMEWHAT_RECENT_DAYS:
        return 0.5
    return 0.0


def _matches_extension(filename: str, extensions: frozenset[str]) -> bool:
    # endswith also covers compound entries such as ".msi.old"
    lowered = filename.lower()
    return any(lowered.endswith(ext) for ext in extensions)


def extension_factor(filename: str, rules: ClassificationRules) -> float:
    if _matches_extension(filename, rules.safe_extensions):
        return 1.0
    if _matches_extension(filename, rules.risky_extensions):
        return 0.0
    return NEUTRAL_EXTENSION


def temp_dir_factor(path: PurePath, rules: ClassificationRules) -> int:
    """1 if any directory segment of path equals a temp-directory token."""
    return int(any(part.lower() in rules.temp_dir_tokens for part in path.parent.parts))


def size_bonus_factor(size: int, write_age_days: float, ext_factor: float, temp_dir: int) -> float:
    """Bonus for large, stale files that are already plausibly disposable."""
    size_mb = size / MB
    eligible = (
        size_mb >= SIZE_BONUS_MIN_MB
        and write_age_days >= SIZE_BONUS_MIN_AGE_DAYS
        and ext_factor >= NEUTRAL_EXTENSION
        and (temp_dir == 1 or ext_factor == 1.0)
    )
    if not eligible:
        return 0.0
    return min(1.0, (size_mb - SIZE_BONUS_MIN_MB) / SIZE_BONUS_SPAN_MB)


def attributes_penalty(record: FileRecord, rules: ClassificationRules) -> float:
    penalty = sum(weight for flag, weight in ATTRIBUTE_PENALTIES if flag in record.attributes)
    if record.extension in rules.module_extensions:
        penalty += MODULE_EXTENSION_PENALTY
    return min(1.0, penalty)


def normalize_score(raw: float, weights: WeightConfig) -> float:
    """Map a raw weighted score onto [0, 100]; all-zero weights give 0."""
    span = weights.max_positive + weights.max_negative
    if span == 0:
        return 0.0
    score = (raw + weights.max_negative) / span * 100
    return min(100.0, max(0.0, score))


class ScoringEngine:
    """Scores FileRecords against fixed weights, rules and a scan timestamp."""

    def __init__(
        self,
        weights: WeightConfig,
        rules: ClassificationRules,
        groups: StemGroups,
        now: datetime,
    ) -> None:
        """Initialize the engine.

        Args:
            weights: Factor weights.
            rules: Extension sets and temp-directory tokens.
            groups: Stem groups built once over the whole scan.
            now: Scan start time; must be timezone-aware like the records.

        """
        self.weights = weights
        self.rules = rules
        self.groups = groups
        self.now = now

    def score(self, record: FileRecord) -> ScoreBreakdown:
        """Compute the factor breakdown and normalized score for one file."""
        w = self.weights

        write_days = days_between(self.now, record.modified)
        create_days = days_between(self.now, record.created)

        age = age_factor(write_days)
        if record.accessed is None:
            access_age = age
        else:
            access_age = age_factor(days_between(self.now, record.accessed))

        ext = extension_factor(record.filename, self.rules)
        temp_dir = temp_dir_factor(record.path, self.rules)
        members = group_size(record, self.groups)
        redundancy = redundancy_factor(members)
        size_bonus = size_bonus_factor(record.size, write_days, ext, temp_dir)

        write_penalty = recency_penalty(write_days)
        create_penalty = recency_penalty(create_days)
        attr_penalty = attributes_penalty(record, self.rules)

        raw = (
            w.age * age
            + w.access_age * access_age
            + w.extension * ext
            + w.temp_location * temp_dir
            + w.redundancy * redundancy
            + w.size_bonus * size_bonus
            - w.recent_write_penalty * write_penalty
            - w.recent_create_penalty * create_penalty
            - w.attributes_penalty * attr_penalty
        )

        return ScoreBreakdown(
            record=record,
            age=age,
            access_age=access_age,
            extension=ext,
            temp_dir=temp_dir,
            redundancy=redundancy,
            group_size=members,
            size_bonus=size_bonus,
            recent_write_penalty=write_penalty,
            recent_create_penalty=create_penalty,
            attributes_penalty=attr_penalty,
            raw_score=raw,
            score=normalize_score(raw, w),
        )

    def score_all(self, records: list[FileRecord]) -> list[ScoreBreakdown]:
        return [self.score(record) for record in records]
