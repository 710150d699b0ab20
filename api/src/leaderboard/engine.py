"""Pure leaderboard ranking.

Scores are computed from progress records handed in by the caller; nothing
here reads storage and nothing is kept between calls.

Ordering for both boards:
1. Higher score first
2. Earlier ``last_updated`` first (whoever got there first); users without
   any record come after users with one
3. ``user_id`` ascending, so the order is total and stable
"""

from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal
from uuid import UUID

from src.progress.models import CourseProgressRecord


MEAN_QUANTUM = Decimal("0.01")


@dataclass(frozen=True)
class ScoredUser:
    """A user's score before ranking."""

    user_id: UUID
    score: Decimal
    last_updated: datetime | None = None
    courses_counted: int = 1


@dataclass(frozen=True)
class LeaderboardEntry:
    """One ranked row. Never persisted."""

    user_id: UUID
    score: Decimal
    rank: int
    last_updated: datetime | None = None
    courses_counted: int = 1


@dataclass(frozen=True)
class LeaderboardPage:
    """A slice of a ranked board plus the board size."""

    entries: list[LeaderboardEntry]
    total: int
    me: LeaderboardEntry | None = None


def _sort_key(scored: ScoredUser):
    has_record = scored.last_updated is not None
    return (
        -scored.score,
        not has_record,
        scored.last_updated.timestamp() if has_record else 0.0,
        scored.user_id,
    )


def rank_entries(scored: Iterable[ScoredUser]) -> list[LeaderboardEntry]:
    """Order scored users and assign 1-based ranks."""
    ordered = sorted(scored, key=_sort_key)
    return [
        LeaderboardEntry(
            user_id=item.user_id,
            score=item.score,
            rank=position,
            last_updated=item.last_updated,
            courses_counted=item.courses_counted,
        )
        for position, item in enumerate(ordered, start=1)
    ]


def course_scores(
    user_ids: Iterable[UUID],
    records: Mapping[UUID, CourseProgressRecord],
) -> list[ScoredUser]:
    """Score every enrolled user by their completion percentage in one course.

    Args:
        user_ids: Users enrolled in the course
        records: Progress record per user; missing users score 0
    """
    scored = []
    for user_id in user_ids:
        record = records.get(user_id)
        if record is None:
            scored.append(ScoredUser(user_id=user_id, score=Decimal(0)))
            continue
        scored.append(
            ScoredUser(
                user_id=user_id,
                score=Decimal(record.overall_completion_percentage),
                last_updated=record.last_updated,
            )
        )
    return scored


def mean_percentage(percentages: list[int]) -> Decimal:
    """Arithmetic mean rounded half-up to two decimals; 0 for no courses."""
    if not percentages:
        return Decimal(0).quantize(MEAN_QUANTUM)
    mean = Decimal(sum(percentages)) / Decimal(len(percentages))
    return mean.quantize(MEAN_QUANTUM, rounding=ROUND_HALF_UP)


def learning_scores(
    enrollments: Mapping[UUID, set[UUID]],
    records: Mapping[UUID, Mapping[UUID, CourseProgressRecord]],
) -> list[ScoredUser]:
    """Score users by mean completion across all their enrolled courses.

    Enrolled courses without a record count as 0%. The tie-break time is the
    most recent update among the user's records.

    Args:
        enrollments: Enrolled course ids per user (users with none are skipped)
        records: Progress records per user, keyed by course id
    """
    scored = []
    for user_id, course_ids in enrollments.items():
        if not course_ids:
            continue
        user_records = records.get(user_id, {})

        percentages = []
        latest: datetime | None = None
        for course_id in course_ids:
            record = user_records.get(course_id)
            if record is None:
                percentages.append(0)
                continue
            percentages.append(record.overall_completion_percentage)
            if record.last_updated and (latest is None or record.last_updated > latest):
                latest = record.last_updated

        scored.append(
            ScoredUser(
                user_id=user_id,
                score=mean_percentage(percentages),
                last_updated=latest,
                courses_counted=len(course_ids),
            )
        )
    return scored


def paginate(
    entries: list[LeaderboardEntry],
    limit: int,
    offset: int = 0,
    me: UUID | None = None,
) -> LeaderboardPage:
    """Slice an already ranked board; ranks are not recomputed."""
    mine = None
    if me is not None:
        mine = next((entry for entry in entries if entry.user_id == me), None)
    return LeaderboardPage(
        entries=entries[offset : offset + limit],
        total=len(entries),
        me=mine,
    )
