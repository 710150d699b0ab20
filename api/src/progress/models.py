"""Database models for course progress tracking.

Cassandra table definitions for:
- Course progress: one row per (user, course) holding the nested chapter state
- Enrollments: membership edges, dual-written by course and by user

Architecture: the nested sections/chapters of a record are stored as a JSON
document in a single row, so replacing a record is one atomic write.
"""

import json
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any
from uuid import UUID

from src.courses.models import ensure_utc_aware


class ProgressStatus(str, Enum):
    """Derived course progress status."""

    NOT_STARTED = "not_started"  # No record yet
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"  # Every chapter of the current shape completed


# ==============================================================================
# Helper Functions
# ==============================================================================


def _parse_datetime(value: str | None) -> datetime | None:
    if not value:
        return None
    return ensure_utc_aware(datetime.fromisoformat(value))


# ==============================================================================
# CQL Table Definitions
# ==============================================================================

# Partition key: user_id, so a user's records are read in one query
# (single record, batch by course ids, or all of them)
COURSE_PROGRESS_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.course_progress (
    user_id UUID,
    course_id UUID,
    sections TEXT,
    overall_completion_percentage INT,
    last_updated TIMESTAMP,
    PRIMARY KEY (user_id, course_id)
)
"""

# Enrollment edges by course: "who is enrolled in this course?"
COURSE_ENROLLMENTS_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.course_enrollments (
    course_id UUID,
    user_id UUID,
    enrolled_at TIMESTAMP,
    PRIMARY KEY (course_id, user_id)
)
"""

# Enrollment edges by user: "which courses is this user enrolled in?"
ENROLLMENTS_BY_USER_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.enrollments_by_user (
    user_id UUID,
    course_id UUID,
    enrolled_at TIMESTAMP,
    PRIMARY KEY (user_id, course_id)
)
"""

PROGRESS_TABLES_CQL = [
    COURSE_PROGRESS_TABLE_CQL,
    COURSE_ENROLLMENTS_TABLE_CQL,
    ENROLLMENTS_BY_USER_TABLE_CQL,
]


# ==============================================================================
# Entity Classes
# ==============================================================================


@dataclass
class ChapterProgress:
    """Completion state of one chapter."""

    chapter_id: UUID
    completed: bool = False
    last_accessed: datetime | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "chapter_id": str(self.chapter_id),
            "completed": self.completed,
            "last_accessed": (
                self.last_accessed.isoformat() if self.last_accessed else None
            ),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ChapterProgress":
        return cls(
            chapter_id=UUID(data["chapter_id"]),
            completed=bool(data.get("completed", False)),
            last_accessed=_parse_datetime(data.get("last_accessed")),
        )


@dataclass
class SectionProgress:
    """Chapter states of one section, in course order."""

    section_id: UUID
    chapters: list[ChapterProgress]

    def to_dict(self) -> dict[str, Any]:
        return {
            "section_id": str(self.section_id),
            "chapters": [chapter.to_dict() for chapter in self.chapters],
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "SectionProgress":
        return cls(
            section_id=UUID(data["section_id"]),
            chapters=[ChapterProgress.from_dict(c) for c in data.get("chapters", [])],
        )


class CourseProgressRecord:
    """Progress of one user in one course.

    Attributes:
        user_id: User UUID
        course_id: Course UUID
        sections: Ordered section progress mirroring the course shape
        overall_completion_percentage: 0-100, derived from ``sections``
        last_updated: Time of the last write (set by the store)
    """

    def __init__(
        self,
        user_id: UUID,
        course_id: UUID,
        sections: list[SectionProgress] | None = None,
        overall_completion_percentage: int = 0,
        last_updated: datetime | None = None,
    ):
        self.user_id = user_id
        self.course_id = course_id
        self.sections = sections or []
        self.overall_completion_percentage = overall_completion_percentage
        self.last_updated = ensure_utc_aware(last_updated)

    def iter_chapters(self):
        """Yield every ChapterProgress in order."""
        for section in self.sections:
            yield from section.chapters

    @property
    def chapters_completed(self) -> int:
        return sum(1 for chapter in self.iter_chapters() if chapter.completed)

    @property
    def chapters_total(self) -> int:
        return sum(len(section.chapters) for section in self.sections)

    @property
    def status(self) -> ProgressStatus:
        if self.chapters_total and self.chapters_completed == self.chapters_total:
            return ProgressStatus.COMPLETED
        return ProgressStatus.IN_PROGRESS

    def sections_json(self) -> str:
        """Serialize sections for the ``sections`` TEXT column."""
        return json.dumps([section.to_dict() for section in self.sections])

    @classmethod
    def from_row(cls, row: Any) -> "CourseProgressRecord":
        """Create CourseProgressRecord instance from Cassandra row."""
        raw_sections = json.loads(row.sections) if row.sections else []
        return cls(
            user_id=row.user_id,
            course_id=row.course_id,
            sections=[SectionProgress.from_dict(s) for s in raw_sections],
            overall_completion_percentage=row.overall_completion_percentage or 0,
            last_updated=row.last_updated,
        )

    def __repr__(self) -> str:
        return (
            f"<CourseProgressRecord user={self.user_id} course={self.course_id} "
            f"{self.overall_completion_percentage}%>"
        )


@dataclass(frozen=True)
class NotStarted:
    """No progress has been written yet for (user_id, course_id).

    A valid empty state, not an error; distinct from an unknown course.
    """

    user_id: UUID
    course_id: UUID


@dataclass(frozen=True)
class EnrollmentEdge:
    """Membership of a user in a course."""

    user_id: UUID
    course_id: UUID
    enrolled_at: datetime | None = None

    @classmethod
    def from_row(cls, row: Any) -> "EnrollmentEdge":
        return cls(
            user_id=row.user_id,
            course_id=row.course_id,
            enrolled_at=ensure_utc_aware(row.enrolled_at),
        )
