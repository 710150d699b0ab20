"""Database models for the course catalog.

Cassandra table definitions for:
- Courses: one row per course (existence + metadata)
- Sections: ordered sections per course partition
- Chapters: ordered chapters per course partition, clustered by section

Architecture: the whole structure of a course lives in the ``course_id``
partition of two tables, so a course shape is read with two single-partition
queries and always reflects the latest catalog edit.
"""

from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from typing import Any
from uuid import UUID


class ChapterType(str, Enum):
    """Chapter content type."""

    TEXT = "Text"
    QUIZ = "Quiz"
    VIDEO = "Video"


class CourseStatus(str, Enum):
    """Course publication status."""

    DRAFT = "Draft"
    PUBLISHED = "Published"


# ==============================================================================
# CQL Table Definitions
# ==============================================================================

COURSE_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.courses (
    id UUID PRIMARY KEY,
    title TEXT,
    status TEXT,
    teacher_id TEXT,
    updated_at TIMESTAMP
)
"""

# Sections of a course, ordered by position
COURSE_SECTIONS_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.course_sections (
    course_id UUID,
    position INT,
    section_id UUID,
    title TEXT,
    PRIMARY KEY (course_id, position)
) WITH CLUSTERING ORDER BY (position ASC)
"""

# Chapters share the course partition, ordered by section then position
COURSE_CHAPTERS_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.course_chapters (
    course_id UUID,
    section_position INT,
    position INT,
    section_id UUID,
    chapter_id UUID,
    chapter_type TEXT,
    title TEXT,
    PRIMARY KEY (course_id, section_position, position)
) WITH CLUSTERING ORDER BY (section_position ASC, position ASC)
"""

COURSES_TABLES_CQL = [
    COURSE_TABLE_CQL,
    COURSE_SECTIONS_TABLE_CQL,
    COURSE_CHAPTERS_TABLE_CQL,
]


# ==============================================================================
# Helper Functions
# ==============================================================================


def ensure_utc_aware(dt: datetime | None) -> datetime | None:
    """Ensure datetime is UTC-aware (Cassandra returns naive datetimes)."""
    if dt is None:
        return None
    if dt.tzinfo is None:
        return dt.replace(tzinfo=UTC)
    return dt


# ==============================================================================
# Course Shape
# ==============================================================================


@dataclass(frozen=True)
class ChapterShape:
    """A chapter as the catalog describes it."""

    chapter_id: UUID
    chapter_type: ChapterType
    title: str = ""


@dataclass(frozen=True)
class SectionShape:
    """An ordered group of chapters."""

    section_id: UUID
    title: str = ""
    chapters: tuple[ChapterShape, ...] = ()


@dataclass(frozen=True)
class CourseShape:
    """Structure of a course at the moment it was read.

    Chapter ids are unique within a course; ``section_of`` relies on it.
    """

    course_id: UUID
    title: str = ""
    sections: tuple[SectionShape, ...] = ()
    _section_by_chapter: dict[UUID, UUID] = field(
        default_factory=dict, init=False, repr=False, compare=False
    )

    def __post_init__(self) -> None:
        for section in self.sections:
            for chapter in section.chapters:
                self._section_by_chapter[chapter.chapter_id] = section.section_id

    @property
    def chapter_count(self) -> int:
        """Total chapters across every section."""
        return len(self._section_by_chapter)

    def has_chapter(self, chapter_id: UUID) -> bool:
        return chapter_id in self._section_by_chapter

    def section_of(self, chapter_id: UUID) -> UUID | None:
        """Section that currently contains ``chapter_id``, if any."""
        return self._section_by_chapter.get(chapter_id)

    @classmethod
    def from_rows(
        cls,
        course_row: Any,
        section_rows: list[Any],
        chapter_rows: list[Any],
    ) -> "CourseShape":
        """Assemble a shape from the course, section and chapter rows.

        Rows are expected in clustering order. Chapters whose section row is
        missing are grouped under their own ``section_id``.
        """
        chapters_by_section: dict[UUID, list[ChapterShape]] = {}
        for row in chapter_rows:
            chapters_by_section.setdefault(row.section_id, []).append(
                ChapterShape(
                    chapter_id=row.chapter_id,
                    chapter_type=ChapterType(row.chapter_type),
                    title=row.title or "",
                )
            )

        sections: list[SectionShape] = []
        for row in section_rows:
            sections.append(
                SectionShape(
                    section_id=row.section_id,
                    title=row.title or "",
                    chapters=tuple(chapters_by_section.pop(row.section_id, [])),
                )
            )
        for section_id, orphans in chapters_by_section.items():
            sections.append(SectionShape(section_id=section_id, chapters=tuple(orphans)))

        return cls(
            course_id=course_row.id,
            title=course_row.title or "",
            sections=tuple(sections),
        )

    def __repr__(self) -> str:
        return (
            f"<CourseShape course={self.course_id} "
            f"sections={len(self.sections)} chapters={self.chapter_count}>"
        )
