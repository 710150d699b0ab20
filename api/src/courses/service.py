"""Course catalog lookup.

Read side of the catalog used by progress tracking:
- Course shape (sections -> chapters) for validation and scaling
- Chapter count for percentage computation

Reads are never cached; every call sees the latest structure.
"""

from datetime import UTC, datetime
from typing import TYPE_CHECKING
from uuid import UUID

import structlog
from cassandra.query import BatchStatement, BatchType

from src.core.database.errors import CASSANDRA_ERRORS

from .models import CourseShape, CourseStatus, SectionShape


if TYPE_CHECKING:
    from cassandra.cluster import Session

logger = structlog.get_logger(__name__)


# ==============================================================================
# Custom Exceptions
# ==============================================================================


class CatalogError(Exception):
    """Base catalog error."""

    def __init__(self, message: str, code: str = "catalog_error"):
        self.message = message
        self.code = code
        super().__init__(message)


class CatalogUnavailableError(CatalogError):
    """The catalog could not be read (storage failure or timeout)."""

    def __init__(self, message: str = "Course catalog is unavailable"):
        super().__init__(message, "catalog_unavailable")


class DuplicateChapterError(CatalogError):
    """A chapter id appears more than once in a course structure."""

    def __init__(self, message: str = "Chapter ids must be unique within a course"):
        super().__init__(message, "duplicate_chapter")


# ==============================================================================
# Catalog Service
# ==============================================================================


class CatalogService:
    """Live course structure backed by Cassandra."""

    def __init__(self, session: "Session", keyspace: str):
        """Initialize with Cassandra session."""
        self.session = session
        self.keyspace = keyspace
        self._prepare_statements()

    def _prepare_statements(self) -> None:
        """Prepare CQL statements for efficient execution."""
        self._get_course = self.session.prepare(
            f"SELECT id, title FROM {self.keyspace}.courses WHERE id = ?"
        )
        self._get_sections = self.session.prepare(
            f"SELECT * FROM {self.keyspace}.course_sections WHERE course_id = ?"
        )
        self._get_chapters = self.session.prepare(
            f"SELECT * FROM {self.keyspace}.course_chapters WHERE course_id = ?"
        )

        self._upsert_course = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.courses (id, title, status, teacher_id, updated_at)
            VALUES (?, ?, ?, ?, ?)
        """)
        self._delete_sections = self.session.prepare(
            f"DELETE FROM {self.keyspace}.course_sections USING TIMESTAMP ? WHERE course_id = ?"
        )
        self._delete_chapters = self.session.prepare(
            f"DELETE FROM {self.keyspace}.course_chapters USING TIMESTAMP ? WHERE course_id = ?"
        )
        self._insert_section = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.course_sections (course_id, position, section_id, title)
            VALUES (?, ?, ?, ?) USING TIMESTAMP ?
        """)
        self._insert_chapter = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.course_chapters
            (course_id, section_position, position, section_id, chapter_id,
             chapter_type, title)
            VALUES (?, ?, ?, ?, ?, ?, ?) USING TIMESTAMP ?
        """)

    # ==========================================================================
    # Lookup
    # ==========================================================================

    async def shape_of(self, course_id: UUID) -> CourseShape | None:
        """Get the current structure of a course.

        Returns:
            CourseShape, or None if the course does not exist

        Raises:
            CatalogUnavailableError: If Cassandra cannot serve the read
        """
        try:
            result = await self.session.aexecute(self._get_course, [course_id])
            course_row = result.one()
            if course_row is None:
                return None

            section_rows = list(
                await self.session.aexecute(self._get_sections, [course_id])
            )
            chapter_rows = list(
                await self.session.aexecute(self._get_chapters, [course_id])
            )
        except CASSANDRA_ERRORS as e:
            logger.error(
                "catalog_lookup_failed", course_id=str(course_id), error=str(e)
            )
            raise CatalogUnavailableError from e

        return CourseShape.from_rows(course_row, section_rows, chapter_rows)

    async def chapter_count(self, course_id: UUID) -> int | None:
        """Total chapters in the course, or None if the course does not exist."""
        shape = await self.shape_of(course_id)
        return shape.chapter_count if shape else None

    # ==========================================================================
    # Structure Publishing
    # ==========================================================================

    async def replace_structure(
        self,
        course_id: UUID,
        title: str,
        sections: list[SectionShape],
        teacher_id: str | None = None,
        status: CourseStatus = CourseStatus.PUBLISHED,
    ) -> CourseShape:
        """Replace the whole structure of a course in one logged batch.

        Raises:
            DuplicateChapterError: If a chapter id repeats across sections
        """
        seen: set[UUID] = set()
        for section in sections:
            for chapter in section.chapters:
                if chapter.chapter_id in seen:
                    raise DuplicateChapterError
                seen.add(chapter.chapter_id)

        now = datetime.now(UTC)
        # Tombstones must be older than the new rows written in the same batch
        write_ts = int(now.timestamp() * 1_000_000)

        batch = BatchStatement(batch_type=BatchType.LOGGED)
        batch.add(self._upsert_course, [course_id, title, status.value, teacher_id, now])
        batch.add(self._delete_sections, [write_ts - 1, course_id])
        batch.add(self._delete_chapters, [write_ts - 1, course_id])
        for section_position, section in enumerate(sections):
            batch.add(
                self._insert_section,
                [
                    course_id,
                    section_position,
                    section.section_id,
                    section.title,
                    write_ts,
                ],
            )
            for position, chapter in enumerate(section.chapters):
                batch.add(
                    self._insert_chapter,
                    [
                        course_id,
                        section_position,
                        position,
                        section.section_id,
                        chapter.chapter_id,
                        chapter.chapter_type.value,
                        chapter.title,
                        write_ts,
                    ],
                )

        try:
            await self.session.aexecute(batch)
        except CASSANDRA_ERRORS as e:
            raise CatalogUnavailableError from e

        logger.info(
            "course_structure_replaced",
            course_id=str(course_id),
            sections=len(sections),
            chapters=len(seen),
        )

        return CourseShape(course_id=course_id, title=title, sections=tuple(sections))
