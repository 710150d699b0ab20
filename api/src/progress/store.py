"""Cassandra persistence for progress records and enrollment edges.

The store performs plain reads and single-row writes. It never merges
and never retries; any driver failure surfaces as ProgressUnavailableError.
"""

from datetime import UTC, datetime
from typing import TYPE_CHECKING
from uuid import UUID

import structlog
from cassandra.query import BatchStatement, BatchType

from src.core.database.errors import CASSANDRA_ERRORS

from .exceptions import ProgressUnavailableError
from .models import CourseProgressRecord, EnrollmentEdge


if TYPE_CHECKING:
    from cassandra.cluster import Session

logger = structlog.get_logger(__name__)


class ProgressStore:
    """Progress records keyed by (user_id, course_id) plus enrollment edges."""

    def __init__(self, session: "Session", keyspace: str):
        """Initialize with Cassandra session."""
        self.session = session
        self.keyspace = keyspace
        self._prepare_statements()

    def _prepare_statements(self) -> None:
        """Prepare CQL statements for efficient execution."""
        # Course progress
        self._get_progress = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.course_progress
            WHERE user_id = ? AND course_id = ?
        """)

        self._get_progress_batch = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.course_progress
            WHERE user_id = ? AND course_id IN ?
        """)

        self._upsert_progress = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.course_progress
            (user_id, course_id, sections, overall_completion_percentage, last_updated)
            VALUES (?, ?, ?, ?, ?)
        """)

        self._delete_progress = self.session.prepare(f"""
            DELETE FROM {self.keyspace}.course_progress
            WHERE user_id = ? AND course_id = ?
        """)

        # Enrollments (dual write: by course and by user)
        self._get_enrollment = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.enrollments_by_user
            WHERE user_id = ? AND course_id = ?
        """)

        self._get_user_enrollments = self.session.prepare(f"""
            SELECT course_id FROM {self.keyspace}.enrollments_by_user
            WHERE user_id = ?
        """)

        self._get_course_enrollments = self.session.prepare(f"""
            SELECT user_id FROM {self.keyspace}.course_enrollments
            WHERE course_id = ?
        """)

        self._get_all_enrollments = self.session.prepare(
            f"SELECT * FROM {self.keyspace}.enrollments_by_user"
        )

        self._insert_course_enrollment = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.course_enrollments (course_id, user_id, enrolled_at)
            VALUES (?, ?, ?)
        """)

        self._insert_user_enrollment = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.enrollments_by_user (user_id, course_id, enrolled_at)
            VALUES (?, ?, ?)
        """)

        self._delete_course_enrollment = self.session.prepare(f"""
            DELETE FROM {self.keyspace}.course_enrollments
            WHERE course_id = ? AND user_id = ?
        """)

        self._delete_user_enrollment = self.session.prepare(f"""
            DELETE FROM {self.keyspace}.enrollments_by_user
            WHERE user_id = ? AND course_id = ?
        """)

    async def _execute(self, statement, params=None, *, operation: str):
        try:
            return await self.session.aexecute(statement, params)
        except CASSANDRA_ERRORS as e:
            logger.error("progress_store_failed", operation=operation, error=str(e))
            raise ProgressUnavailableError from e

    # ==========================================================================
    # Progress Records
    # ==========================================================================

    async def get(self, user_id: UUID, course_id: UUID) -> CourseProgressRecord | None:
        """Stored record for (user_id, course_id), or None if never written."""
        result = await self._execute(
            self._get_progress, [user_id, course_id], operation="get"
        )
        row = result.one()
        return CourseProgressRecord.from_row(row) if row else None

    async def get_batch(
        self, user_id: UUID, course_ids: list[UUID]
    ) -> dict[UUID, CourseProgressRecord]:
        """Records for the given courses; courses without a record are omitted."""
        if not course_ids:
            return {}

        result = await self._execute(
            self._get_progress_batch,
            [user_id, list(dict.fromkeys(course_ids))],
            operation="get_batch",
        )
        records = [CourseProgressRecord.from_row(row) for row in result]
        return {record.course_id: record for record in records}

    async def upsert(self, record: CourseProgressRecord) -> CourseProgressRecord:
        """Replace or create the record. Sets ``last_updated`` to now."""
        record.last_updated = datetime.now(UTC)
        await self._execute(
            self._upsert_progress,
            [
                record.user_id,
                record.course_id,
                record.sections_json(),
                record.overall_completion_percentage,
                record.last_updated,
            ],
            operation="upsert",
        )
        return record

    async def delete(self, user_id: UUID, course_id: UUID) -> None:
        await self._execute(
            self._delete_progress, [user_id, course_id], operation="delete"
        )

    # ==========================================================================
    # Enrollment Edges
    # ==========================================================================

    async def get_enrollment(
        self, user_id: UUID, course_id: UUID
    ) -> EnrollmentEdge | None:
        result = await self._execute(
            self._get_enrollment, [user_id, course_id], operation="get_enrollment"
        )
        row = result.one()
        return EnrollmentEdge.from_row(row) if row else None

    async def list_enrolled_course_ids(self, user_id: UUID) -> set[UUID]:
        result = await self._execute(
            self._get_user_enrollments, [user_id], operation="list_enrolled_courses"
        )
        return {row.course_id for row in result}

    async def list_enrolled_user_ids(self, course_id: UUID) -> set[UUID]:
        result = await self._execute(
            self._get_course_enrollments, [course_id], operation="list_enrolled_users"
        )
        return {row.user_id for row in result}

    async def list_all_enrollments(self) -> list[EnrollmentEdge]:
        """Every enrollment edge (full scan of the by-user table)."""
        result = await self._execute(
            self._get_all_enrollments, operation="list_all_enrollments"
        )
        return [EnrollmentEdge.from_row(row) for row in result]

    async def add_enrollment(self, user_id: UUID, course_id: UUID) -> EnrollmentEdge:
        """Write the edge to both enrollment tables in one logged batch."""
        edge = EnrollmentEdge(
            user_id=user_id, course_id=course_id, enrolled_at=datetime.now(UTC)
        )
        batch = BatchStatement(batch_type=BatchType.LOGGED)
        batch.add(self._insert_course_enrollment, [course_id, user_id, edge.enrolled_at])
        batch.add(self._insert_user_enrollment, [user_id, course_id, edge.enrolled_at])
        await self._execute(batch, operation="add_enrollment")
        return edge

    async def remove_enrollment(self, user_id: UUID, course_id: UUID) -> None:
        batch = BatchStatement(batch_type=BatchType.LOGGED)
        batch.add(self._delete_course_enrollment, [course_id, user_id])
        batch.add(self._delete_user_enrollment, [user_id, course_id])
        await self._execute(batch, operation="remove_enrollment")
