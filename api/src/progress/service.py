"""Course progress service layer.

Business logic for:
- Progress reads (single, batch, enrolled courses)
- Progress updates merged against the live course shape
- Enrollment grants and removals
- Access policy for progress reads and writes
"""

import asyncio
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from uuid import UUID

import structlog
from redis.exceptions import RedisError

from src.auth.permissions import UserRole, can_read_progress, can_write_progress
from src.core.locks import KeyedLock, LockTimeoutError
from src.courses.models import CourseShape
from src.courses.service import CatalogUnavailableError

from .aggregator import (
    completion_percentage,
    empty_sections,
    merge_sections,
    project_record,
)
from .exceptions import (
    AlreadyEnrolledError,
    CourseNotFoundError,
    NotEnrolledError,
    ProgressAccessDeniedError,
    ProgressUnavailableError,
)
from .models import CourseProgressRecord, EnrollmentEdge, NotStarted, SectionProgress
from .protocols import CatalogLookup
from .store import ProgressStore


logger = structlog.get_logger(__name__)


class ProgressService:
    """Service for course progress tracking."""

    def __init__(self, store: ProgressStore, catalog: CatalogLookup, locks: KeyedLock):
        self.store = store
        self.catalog = catalog
        self.locks = locks

    # ==========================================================================
    # Access Policy
    # ==========================================================================

    def authorize(
        self,
        actor_id: UUID,
        actor_role: UserRole | str,
        owner_id: UUID,
        *,
        write: bool = False,
    ) -> None:
        """Check that the actor may read (or write) the owner's progress.

        Raises:
            ProgressAccessDeniedError: If the policy denies access
        """
        if write:
            allowed = can_write_progress(actor_id, actor_role, owner_id)
        else:
            allowed = can_read_progress(actor_id, actor_role, owner_id)

        if not allowed:
            logger.info(
                "progress_access_denied",
                actor_id=str(actor_id),
                owner_id=str(owner_id),
                write=write,
            )
            raise ProgressAccessDeniedError

    # ==========================================================================
    # Reads
    # ==========================================================================

    async def _lookup_shape(self, course_id: UUID) -> CourseShape | None:
        try:
            return await self.catalog.shape_of(course_id)
        except CatalogUnavailableError as e:
            raise ProgressUnavailableError(e.message) from e

    async def _require_shape(self, course_id: UUID) -> CourseShape:
        shape = await self._lookup_shape(course_id)
        if shape is None:
            raise CourseNotFoundError
        return shape

    async def get_enrolled_courses(self, user_id: UUID) -> set[UUID]:
        """Course ids the user is enrolled in (possibly empty)."""
        return await self.store.list_enrolled_course_ids(user_id)

    async def get_progress(
        self, user_id: UUID, course_id: UUID
    ) -> CourseProgressRecord | NotStarted:
        """Stored progress seen through the current course shape.

        Returns NotStarted when nothing was written yet. Chapters added to or
        removed from the course since the last write are reflected in the
        returned percentage; nothing is persisted.

        Raises:
            CourseNotFoundError: If the course does not exist
            ProgressUnavailableError: On storage or catalog failure
        """
        shape = await self._require_shape(course_id)
        record = await self.store.get(user_id, course_id)
        if record is None:
            return NotStarted(user_id=user_id, course_id=course_id)
        return project_record(shape, record)

    async def get_progress_batch(
        self, user_id: UUID, course_ids: list[UUID]
    ) -> dict[UUID, CourseProgressRecord]:
        """Records for the requested courses, projected onto their shapes.

        Unwritten courses and courses no longer in the catalog are omitted.
        """
        records = await self.store.get_batch(user_id, course_ids)
        if not records:
            return {}

        shapes = await asyncio.gather(
            *(self._lookup_shape(course_id) for course_id in records)
        )
        return {
            course_id: project_record(shape, record)
            for (course_id, record), shape in zip(records.items(), shapes, strict=True)
            if shape is not None
        }

    # ==========================================================================
    # Updates
    # ==========================================================================

    async def update_progress(
        self,
        user_id: UUID,
        course_id: UUID,
        sections: list[SectionProgress],
    ) -> CourseProgressRecord:
        """Merge incoming chapter states into the stored record.

        Fetch, merge and persist run under an exclusive lock on
        (user_id, course_id); concurrent updates to the same pair never
        lose each other's chapters. Nothing is written if any step fails.

        Args:
            user_id: Learner UUID
            course_id: Course UUID
            sections: Chapter states sent by the client (partial is fine)

        Returns:
            The persisted record

        Raises:
            CourseNotFoundError: If the course does not exist
            NotEnrolledError: If the user holds no enrollment for the course
            ProgressUnavailableError: On storage, catalog or lock failure
        """
        async with self._exclusive(user_id, course_id):
            return await self._apply_update(user_id, course_id, sections)

    @asynccontextmanager
    async def _exclusive(self, user_id: UUID, course_id: UUID) -> AsyncIterator[None]:
        """Critical section for one (user_id, course_id) record."""
        try:
            async with self.locks.hold("progress", user_id, course_id):
                yield
        except LockTimeoutError as e:
            logger.warning(
                "progress_lock_timeout",
                user_id=str(user_id),
                course_id=str(course_id),
                key=e.key,
            )
            raise ProgressUnavailableError from e
        except RedisError as e:
            logger.error(
                "progress_lock_failed",
                user_id=str(user_id),
                course_id=str(course_id),
                error=str(e),
            )
            raise ProgressUnavailableError from e

    async def _apply_update(
        self,
        user_id: UUID,
        course_id: UUID,
        sections: list[SectionProgress],
    ) -> CourseProgressRecord:
        shape = await self._require_shape(course_id)
        if not await self.store.get_enrollment(user_id, course_id):
            raise NotEnrolledError

        existing = await self.store.get(user_id, course_id)

        prior_sections = existing.sections if existing else empty_sections(shape)
        merged = merge_sections(shape, prior_sections, sections)

        if merged.ignored_chapter_ids:
            logger.debug(
                "stale_chapters_ignored",
                user_id=str(user_id),
                course_id=str(course_id),
                chapter_ids=[str(cid) for cid in merged.ignored_chapter_ids],
            )
        if merged.misplaced_chapter_ids:
            logger.debug(
                "misplaced_chapters_regrouped",
                user_id=str(user_id),
                course_id=str(course_id),
                chapter_ids=[str(cid) for cid in merged.misplaced_chapter_ids],
            )

        record = CourseProgressRecord(
            user_id=user_id,
            course_id=course_id,
            sections=merged.sections,
            overall_completion_percentage=completion_percentage(
                merged.completed, shape.chapter_count
            ),
        )
        record = await self.store.upsert(record)

        logger.info(
            "progress_updated",
            user_id=str(user_id),
            course_id=str(course_id),
            percentage=record.overall_completion_percentage,
        )
        return record

    # ==========================================================================
    # Enrollment Operations
    # ==========================================================================

    async def enroll_user(self, user_id: UUID, course_id: UUID) -> EnrollmentEdge:
        """Grant the enrollment edge.

        Raises:
            CourseNotFoundError: If the course does not exist
            AlreadyEnrolledError: If user already enrolled
        """
        await self._require_shape(course_id)

        existing = await self.store.get_enrollment(user_id, course_id)
        if existing:
            raise AlreadyEnrolledError

        edge = await self.store.add_enrollment(user_id, course_id)
        logger.info(
            "enrollment_granted", user_id=str(user_id), course_id=str(course_id)
        )
        return edge

    async def unenroll_user(self, user_id: UUID, course_id: UUID) -> None:
        """Remove the enrollment edge together with the progress record.

        Raises:
            NotEnrolledError: If user is not enrolled
        """
        existing = await self.store.get_enrollment(user_id, course_id)
        if not existing:
            raise NotEnrolledError

        async with self._exclusive(user_id, course_id):
            await self.store.remove_enrollment(user_id, course_id)
            await self.store.delete(user_id, course_id)

        logger.info(
            "enrollment_removed", user_id=str(user_id), course_id=str(course_id)
        )
