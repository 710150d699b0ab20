"""Tests for ProgressService.

Covers:
- NotStarted vs unknown course
- Merge properties (idempotence, additivity, stale tolerance)
- Percentage recomputed against the live course shape
- Batch omission
- Concurrent updates on the same record
- Enrollment grants and removals
- Access policy
"""

import asyncio
from uuid import uuid4

import pytest

from src.auth.permissions import UserRole
from src.core.locks import KeyedLock
from src.courses.models import CourseShape
from src.courses.service import CatalogUnavailableError
from src.progress.exceptions import (
    AlreadyEnrolledError,
    CourseNotFoundError,
    NotEnrolledError,
    ProgressAccessDeniedError,
    ProgressUnavailableError,
)
from src.progress.models import (
    ChapterProgress,
    NotStarted,
    ProgressStatus,
    SectionProgress,
)
from src.progress.service import ProgressService
from tests.fakes import InMemoryProgressStore, build_shape, with_extra_chapter


def sections_completing(shape, *chapter_ids):
    """Incoming payload marking the given chapters complete."""
    wanted = set(chapter_ids)
    payload = []
    for section in shape.sections:
        chapters = [
            ChapterProgress(chapter_id=c.chapter_id, completed=True)
            for c in section.chapters
            if c.chapter_id in wanted
        ]
        if chapters:
            payload.append(SectionProgress(section_id=section.section_id, chapters=chapters))
    return payload


def all_chapter_ids(shape):
    return [c.chapter_id for s in shape.sections for c in s.chapters]


def completed_ids(record):
    return {c.chapter_id for c in record.iter_chapters() if c.completed}


@pytest.mark.usefixtures("enrolled")
class TestGetProgress:
    """Tests for get_progress."""

    @pytest.mark.asyncio
    async def test_unwritten_pair_is_not_started(
        self, progress_service, user_id, course_id
    ) -> None:
        result = await progress_service.get_progress(user_id, course_id)
        assert result == NotStarted(user_id=user_id, course_id=course_id)

    @pytest.mark.asyncio
    async def test_unknown_course_raises(self, progress_service, user_id) -> None:
        with pytest.raises(CourseNotFoundError):
            await progress_service.get_progress(user_id, uuid4())

    @pytest.mark.asyncio
    async def test_returns_written_record(
        self, progress_service, shape, user_id, course_id
    ) -> None:
        first = all_chapter_ids(shape)[0]
        await progress_service.update_progress(
            user_id, course_id, sections_completing(shape, first)
        )

        result = await progress_service.get_progress(user_id, course_id)

        assert completed_ids(result) == {first}
        assert result.overall_completion_percentage == 25

    @pytest.mark.asyncio
    async def test_reflects_chapters_added_since_last_write(
        self, progress_service, store, catalog, shape, user_id, course_id
    ) -> None:
        await progress_service.update_progress(
            user_id, course_id, sections_completing(shape, *all_chapter_ids(shape))
        )
        catalog.shapes[course_id] = with_extra_chapter(shape)

        result = await progress_service.get_progress(user_id, course_id)

        assert result.overall_completion_percentage == 80
        assert result.chapters_total == 5
        assert result.status == ProgressStatus.IN_PROGRESS
        # The read does not rewrite the stored record
        assert store.records[(user_id, course_id)].overall_completion_percentage == 100

    @pytest.mark.asyncio
    async def test_reflects_chapters_removed_since_last_write(
        self, progress_service, catalog, shape, user_id, course_id
    ) -> None:
        ids = all_chapter_ids(shape)
        await progress_service.update_progress(
            user_id, course_id, sections_completing(shape, *ids[:3])
        )
        catalog.shapes[course_id] = CourseShape(
            course_id=course_id, sections=shape.sections[:1]
        )

        result = await progress_service.get_progress(user_id, course_id)

        assert result.overall_completion_percentage == 100
        assert result.status == ProgressStatus.COMPLETED

    @pytest.mark.asyncio
    async def test_catalog_failure_is_unavailable(self, store, user_id, course_id) -> None:
        class BrokenCatalog:
            async def shape_of(self, course_id):
                raise CatalogUnavailableError

            async def chapter_count(self, course_id):
                raise CatalogUnavailableError

        service = ProgressService(store=store, catalog=BrokenCatalog(), locks=KeyedLock())

        with pytest.raises(ProgressUnavailableError):
            await service.get_progress(user_id, course_id)


@pytest.mark.usefixtures("enrolled")
class TestUpdateProgress:
    """Tests for update_progress."""

    @pytest.mark.asyncio
    async def test_first_update_creates_record(
        self, progress_service, store, shape, user_id, course_id
    ) -> None:
        ids = all_chapter_ids(shape)

        record = await progress_service.update_progress(
            user_id, course_id, sections_completing(shape, ids[0], ids[1])
        )

        assert record.overall_completion_percentage == 50
        assert record.status == ProgressStatus.IN_PROGRESS
        assert record.last_updated is not None
        assert (user_id, course_id) in store.records

    @pytest.mark.asyncio
    async def test_unknown_course_writes_nothing(
        self, progress_service, store, shape, user_id
    ) -> None:
        with pytest.raises(CourseNotFoundError):
            await progress_service.update_progress(
                user_id, uuid4(), sections_completing(shape, all_chapter_ids(shape)[0])
            )
        assert store.records == {}

    @pytest.mark.asyncio
    async def test_not_enrolled_writes_nothing(
        self, progress_service, store, shape, user_id, course_id
    ) -> None:
        stranger = uuid4()

        with pytest.raises(NotEnrolledError):
            await progress_service.update_progress(
                stranger, course_id, sections_completing(shape, all_chapter_ids(shape)[0])
            )

        assert (stranger, course_id) not in store.records

    @pytest.mark.asyncio
    async def test_same_update_twice_is_idempotent(
        self, progress_service, shape, user_id, course_id
    ) -> None:
        payload = sections_completing(shape, all_chapter_ids(shape)[2])

        first = await progress_service.update_progress(user_id, course_id, payload)
        second = await progress_service.update_progress(user_id, course_id, payload)

        assert first.sections == second.sections
        assert first.overall_completion_percentage == second.overall_completion_percentage

    @pytest.mark.asyncio
    async def test_disjoint_updates_accumulate(
        self, progress_service, shape, user_id, course_id
    ) -> None:
        ids = all_chapter_ids(shape)

        await progress_service.update_progress(
            user_id, course_id, sections_completing(shape, ids[0])
        )
        record = await progress_service.update_progress(
            user_id, course_id, sections_completing(shape, ids[3])
        )

        assert completed_ids(record) == {ids[0], ids[3]}
        assert record.overall_completion_percentage == 50

    @pytest.mark.asyncio
    async def test_stale_chapter_is_ignored(
        self, progress_service, shape, user_id, course_id
    ) -> None:
        ids = all_chapter_ids(shape)
        payload = sections_completing(shape, ids[0])
        payload.append(
            SectionProgress(
                section_id=uuid4(),
                chapters=[ChapterProgress(chapter_id=uuid4(), completed=True)],
            )
        )

        record = await progress_service.update_progress(user_id, course_id, payload)

        assert completed_ids(record) == {ids[0]}
        assert record.overall_completion_percentage == 25

    @pytest.mark.asyncio
    async def test_all_chapters_completes_course(
        self, progress_service, shape, user_id, course_id
    ) -> None:
        record = await progress_service.update_progress(
            user_id, course_id, sections_completing(shape, *all_chapter_ids(shape))
        )

        assert record.overall_completion_percentage == 100
        assert record.status == ProgressStatus.COMPLETED

    @pytest.mark.asyncio
    async def test_percentage_follows_shape_changes(
        self, progress_service, catalog, shape, user_id, course_id
    ) -> None:
        """A chapter added to the course lowers the percentage on next write."""
        ids = all_chapter_ids(shape)
        await progress_service.update_progress(
            user_id, course_id, sections_completing(shape, *ids)
        )

        grown = build_shape(course_id, [5])
        catalog.shapes[course_id] = grown
        record = await progress_service.update_progress(
            user_id, course_id, sections_completing(grown, all_chapter_ids(grown)[0])
        )

        # Old chapters are gone from the shape, only the new one counts
        assert completed_ids(record) == {all_chapter_ids(grown)[0]}
        assert record.overall_completion_percentage == 20
        assert record.chapters_total == 5

    @pytest.mark.asyncio
    async def test_concurrent_disjoint_updates_both_survive(
        self, catalog, shape, user_id, course_id
    ) -> None:
        store = InMemoryProgressStore(delay=0.01)
        store.seed_enrollment(user_id, course_id)
        service = ProgressService(store=store, catalog=catalog, locks=KeyedLock())
        ids = all_chapter_ids(shape)

        await asyncio.gather(
            service.update_progress(user_id, course_id, sections_completing(shape, ids[0])),
            service.update_progress(user_id, course_id, sections_completing(shape, ids[1])),
        )

        record = await store.get(user_id, course_id)
        assert completed_ids(record) == {ids[0], ids[1]}
        assert record.overall_completion_percentage == 50

    @pytest.mark.asyncio
    async def test_lock_timeout_is_unavailable(
        self, store, catalog, shape, user_id, course_id
    ) -> None:
        locks = KeyedLock(wait_seconds=0.01)
        service = ProgressService(store=store, catalog=catalog, locks=locks)

        async with locks.hold("progress", user_id, course_id):
            with pytest.raises(ProgressUnavailableError):
                await service.update_progress(
                    user_id, course_id, sections_completing(shape, all_chapter_ids(shape)[0])
                )

        assert store.records == {}


@pytest.mark.usefixtures("enrolled")
class TestProgressBatch:
    """Tests for get_progress_batch."""

    @pytest.mark.asyncio
    async def test_unwritten_courses_are_omitted(
        self, progress_service, shape, user_id, course_id
    ) -> None:
        await progress_service.update_progress(
            user_id, course_id, sections_completing(shape, all_chapter_ids(shape)[0])
        )
        other = uuid4()

        result = await progress_service.get_progress_batch(user_id, [course_id, other])

        assert set(result) == {course_id}

    @pytest.mark.asyncio
    async def test_empty_input_runs_no_query(self, progress_service, store, user_id) -> None:
        assert await progress_service.get_progress_batch(user_id, []) == {}
        assert store.batch_calls == []

    @pytest.mark.asyncio
    async def test_records_follow_current_shapes(
        self, progress_service, catalog, shape, user_id, course_id
    ) -> None:
        await progress_service.update_progress(
            user_id, course_id, sections_completing(shape, *all_chapter_ids(shape))
        )
        catalog.shapes[course_id] = with_extra_chapter(shape)

        result = await progress_service.get_progress_batch(user_id, [course_id])

        assert result[course_id].overall_completion_percentage == 80

    @pytest.mark.asyncio
    async def test_courses_removed_from_catalog_are_omitted(
        self, progress_service, catalog, shape, user_id, course_id
    ) -> None:
        await progress_service.update_progress(
            user_id, course_id, sections_completing(shape, all_chapter_ids(shape)[0])
        )
        del catalog.shapes[course_id]

        assert await progress_service.get_progress_batch(user_id, [course_id]) == {}


class TestEnrollment:
    """Tests for enroll_user / unenroll_user / get_enrolled_courses."""

    @pytest.mark.asyncio
    async def test_enroll_and_list(self, progress_service, user_id, course_id) -> None:
        assert await progress_service.get_enrolled_courses(user_id) == set()

        edge = await progress_service.enroll_user(user_id, course_id)

        assert edge.enrolled_at is not None
        assert await progress_service.get_enrolled_courses(user_id) == {course_id}

    @pytest.mark.asyncio
    async def test_enroll_twice_raises(self, progress_service, user_id, course_id) -> None:
        await progress_service.enroll_user(user_id, course_id)
        with pytest.raises(AlreadyEnrolledError):
            await progress_service.enroll_user(user_id, course_id)

    @pytest.mark.asyncio
    async def test_enroll_unknown_course_raises(self, progress_service, user_id) -> None:
        with pytest.raises(CourseNotFoundError):
            await progress_service.enroll_user(user_id, uuid4())

    @pytest.mark.asyncio
    async def test_unenroll_removes_progress(
        self, progress_service, store, shape, user_id, course_id
    ) -> None:
        await progress_service.enroll_user(user_id, course_id)
        await progress_service.update_progress(
            user_id, course_id, sections_completing(shape, all_chapter_ids(shape)[0])
        )

        await progress_service.unenroll_user(user_id, course_id)

        assert await progress_service.get_enrolled_courses(user_id) == set()
        assert store.records == {}

    @pytest.mark.asyncio
    async def test_unenroll_when_not_enrolled_raises(
        self, progress_service, user_id, course_id
    ) -> None:
        with pytest.raises(NotEnrolledError):
            await progress_service.unenroll_user(user_id, course_id)


class TestAuthorize:
    """Tests for the progress access policy."""

    def test_owner_may_read_and_write(self, progress_service, user_id) -> None:
        progress_service.authorize(user_id, UserRole.STUDENT, user_id)
        progress_service.authorize(user_id, UserRole.STUDENT, user_id, write=True)

    def test_other_student_denied(self, progress_service, user_id) -> None:
        with pytest.raises(ProgressAccessDeniedError):
            progress_service.authorize(uuid4(), UserRole.STUDENT, user_id)

    def test_teacher_reads_but_cannot_write(self, progress_service, user_id) -> None:
        teacher = uuid4()
        progress_service.authorize(teacher, UserRole.TEACHER, user_id)
        with pytest.raises(ProgressAccessDeniedError):
            progress_service.authorize(teacher, UserRole.TEACHER, user_id, write=True)

    def test_admin_may_write(self, progress_service, user_id) -> None:
        progress_service.authorize(uuid4(), UserRole.ADMIN, user_id, write=True)
