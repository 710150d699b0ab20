"""Leaderboard service layer.

Recomputes rankings from the progress store on every call. Reads take no
locks; a board may reflect an update that lands while it is being built.
"""

import asyncio
from collections.abc import Awaitable, Callable
from typing import TypeVar
from uuid import UUID

import structlog

from src.courses.service import CatalogUnavailableError
from src.progress.exceptions import CourseNotFoundError, ProgressUnavailableError
from src.progress.models import CourseProgressRecord
from src.progress.protocols import CatalogLookup
from src.progress.store import ProgressStore

from .engine import (
    LeaderboardPage,
    course_scores,
    learning_scores,
    paginate,
    rank_entries,
)


logger = structlog.get_logger(__name__)

T = TypeVar("T")


class LeaderboardService:
    """Course and learning leaderboards."""

    def __init__(
        self,
        store: ProgressStore,
        catalog: CatalogLookup,
        fetch_concurrency: int = 16,
    ):
        self.store = store
        self.catalog = catalog
        self.fetch_concurrency = fetch_concurrency

    async def _gather_bounded(
        self, calls: list[Callable[[], Awaitable[T]]]
    ) -> list[T]:
        """Run the calls concurrently, at most ``fetch_concurrency`` at a time."""
        semaphore = asyncio.Semaphore(self.fetch_concurrency)

        async def run(call: Callable[[], Awaitable[T]]) -> T:
            async with semaphore:
                return await call()

        return await asyncio.gather(*(run(call) for call in calls))

    # ==========================================================================
    # Course Leaderboard
    # ==========================================================================

    async def course_leaderboard(
        self,
        course_id: UUID,
        limit: int = 50,
        offset: int = 0,
    ) -> LeaderboardPage:
        """Rank every user enrolled in a course by completion percentage.

        Raises:
            CourseNotFoundError: If the course does not exist
            ProgressUnavailableError: On storage or catalog failure
        """
        try:
            shape = await self.catalog.shape_of(course_id)
        except CatalogUnavailableError as e:
            raise ProgressUnavailableError(e.message) from e
        if shape is None:
            raise CourseNotFoundError

        user_ids = sorted(await self.store.list_enrolled_user_ids(course_id))

        fetched = await self._gather_bounded(
            [
                lambda user_id=user_id: self.store.get(user_id, course_id)
                for user_id in user_ids
            ]
        )
        records: dict[UUID, CourseProgressRecord] = {
            record.user_id: record for record in fetched if record is not None
        }

        entries = rank_entries(course_scores(user_ids, records))
        logger.info(
            "leaderboard_computed",
            board="course",
            course_id=str(course_id),
            entries=len(entries),
        )
        return paginate(entries, limit=limit, offset=offset)

    # ==========================================================================
    # Learning Leaderboard
    # ==========================================================================

    async def learning_leaderboard(
        self,
        requesting_user_id: UUID,
        limit: int = 50,
        offset: int = 0,
    ) -> LeaderboardPage:
        """Rank every enrolled user by mean completion across their courses.

        ``me`` on the returned page is the requester's own entry, or None
        when they have no enrollments.

        Raises:
            ProgressUnavailableError: On storage failure
        """
        enrollments: dict[UUID, set[UUID]] = {}
        for edge in await self.store.list_all_enrollments():
            enrollments.setdefault(edge.user_id, set()).add(edge.course_id)

        user_ids = sorted(enrollments)
        fetched = await self._gather_bounded(
            [
                lambda user_id=user_id: self.store.get_batch(
                    user_id, sorted(enrollments[user_id])
                )
                for user_id in user_ids
            ]
        )
        records = dict(zip(user_ids, fetched, strict=True))

        entries = rank_entries(learning_scores(enrollments, records))
        logger.info(
            "leaderboard_computed",
            board="learning",
            entries=len(entries),
        )
        return paginate(entries, limit=limit, offset=offset, me=requesting_user_id)
