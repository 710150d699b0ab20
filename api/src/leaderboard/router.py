"""Leaderboard API endpoints.

Provides routes for:
- Learning leaderboard (authenticated)
- Course leaderboard (public)
"""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, Query

from src.auth.dependencies import CurrentUser
from src.config.settings import Settings, get_settings
from src.progress.dependencies import handle_progress_error
from src.progress.exceptions import ProgressError

from .dependencies import LeaderboardServiceDep
from .schemas import CourseLeaderboardResponse, LeaderboardResponse


router = APIRouter(prefix="/v1/leaderboard", tags=["leaderboard"])

SettingsDep = Annotated[Settings, Depends(get_settings)]


def _page_size(limit: int | None, settings: Settings) -> int:
    if limit is None:
        return settings.leaderboard_default_page_size
    return min(limit, settings.leaderboard_max_page_size)


@router.get(
    "/learning",
    response_model=LeaderboardResponse,
    summary="Get learning leaderboard",
)
async def get_learning_leaderboard(
    leaderboard_service: LeaderboardServiceDep,
    settings: SettingsDep,
    user: CurrentUser,
    limit: int | None = Query(None, ge=1, description="Page size"),
    offset: int = Query(0, ge=0, description="Entries to skip"),
) -> LeaderboardResponse:
    """Rank learners by mean completion across their enrolled courses.

    ``me`` holds the caller's own entry regardless of the page requested.
    """
    page_size = _page_size(limit, settings)
    try:
        page = await leaderboard_service.learning_leaderboard(
            requesting_user_id=user.id,
            limit=page_size,
            offset=offset,
        )
    except ProgressError as e:
        raise handle_progress_error(e) from e

    return LeaderboardResponse.from_page(page, limit=page_size, offset=offset)


@router.get(
    "/courses/{course_id}",
    response_model=CourseLeaderboardResponse,
    summary="Get course leaderboard",
)
async def get_course_leaderboard(
    course_id: UUID,
    leaderboard_service: LeaderboardServiceDep,
    settings: SettingsDep,
    limit: int | None = Query(None, ge=1, description="Page size"),
    offset: int = Query(0, ge=0, description="Entries to skip"),
) -> CourseLeaderboardResponse:
    """Rank every learner enrolled in a course by completion percentage."""
    page_size = _page_size(limit, settings)
    try:
        page = await leaderboard_service.course_leaderboard(
            course_id=course_id,
            limit=page_size,
            offset=offset,
        )
    except ProgressError as e:
        raise handle_progress_error(e) from e

    base = LeaderboardResponse.from_page(page, limit=page_size, offset=offset)
    return CourseLeaderboardResponse(course_id=course_id, **base.model_dump())
