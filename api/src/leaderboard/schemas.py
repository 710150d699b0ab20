"""Pydantic schemas for leaderboards."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field

from .engine import LeaderboardEntry, LeaderboardPage


class LeaderboardEntryResponse(BaseModel):
    """One ranked row."""

    rank: int = Field(..., ge=1)
    user_id: UUID
    score: float = Field(..., description="Completion percentage (0-100)")
    last_updated: datetime | None = None
    courses_counted: int = 1

    @classmethod
    def from_entity(cls, entity: LeaderboardEntry) -> "LeaderboardEntryResponse":
        """Create response from entity."""
        return cls(
            rank=entity.rank,
            user_id=entity.user_id,
            score=float(entity.score),
            last_updated=entity.last_updated,
            courses_counted=entity.courses_counted,
        )


class LeaderboardResponse(BaseModel):
    """A page of a leaderboard."""

    items: list[LeaderboardEntryResponse]
    total: int
    limit: int
    offset: int
    me: LeaderboardEntryResponse | None = None

    @classmethod
    def from_page(
        cls, page: LeaderboardPage, limit: int, offset: int
    ) -> "LeaderboardResponse":
        return cls(
            items=[LeaderboardEntryResponse.from_entity(e) for e in page.entries],
            total=page.total,
            limit=limit,
            offset=offset,
            me=LeaderboardEntryResponse.from_entity(page.me) if page.me else None,
        )


class CourseLeaderboardResponse(LeaderboardResponse):
    """Course leaderboard page."""

    course_id: UUID
