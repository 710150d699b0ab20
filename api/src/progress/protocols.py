"""Contracts the progress layer depends on."""

from typing import Protocol
from uuid import UUID

from src.courses.models import CourseShape


class CatalogLookup(Protocol):
    """Read-only, uncached view of course structure."""

    async def shape_of(self, course_id: UUID) -> CourseShape | None:
        """Current shape of the course, or None if it does not exist."""
        ...

    async def chapter_count(self, course_id: UUID) -> int | None:
        """Total chapters in the course, or None if it does not exist."""
        ...
