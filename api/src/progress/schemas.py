"""Pydantic schemas for course progress tracking.

Request and response models for:
- Progress updates (partial chapter states)
- Progress queries (single, batch, enrolled courses)
- Course enrollment
"""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from .models import (
    ChapterProgress,
    CourseProgressRecord,
    EnrollmentEdge,
    NotStarted,
    ProgressStatus,
    SectionProgress,
)


# ==============================================================================
# Chapter / Section Schemas
# ==============================================================================


class ChapterProgressSchema(BaseModel):
    """Completion state of one chapter."""

    model_config = ConfigDict(from_attributes=True)

    chapter_id: UUID
    completed: bool = False
    last_accessed: datetime | None = None

    def to_entity(self) -> ChapterProgress:
        return ChapterProgress(
            chapter_id=self.chapter_id,
            completed=self.completed,
            last_accessed=self.last_accessed,
        )


class SectionProgressSchema(BaseModel):
    """Chapter states grouped by section."""

    model_config = ConfigDict(from_attributes=True)

    section_id: UUID
    chapters: list[ChapterProgressSchema] = Field(default_factory=list)

    def to_entity(self) -> SectionProgress:
        return SectionProgress(
            section_id=self.section_id,
            chapters=[chapter.to_entity() for chapter in self.chapters],
        )


# ==============================================================================
# Request Schemas
# ==============================================================================


class UpdateProgressRequest(BaseModel):
    """Chapter states to merge into the stored record.

    Only the chapters sent are changed; omitted chapters keep their state.
    """

    sections: list[SectionProgressSchema] = Field(default_factory=list)

    def to_entities(self) -> list[SectionProgress]:
        return [section.to_entity() for section in self.sections]


class BatchProgressRequest(BaseModel):
    """Course ids to fetch progress for."""

    course_ids: list[UUID] = Field(default_factory=list, max_length=200)


class EnrollRequest(BaseModel):
    """Request to enroll a user in a course."""

    user_id: UUID = Field(..., description="Learner UUID")
    course_id: UUID = Field(..., description="Course UUID")


# ==============================================================================
# Response Schemas
# ==============================================================================


class CourseProgressResponse(BaseModel):
    """Progress of one user in one course."""

    user_id: UUID
    course_id: UUID
    status: ProgressStatus
    overall_completion_percentage: int = Field(ge=0, le=100)
    chapters_completed: int = 0
    chapters_total: int = 0
    last_updated: datetime | None = None
    sections: list[SectionProgressSchema] = Field(default_factory=list)

    @classmethod
    def from_entity(
        cls, entity: CourseProgressRecord | NotStarted
    ) -> "CourseProgressResponse":
        """Create response from a stored record or the NotStarted state."""
        if isinstance(entity, NotStarted):
            return cls(
                user_id=entity.user_id,
                course_id=entity.course_id,
                status=ProgressStatus.NOT_STARTED,
                overall_completion_percentage=0,
            )

        return cls(
            user_id=entity.user_id,
            course_id=entity.course_id,
            status=entity.status,
            overall_completion_percentage=entity.overall_completion_percentage,
            chapters_completed=entity.chapters_completed,
            chapters_total=entity.chapters_total,
            last_updated=entity.last_updated,
            sections=[
                SectionProgressSchema.model_validate(section)
                for section in entity.sections
            ],
        )


class BatchProgressResponse(BaseModel):
    """Progress keyed by course id; courses without a record are omitted."""

    progress: dict[UUID, CourseProgressResponse] = Field(default_factory=dict)


class EnrolledCoursesResponse(BaseModel):
    """Courses a user is enrolled in."""

    user_id: UUID
    course_ids: list[UUID]
    total: int


class EnrollmentResponse(BaseModel):
    """Enrollment edge response."""

    user_id: UUID
    course_id: UUID
    enrolled_at: datetime | None = None

    @classmethod
    def from_entity(cls, entity: EnrollmentEdge) -> "EnrollmentResponse":
        """Create response from entity."""
        return cls(
            user_id=entity.user_id,
            course_id=entity.course_id,
            enrolled_at=entity.enrolled_at,
        )
