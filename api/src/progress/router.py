"""Course progress API endpoints.

Provides routes for:
- Enrolled course ids of a user
- Progress queries (single course and batch)
- Progress updates (partial chapter states)
- Enrollment grants and removals (teacher/admin)
"""

from uuid import UUID

from fastapi import APIRouter, status

from src.auth.dependencies import CurrentUser, TeacherUser

from .dependencies import ProgressServiceDep, handle_progress_error
from .exceptions import ProgressError
from .schemas import (
    BatchProgressRequest,
    BatchProgressResponse,
    CourseProgressResponse,
    EnrolledCoursesResponse,
    EnrollmentResponse,
    EnrollRequest,
    UpdateProgressRequest,
)


router = APIRouter(prefix="/v1/progress", tags=["progress"])
enrollments_router = APIRouter(prefix="/v1/enrollments", tags=["enrollments"])


# ==============================================================================
# Progress Query Endpoints
# ==============================================================================


@router.get(
    "/{user_id}/enrolled-courses",
    response_model=EnrolledCoursesResponse,
    summary="Get enrolled course ids",
)
async def get_enrolled_courses(
    user_id: UUID,
    progress_service: ProgressServiceDep,
    user: CurrentUser,
) -> EnrolledCoursesResponse:
    """List the courses a user is enrolled in."""
    try:
        progress_service.authorize(user.id, user.role, user_id)
        course_ids = await progress_service.get_enrolled_courses(user_id)
    except ProgressError as e:
        raise handle_progress_error(e) from e

    return EnrolledCoursesResponse(
        user_id=user_id,
        course_ids=sorted(course_ids, key=str),
        total=len(course_ids),
    )


@router.post(
    "/{user_id}/courses/batch",
    response_model=BatchProgressResponse,
    status_code=status.HTTP_200_OK,
    summary="Get progress for several courses",
)
async def get_progress_batch(
    user_id: UUID,
    data: BatchProgressRequest,
    progress_service: ProgressServiceDep,
    user: CurrentUser,
) -> BatchProgressResponse:
    """Get progress for many courses at once.

    Courses the user never made progress in are left out of the mapping.
    """
    try:
        progress_service.authorize(user.id, user.role, user_id)
        records = await progress_service.get_progress_batch(user_id, data.course_ids)
    except ProgressError as e:
        raise handle_progress_error(e) from e

    return BatchProgressResponse(
        progress={
            course_id: CourseProgressResponse.from_entity(record)
            for course_id, record in records.items()
        }
    )


@router.get(
    "/{user_id}/courses/{course_id}",
    response_model=CourseProgressResponse,
    summary="Get course progress",
)
async def get_course_progress(
    user_id: UUID,
    course_id: UUID,
    progress_service: ProgressServiceDep,
    user: CurrentUser,
) -> CourseProgressResponse:
    """Get progress for one course.

    Answers with status ``not_started`` when nothing was recorded yet.
    """
    try:
        progress_service.authorize(user.id, user.role, user_id)
        result = await progress_service.get_progress(user_id, course_id)
    except ProgressError as e:
        raise handle_progress_error(e) from e

    return CourseProgressResponse.from_entity(result)


# ==============================================================================
# Progress Update Endpoints
# ==============================================================================


@router.put(
    "/{user_id}/courses/{course_id}",
    response_model=CourseProgressResponse,
    summary="Update course progress",
)
async def update_course_progress(
    user_id: UUID,
    course_id: UUID,
    data: UpdateProgressRequest,
    progress_service: ProgressServiceDep,
    user: CurrentUser,
) -> CourseProgressResponse:
    """Merge chapter states into the stored progress.

    Chapters unknown to the current course structure are ignored.
    """
    try:
        progress_service.authorize(user.id, user.role, user_id, write=True)
        record = await progress_service.update_progress(
            user_id=user_id,
            course_id=course_id,
            sections=data.to_entities(),
        )
    except ProgressError as e:
        raise handle_progress_error(e) from e

    return CourseProgressResponse.from_entity(record)


# ==============================================================================
# Enrollment Endpoints
# ==============================================================================


@enrollments_router.post(
    "",
    response_model=EnrollmentResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Enroll user in course",
)
async def enroll_user(
    data: EnrollRequest,
    progress_service: ProgressServiceDep,
    user: TeacherUser,
) -> EnrollmentResponse:
    """Grant a course enrollment (TEACHER or ADMIN)."""
    try:
        edge = await progress_service.enroll_user(data.user_id, data.course_id)
    except ProgressError as e:
        raise handle_progress_error(e) from e

    return EnrollmentResponse.from_entity(edge)


@enrollments_router.delete(
    "/{course_id}/{user_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Remove enrollment",
)
async def unenroll_user(
    course_id: UUID,
    user_id: UUID,
    progress_service: ProgressServiceDep,
    user: TeacherUser,
) -> None:
    """Remove the enrollment and the user's progress in the course."""
    try:
        await progress_service.unenroll_user(user_id, course_id)
    except ProgressError as e:
        raise handle_progress_error(e) from e
