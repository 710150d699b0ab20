"""Progress tracking errors.

Every error carries a human message and a machine ``code`` that
``handle_progress_error`` maps to an HTTP status.
"""


class ProgressError(Exception):
    """Base progress error."""

    def __init__(self, message: str, code: str = "progress_error"):
        self.message = message
        self.code = code
        super().__init__(message)


class CourseNotFoundError(ProgressError):
    """Course id is unknown to the catalog."""

    def __init__(self, message: str = "Course not found"):
        super().__init__(message, "course_not_found")


class ProgressAccessDeniedError(ProgressError):
    """Caller may not read or write this user's progress."""

    def __init__(self, message: str = "Not allowed to access this progress"):
        super().__init__(message, "unauthorized")


class ProgressUnavailableError(ProgressError):
    """Storage, catalog lookup or lock acquisition failed. Safe to retry."""

    def __init__(self, message: str = "Progress storage is temporarily unavailable"):
        super().__init__(message, "progress_unavailable")


class NotEnrolledError(ProgressError):
    """User not enrolled in course."""

    def __init__(self, message: str = "User is not enrolled in this course"):
        super().__init__(message, "not_enrolled")


class AlreadyEnrolledError(ProgressError):
    """User already enrolled."""

    def __init__(self, message: str = "User is already enrolled in this course"):
        super().__init__(message, "already_enrolled")
