"""Course progress tracking module.

Provides:
- Per-(user, course) progress records with nested chapter state
- Merge of partial updates against the live course shape
- Course enrollment edges
"""

from .models import (
    PROGRESS_TABLES_CQL,
    ChapterProgress,
    CourseProgressRecord,
    EnrollmentEdge,
    NotStarted,
    ProgressStatus,
    SectionProgress,
)


__all__ = [
    "PROGRESS_TABLES_CQL",
    "ChapterProgress",
    "CourseProgressRecord",
    "EnrollmentEdge",
    "NotStarted",
    "ProgressStatus",
    "SectionProgress",
]
