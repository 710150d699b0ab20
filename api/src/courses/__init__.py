"""Course catalog module.

Provides:
- Course structure tables (courses, sections, chapters)
- Live course shape lookup for progress validation
"""

from .models import (
    COURSES_TABLES_CQL,
    ChapterShape,
    ChapterType,
    CourseShape,
    CourseStatus,
    SectionShape,
)


__all__ = [
    "COURSES_TABLES_CQL",
    "ChapterShape",
    "ChapterType",
    "CourseShape",
    "CourseStatus",
    "SectionShape",
]
