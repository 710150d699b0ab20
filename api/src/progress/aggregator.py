"""Pure merge and scoring rules for course progress.

Nothing here touches storage; the service feeds in the current course
shape and the stored record and persists what comes out.
"""

from dataclasses import dataclass, field
from decimal import ROUND_HALF_UP, Decimal
from uuid import UUID

from src.courses.models import CourseShape

from .models import ChapterProgress, CourseProgressRecord, SectionProgress


@dataclass
class MergeResult:
    """Merged sections plus the incoming chapter ids that did not line up.

    ``ignored_chapter_ids`` are unknown to the shape and were dropped;
    ``misplaced_chapter_ids`` were sent under a section that no longer holds
    them and were applied to their current section.
    """

    sections: list[SectionProgress]
    ignored_chapter_ids: list[UUID] = field(default_factory=list)
    misplaced_chapter_ids: list[UUID] = field(default_factory=list)

    @property
    def completed(self) -> int:
        return sum(
            1 for section in self.sections for chapter in section.chapters
            if chapter.completed
        )


def completion_percentage(completed: int, total: int) -> int:
    """Whole percentage of ``completed`` over ``total``, halves rounded up.

    A course without chapters is 0% complete.
    """
    if total <= 0:
        return 0
    ratio = Decimal(100 * completed) / Decimal(total)
    return int(ratio.quantize(Decimal(1), rounding=ROUND_HALF_UP))


def empty_sections(shape: CourseShape) -> list[SectionProgress]:
    """All-incomplete progress mirroring ``shape``."""
    return [
        SectionProgress(
            section_id=section.section_id,
            chapters=[ChapterProgress(chapter_id=c.chapter_id) for c in section.chapters],
        )
        for section in shape.sections
    ]


def _index_chapters(sections: list[SectionProgress]) -> dict[UUID, ChapterProgress]:
    # Later entries win when a chapter id repeats
    index: dict[UUID, ChapterProgress] = {}
    for section in sections:
        for chapter in section.chapters:
            index[chapter.chapter_id] = chapter
    return index


def merge_sections(
    shape: CourseShape,
    existing: list[SectionProgress] | None,
    incoming: list[SectionProgress],
) -> MergeResult:
    """Overlay ``incoming`` chapter states on ``existing`` for the current shape.

    Chapters are matched by chapter_id regardless of the section they were
    sent under. The result follows ``shape`` exactly: chapters no longer in
    the course drop out, new ones appear incomplete, and chapters absent from
    ``incoming`` keep their prior state.

    Args:
        shape: Current course structure
        existing: Stored sections, or None when nothing was written yet
        incoming: Sections sent by the client

    Returns:
        MergeResult with the new sections, ignored and misplaced chapter ids
    """
    prior = _index_chapters(existing or [])
    updates = _index_chapters(incoming)

    ignored = [cid for cid in updates if not shape.has_chapter(cid)]
    misplaced = [
        chapter.chapter_id
        for section in incoming
        for chapter in section.chapters
        if shape.has_chapter(chapter.chapter_id)
        and shape.section_of(chapter.chapter_id) != section.section_id
    ]

    sections: list[SectionProgress] = []
    for section in shape.sections:
        chapters: list[ChapterProgress] = []
        for chapter_shape in section.chapters:
            cid = chapter_shape.chapter_id
            before = prior.get(cid) or ChapterProgress(chapter_id=cid)
            update = updates.get(cid)
            if update is None:
                chapters.append(
                    ChapterProgress(
                        chapter_id=cid,
                        completed=before.completed,
                        last_accessed=before.last_accessed,
                    )
                )
                continue
            chapters.append(
                ChapterProgress(
                    chapter_id=cid,
                    completed=update.completed,
                    last_accessed=update.last_accessed or before.last_accessed,
                )
            )
        sections.append(SectionProgress(section_id=section.section_id, chapters=chapters))

    return MergeResult(
        sections=sections,
        ignored_chapter_ids=ignored,
        misplaced_chapter_ids=misplaced,
    )


def project_record(
    shape: CourseShape, record: CourseProgressRecord
) -> CourseProgressRecord:
    """View of a stored record against the current ``shape``.

    Chapters added since the last write count as incomplete and removed ones
    drop out, so the percentage always reflects today's course. The stored
    record is left untouched.
    """
    merged = merge_sections(shape, record.sections, [])
    return CourseProgressRecord(
        user_id=record.user_id,
        course_id=record.course_id,
        sections=merged.sections,
        overall_completion_percentage=completion_percentage(
            merged.completed, shape.chapter_count
        ),
        last_updated=record.last_updated,
    )
