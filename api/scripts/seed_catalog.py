"""Seed the course catalog (and optionally enrollments) from a JSON file.

Creates the keyspace and tables if needed, then replaces the structure of
every course listed. Re-running with the same file is safe.

File format:
    {
      "courses": [
        {
          "course_id": "7c1e...",
          "title": "Intro to SQL",
          "teacher_id": "t-42",
          "sections": [
            {
              "section_id": "a3f0...",
              "title": "Basics",
              "chapters": [
                {"chapter_id": "c9d2...", "type": "Video", "title": "SELECT"}
              ]
            }
          ],
          "enrollments": ["5b7a..."]
        }
      ]
    }

Usage:
    cd api && uv run python -m scripts.seed_catalog catalog.json
"""

import argparse
import asyncio
import json
import sys
from pathlib import Path
from uuid import UUID

# Add src to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

import structlog

from src.config.settings import get_settings
from src.core.database import init_async_cassandra, shutdown_async_cassandra
from src.courses.models import ChapterShape, ChapterType, SectionShape
from src.courses.service import CatalogService
from src.progress.store import ProgressStore


logger = structlog.get_logger(__name__)


def parse_sections(raw_sections: list[dict]) -> list[SectionShape]:
    """Build section shapes from the JSON description."""
    return [
        SectionShape(
            section_id=UUID(section["section_id"]),
            title=section.get("title", ""),
            chapters=tuple(
                ChapterShape(
                    chapter_id=UUID(chapter["chapter_id"]),
                    chapter_type=ChapterType(chapter["type"]),
                    title=chapter.get("title", ""),
                )
                for chapter in section.get("chapters", [])
            ),
        )
        for section in raw_sections
    ]


async def seed(path: Path) -> None:
    """Load ``path`` into the catalog and enrollment tables."""
    settings = get_settings()
    data = json.loads(path.read_text(encoding="utf-8"))

    session = await init_async_cassandra()
    catalog = CatalogService(session=session, keyspace=settings.cassandra_keyspace)
    store = ProgressStore(session=session, keyspace=settings.cassandra_keyspace)

    try:
        for course in data.get("courses", []):
            course_id = UUID(course["course_id"])
            shape = await catalog.replace_structure(
                course_id=course_id,
                title=course.get("title", ""),
                sections=parse_sections(course.get("sections", [])),
                teacher_id=course.get("teacher_id"),
            )

            enrolled = 0
            for user_id in course.get("enrollments", []):
                await store.add_enrollment(UUID(user_id), course_id)
                enrolled += 1

            logger.info(
                "course_seeded",
                course_id=str(course_id),
                chapters=shape.chapter_count,
                enrollments=enrolled,
            )
    finally:
        await shutdown_async_cassandra()


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[0])
    parser.add_argument("path", type=Path, help="Catalog JSON file")
    args = parser.parse_args()
    asyncio.run(seed(args.path))
