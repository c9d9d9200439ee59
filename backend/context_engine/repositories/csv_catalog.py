"""
CSV-backed course catalog for local development and offline indexing.

courses.csv columns:
    id, title, slug, short_description, description, what_you_learn,
    category_name, tag_names ("|"-separated), level, rating_avg, rating_count,
    enrolled_count, published_at, total_lessons, duration_hours,
    thumbnail_url, is_published
lessons.csv columns:
    id, course_id, title, slug, description, content, video_url,
    transcript_url, transcript_json_url, lesson_order, is_published

Only id/title (and course_id for lessons) are required; everything else
defaults when the column is missing or the cell is empty.
"""

import logging
from typing import Any, Dict, List, Optional

import pandas as pd

from context_engine.models.schemas import CandidateCourse, LessonRecord, SkillLevel
from context_engine.repositories.memory import InMemoryCourseRepository, InMemoryLessonRepository

logger = logging.getLogger(__name__)

TRUE_VALUES = {"1", "true", "yes", "y", "t"}


def _cell(row: pd.Series, column: str, default: Any = None) -> Any:
    if column not in row or pd.isna(row[column]):
        return default
    value = row[column]
    if isinstance(value, str):
        value = value.strip()
        return value if value else default
    return value


def _text(row: pd.Series, column: str, default: Optional[str] = None) -> Optional[str]:
    value = _cell(row, column)
    return str(value) if value is not None else default


def _float(row: pd.Series, column: str) -> Optional[float]:
    value = _cell(row, column)
    return float(value) if value is not None else None


def _bool(row: pd.Series, column: str, default: bool = True) -> bool:
    value = _cell(row, column)
    if value is None:
        return default
    if isinstance(value, str):
        return value.lower() in TRUE_VALUES
    return bool(value)


def _level(row: pd.Series) -> Optional[SkillLevel]:
    value = _cell(row, "level")
    if value is None:
        return None
    try:
        return SkillLevel(str(value).upper())
    except ValueError:
        logger.warning(f"Unknown course level '{value}' for course {_cell(row, 'id')}")
        return None


def parse_courses(df: pd.DataFrame) -> List[CandidateCourse]:
    courses = []
    for _, row in df.iterrows():
        tags = _cell(row, "tag_names", "")
        published_at = _cell(row, "published_at")
        courses.append(CandidateCourse(
            id=int(row["id"]),
            title=str(row["title"]).strip(),
            slug=_text(row, "slug", ""),
            short_description=_text(row, "short_description"),
            description=_text(row, "description"),
            what_you_learn=_text(row, "what_you_learn"),
            category_name=_text(row, "category_name"),
            tag_names=[t.strip() for t in str(tags).split("|") if t.strip()],
            level=_level(row),
            rating_avg=_float(row, "rating_avg"),
            rating_count=int(_cell(row, "rating_count", 0)),
            enrolled_count=int(_cell(row, "enrolled_count", 0)),
            published_at=pd.to_datetime(published_at).to_pydatetime() if published_at is not None else None,
            total_lessons=int(_cell(row, "total_lessons", 0)),
            duration_hours=_float(row, "duration_hours"),
            thumbnail_url=_text(row, "thumbnail_url"),
            is_published=_bool(row, "is_published"),
        ))
    return courses


def parse_lessons(df: pd.DataFrame, courses_by_id: Dict[int, CandidateCourse]) -> List[LessonRecord]:
    lessons = []
    for _, row in df.iterrows():
        course_id = int(row["course_id"])
        course = courses_by_id.get(course_id)
        lessons.append(LessonRecord(
            id=int(row["id"]),
            course_id=course_id,
            title=str(row["title"]).strip(),
            slug=_text(row, "slug", ""),
            course_title=course.title if course else "",
            course_slug=course.slug if course else "",
            description=_text(row, "description"),
            content=_text(row, "content"),
            video_url=_text(row, "video_url"),
            transcript_url=_text(row, "transcript_url"),
            transcript_json_url=_text(row, "transcript_json_url"),
            lesson_order=int(_cell(row, "lesson_order", 0)),
            is_published=_bool(row, "is_published"),
        ))
    return lessons


class CSVCatalog:
    """Loads course and lesson CSV exports into in-memory repositories."""

    def __init__(self, courses_csv: str, lessons_csv: Optional[str] = None):
        self.courses_csv = courses_csv
        self.lessons_csv = lessons_csv
        self.courses: List[CandidateCourse] = []
        self.lessons: List[LessonRecord] = []
        self._load_and_parse()

    def _load_and_parse(self):
        """Load CSVs and build records."""
        courses_df = pd.read_csv(self.courses_csv, encoding='utf-8-sig')
        self.courses = parse_courses(courses_df)

        if self.lessons_csv:
            lessons_df = pd.read_csv(self.lessons_csv, encoding='utf-8-sig')
            self.lessons = parse_lessons(lessons_df, {c.id: c for c in self.courses})

        logger.info(f"Loaded catalog: {len(self.courses)} courses, {len(self.lessons)} lessons")

    def course_repository(self) -> InMemoryCourseRepository:
        return InMemoryCourseRepository(self.courses)

    def lesson_repository(self) -> InMemoryLessonRepository:
        return InMemoryLessonRepository(self.lessons)
