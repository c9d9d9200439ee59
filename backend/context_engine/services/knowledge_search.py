"""
Lesson and course knowledge search.

Broader context than transcript excerpts: lesson titles/descriptions and
the learner's enrolled courses. Both use lower relevance thresholds than
transcripts (0.35 for lessons, 0.30 for courses).
"""

from typing import List, Optional, Sequence

from context_engine.models.schemas import CandidateCourse, LessonRecord, MatchKind, SearchMatch
from context_engine.repositories.base import CourseRepository, LessonRepository
from context_engine.services.relevance import extract_keywords, has_naive_hit, score
from context_engine.services.transcript_search import rank_matches
from context_engine.utils.transcript_parser import get_excerpt


def _course_text(course: CandidateCourse) -> str:
    return " ".join(p for p in (course.title, course.description, course.what_you_learn) if p)


class KnowledgeSearch:

    def __init__(
        self,
        lessons: LessonRepository,
        courses: CourseRepository,
        lesson_limit: int = 10,
        course_limit: int = 5
    ):
        self.lessons = lessons
        self.courses = courses
        self.lesson_limit = lesson_limit
        self.course_limit = course_limit

    async def search_lessons(
        self,
        query: str,
        course_id: Optional[int] = None,
        enrolled_course_ids: Optional[Sequence[int]] = None
    ) -> List[SearchMatch]:
        """Published lessons whose title, description or content mention the query."""
        keywords = extract_keywords(query)
        terms = keywords or [query.strip()]
        if not any(terms):
            return []

        course_ids = None
        if course_id is not None:
            course_ids = [course_id]
        elif enrolled_course_ids is not None:
            course_ids = list(enrolled_course_ids)
            if not course_ids:
                return []

        lessons = await self.lessons.find_published_lessons(
            course_ids=course_ids,
            text_query=terms,
            limit=self.lesson_limit
        )

        matches = [self._lesson_match(lesson, query, keywords) for lesson in lessons]
        return rank_matches(matches, MatchKind.LESSON)

    def _lesson_match(self, lesson: LessonRecord, query: str, keywords: List[str]) -> SearchMatch:
        summary = lesson.description or lesson.content or ""
        return SearchMatch(
            kind=MatchKind.LESSON,
            lesson_id=lesson.id,
            course_id=lesson.course_id,
            lesson_title=lesson.title,
            course_title=lesson.course_title,
            display_text=summary,
            excerpt=get_excerpt(summary, 200),
            video_url=lesson.video_url,
            relevance_score=score(query, lesson.searchable_text(), keywords),
            source="lexical"
        )

    async def search_courses(self, query: str, enrolled_course_ids: Sequence[int]) -> List[SearchMatch]:
        """Enrolled courses whose title, description or outcomes mention the query."""
        if not enrolled_course_ids:
            return []

        keywords = extract_keywords(query)
        courses = await self.courses.find_courses_by_ids(list(enrolled_course_ids))

        matches = []
        for course in courses:
            text = _course_text(course)
            if not has_naive_hit(query, text, keywords):
                continue
            matches.append(SearchMatch(
                kind=MatchKind.COURSE,
                course_id=course.id,
                course_title=course.title,
                display_text=course.short_description or "",
                excerpt=get_excerpt(course.description or course.short_description or "", 200),
                level=course.level,
                relevance_score=score(query, text, keywords),
                source="lexical"
            ))

        return rank_matches(matches, MatchKind.COURSE)[:self.course_limit]
