"""
In-memory repositories.

Used for local development (fed by repositories/csv_catalog.py) and as
test doubles. Filtering mirrors what the production database queries do:
case-insensitive substring OR-matching, published rows only.
"""

from datetime import datetime
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from context_engine.models.schemas import (
    CandidateCourse,
    ConversationMessage,
    ConversationRecord,
    EnrollmentRecord,
    LessonRecord,
    ProgressRecord,
)
from context_engine.repositories.base import (
    ConversationRepository,
    CourseRepository,
    EnrollmentRepository,
    LessonRepository,
)


def _contains_any(text: str, terms: Sequence[str]) -> bool:
    haystack = text.lower()
    return any(term.lower() in haystack for term in terms if term)


class InMemoryLessonRepository(LessonRepository):

    def __init__(self, lessons: Iterable[LessonRecord] = ()):
        self._lessons: Dict[int, LessonRecord] = {lesson.id: lesson for lesson in lessons}

    def add(self, lesson: LessonRecord) -> None:
        self._lessons[lesson.id] = lesson

    async def find_published_lessons(
        self,
        lesson_id: Optional[int] = None,
        course_ids: Optional[Sequence[int]] = None,
        require_transcript: bool = False,
        text_query: Optional[Sequence[str]] = None,
        limit: Optional[int] = None,
    ) -> List[LessonRecord]:
        results = []
        for lesson in self._lessons.values():
            if not lesson.is_published:
                continue
            if lesson_id is not None and lesson.id != lesson_id:
                continue
            if course_ids is not None and lesson.course_id not in course_ids:
                continue
            if require_transcript and not (lesson.transcript_url or lesson.transcript_json_url):
                continue
            if text_query and not _contains_any(lesson.searchable_text(), text_query):
                continue
            results.append(lesson)

        results.sort(key=lambda l: (l.course_id, l.lesson_order, l.id))
        return results[:limit] if limit is not None else results


class InMemoryCourseRepository(CourseRepository):

    def __init__(self, courses: Iterable[CandidateCourse] = ()):
        self._courses: Dict[int, CandidateCourse] = {course.id: course for course in courses}

    def add(self, course: CandidateCourse) -> None:
        self._courses[course.id] = course

    async def find_courses(
        self,
        keywords: Sequence[str],
        limit: int,
        published_only: bool = True,
    ) -> List[CandidateCourse]:
        results = [
            course for course in self._courses.values()
            if (course.is_published or not published_only)
            and (not keywords or _contains_any(course.searchable_text(), keywords))
        ]
        results.sort(key=lambda c: (-(c.rating_avg or 0.0), -c.enrolled_count, c.id))
        return results[:limit]

    async def find_courses_by_ids(self, course_ids: Sequence[int]) -> List[CandidateCourse]:
        return [self._courses[i] for i in course_ids if i in self._courses]


class InMemoryEnrollmentRepository(EnrollmentRepository):
    """Active enrollments per user and lesson progress per (user, course).

    Progress records are kept in the order they happened; the last one is
    the most recent.
    """

    def __init__(
        self,
        enrollments: Optional[Dict[int, List[EnrollmentRecord]]] = None,
        progress: Optional[Dict[Tuple[int, int], List[ProgressRecord]]] = None
    ):
        self._enrollments = enrollments or {}
        self._progress = progress or {}

    def enroll(self, user_id: int, enrollment: EnrollmentRecord) -> None:
        self._enrollments.setdefault(user_id, []).append(enrollment)

    def record_progress(self, user_id: int, course_id: int, progress: ProgressRecord) -> None:
        self._progress.setdefault((user_id, course_id), []).append(progress)

    async def get_active_enrollment(self, user_id: int) -> Optional[EnrollmentRecord]:
        enrollments = self._enrollments.get(user_id, [])
        if not enrollments:
            return None
        return max(enrollments, key=lambda e: e.last_accessed_at or datetime.min)

    async def get_active_course_ids(self, user_id: int) -> List[int]:
        return [e.course.id for e in self._enrollments.get(user_id, [])]

    async def get_recent_progress(self, user_id: int, course_id: int) -> Optional[ProgressRecord]:
        records = self._progress.get((user_id, course_id), [])
        return records[-1] if records else None

    async def get_completed_lessons(self, user_id: int, course_id: int, limit: int = 5) -> List[ProgressRecord]:
        completed = [p for p in self._progress.get((user_id, course_id), []) if p.is_completed]
        completed.sort(key=lambda p: p.completed_at or datetime.min, reverse=True)
        return completed[:limit]


class InMemoryConversationRepository(ConversationRepository):

    def __init__(
        self,
        conversations: Iterable[ConversationRecord] = (),
        messages: Optional[Dict[int, List[ConversationMessage]]] = None
    ):
        self._conversations = {c.id: c for c in conversations}
        self._messages = messages or {}

    def add_message(self, conversation_id: int, message: ConversationMessage) -> None:
        self._messages.setdefault(conversation_id, []).append(message)

    async def get_conversation(self, conversation_id: int) -> Optional[ConversationRecord]:
        return self._conversations.get(conversation_id)

    async def get_recent_messages(self, conversation_id: int, limit: int = 10) -> List[ConversationMessage]:
        messages = self._messages.get(conversation_id, [])
        return list(messages[-limit:]) if limit > 0 else []
