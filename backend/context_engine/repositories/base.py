"""
Interfaces of the collaborators the engine reads from.

The engine never writes through any of these. Implementations live outside
the engine (database access layer, Qdrant, Redis); repositories/memory.py and
repositories/csv_catalog.py provide local ones for development and tests.
"""

from abc import ABC, abstractmethod
from typing import Any, List, Optional, Sequence

from context_engine.models.schemas import (
    CandidateCourse,
    ConversationMessage,
    ConversationRecord,
    EnrollmentRecord,
    LessonRecord,
    ProgressRecord,
    SkillLevel,
)


class LessonRepository(ABC):

    @abstractmethod
    async def find_published_lessons(
        self,
        lesson_id: Optional[int] = None,
        course_ids: Optional[Sequence[int]] = None,
        require_transcript: bool = False,
        text_query: Optional[Sequence[str]] = None,
        limit: Optional[int] = None,
    ) -> List[LessonRecord]:
        """Published lessons matching every given filter, in lesson order.

        `text_query` is an OR of case-insensitive substring matches over
        title, description and content.
        """
        ...

    async def get_lesson(self, lesson_id: int) -> Optional[LessonRecord]:
        lessons = await self.find_published_lessons(lesson_id=lesson_id, limit=1)
        return lessons[0] if lessons else None


class CourseRepository(ABC):

    @abstractmethod
    async def find_courses(
        self,
        keywords: Sequence[str],
        limit: int,
        published_only: bool = True,
    ) -> List[CandidateCourse]:
        """Courses where any keyword is a substring of title, description,
        category, tag names or level. No keywords means "any course",
        ordered by rating then enrollments.
        """
        ...

    @abstractmethod
    async def find_courses_by_ids(self, course_ids: Sequence[int]) -> List[CandidateCourse]:
        """Courses with the given ids, in the order the ids were given."""
        ...


class EnrollmentRepository(ABC):

    @abstractmethod
    async def get_active_enrollment(self, user_id: int) -> Optional[EnrollmentRecord]:
        """The user's most recently accessed active enrollment."""
        ...

    @abstractmethod
    async def get_active_course_ids(self, user_id: int) -> List[int]:
        ...

    @abstractmethod
    async def get_recent_progress(self, user_id: int, course_id: int) -> Optional[ProgressRecord]:
        ...

    @abstractmethod
    async def get_completed_lessons(self, user_id: int, course_id: int, limit: int = 5) -> List[ProgressRecord]:
        ...


class ConversationRepository(ABC):

    @abstractmethod
    async def get_conversation(self, conversation_id: int) -> Optional[ConversationRecord]:
        ...

    @abstractmethod
    async def get_recent_messages(self, conversation_id: int, limit: int = 10) -> List[ConversationMessage]:
        """Most recent messages, returned oldest first."""
        ...


class ArtifactStore(ABC):
    """Byte-level access to transcript files."""

    @abstractmethod
    async def exists(self, path: str) -> bool:
        ...

    @abstractmethod
    async def read_text(self, path: str) -> str:
        ...


class SemanticCourseSearch(ABC):
    """Optional vector search over the course catalog. Best effort only."""

    @abstractmethod
    async def available(self) -> bool:
        ...

    @abstractmethod
    async def search(
        self,
        query: str,
        limit: int = 10,
        level: Optional[SkillLevel] = None,
    ) -> List[CandidateCourse]:
        ...


class DistributedCache(ABC):
    """Optional cache shared across processes. A miss is never an error."""

    @abstractmethod
    async def get(self, key: str) -> Optional[Any]:
        ...

    @abstractmethod
    async def set(self, key: str, value: Any, ttl: Optional[int] = None) -> None:
        ...
