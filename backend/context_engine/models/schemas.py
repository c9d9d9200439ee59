"""
Data model for retrieval results and the context payload handed to the
response generator.

Everything here is request-scoped except TranscriptSegment lists, which
live in the transcript cache (see utils/transcript_parser.py).
"""

from datetime import datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, computed_field
from pydantic.alias_generators import to_camel


class ContextMode(str, Enum):
    GENERAL = "general"
    COURSE = "course"
    ADVISOR = "advisor"
    DEFAULT = "default"

    @classmethod
    def parse(cls, value) -> "ContextMode":
        """Map any incoming mode string onto the closed set; unknown -> DEFAULT."""
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value or "").strip().lower())
        except ValueError:
            return cls.DEFAULT


class SkillLevel(str, Enum):
    BEGINNER = "BEGINNER"
    INTERMEDIATE = "INTERMEDIATE"
    ADVANCED = "ADVANCED"


class MatchKind(str, Enum):
    TRANSCRIPT = "transcript"
    LESSON = "lesson"
    COURSE = "course"


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# --- Records read from collaborators ---

class LessonRecord(CamelModel):
    id: int
    course_id: int
    title: str
    slug: str = ""
    course_title: str = ""
    course_slug: str = ""
    description: Optional[str] = None
    content: Optional[str] = None
    video_url: Optional[str] = None
    transcript_url: Optional[str] = None
    transcript_json_url: Optional[str] = None
    lesson_order: int = 0
    is_published: bool = True

    def searchable_text(self) -> str:
        """Title + description + content, used when no transcript exists."""
        return " ".join(part for part in (self.title, self.description, self.content) if part)


class CandidateCourse(CamelModel):
    """Read-mostly projection of a course record.

    `score` is filled in by the ranker on a copy, `similarity` only by the
    semantic search collaborator.
    """
    id: int
    title: str
    slug: str = ""
    short_description: Optional[str] = None
    description: Optional[str] = None
    what_you_learn: Optional[str] = None
    category_name: Optional[str] = None
    tag_names: List[str] = Field(default_factory=list)
    level: Optional[SkillLevel] = None
    rating_avg: Optional[float] = None
    rating_count: int = 0
    enrolled_count: int = 0
    published_at: Optional[datetime] = None
    total_lessons: int = 0
    duration_hours: Optional[float] = None
    thumbnail_url: Optional[str] = None
    is_published: bool = True
    score: Optional[float] = None
    similarity: Optional[float] = None

    def searchable_text(self) -> str:
        parts = [
            self.title,
            self.short_description,
            self.description,
            self.what_you_learn,
            self.category_name,
            " ".join(self.tag_names),
            self.level.value if self.level else None,
        ]
        return " ".join(p for p in parts if p)


class CourseSummary(CamelModel):
    id: int
    title: str
    slug: str = ""
    level: Optional[SkillLevel] = None
    progress: float = 0.0
    total_lessons: int = 0


class EnrollmentRecord(CamelModel):
    course: CourseSummary
    progress_percentage: float = 0.0
    last_accessed_at: Optional[datetime] = None


class ProgressRecord(CamelModel):
    lesson_id: int
    lesson_title: str
    lesson_slug: str = ""
    lesson_order: int = 0
    last_position: Optional[float] = None
    is_completed: bool = False
    completed_at: Optional[datetime] = None


class ConversationRecord(CamelModel):
    id: int
    user_id: int
    course_id: Optional[int] = None
    lesson_id: Optional[int] = None


class ConversationMessage(CamelModel):
    sender_type: str  # "user" or "ai"
    message: str
    created_at: Optional[datetime] = None


# --- Request-scoped results ---

class SearchMatch(CamelModel):
    kind: MatchKind
    lesson_id: Optional[int] = None
    course_id: Optional[int] = None
    lesson_title: Optional[str] = None
    course_title: Optional[str] = None
    display_text: str = ""
    excerpt: str = ""
    context_text: Optional[str] = None
    highlighted_text: Optional[str] = None
    relevance_score: float = Field(ge=0.0, le=1.0)
    timestamp: Optional[str] = None
    start_time: Optional[float] = None
    video_url: Optional[str] = None
    level: Optional[SkillLevel] = None
    is_full_transcript: bool = False
    source: str = "transcript"  # transcript | description | fallback | lexical | vector
    rank_score: Optional[float] = None


class CurrentLesson(CamelModel):
    id: int
    title: str
    slug: str = ""
    lesson_order: int = 0
    last_position: Optional[float] = None
    is_completed: bool = False


class RecentLesson(CamelModel):
    id: int
    title: str
    slug: str = ""
    lesson_order: int = 0
    completed_at: Optional[datetime] = None


class UserLearningContext(CamelModel):
    current_course: Optional[CourseSummary] = None
    current_lesson: Optional[CurrentLesson] = None
    recent_lessons: List[RecentLesson] = Field(default_factory=list)

    @classmethod
    def empty(cls) -> "UserLearningContext":
        return cls()


class SearchResults(CamelModel):
    transcripts: List[SearchMatch] = Field(default_factory=list)
    lessons: List[SearchMatch] = Field(default_factory=list)
    courses: List[SearchMatch] = Field(default_factory=list)

    @computed_field(alias="totalResults")
    @property
    def total_results(self) -> int:
        return len(self.transcripts) + len(self.lessons) + len(self.courses)


class ContextPayload(CamelModel):
    user_context: UserLearningContext = Field(default_factory=UserLearningContext)
    search_results: SearchResults = Field(default_factory=SearchResults)
    conversation_history: List[ConversationMessage] = Field(default_factory=list)
    query: str = ""
    mode: ContextMode = ContextMode.DEFAULT
