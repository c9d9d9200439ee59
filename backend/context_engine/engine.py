"""
Engine wiring.

build_engine() assembles caches, searches, the ranker and the assembler
from EngineSettings. Repositories are injected by the host application;
when it passes none, the local CSV catalog from COURSES_CSV/LESSONS_CSV is
used. Qdrant and Redis are only wired in when their URLs are configured.
"""

import logging
from dataclasses import dataclass
from typing import List, Optional

from context_engine.config import EngineSettings, load_settings
from context_engine.models.schemas import CandidateCourse, ContextPayload, SearchResults, SkillLevel
from context_engine.repositories.base import (
    ArtifactStore,
    ConversationRepository,
    CourseRepository,
    DistributedCache,
    EnrollmentRepository,
    LessonRepository,
    SemanticCourseSearch,
)
from context_engine.repositories.csv_catalog import CSVCatalog
from context_engine.repositories.memory import InMemoryConversationRepository, InMemoryEnrollmentRepository
from context_engine.services.artifact_store import LocalArtifactStore
from context_engine.services.context_assembler import ContextAssembler
from context_engine.services.context_formatter import format_context
from context_engine.services.course_ranker import CourseRanker
from context_engine.services.knowledge_search import KnowledgeSearch
from context_engine.services.transcript_cache import TranscriptCache
from context_engine.services.transcript_search import TranscriptSearch
from context_engine.services.ttl_cache import TTLCache

logger = logging.getLogger(__name__)


@dataclass
class ContextEngine:
    """The two entry points exposed to the response generator."""
    assembler: ContextAssembler
    ranker: CourseRanker
    transcripts: TranscriptCache

    async def build_context(
        self,
        user_id: int,
        query: str,
        conversation_id: Optional[int] = None,
        mode: str = "default",
        scoping_lesson_id: Optional[int] = None
    ) -> ContextPayload:
        return await self.assembler.build_context(
            user_id, query,
            conversation_id=conversation_id,
            mode=mode,
            scoping_lesson_id=scoping_lesson_id
        )

    async def search_candidate_courses(
        self,
        query: str,
        limit: int = 5,
        level: Optional[SkillLevel] = None
    ) -> List[CandidateCourse]:
        return await self.ranker.search_candidate_courses(query, limit=limit, level=level)

    def format_context(self, payload: ContextPayload) -> str:
        return format_context(payload)

    def get_stats(self) -> dict:
        """Cache statistics for monitoring."""
        return {
            "transcripts": self.transcripts.get_stats(),
            "search_results": self.assembler.result_cache.get_stats(),
        }


def _semantic_search(settings: EngineSettings) -> Optional[SemanticCourseSearch]:
    if not settings.qdrant_url:
        logger.info("QDRANT_URL not set, semantic course search disabled")
        return None

    from context_engine.services.embedding import EmbeddingService
    from context_engine.services.semantic_search import QdrantCourseSearch

    semantic = QdrantCourseSearch(
        qdrant_url=settings.qdrant_url,
        qdrant_api_key=settings.qdrant_api_key,
        embedding_service=EmbeddingService(model_name=settings.embedding_model),
        collection_name=settings.qdrant_course_collection,
        score_threshold=settings.semantic_similarity_threshold
    )
    logger.info(f"Semantic course search: {settings.qdrant_course_collection}")
    return semantic


def _distributed_cache(settings: EngineSettings) -> Optional[DistributedCache]:
    if not settings.redis_url:
        return None

    from context_engine.services.redis_cache import RedisRankingCache

    logger.info("Course ranking cache: redis")
    return RedisRankingCache(settings.redis_url, default_ttl=settings.advisor_cache_ttl)


def build_engine(
    settings: Optional[EngineSettings] = None,
    lessons: Optional[LessonRepository] = None,
    courses: Optional[CourseRepository] = None,
    enrollments: Optional[EnrollmentRepository] = None,
    conversations: Optional[ConversationRepository] = None,
    artifact_store: Optional[ArtifactStore] = None,
    semantic: Optional[SemanticCourseSearch] = None,
    distributed_cache: Optional[DistributedCache] = None
) -> ContextEngine:
    """Wire up a ContextEngine.

    Collaborators passed in take precedence over the ones settings describe.
    """
    settings = settings or load_settings()

    if lessons is None or courses is None:
        if not settings.courses_csv:
            raise ValueError("No course/lesson repositories given and COURSES_CSV is not set")
        catalog = CSVCatalog(settings.courses_csv, settings.lessons_csv)
        lessons = lessons or catalog.lesson_repository()
        courses = courses or catalog.course_repository()

    enrollments = enrollments or InMemoryEnrollmentRepository()
    conversations = conversations or InMemoryConversationRepository()
    artifact_store = artifact_store or LocalArtifactStore(settings.artifact_root)
    semantic = semantic or _semantic_search(settings)
    distributed_cache = distributed_cache or _distributed_cache(settings)

    transcripts = TranscriptCache(
        artifact_store,
        ttl_seconds=settings.transcript_cache_ttl,
        max_entries=settings.transcript_cache_max_entries
    )
    transcript_search = TranscriptSearch(
        lessons,
        transcripts,
        enrollments=enrollments,
        max_lessons=settings.max_transcript_lessons,
        full_transcript_max_chars=settings.full_transcript_max_chars
    )
    ranker = CourseRanker(
        courses,
        semantic=semantic,
        cache=distributed_cache,
        cache_ttl=settings.advisor_cache_ttl
    )
    result_cache: TTLCache[SearchResults] = TTLCache(
        settings.search_cache_ttl,
        settings.search_cache_max_entries,
        name="search_results"
    )
    assembler = ContextAssembler(
        enrollments,
        conversations,
        transcript_search,
        KnowledgeSearch(lessons, courses),
        ranker,
        result_cache=result_cache,
        history_limit=settings.history_limit
    )

    logger.info("Context engine initialized")
    return ContextEngine(assembler=assembler, ranker=ranker, transcripts=transcripts)
