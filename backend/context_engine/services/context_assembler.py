"""
Context Assembler.

Builds the ContextPayload handed to the response generator:
1. Fetch learner context, enrolled courses, conversation metadata and
   history concurrently
2. Resolve the search scope (lesson, target course) for the mode
3. Reuse cached search results, or run the mode's search strategy
4. Return a fresh payload; only search results are ever cached

Retrieval is best effort. A failing source is logged and contributes
nothing; the only error that reaches the caller is NotFoundError from a
lesson-scoped search.
"""

import asyncio
import logging
import time
import uuid
from dataclasses import dataclass, field
from typing import Awaitable, Callable, Dict, List, Optional, TypeVar

from context_engine.errors import NotFoundError
from context_engine.models.schemas import (
    CandidateCourse,
    ContextMode,
    ContextPayload,
    ConversationMessage,
    ConversationRecord,
    CurrentLesson,
    MatchKind,
    RecentLesson,
    SearchMatch,
    SearchResults,
    UserLearningContext,
)
from context_engine.repositories.base import ConversationRepository, EnrollmentRepository
from context_engine.services.course_ranker import CourseRanker, expand_keywords
from context_engine.services.intents import is_unrelated_topic
from context_engine.services.knowledge_search import KnowledgeSearch
from context_engine.services.relevance import best_score, extract_keywords, normalize, passes_threshold
from context_engine.services.transcript_search import TranscriptSearch
from context_engine.services.ttl_cache import TTLCache
from context_engine.utils.transcript_parser import get_excerpt

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass
class SearchScope:
    """Everything a search strategy needs for one request."""
    query: str
    mode: ContextMode
    user_id: int
    correlation_id: str
    lesson_id: Optional[int] = None
    course_id: Optional[int] = None
    enrolled_course_ids: List[int] = field(default_factory=list)
    # Set when a source failed; degraded results are not cached
    degraded: bool = False

    def cache_key(self) -> str:
        enrolled = ",".join(str(i) for i in sorted(self.enrolled_course_ids))
        return "|".join([
            self.mode.value,
            normalize(self.query),
            str(self.lesson_id or ""),
            str(self.course_id or ""),
            enrolled,
        ])


class ContextAssembler:
    """Orchestrates retrieval for one conversational turn."""

    def __init__(
        self,
        enrollments: EnrollmentRepository,
        conversations: ConversationRepository,
        transcript_search: TranscriptSearch,
        knowledge_search: KnowledgeSearch,
        course_ranker: CourseRanker,
        result_cache: Optional[TTLCache[SearchResults]] = None,
        history_limit: int = 10,
        advisor_limit: int = 5
    ):
        self.enrollments = enrollments
        self.conversations = conversations
        self.transcript_search = transcript_search
        self.knowledge_search = knowledge_search
        self.course_ranker = course_ranker
        if result_cache is None:
            result_cache = TTLCache(300, 200, name="search_results")
        self.result_cache = result_cache
        self.history_limit = history_limit
        self.advisor_limit = advisor_limit

        self._strategies: Dict[ContextMode, Callable[[SearchScope], Awaitable[SearchResults]]] = {
            ContextMode.GENERAL: self._search_general,
            ContextMode.COURSE: self._search_course,
            ContextMode.ADVISOR: self._search_advisor,
            ContextMode.DEFAULT: self._search_default,
        }

    async def build_context(
        self,
        user_id: int,
        query: str,
        conversation_id: Optional[int] = None,
        mode: str = "default",
        scoping_lesson_id: Optional[int] = None
    ) -> ContextPayload:
        """Assemble the context payload for a query.

        Args:
            user_id: Learner asking the question
            query: Free-text question
            conversation_id: Conversation the question belongs to (optional)
            mode: "general", "course", "advisor" or anything else for default
            scoping_lesson_id: Lesson the question is about (course mode)

        Raises:
            NotFoundError: scoping lesson does not exist
        """
        t_start = time.perf_counter()
        context_mode = ContextMode.parse(mode)
        query = query or ""
        correlation_id = str(uuid.uuid4())[:8]
        logger.info(
            f"[{correlation_id}] Building context | mode={context_mode.value} | user={user_id} | "
            f"conversation={conversation_id} | lesson={scoping_lesson_id} | query='{query[:80]}'"
        )

        user_context, enrolled_ids, conversation, history = await asyncio.gather(
            self._guarded(self.get_user_context(user_id), UserLearningContext.empty(), "user context", correlation_id),
            self._guarded(self.enrollments.get_active_course_ids(user_id), [], "enrolled courses", correlation_id),
            self._guarded(self._get_conversation(conversation_id), None, "conversation", correlation_id),
            self._guarded(self._get_history(conversation_id), [], "conversation history", correlation_id),
        )

        scope = self._resolve_scope(
            query, context_mode, user_id, correlation_id,
            scoping_lesson_id, conversation, user_context, enrolled_ids
        )

        search_results, cache_hit = await self._search(scope)

        payload = ContextPayload(
            user_context=user_context,
            search_results=search_results,
            conversation_history=history,
            query=query,
            mode=context_mode
        )

        elapsed_ms = (time.perf_counter() - t_start) * 1000
        logger.info(
            f"[{correlation_id}] Context built in {elapsed_ms:.0f}ms | cache_hit={cache_hit} | "
            f"transcripts={len(search_results.transcripts)} lessons={len(search_results.lessons)} "
            f"courses={len(search_results.courses)}"
        )
        return payload

    # ---- Learner state ----

    async def get_user_context(self, user_id: int) -> UserLearningContext:
        """Current course, current lesson and recently completed lessons."""
        enrollment = await self.enrollments.get_active_enrollment(user_id)
        if enrollment is None:
            return UserLearningContext.empty()

        course = enrollment.course.model_copy(update={"progress": enrollment.progress_percentage})
        progress, completed = await asyncio.gather(
            self.enrollments.get_recent_progress(user_id, course.id),
            self.enrollments.get_completed_lessons(user_id, course.id, limit=5),
        )

        current_lesson = None
        if progress is not None:
            current_lesson = CurrentLesson(
                id=progress.lesson_id,
                title=progress.lesson_title,
                slug=progress.lesson_slug,
                lesson_order=progress.lesson_order,
                last_position=progress.last_position,
                is_completed=progress.is_completed
            )

        return UserLearningContext(
            current_course=course,
            current_lesson=current_lesson,
            recent_lessons=[
                RecentLesson(
                    id=p.lesson_id,
                    title=p.lesson_title,
                    slug=p.lesson_slug,
                    lesson_order=p.lesson_order,
                    completed_at=p.completed_at
                )
                for p in completed
            ]
        )

    async def _get_conversation(self, conversation_id: Optional[int]) -> Optional[ConversationRecord]:
        if conversation_id is None:
            return None
        return await self.conversations.get_conversation(conversation_id)

    async def _get_history(self, conversation_id: Optional[int]) -> List[ConversationMessage]:
        if conversation_id is None:
            return []
        return await self.conversations.get_recent_messages(conversation_id, limit=self.history_limit)

    def _resolve_scope(
        self,
        query: str,
        mode: ContextMode,
        user_id: int,
        correlation_id: str,
        scoping_lesson_id: Optional[int],
        conversation: Optional[ConversationRecord],
        user_context: UserLearningContext,
        enrolled_ids: List[int]
    ) -> SearchScope:
        lesson_id = scoping_lesson_id
        if lesson_id is None and mode == ContextMode.COURSE and conversation is not None:
            lesson_id = conversation.lesson_id

        # Target course: the conversation's course, else the one being studied
        course_id = conversation.course_id if conversation is not None else None
        if course_id is None and user_context.current_course is not None:
            course_id = user_context.current_course.id

        return SearchScope(
            query=query,
            mode=mode,
            user_id=user_id,
            correlation_id=correlation_id,
            lesson_id=lesson_id,
            course_id=course_id,
            enrolled_course_ids=list(enrolled_ids)
        )

    # ---- Search ----

    async def _search(self, scope: SearchScope):
        """(results, cache_hit) for the scope. General mode never touches the cache."""
        strategy = self._strategies[scope.mode]
        if scope.mode == ContextMode.GENERAL:
            return await strategy(scope), False

        key = scope.cache_key()
        cached = self.result_cache.get(key)
        if cached is not None:
            logger.info(f"[{scope.correlation_id}] Search result cache hit")
            return cached.model_copy(deep=True), True

        results = await strategy(scope)
        if scope.degraded:
            logger.info(f"[{scope.correlation_id}] Degraded results not cached")
        else:
            self.result_cache.set(key, results.model_copy(deep=True))
        return results, False

    async def _search_general(self, scope: SearchScope) -> SearchResults:
        return SearchResults()

    async def _search_course(self, scope: SearchScope) -> SearchResults:
        if scope.lesson_id is None:
            return await self._search_default(scope)

        # Strictly this lesson: answers must not mix in other lessons
        logger.info(f"[{scope.correlation_id}] Search path: lesson {scope.lesson_id} only")
        try:
            transcripts = await self.transcript_search.search(scope.query, lesson_id=scope.lesson_id)
        except NotFoundError:
            raise
        except Exception as e:
            logger.error(f"[{scope.correlation_id}] Lesson transcript search failed: {e}", exc_info=True)
            scope.degraded = True
            transcripts = []
        return SearchResults(transcripts=transcripts)

    async def _search_default(self, scope: SearchScope) -> SearchResults:
        if is_unrelated_topic(scope.query):
            logger.info(f"[{scope.correlation_id}] Off-topic query, skipping course material search")
            return SearchResults()

        logger.info(
            f"[{scope.correlation_id}] Search path: course={scope.course_id} | "
            f"enrolled={len(scope.enrolled_course_ids)}"
        )
        transcripts, lessons, courses = await asyncio.gather(
            self._guarded_search(
                self.transcript_search.search(
                    scope.query,
                    course_id=scope.course_id,
                    user_id=scope.user_id,
                    enrolled_course_ids=scope.enrolled_course_ids
                ),
                "transcript search", scope
            ),
            self._guarded_search(
                self.knowledge_search.search_lessons(
                    scope.query,
                    course_id=scope.course_id,
                    enrolled_course_ids=scope.enrolled_course_ids
                ),
                "lesson search", scope
            ),
            self._guarded_search(
                self.knowledge_search.search_courses(scope.query, scope.enrolled_course_ids),
                "course search", scope
            ),
        )
        return SearchResults(transcripts=transcripts, lessons=lessons, courses=courses)

    async def _search_advisor(self, scope: SearchScope) -> SearchResults:
        query = scope.query
        courses = await self._guarded_search(
            self.course_ranker.search_candidate_courses(query, limit=self.advisor_limit),
            "course ranking", scope
        )

        if not courses and query.strip():
            # Nothing matched: surface the best-rated, most popular courses instead
            logger.info(f"[{scope.correlation_id}] No course candidates, retrying with empty query")
            query = ""
            courses = await self._guarded_search(
                self.course_ranker.search_candidate_courses("", limit=self.advisor_limit),
                "course ranking", scope
            )

        return SearchResults(courses=self._course_matches(query, courses))

    def _course_matches(self, query: str, courses: List[CandidateCourse]) -> List[SearchMatch]:
        """Advisor candidates as course matches, in rank order, above the course threshold."""
        phrasings = [query, *expand_keywords(extract_keywords(query))]
        matches = []
        for course in courses:
            relevance = best_score(phrasings, course.searchable_text())
            if not passes_threshold(MatchKind.COURSE, relevance):
                continue
            matches.append(SearchMatch(
                kind=MatchKind.COURSE,
                course_id=course.id,
                course_title=course.title,
                display_text=course.short_description or "",
                excerpt=get_excerpt(course.description or course.short_description or "", 200),
                level=course.level,
                relevance_score=relevance,
                rank_score=course.score,
                source="vector" if course.similarity is not None else "lexical"
            ))
        return matches

    # ---- Failure handling ----

    async def _guarded(self, awaitable: Awaitable[T], default: T, what: str, correlation_id: str) -> T:
        try:
            return await awaitable
        except Exception as e:
            logger.warning(f"[{correlation_id}] Failed to load {what}: {e}", exc_info=True)
            return default

    async def _guarded_search(self, awaitable: Awaitable[list], what: str, scope: SearchScope) -> list:
        try:
            return await awaitable
        except Exception as e:
            logger.error(f"[{scope.correlation_id}] {what} failed: {e}", exc_info=True)
            scope.degraded = True
            return []
