"""
Transcript search: finds the passages of lesson videos that answer a query.

Candidate lessons are chosen by scope (one lesson, one course, or the
learner's enrolled courses), their transcripts are loaded through the
TranscriptCache and searched segment by segment with a ±2 segment context
window. Lessons without a transcript answer from their own title and
description instead.
"""

import asyncio
import logging
from typing import List, Optional, Sequence, Tuple

from context_engine.errors import ArtifactUnavailableError, LessonNotFoundError
from context_engine.models.schemas import LessonRecord, MatchKind, SearchMatch
from context_engine.repositories.base import EnrollmentRepository, LessonRepository
from context_engine.services.intents import wants_whole_transcript
from context_engine.services.relevance import (
    extract_keywords,
    has_naive_hit,
    passes_threshold,
    score,
)
from context_engine.services.transcript_cache import TranscriptCache
from context_engine.utils.transcript_parser import (
    TranscriptSegment,
    format_timestamp,
    get_excerpt,
    highlight_keyword,
    join_segments,
)

logger = logging.getLogger(__name__)

CONTEXT_WINDOW = 2           # segments either side of a hit
FALLBACK_SEGMENTS = 5        # leading segments scored when nothing hits
EXCERPT_LENGTH = 200


def _highlight(text: str, keywords: Sequence[str]) -> str:
    for keyword in keywords:
        text = highlight_keyword(text, keyword)
    return text


def rank_matches(matches: List[SearchMatch], kind: MatchKind = MatchKind.TRANSCRIPT) -> List[SearchMatch]:
    """Drop matches under the category threshold, best first.

    The sort is stable, so equal scores keep their discovery order.
    """
    kept = [m for m in matches if passes_threshold(kind, m.relevance_score)]
    return sorted(kept, key=lambda m: m.relevance_score, reverse=True)


class TranscriptSearch:
    """Searches lesson transcripts (or lesson text) for a query."""

    def __init__(
        self,
        lessons: LessonRepository,
        transcripts: TranscriptCache,
        enrollments: Optional[EnrollmentRepository] = None,
        max_lessons: int = 2,
        full_transcript_max_chars: int = 2000
    ):
        self.lessons = lessons
        self.transcripts = transcripts
        self.enrollments = enrollments
        self.max_lessons = max_lessons
        self.full_transcript_max_chars = full_transcript_max_chars

    async def search(
        self,
        query: str,
        lesson_id: Optional[int] = None,
        course_id: Optional[int] = None,
        user_id: Optional[int] = None,
        enrolled_course_ids: Optional[Sequence[int]] = None
    ) -> List[SearchMatch]:
        """Ranked transcript matches for a query.

        With lesson_id only that lesson is searched, even if it has no
        transcript; a missing lesson raises LessonNotFoundError. Otherwise
        the search is restricted to course_id, else to the enrolled courses
        (given, or looked up for user_id), and only lessons with a
        transcript are considered.
        """
        candidates = await self._select_candidates(lesson_id, course_id, user_id, enrolled_course_ids)
        if not candidates:
            return []

        keywords = extract_keywords(query)
        whole = wants_whole_transcript(query)

        per_lesson = await asyncio.gather(*[
            self._search_lesson(lesson, query, keywords, whole)
            for lesson in candidates
        ])

        matches = [m for lesson_matches in per_lesson for m in lesson_matches]
        return rank_matches(matches)

    async def _select_candidates(
        self,
        lesson_id: Optional[int],
        course_id: Optional[int],
        user_id: Optional[int],
        enrolled_course_ids: Optional[Sequence[int]]
    ) -> List[LessonRecord]:
        if lesson_id is not None:
            lesson = await self.lessons.get_lesson(lesson_id)
            if lesson is None:
                raise LessonNotFoundError(lesson_id)
            return [lesson]

        course_ids: Optional[List[int]] = None
        if course_id is not None:
            course_ids = [course_id]
        elif enrolled_course_ids is not None:
            course_ids = list(enrolled_course_ids)
        elif user_id is not None and self.enrollments is not None:
            course_ids = await self.enrollments.get_active_course_ids(user_id)

        if course_ids is not None and not course_ids:
            return []

        return await self.lessons.find_published_lessons(
            course_ids=course_ids,
            require_transcript=True,
            limit=self.max_lessons
        )

    async def _search_lesson(
        self,
        lesson: LessonRecord,
        query: str,
        keywords: List[str],
        whole: bool
    ) -> List[SearchMatch]:
        if not lesson.transcript_url and not lesson.transcript_json_url:
            return self._lesson_text_match(lesson, query, keywords)

        artifact = await self._reachable_artifact(lesson)
        if artifact is None:
            logger.info(f"No reachable transcript for lesson {lesson.id}, skipping")
            return []

        path, alt_path = artifact
        try:
            segments = await self.transcripts.load(path, alt_path=alt_path)
        except ArtifactUnavailableError as e:
            logger.warning(f"Skipping lesson {lesson.id}: {e}")
            return []

        if not segments:
            return self._lesson_text_match(lesson, query, keywords)

        if whole:
            return [self._full_transcript_match(lesson, segments)]

        return self._windowed_matches(lesson, segments, query, keywords)

    async def _reachable_artifact(self, lesson: LessonRecord) -> Optional[Tuple[str, Optional[str]]]:
        """(path to load, pre-parsed alternative) or None if nothing is on disk."""
        if lesson.transcript_url and await self.transcripts.store.exists(lesson.transcript_url):
            return lesson.transcript_url, lesson.transcript_json_url
        if lesson.transcript_json_url and await self.transcripts.store.exists(lesson.transcript_json_url):
            return lesson.transcript_json_url, None
        return None

    def _base_match(self, lesson: LessonRecord, **fields) -> SearchMatch:
        return SearchMatch(
            kind=MatchKind.TRANSCRIPT,
            lesson_id=lesson.id,
            course_id=lesson.course_id,
            lesson_title=lesson.title,
            course_title=lesson.course_title,
            video_url=lesson.video_url,
            **fields
        )

    def _lesson_text_match(self, lesson: LessonRecord, query: str, keywords: List[str]) -> List[SearchMatch]:
        """Answer from title/description/content when there is no transcript."""
        text = lesson.searchable_text()
        relevance = score(query, text, keywords)
        if not passes_threshold(MatchKind.TRANSCRIPT, relevance):
            return []
        if not has_naive_hit(query, text, keywords):
            return []

        return [self._base_match(
            lesson,
            display_text=text,
            excerpt=get_excerpt(text, EXCERPT_LENGTH),
            context_text=text,
            highlighted_text=_highlight(get_excerpt(text, EXCERPT_LENGTH), keywords),
            relevance_score=relevance,
            source="description"
        )]

    def _full_transcript_match(self, lesson: LessonRecord, segments: List[TranscriptSegment]) -> SearchMatch:
        full_text = join_segments(segments)
        text = get_excerpt(full_text, self.full_transcript_max_chars)
        first = segments[0]
        return self._base_match(
            lesson,
            display_text=text,
            excerpt=get_excerpt(full_text, EXCERPT_LENGTH),
            context_text=text,
            relevance_score=1.0,
            timestamp=format_timestamp(first.start_time),
            start_time=first.start_time,
            is_full_transcript=True
        )

    def _windowed_matches(
        self,
        lesson: LessonRecord,
        segments: List[TranscriptSegment],
        query: str,
        keywords: List[str]
    ) -> List[SearchMatch]:
        matches = []
        any_hit = False
        covered_until = -1

        for i, segment in enumerate(segments):
            if not has_naive_hit(query, segment.text, keywords):
                continue
            any_hit = True
            # Hits inside the previous window are already represented
            if i <= covered_until:
                continue

            window = segments[max(0, i - CONTEXT_WINDOW): i + CONTEXT_WINDOW + 1]
            covered_until = i + CONTEXT_WINDOW
            context_text = join_segments(window)
            relevance = score(query, context_text, keywords)
            if not passes_threshold(MatchKind.TRANSCRIPT, relevance):
                continue

            matches.append(self._base_match(
                lesson,
                display_text=segment.text,
                excerpt=get_excerpt(context_text, EXCERPT_LENGTH),
                context_text=context_text,
                highlighted_text=_highlight(segment.text, keywords),
                relevance_score=relevance,
                timestamp=format_timestamp(segment.start_time),
                start_time=segment.start_time
            ))

        if any_hit:
            return matches

        # Last resort: the opening of the lesson, only if it is relevant enough
        opening = segments[:FALLBACK_SEGMENTS]
        opening_text = join_segments(opening)
        relevance = score(query, opening_text, keywords)
        if not passes_threshold(MatchKind.TRANSCRIPT, relevance):
            return []

        return [self._base_match(
            lesson,
            display_text=opening_text,
            excerpt=get_excerpt(opening_text, EXCERPT_LENGTH),
            context_text=opening_text,
            relevance_score=relevance,
            timestamp=format_timestamp(opening[0].start_time),
            start_time=opening[0].start_time,
            source="fallback"
        )]
