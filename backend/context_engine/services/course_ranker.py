"""
Deterministic course ranking for the advisor.

score = keywordHits * 2
      + levelBoost            (+3 same level, -0.5 other level, 0 if unknown)
      + rating / 5 * 1.5
      + ln(1 + enrolled) / 10
      + freshness * 0.5       (30 / max(30, days since publish), clamped to [0.1, 1])

Candidates come from the semantic collaborator when it is healthy, else
from a broad keyword query on the course repository; either way they are
re-ranked locally so ordering never depends on the storage engine.
"""

import hashlib
import logging
import math
from datetime import datetime, timezone
from typing import Dict, List, Optional, Sequence

from pydantic import ValidationError

from context_engine.errors import MalformedResponseError
from context_engine.models.schemas import CandidateCourse, SkillLevel
from context_engine.repositories.base import CourseRepository, DistributedCache, SemanticCourseSearch
from context_engine.services.intents import detect_level
from context_engine.services.lexicon import CATEGORY_SYNONYMS
from context_engine.services.relevance import extract_keywords, normalize

logger = logging.getLogger(__name__)

KEYWORD_HIT_WEIGHT = 2.0
LEVEL_MATCH_BOOST = 3.0
LEVEL_MISMATCH_PENALTY = -0.5
RATING_WEIGHT = 1.5
FRESHNESS_WEIGHT = 0.5
FRESHNESS_WINDOW_DAYS = 30

CACHE_KEY_PREFIX = "advisor:courses:"


def _days_since(published_at: datetime, now: Optional[datetime]) -> float:
    if now is None:
        now = datetime.now(timezone.utc)
    # Compare like with like; naive timestamps are taken as UTC
    if published_at.tzinfo is None:
        published_at = published_at.replace(tzinfo=timezone.utc)
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    return max(0.0, (now - published_at).total_seconds() / 86400)


def freshness_score(published_at: Optional[datetime], now: Optional[datetime] = None) -> float:
    if published_at is None:
        return 0.0
    days = _days_since(published_at, now)
    return min(1.0, max(0.1, FRESHNESS_WINDOW_DAYS / max(FRESHNESS_WINDOW_DAYS, days)))


def score_course(
    course: CandidateCourse,
    keywords: Sequence[str],
    detected_level: Optional[SkillLevel] = None,
    now: Optional[datetime] = None
) -> float:
    text = course.searchable_text().lower()
    keyword_hits = sum(1 for k in keywords if k and k.lower() in text)

    level_boost = 0.0
    if detected_level is not None:
        level_boost = LEVEL_MATCH_BOOST if course.level == detected_level else LEVEL_MISMATCH_PENALTY

    rating_score = (course.rating_avg or 0.0) / 5
    popularity_score = math.log1p(max(0, course.enrolled_count)) / 10

    return (
        keyword_hits * KEYWORD_HIT_WEIGHT
        + level_boost
        + rating_score * RATING_WEIGHT
        + popularity_score
        + freshness_score(course.published_at, now) * FRESHNESS_WEIGHT
    )


def expand_keywords(
    keywords: Sequence[str],
    synonyms: Dict[str, List[str]] = CATEGORY_SYNONYMS
) -> List[str]:
    """Keywords plus their category synonyms, de-duplicated in order."""
    expanded: List[str] = []
    for keyword in keywords:
        for term in [keyword, *synonyms.get(keyword, [])]:
            if term not in expanded:
                expanded.append(term)
    return expanded


def rank_courses(
    courses: Sequence[CandidateCourse],
    keywords: Sequence[str],
    level: Optional[SkillLevel] = None,
    limit: Optional[int] = None,
    now: Optional[datetime] = None
) -> List[CandidateCourse]:
    """Scored copies of the courses, best first. Ties keep input order."""
    scored = [
        course.model_copy(update={"score": score_course(course, keywords, level, now)})
        for course in courses
    ]
    scored.sort(key=lambda c: c.score, reverse=True)
    return scored[:limit] if limit is not None else scored


def cache_key(query: str, limit: int, level: Optional[SkillLevel] = None) -> str:
    raw = f"{normalize(query)}|{limit}|{level.value if level else ''}"
    return CACHE_KEY_PREFIX + hashlib.sha256(raw.encode("utf-8")).hexdigest()


class CourseRanker:
    """Finds and ranks candidate courses for a free-text learning goal."""

    def __init__(
        self,
        courses: CourseRepository,
        semantic: Optional[SemanticCourseSearch] = None,
        cache: Optional[DistributedCache] = None,
        cache_ttl: int = 300,
        candidate_pool: int = 20
    ):
        self.courses = courses
        self.semantic = semantic
        self.cache = cache
        self.cache_ttl = cache_ttl
        self.candidate_pool = candidate_pool

    async def search_candidate_courses(
        self,
        query: str,
        limit: int = 5,
        level: Optional[SkillLevel] = None
    ) -> List[CandidateCourse]:
        """Top `limit` courses for the query, each carrying its rank score.

        `level` overrides the level detected from the query text.
        """
        detected = level or detect_level(query)
        key = cache_key(query, limit, detected)

        cached = await self._cache_get(key)
        if cached is not None:
            return cached

        keywords = expand_keywords(extract_keywords(query))

        ranked = await self._semantic_candidates(query, keywords, limit, detected, level_filter=level)
        if not ranked:
            candidates = await self.courses.find_courses(keywords, limit=max(limit, self.candidate_pool))
            ranked = rank_courses(candidates, keywords, detected, limit)

        if ranked:
            await self._cache_set(key, ranked)
        return ranked

    async def _semantic_candidates(
        self,
        query: str,
        keywords: List[str],
        limit: int,
        level: Optional[SkillLevel],
        level_filter: Optional[SkillLevel] = None
    ) -> List[CandidateCourse]:
        if self.semantic is None or not query.strip():
            return []

        try:
            if not await self.semantic.available():
                return []
            results = await self.semantic.search(query, limit=max(limit, self.candidate_pool), level=level_filter)
            if not isinstance(results, list) or not all(isinstance(c, CandidateCourse) for c in results):
                raise MalformedResponseError("semantic search", f"unexpected result {type(results).__name__}")
        except Exception as e:
            logger.warning(f"Semantic course search failed, using keyword ranking: {e}")
            return []

        return rank_courses(results, keywords, level, limit)

    async def _cache_get(self, key: str) -> Optional[List[CandidateCourse]]:
        if self.cache is None:
            return None
        try:
            raw = await self.cache.get(key)
            if raw is None:
                return None
            return [CandidateCourse.model_validate(item) for item in raw]
        except (ValidationError, TypeError) as e:
            logger.warning(f"Discarding malformed cached ranking {key}: {e}")
            return None
        except Exception as e:
            logger.warning(f"Distributed cache read failed: {e}")
            return None

    async def _cache_set(self, key: str, courses: List[CandidateCourse]) -> None:
        if self.cache is None:
            return
        try:
            await self.cache.set(
                key,
                [c.model_dump(mode="json") for c in courses],
                ttl=self.cache_ttl
            )
        except Exception as e:
            logger.warning(f"Distributed cache write failed: {e}")
