"""Tests for services/course_ranker.py."""

import math
from datetime import datetime, timedelta, timezone

import pytest

from context_engine.models.schemas import CandidateCourse, SkillLevel
from context_engine.repositories.base import CourseRepository, DistributedCache, SemanticCourseSearch
from context_engine.repositories.memory import InMemoryCourseRepository
from context_engine.services.course_ranker import (
    CourseRanker,
    cache_key,
    expand_keywords,
    freshness_score,
    rank_courses,
    score_course,
)
from context_engine.services.relevance import extract_keywords

NOW = datetime(2026, 6, 1, tzinfo=timezone.utc)


def _course(course_id, title, level=None, rating=None, enrolled=0, days_old=None, **fields) -> CandidateCourse:
    published_at = NOW - timedelta(days=days_old) if days_old is not None else None
    return CandidateCourse(
        id=course_id,
        title=title,
        level=level,
        rating_avg=rating,
        enrolled_count=enrolled,
        published_at=published_at,
        **fields
    )


class FakeSemantic(SemanticCourseSearch):

    def __init__(self, results=None, healthy=True, error=None):
        self.results = results or []
        self.healthy = healthy
        self.error = error
        self.calls = []

    async def available(self) -> bool:
        return self.healthy

    async def search(self, query, limit=10, level=None):
        self.calls.append((query, limit, level))
        if self.error:
            raise self.error
        return self.results


class DictCache(DistributedCache):

    def __init__(self, fail=False):
        self.data = {}
        self.fail = fail

    async def get(self, key):
        if self.fail:
            raise ConnectionError("redis down")
        return self.data.get(key)

    async def set(self, key, value, ttl=None):
        if self.fail:
            raise ConnectionError("redis down")
        self.data[key] = value


class ExplodingCourses(CourseRepository):

    async def find_courses(self, keywords, limit, published_only=True):
        raise AssertionError("repository should not be queried")

    async def find_courses_by_ids(self, course_ids):
        raise AssertionError("repository should not be queried")


class TestScoring:

    def test_formula(self):
        course = _course(1, "React for Beginners", SkillLevel.BEGINNER, rating=4.5, enrolled=100, days_old=10)
        expected = 1 * 2 + 3 + 4.5 / 5 * 1.5 + math.log(101) / 10 + 1.0 * 0.5
        assert score_course(course, ["react"], SkillLevel.BEGINNER, now=NOW) == pytest.approx(expected)

    def test_level_mismatch_penalty(self):
        course = _course(1, "React Patterns", SkillLevel.ADVANCED)
        assert score_course(course, [], SkillLevel.BEGINNER, now=NOW) == pytest.approx(-0.5)

    def test_no_detected_level_no_boost(self):
        course = _course(1, "React Patterns", SkillLevel.ADVANCED)
        assert score_course(course, [], None, now=NOW) == pytest.approx(0.0)

    def test_freshness(self):
        assert freshness_score(None, NOW) == 0.0
        assert freshness_score(NOW - timedelta(days=5), NOW) == 1.0
        assert freshness_score(NOW - timedelta(days=60), NOW) == pytest.approx(0.5)
        assert freshness_score(NOW - timedelta(days=300), NOW) == pytest.approx(0.1)
        # Clamped at 0.1 for old courses, 1.0 for future dates
        assert freshness_score(NOW - timedelta(days=600), NOW) == pytest.approx(0.1)
        assert freshness_score(NOW + timedelta(days=3), NOW) == 1.0

    def test_naive_timestamps_taken_as_utc(self):
        naive = (NOW - timedelta(days=60)).replace(tzinfo=None)
        assert freshness_score(naive, NOW) == pytest.approx(0.5)


class TestRankCourses:

    def test_best_first_and_limited(self):
        courses = [
            _course(1, "Baking"),
            _course(2, "Docker deep dive"),
            _course(3, "Docker and Kubernetes"),
        ]
        ranked = rank_courses(courses, ["docker", "kubernetes"], limit=2, now=NOW)
        assert [c.id for c in ranked] == [3, 2]
        assert ranked[0].score == pytest.approx(4.0)

    def test_ties_keep_input_order(self):
        a, b = _course(1, "Alpha"), _course(2, "Beta")
        assert [c.id for c in rank_courses([a, b], ["docker"], now=NOW)] == [1, 2]
        assert [c.id for c in rank_courses([b, a], ["docker"], now=NOW)] == [2, 1]

    def test_deterministic(self):
        courses = [_course(i, f"Python {i}", rating=float(i % 5), enrolled=i * 10) for i in range(1, 8)]
        first = rank_courses(courses, ["python"], now=NOW)
        second = rank_courses(courses, ["python"], now=NOW)
        assert [c.id for c in first] == [c.id for c in second]

    def test_input_not_mutated(self):
        course = _course(1, "Python")
        ranked = rank_courses([course], ["python"], now=NOW)
        assert course.score is None
        assert ranked[0].score == pytest.approx(2.0)
        assert ranked[0] is not course


class TestKeywordHelpers:

    def test_expand_keywords(self):
        expanded = expand_keywords(["frontend", "web"])
        assert expanded[:3] == ["frontend", "html", "css"]
        assert expanded.count("react") == 1
        assert "web" in expanded and "backend" in expanded

    def test_expand_unknown_keyword(self):
        assert expand_keywords(["excel"]) == ["excel"]

    def test_single_letter_query_adds_no_keyword_hits(self):
        course = _course(1, "Recursion in depth")
        keywords = expand_keywords(extract_keywords("tôi muốn học c"))
        assert keywords == []
        assert score_course(course, keywords, None, now=NOW) == pytest.approx(0.0)

    def test_cache_key(self):
        assert cache_key("React ", 5) == cache_key("react", 5)
        assert cache_key("react", 5) != cache_key("react", 3)
        assert cache_key("react", 5, SkillLevel.BEGINNER) != cache_key("react", 5)
        assert cache_key("react", 5).startswith("advisor:courses:")


class TestCourseRanker:

    @pytest.fixture
    def catalog(self):
        return InMemoryCourseRepository([
            _course(1, "React for Beginners", SkillLevel.BEGINNER, rating=4.0, enrolled=50, days_old=100),
            _course(2, "Advanced React Patterns", SkillLevel.ADVANCED, rating=5.0, enrolled=500, days_old=100),
            _course(3, "Baking Bread", rating=5.0, enrolled=1000, days_old=1),
            _course(4, "React Draft", SkillLevel.BEGINNER, is_published=False),
        ])

    @pytest.mark.asyncio
    async def test_lexical_search(self, catalog):
        ranker = CourseRanker(catalog)

        courses = await ranker.search_candidate_courses("I want to learn react as a beginner", limit=5)

        assert [c.id for c in courses] == [1, 2]
        assert all(c.score is not None for c in courses)
        assert courses[0].score > courses[1].score

    @pytest.mark.asyncio
    async def test_explicit_level_overrides_detection(self, catalog):
        ranker = CourseRanker(catalog)
        courses = await ranker.search_candidate_courses("react for beginners", level=SkillLevel.ADVANCED)
        assert courses[0].id == 2

    @pytest.mark.asyncio
    async def test_healthy_semantic_results_are_reranked(self):
        semantic = FakeSemantic([
            _course(7, "Intro to Machine Learning", similarity=0.61),
            _course(8, "Machine Learning with Python", SkillLevel.BEGINNER, similarity=0.82),
        ])
        ranker = CourseRanker(ExplodingCourses(), semantic=semantic)

        courses = await ranker.search_candidate_courses("machine learning with python as a beginner")

        assert [c.id for c in courses] == [8, 7]
        assert courses[0].similarity == 0.82
        # Detected level is not forwarded as a hard filter
        assert semantic.calls[0][2] is None

    @pytest.mark.asyncio
    async def test_explicit_level_forwarded_to_semantic(self):
        semantic = FakeSemantic([_course(8, "Machine Learning", SkillLevel.ADVANCED)])
        ranker = CourseRanker(ExplodingCourses(), semantic=semantic)
        await ranker.search_candidate_courses("machine learning", level=SkillLevel.ADVANCED)
        assert semantic.calls[0][2] == SkillLevel.ADVANCED

    @pytest.mark.asyncio
    @pytest.mark.parametrize("semantic", [
        FakeSemantic(error=RuntimeError("qdrant unreachable")),
        FakeSemantic(results=[{"id": 1, "title": "not a model"}]),
        FakeSemantic(healthy=False),
        FakeSemantic(results=[]),
    ])
    async def test_semantic_problems_fall_back_to_keywords(self, catalog, semantic):
        ranker = CourseRanker(catalog, semantic=semantic)
        courses = await ranker.search_candidate_courses("react")
        assert [c.id for c in courses] == [2, 1]

    @pytest.mark.asyncio
    async def test_results_cached(self, catalog):
        cache = DictCache()
        ranker = CourseRanker(catalog, cache=cache)
        first = await ranker.search_candidate_courses("react")

        cached_ranker = CourseRanker(ExplodingCourses(), cache=cache)
        second = await cached_ranker.search_candidate_courses("react")

        assert [c.id for c in second] == [c.id for c in first]
        assert second[0].score == pytest.approx(first[0].score)

    @pytest.mark.asyncio
    async def test_empty_rankings_not_cached(self, catalog):
        cache = DictCache()
        ranker = CourseRanker(catalog, cache=cache)
        assert await ranker.search_candidate_courses("haskell") == []
        assert cache.data == {}

    @pytest.mark.asyncio
    async def test_malformed_cache_entry_ignored(self, catalog):
        cache = DictCache()
        cache.data[cache_key("react", 5)] = [{"unexpected": True}]
        ranker = CourseRanker(catalog, cache=cache)
        courses = await ranker.search_candidate_courses("react")
        assert [c.id for c in courses] == [2, 1]

    @pytest.mark.asyncio
    async def test_cache_failures_ignored(self, catalog):
        ranker = CourseRanker(catalog, cache=DictCache(fail=True))
        courses = await ranker.search_candidate_courses("react")
        assert [c.id for c in courses] == [2, 1]
