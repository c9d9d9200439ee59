"""Tests for repositories/csv_catalog.py and the in-memory repositories it feeds."""

import pytest

from context_engine.models.schemas import SkillLevel
from context_engine.repositories.csv_catalog import CSVCatalog

COURSES_CSV = """id,title,slug,short_description,what_you_learn,category_name,tag_names,level,rating_avg,rating_count,enrolled_count,published_at,is_published
1,Excel for Analysts,excel-analysts,Pivot tables and charts,Build dashboards,Data,excel|pivot| charts ,beginner,4.6,120,900,2026-01-15,true
2,Advanced SQL,advanced-sql,Window functions,,Data,sql,ADVANCED,,,15,,true
3,Draft Course,draft,,,,,,,,,,false
4,Mystery Level,mystery,,,,,expert-ish,3.0,1,1,,1
"""

LESSONS_CSV = """id,course_id,title,description,transcript_url,lesson_order,is_published
10,1,Pivot tables,Summarize data with pivots,/uploads/transcripts/10.srt,2,true
11,1,Charts,,,1,true
12,2,Window functions,ROW_NUMBER and friends,,1,false
"""


@pytest.fixture
def catalog(tmp_path):
    courses = tmp_path / "courses.csv"
    lessons = tmp_path / "lessons.csv"
    # Excel exports carry a BOM
    courses.write_text("\ufeff" + COURSES_CSV, encoding="utf-8")
    lessons.write_text(LESSONS_CSV, encoding="utf-8")
    return CSVCatalog(str(courses), str(lessons))


class TestCSVCatalog:

    def test_parses_courses(self, catalog):
        by_id = {c.id: c for c in catalog.courses}
        excel = by_id[1]
        assert excel.title == "Excel for Analysts"
        assert excel.tag_names == ["excel", "pivot", "charts"]
        assert excel.level == SkillLevel.BEGINNER
        assert excel.rating_avg == pytest.approx(4.6)
        assert excel.enrolled_count == 900
        assert excel.published_at.year == 2026

    def test_missing_cells_default(self, catalog):
        sql = {c.id: c for c in catalog.courses}[2]
        assert sql.level == SkillLevel.ADVANCED
        assert sql.rating_avg is None
        assert sql.rating_count == 0
        assert sql.published_at is None
        assert sql.what_you_learn is None

    def test_unknown_level_is_none(self, catalog):
        assert {c.id: c for c in catalog.courses}[4].level is None

    def test_lessons_carry_course_title(self, catalog):
        lessons = {l.id: l for l in catalog.lessons}
        assert lessons[10].course_title == "Excel for Analysts"
        assert lessons[10].transcript_url == "/uploads/transcripts/10.srt"
        assert lessons[11].description is None
        assert lessons[12].is_published is False

    @pytest.mark.asyncio
    async def test_course_repository_skips_unpublished(self, catalog):
        repo = catalog.course_repository()
        courses = await repo.find_courses([], limit=10)
        assert 3 not in [c.id for c in courses]
        # Best rated first
        assert courses[0].id == 1

    @pytest.mark.asyncio
    async def test_course_repository_keyword_filter(self, catalog):
        repo = catalog.course_repository()
        courses = await repo.find_courses(["pivot"], limit=10)
        assert [c.id for c in courses] == [1]
        assert [c.id for c in await repo.find_courses_by_ids([2, 99, 1])] == [2, 1]

    @pytest.mark.asyncio
    async def test_lesson_repository_filters(self, catalog):
        repo = catalog.lesson_repository()
        assert [l.id for l in await repo.find_published_lessons(course_ids=[1])] == [11, 10]
        assert [l.id for l in await repo.find_published_lessons(require_transcript=True)] == [10]
        assert await repo.find_published_lessons(course_ids=[2]) == []
        assert (await repo.get_lesson(10)).title == "Pivot tables"
        assert await repo.get_lesson(12) is None

    def test_courses_only(self, tmp_path):
        path = tmp_path / "courses.csv"
        path.write_text("id,title\n1,Only Course\n", encoding="utf-8")
        catalog = CSVCatalog(str(path))
        assert [c.title for c in catalog.courses] == ["Only Course"]
        assert catalog.lessons == []
