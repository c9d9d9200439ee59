"""Tests for services/intents.py."""

import pytest

from context_engine.models.schemas import SkillLevel
from context_engine.services.intents import (
    detect_level,
    is_full_transcript_request,
    is_lesson_summary_request,
    is_unrelated_topic,
    wants_whole_transcript,
)


class TestDetectLevel:

    @pytest.mark.parametrize("query,expected", [
        ("I want to learn react as a beginner", SkillLevel.BEGINNER),
        ("tôi là người mới học python", SkillLevel.BEGINNER),
        ("khóa python cơ bản", SkillLevel.BEGINNER),
        ("học lập trình từ đầu", SkillLevel.BEGINNER),
        ("I know the basics of SQL, what next?", SkillLevel.INTERMEDIATE),
        ("khóa học trung cấp về java", SkillLevel.INTERMEDIATE),
        ("advanced kubernetes networking", SkillLevel.ADVANCED),
        ("khóa học nâng cao về React", SkillLevel.ADVANCED),
    ])
    def test_detects_level(self, query, expected):
        assert detect_level(query) == expected

    def test_no_level(self):
        assert detect_level("react hooks") is None
        assert detect_level("") is None
        assert detect_level(None) is None

    def test_first_table_entry_wins(self):
        # Advanced phrases are listed before beginner ones
        assert detect_level("advanced course for a beginner") == SkillLevel.ADVANCED

    def test_whole_phrase_only(self):
        assert detect_level("expertise in excel") is None

    def test_custom_table(self):
        table = [("junior", SkillLevel.BEGINNER)]
        assert detect_level("junior developer", table) == SkillLevel.BEGINNER
        assert detect_level("beginner", table) is None


class TestTranscriptIntents:

    @pytest.mark.parametrize("query", [
        "give me the full transcript",
        "Show me the transcript",
        "cho tôi toàn bộ transcript",
        "phụ đề đầy đủ của bài này",
    ])
    def test_full_transcript(self, query):
        assert is_full_transcript_request(query)
        assert wants_whole_transcript(query)

    @pytest.mark.parametrize("query", [
        "bài này dạy gì",
        "tóm tắt bài học",
        "What did this lesson teach?",
        "summarize the video",
    ])
    def test_lesson_summary(self, query):
        assert is_lesson_summary_request(query)
        assert wants_whole_transcript(query)

    def test_ordinary_question(self):
        assert not wants_whole_transcript("how do I create a pivot table")
        assert not wants_whole_transcript("")


class TestUnrelatedTopic:

    @pytest.mark.parametrize("query", [
        "cách nấu bò kho",
        "What's the weather like?",
        "recommend a movie",
    ])
    def test_unrelated(self, query):
        assert is_unrelated_topic(query)

    def test_course_questions_are_related(self):
        assert not is_unrelated_topic("how do I deploy a flask app")
        # Substrings of longer words do not count
        assert not is_unrelated_topic("moviepy video editing in python")
