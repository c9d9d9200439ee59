"""Tests for utils/transcript_parser.py."""

import pytest

from context_engine.utils.transcript_parser import (
    TranscriptFormatError,
    format_timestamp,
    get_excerpt,
    highlight_keyword,
    join_segments,
    parse_cues,
    parse_json_transcript,
    parse_subtitle,
    parse_timestamp,
    segments_from_records,
)

SAMPLE_VTT = """WEBVTT

1
00:00:00.400 --> 00:00:03.700
You might be wondering what kind of career benefit

2
00:00:03.700 --> 00:00:06.400 align:start position:0%
you can get by <b>learning</b> Excel
"""

SAMPLE_SRT = """1
00:00:01,000 --> 00:00:04,500
Welcome to the course.

2
00:00:04,500 --> 00:00:09,000
Today we cover
pivot tables.
"""


class TestTimestamps:

    def test_parse_timestamp(self):
        assert parse_timestamp("00:00:03.700") == pytest.approx(3.7)
        assert parse_timestamp("01:02:03,250") == pytest.approx(3723.25)
        assert parse_timestamp("02:05.5") == pytest.approx(125.5)

    def test_format_timestamp(self):
        assert format_timestamp(75) == "01:15"
        assert format_timestamp(3725) == "01:02:05"
        assert format_timestamp(0) == "00:00"
        assert format_timestamp(None) is None


class TestCueParsing:

    def test_vtt(self):
        segments = parse_cues(SAMPLE_VTT)
        assert len(segments) == 2
        assert segments[0].index == 1
        assert segments[0].start_time == pytest.approx(0.4)
        assert segments[0].end_time == pytest.approx(3.7)
        assert segments[0].text == "You might be wondering what kind of career benefit"
        # Cue settings dropped, tags stripped
        assert segments[1].text == "you can get by learning Excel"

    def test_srt_multiline_cue(self):
        segments = parse_cues(SAMPLE_SRT)
        assert [s.text for s in segments] == ["Welcome to the course.", "Today we cover pivot tables."]
        assert segments[1].start_time == pytest.approx(4.5)

    def test_windows_line_endings(self):
        segments = parse_cues(SAMPLE_SRT.replace("\n", "\r\n"))
        assert len(segments) == 2

    def test_empty(self):
        assert parse_cues("") == []
        assert parse_cues("WEBVTT\n\n") == []


class TestParseSubtitle:

    def test_dispatch_by_extension(self):
        assert len(parse_subtitle(SAMPLE_SRT, "/uploads/transcripts/lesson.srt")) == 2
        assert len(parse_subtitle(SAMPLE_VTT, "lesson.VTT")) == 2

    def test_plain_text_paragraphs(self):
        segments = parse_subtitle("First paragraph.\n\nSecond\nparagraph.\n", "notes.txt")
        assert [s.text for s in segments] == ["First paragraph.", "Second\nparagraph."]
        assert segments[0].start_time is None

    def test_unsupported_extension(self):
        with pytest.raises(TranscriptFormatError):
            parse_subtitle(SAMPLE_SRT, "lesson.docx")

    def test_no_cues_in_non_empty_file(self):
        with pytest.raises(TranscriptFormatError):
            parse_subtitle("this is not a subtitle file", "lesson.srt")


class TestJsonTranscript:

    def test_records_with_alternate_keys(self):
        segments = segments_from_records([
            {"id": 7, "startTime": "1.5", "endTime": 3, "text": " Hello "},
            {"text": "no timing"},
            {"index": 9, "start": 4, "text": ""},
        ])
        assert len(segments) == 2
        assert segments[0].index == 7
        assert segments[0].start_time == 1.5
        assert segments[0].text == "Hello"
        # Defaults: position as index, no timing
        assert segments[1].index == 2
        assert segments[1].start_time is None

    def test_wrapped_in_object(self):
        segments = parse_json_transcript('{"segments": [{"start": 0, "end": 2, "text": "hi"}]}')
        assert segments[0].text == "hi"

    def test_malformed(self):
        with pytest.raises(TranscriptFormatError):
            parse_json_transcript("{not json")
        with pytest.raises(TranscriptFormatError):
            parse_json_transcript('"just a string"')
        with pytest.raises(TranscriptFormatError):
            parse_json_transcript('[1, 2]')


class TestTextHelpers:

    def test_join_segments(self):
        assert join_segments(parse_cues(SAMPLE_SRT)) == "Welcome to the course. Today we cover pivot tables."

    def test_excerpt_cuts_on_word_boundary(self):
        text = "alpha beta gamma delta epsilon"
        assert get_excerpt(text, 12) == "alpha beta..."
        assert get_excerpt("short", 200) == "short"
        assert get_excerpt("", 10) == ""

    def test_highlight_keyword(self):
        assert highlight_keyword("Python is fun, python!", "python") == "**Python** is fun, **python**!"
        assert highlight_keyword("c++ rocks", "c++") == "**c++** rocks"
        assert highlight_keyword("unchanged", " ") == "unchanged"
