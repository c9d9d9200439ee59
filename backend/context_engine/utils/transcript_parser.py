"""
Transcript parsing for lesson subtitle artifacts.

Handles WEBVTT and SRT cue files, plain-text transcripts (paragraphs, no
timing) and the pre-parsed JSON form written next to them at transcription
time. Everything is parsed into an ordered list of TranscriptSegment.
"""

import json
import re
from dataclasses import dataclass
from pathlib import PurePath
from typing import Any, Dict, List, Optional


@dataclass(frozen=True)
class TranscriptSegment:
    """One timed unit of a lesson transcript."""
    index: int
    start_time: Optional[float]
    end_time: Optional[float]
    text: str


class TranscriptFormatError(ValueError):
    """Raised when an artifact cannot be parsed into segments."""


SUBTITLE_EXTENSIONS = (".vtt", ".srt", ".txt")

_CUE_PATTERN = re.compile(
    r'((?:\d{1,2}:)?\d{1,2}:\d{2}[.,]\d{1,3})\s*-->\s*((?:\d{1,2}:)?\d{1,2}:\d{2}[.,]\d{1,3})[^\n]*\n'
    r'((?:(?!(?:\d{1,2}:)?\d{1,2}:\d{2}[.,]\d{1,3}\s*-->).+\n?)*)',
    re.MULTILINE
)


def parse_timestamp(ts: str) -> float:
    """Convert a cue timestamp to seconds.

    Handles "HH:MM:SS.mmm", "MM:SS.mmm" and the SRT comma separator.
    """
    parts = ts.strip().replace(',', '.').split(':')
    if len(parts) == 3:
        h, m, s = parts
        return int(h) * 3600 + int(m) * 60 + float(s)
    elif len(parts) == 2:
        m, s = parts
        return int(m) * 60 + float(s)
    return 0.0


def format_timestamp(seconds: Optional[float]) -> Optional[str]:
    """Seconds to "MM:SS", or "HH:MM:SS" once past the hour."""
    if seconds is None:
        return None
    h = int(seconds // 3600)
    m = int((seconds % 3600) // 60)
    s = int(seconds % 60)
    if h > 0:
        return f"{h:02d}:{m:02d}:{s:02d}"
    return f"{m:02d}:{s:02d}"


def _clean_cue_text(text_block: str) -> str:
    # Remove HTML tags, collapse whitespace
    text_block = re.sub(r'<[^>]+>', '', text_block.strip())
    return re.sub(r'\s+', ' ', text_block).strip()


def parse_cues(raw_text: str) -> List[TranscriptSegment]:
    """Parse WEBVTT or SRT text into segments.

    Handles both formats:
        WEBVTT

        1
        00:00:00.400 --> 00:00:03.700
        You might be wondering what kind of career benefit

        2
        00:00:03,700 --> 00:00:06,400
        you can get by learning Excel
    """
    if not raw_text or not raw_text.strip():
        return []

    normalized = raw_text.replace('\r\n', '\n').replace('\r', '\n')
    if not normalized.endswith('\n'):
        normalized += '\n'

    segments = []
    for match in _CUE_PATTERN.finditer(normalized):
        text = _clean_cue_text(match.group(3))
        if text:
            segments.append(TranscriptSegment(
                index=len(segments) + 1,
                start_time=parse_timestamp(match.group(1)),
                end_time=parse_timestamp(match.group(2)),
                text=text
            ))

    return segments


def parse_plain_text(raw_text: str) -> List[TranscriptSegment]:
    """Split an untimed transcript into paragraph segments."""
    paragraphs = [p.strip() for p in re.split(r'\n\s*\n', raw_text or '') if p.strip()]
    return [
        TranscriptSegment(index=i + 1, start_time=None, end_time=None, text=p)
        for i, p in enumerate(paragraphs)
    ]


def parse_subtitle(raw_text: str, filename: str) -> List[TranscriptSegment]:
    """Parse a subtitle artifact according to its extension."""
    ext = PurePath(filename).suffix.lower()
    if ext in ('.vtt', '.srt'):
        segments = parse_cues(raw_text)
    elif ext == '.txt':
        segments = parse_plain_text(raw_text)
    else:
        raise TranscriptFormatError(f"Unsupported transcript format: {ext or filename}")

    if not segments and raw_text and raw_text.strip():
        raise TranscriptFormatError(f"No cues found in {filename}")
    return segments


def _optional_float(value: Any) -> Optional[float]:
    if value is None or value == '':
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def segments_from_records(records: Any) -> List[TranscriptSegment]:
    """Map pre-parsed JSON records to segments.

    Records look like {"index": 1, "start": 0.4, "end": 3.7, "text": "..."};
    "id"/"startTime"/"endTime" spellings are accepted too. Missing index or
    timing fields get defaults; a record without text is skipped.
    """
    if isinstance(records, dict):
        records = records.get('segments')
    if not isinstance(records, list):
        raise TranscriptFormatError("Pre-parsed transcript is not a list of segments")

    segments = []
    for position, record in enumerate(records, start=1):
        if not isinstance(record, dict):
            raise TranscriptFormatError(f"Segment {position} is not an object")
        text = str(record.get('text') or '').strip()
        if not text:
            continue
        index = record.get('index', record.get('id', position))
        try:
            index = int(index)
        except (TypeError, ValueError):
            index = position
        segments.append(TranscriptSegment(
            index=index,
            start_time=_optional_float(record.get('start', record.get('startTime'))),
            end_time=_optional_float(record.get('end', record.get('endTime'))),
            text=text
        ))
    return segments


def parse_json_transcript(raw_text: str) -> List[TranscriptSegment]:
    try:
        records = json.loads(raw_text)
    except json.JSONDecodeError as e:
        raise TranscriptFormatError(f"Malformed transcript JSON: {e}") from e
    return segments_from_records(records)


def join_segments(segments: List[TranscriptSegment]) -> str:
    return ' '.join(s.text for s in segments)


def get_excerpt(text: str, max_length: int = 200) -> str:
    """Cut text to max_length on a word boundary, adding an ellipsis."""
    if not text or len(text) <= max_length:
        return text or ''
    excerpt = text[:max_length]
    last_space = excerpt.rfind(' ')
    if last_space > 0:
        return excerpt[:last_space] + '...'
    return excerpt + '...'


def highlight_keyword(text: str, keyword: str) -> str:
    """Wrap every case-insensitive occurrence of keyword in **bold**."""
    if not keyword or not keyword.strip():
        return text
    pattern = re.compile(f"({re.escape(keyword.strip())})", re.IGNORECASE)
    return pattern.sub(r'**\1**', text)
