"""
Table-driven query classifiers.

Each classifier is a plain function over a pattern/keyword table from
lexicon.py, so the heuristics can be tuned (or swapped per language)
without touching the search or assembly code.
"""

import re
from typing import List, Optional, Sequence, Tuple

from context_engine.models.schemas import SkillLevel
from context_engine.services.lexicon import (
    FULL_TRANSCRIPT_PATTERNS,
    LESSON_SUMMARY_PATTERNS,
    LEVEL_KEYWORDS,
    UNRELATED_TOPIC_KEYWORDS,
)


def _matches_any(query: str, patterns: Sequence[str]) -> bool:
    q = (query or "").lower()
    return any(re.search(p, q) for p in patterns)


def _contains_phrase(text: str, phrase: str) -> bool:
    return re.search(r"(?<!\w)" + re.escape(phrase) + r"(?!\w)", text) is not None


def is_full_transcript_request(query: str, patterns: Sequence[str] = FULL_TRANSCRIPT_PATTERNS) -> bool:
    """"Give me the full transcript" style requests."""
    return _matches_any(query, patterns)


def is_lesson_summary_request(query: str, patterns: Sequence[str] = LESSON_SUMMARY_PATTERNS) -> bool:
    """"What did this lesson teach" style requests."""
    return _matches_any(query, patterns)


def wants_whole_transcript(query: str) -> bool:
    return is_full_transcript_request(query) or is_lesson_summary_request(query)


def is_unrelated_topic(query: str, keywords: Sequence[str] = UNRELATED_TOPIC_KEYWORDS) -> bool:
    """Off-topic questions (cooking, weather, ...) that no course material answers."""
    q = (query or "").lower()
    return any(_contains_phrase(q, kw) for kw in keywords)


def detect_level(
    query: str,
    table: List[Tuple[str, SkillLevel]] = LEVEL_KEYWORDS,
) -> Optional[SkillLevel]:
    """Skill level the learner describes, or None when nothing matches.

    The table is scanned in order and the first phrase found wins.
    """
    q = (query or "").lower()
    if not q.strip():
        return None
    for phrase, level in table:
        if _contains_phrase(q, phrase):
            return level
    return None
