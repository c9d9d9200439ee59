"""
Lexical relevance scoring between a query and a span of text.

Pure functions, no I/O. `score()` is the single place that decides how well
a piece of course material answers a learner's question; every search path
filters its matches through it.
"""

import re
import unicodedata
from typing import FrozenSet, Iterable, List, Optional

from context_engine.models.schemas import MatchKind
from context_engine.services.lexicon import SHORT_KEYWORDS, STOP_WORDS

# Minimum relevance per result category. Lessons and courses are broader
# context, so they tolerate weaker matches than transcript excerpts.
RELEVANCE_THRESHOLDS = {
    MatchKind.TRANSCRIPT: 0.4,
    MatchKind.LESSON: 0.35,
    MatchKind.COURSE: 0.30,
}

NO_KEYWORD_SCORE = 0.3
IMPORTANT_KEYWORD_MIN_LENGTH = 5  # "longer than 4 characters"
MIN_KEYWORD_LENGTH = 3

_TOKEN_SPLIT = re.compile(r"[^\w+#]+|_+")
_ALNUM = re.compile(r"[^\W_]")


def normalize(text: Optional[str]) -> str:
    if not text:
        return ""
    return unicodedata.normalize("NFC", text).lower().strip()


def extract_keywords(
    query: str,
    stop_words: FrozenSet[str] = STOP_WORDS,
    short_keywords: FrozenSet[str] = SHORT_KEYWORDS,
) -> List[str]:
    """Extract meaningful keywords from a query, in first-seen order.

    Tokens shorter than 3 characters are dropped unless they are known
    technical acronyms ("ai", "js", "c#"). Single letters never qualify,
    since they occur inside almost any text. Stop words in either language
    are removed.
    """
    seen = set()
    keywords = []
    for token in _TOKEN_SPLIT.split(normalize(query)):
        if not token or token in seen:
            continue
        # "+++" or "###" on their own are punctuation, not keywords
        if not _ALNUM.search(token):
            continue
        if len(token) < MIN_KEYWORD_LENGTH and token not in short_keywords:
            continue
        if token in stop_words:
            continue
        seen.add(token)
        keywords.append(token)
    return keywords


def _proximity_bonus(text: str, keywords: List[str]) -> float:
    """Up to 0.2 extra when the keywords sit close together in the text."""
    positions = sorted(text.find(k) for k in keywords)
    if len(positions) < 2:
        return 0.2
    gaps = [b - a for a, b in zip(positions, positions[1:])]
    avg_distance = sum(gaps) / len(gaps)
    return 0.2 * max(0.0, 1 - avg_distance / 100)


def score(query: str, text: str, keywords: Optional[List[str]] = None) -> float:
    """Relevance of `text` for `query`, in [0, 1].

    - verbatim hit: 0.9 plus up to 0.1 for appearing early
    - every keyword present: 0.7 plus up to 0.2 for keyword proximity
    - partial keyword overlap: capped at 0.7
    - query without keywords (only stop words): flat 0.3
    """
    query_norm = normalize(query)
    text_norm = normalize(text)
    if not text_norm:
        return 0.0

    if query_norm:
        position = text_norm.find(query_norm)
        if position != -1:
            return min(1.0, 0.9 + 0.1 * (1 - position / len(text_norm)))

    if keywords is None:
        keywords = extract_keywords(query_norm)
    if not keywords:
        return NO_KEYWORD_SCORE

    matched = [k for k in keywords if k in text_norm]
    if len(matched) == len(keywords):
        return min(1.0, 0.7 + _proximity_bonus(text_norm, keywords))

    important = [k for k in keywords if len(k) >= IMPORTANT_KEYWORD_MIN_LENGTH]
    match_ratio = len(matched) / len(keywords)
    important_ratio = 0.0
    if important:
        important_ratio = len([k for k in important if k in text_norm]) / len(important)

    return min(0.7, match_ratio * 0.5 + important_ratio * 0.2)


def best_score(queries: Iterable[str], text: str) -> float:
    """Highest score over several phrasings of the same need."""
    return max((score(q, text) for q in queries), default=0.0)


def has_naive_hit(query: str, text: str, keywords: Optional[List[str]] = None) -> bool:
    """True when the whole query or any of its keywords occurs in the text."""
    text_norm = normalize(text)
    query_norm = normalize(query)
    if not text_norm:
        return False
    if query_norm and query_norm in text_norm:
        return True
    if keywords is None:
        keywords = extract_keywords(query_norm)
    return any(k in text_norm for k in keywords)


def passes_threshold(kind: MatchKind, relevance: float) -> bool:
    return relevance >= RELEVANCE_THRESHOLDS[kind]
