"""
Render a ContextPayload as the plain-text knowledge block that goes into
the generator's system prompt.

The block is budgeted in characters: transcripts first (they answer the
question most directly), then lessons, then courses. An entry that would
overflow the budget is left out rather than cut mid-way.
"""

from typing import List

from context_engine.models.schemas import ContextMode, ContextPayload, SearchMatch

MAX_CONTEXT_CHARS = 2500
MAX_TRANSCRIPTS = 3
MAX_LESSONS = 3
MAX_COURSES = 2
FULL_TRANSCRIPT_CHARS = 1500
TRANSCRIPT_CHARS = 800
DESCRIPTION_CHARS = 150
METADATA_RESERVE = 200


def _clip(text: str, max_chars: int) -> str:
    if max_chars <= 0:
        return ""
    if len(text) <= max_chars:
        return text
    return text[:max_chars] + "..."


class _Budget:
    """Tracks how much of the character budget is left."""

    def __init__(self, max_chars: int):
        self.max_chars = max_chars
        self.parts: List[str] = []
        self.used = 0

    @property
    def remaining(self) -> int:
        return self.max_chars - self.used

    def add(self, text: str) -> bool:
        if self.used + len(text) >= self.max_chars:
            return False
        self.parts.append(text)
        self.used += len(text)
        return True

    def render(self) -> str:
        return "".join(self.parts)


def _transcript_entry(idx: int, match: SearchMatch, remaining: int) -> str:
    if match.is_full_transcript:
        limit = min(FULL_TRANSCRIPT_CHARS, remaining - METADATA_RESERVE)
        content = _clip(match.context_text or match.display_text, limit)
    else:
        limit = min(TRANSCRIPT_CHARS, remaining - METADATA_RESERVE)
        content = _clip(match.context_text or match.excerpt or match.display_text, limit)

    entry = f"{idx}. Lesson: \"{match.lesson_title}\"\n   Course: \"{match.course_title}\"\n"
    if match.timestamp:
        entry += f"   Timestamp: {match.timestamp}\n"
    return entry + f"   Content: \"{content}\"\n\n"


def _lesson_entry(idx: int, match: SearchMatch, remaining: int) -> str:
    desc = _clip(match.display_text, min(DESCRIPTION_CHARS, remaining - 100))
    entry = f"{idx}. \"{match.lesson_title}\"\n   Course: \"{match.course_title or 'N/A'}\"\n"
    if desc:
        entry += f"   Description: \"{desc}\"\n"
    return entry + "\n"


def _course_entry(idx: int, match: SearchMatch, remaining: int) -> str:
    level = match.level.value if match.level else "N/A"
    desc = _clip(match.display_text, min(DESCRIPTION_CHARS, remaining - 100))
    entry = f"{idx}. \"{match.course_title}\" ({level})\n"
    if desc:
        entry += f"   Description: \"{desc}\"\n"
    return entry + "\n"


def format_context(payload: ContextPayload, max_chars: int = MAX_CONTEXT_CHARS) -> str:
    """Format the payload as structured context for the LLM.

    Learner context is left out in course mode so answers about one lesson
    are not mixed with whatever course the learner happens to be taking.
    """
    results = payload.search_results
    if payload.mode == ContextMode.GENERAL and results.total_results == 0:
        return ""

    budget = _Budget(max_chars)

    user = payload.user_context
    if payload.mode != ContextMode.COURSE and user.current_course is not None:
        current_lesson = user.current_lesson.title if user.current_lesson else "Not started"
        budget.add(
            f"LEARNER CONTEXT:\n"
            f"- Current course: \"{user.current_course.title}\"\n"
            f"- Progress: {user.current_course.progress:g}%\n"
            f"- Current lesson: {current_lesson}\n\n"
        )

    if results.total_results == 0:
        return budget.render()

    budget.add("KNOWLEDGE BASE:\n\n")

    sections = [
        ("=== TRANSCRIPTS ===\n", results.transcripts[:MAX_TRANSCRIPTS], _transcript_entry, 100),
        ("=== RELATED LESSONS ===\n", results.lessons[:MAX_LESSONS], _lesson_entry, 50),
        ("=== RELATED COURSES ===\n", results.courses[:MAX_COURSES], _course_entry, 50),
    ]
    for header, matches, render, min_space in sections:
        if not matches or budget.remaining <= 0:
            continue
        if not budget.add(header):
            break
        for idx, match in enumerate(matches, start=1):
            if budget.remaining < min_space:
                break
            budget.add(render(idx, match, budget.remaining))

    return budget.render()
