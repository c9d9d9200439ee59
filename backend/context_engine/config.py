"""
Engine configuration, read from the environment (and a .env file if present).
"""

from typing import Optional

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class EngineSettings(BaseSettings):
    """Tunables for caches, search fan-out and optional collaborators.

    Each field maps to the upper-cased environment variable of the same name
    (``TRANSCRIPT_CACHE_TTL``, ``REDIS_URL``...). Values already present in
    the environment win over the .env file.
    """

    model_config = SettingsConfigDict(env_file=".env", extra="ignore", frozen=True)

    # Root directory that transcript paths like "/uploads/transcripts/x.srt" resolve against
    artifact_root: str = "."

    transcript_cache_ttl: float = 300.0
    transcript_cache_max_entries: int = 100
    search_cache_ttl: float = 300.0
    search_cache_max_entries: int = 200

    max_transcript_lessons: int = 2
    full_transcript_max_chars: int = 2000
    history_limit: int = 10

    # Optional semantic course search (Qdrant)
    qdrant_url: Optional[str] = None
    qdrant_api_key: Optional[str] = None
    qdrant_course_collection: str = "course_catalog"
    embedding_model: str = "all-MiniLM-L6-v2"
    semantic_similarity_threshold: float = 0.5

    # Optional distributed cache for course rankings
    redis_url: Optional[str] = None
    advisor_cache_ttl: int = 300

    log_level: str = "INFO"

    # Local catalog files (dev mode)
    courses_csv: Optional[str] = None
    lessons_csv: Optional[str] = None

    @field_validator(
        "qdrant_url", "qdrant_api_key", "redis_url", "courses_csv", "lessons_csv",
        mode="before"
    )
    @classmethod
    def _blank_as_unset(cls, value):
        # REDIS_URL= in a .env file disables the collaborator
        if isinstance(value, str) and not value.strip():
            return None
        return value


def load_settings(env_file: Optional[str] = None) -> EngineSettings:
    """Build settings from environment variables and `env_file` (default: ./.env)."""
    if env_file is None:
        return EngineSettings()
    return EngineSettings(_env_file=env_file)
