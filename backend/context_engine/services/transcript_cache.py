"""
Memoized transcript loading.

A lesson transcript is read at most once per TTL window: the parsed segment
list is cached per artifact path and the same list object is handed to
every caller until it expires. Concurrent requests for the same path wait
on one shared load instead of each parsing the file.
"""

import asyncio
import logging
import time
from pathlib import PurePosixPath
from typing import Callable, Dict, List, Optional

from context_engine.errors import ArtifactUnavailableError
from context_engine.repositories.base import ArtifactStore
from context_engine.services.ttl_cache import TTLCache
from context_engine.utils.transcript_parser import (
    TranscriptSegment,
    parse_json_transcript,
    parse_subtitle,
)

logger = logging.getLogger(__name__)


def sibling_json_path(artifact_path: str) -> str:
    """'/uploads/transcripts/l12.srt' -> '/uploads/transcripts/l12.json'"""
    return str(PurePosixPath(artifact_path).with_suffix('.json'))


class TranscriptCache:
    """Loads transcripts through an ArtifactStore and caches the segments."""

    def __init__(
        self,
        store: ArtifactStore,
        ttl_seconds: float = 300,
        max_entries: int = 100,
        clock: Callable[[], float] = time.monotonic
    ):
        self.store = store
        self._cache: TTLCache[List[TranscriptSegment]] = TTLCache(
            ttl_seconds, max_entries, name="transcripts", clock=clock
        )
        self._inflight: Dict[str, asyncio.Lock] = {}

    async def load(self, artifact_path: str, alt_path: Optional[str] = None) -> List[TranscriptSegment]:
        """Return the parsed segments for an artifact.

        Tries the pre-parsed JSON form first (alt_path, or the .json sibling),
        then the subtitle file itself. Raises ArtifactUnavailableError when
        neither can be read.
        """
        cached = self._cache.get(artifact_path)
        if cached is not None:
            return cached

        lock = self._inflight.setdefault(artifact_path, asyncio.Lock())
        try:
            async with lock:
                # Another caller may have finished the load while we waited
                cached = self._cache.get(artifact_path)
                if cached is not None:
                    return cached

                segments = await self._read(artifact_path, alt_path)
                self._cache.set(artifact_path, segments)
                logger.debug(f"Loaded {len(segments)} segments from {artifact_path}")
                return segments
        finally:
            if not lock.locked():
                self._inflight.pop(artifact_path, None)

    async def _read(self, artifact_path: str, alt_path: Optional[str]) -> List[TranscriptSegment]:
        json_path = alt_path or sibling_json_path(artifact_path)

        # Fast path: pre-parsed segments written at transcription time
        try:
            if await self.store.exists(json_path):
                raw = await self.store.read_text(json_path)
                return parse_json_transcript(raw)
        except (OSError, ValueError) as e:
            logger.warning(f"Pre-parsed transcript {json_path} unusable, parsing subtitles: {e}")

        if json_path == artifact_path:
            raise ArtifactUnavailableError(artifact_path, "no subtitle source")

        try:
            raw = await self.store.read_text(artifact_path)
            return parse_subtitle(raw, artifact_path)
        except (OSError, ValueError) as e:
            raise ArtifactUnavailableError(artifact_path, str(e)) from e

    def invalidate(self, artifact_path: str) -> None:
        self._cache.invalidate(artifact_path)

    def get_stats(self) -> dict:
        return self._cache.get_stats()
