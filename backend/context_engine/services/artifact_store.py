"""
Local filesystem access to transcript artifacts.

Lesson records store web paths such as "/uploads/transcripts/lesson-12.srt";
these resolve against the configured artifact root. File I/O runs in a
worker thread so the event loop is never blocked.
"""

import asyncio
from pathlib import Path

from context_engine.repositories.base import ArtifactStore


class LocalArtifactStore(ArtifactStore):

    def __init__(self, root: str):
        self.root = Path(root).resolve()

    def resolve(self, path: str) -> Path:
        """Map a stored artifact path onto the local root.

        Raises ValueError for paths that would escape the root.
        """
        candidate = (self.root / path.lstrip('/\\')).resolve()
        if candidate != self.root and self.root not in candidate.parents:
            raise ValueError(f"Artifact path escapes root: {path}")
        return candidate

    async def exists(self, path: str) -> bool:
        if not path:
            return False
        try:
            resolved = self.resolve(path)
        except ValueError:
            return False
        return await asyncio.to_thread(resolved.is_file)

    async def read_text(self, path: str) -> str:
        resolved = self.resolve(path)
        return await asyncio.to_thread(resolved.read_text, encoding='utf-8-sig')
