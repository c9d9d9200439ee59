"""Shared pytest fixtures for context engine tests.

Provides:
- ``clock``: Manually advanced monotonic clock for TTL tests
- ``artifact_root`` / ``artifact_store``: tmp_path-backed transcript files
- ``write_artifact``: Writes a transcript file under the artifact root
- ``make_srt``: Builds SRT text from a list of cue texts (3s per cue)
"""

from typing import List

import pytest

from context_engine.services.artifact_store import LocalArtifactStore


class FakeClock:
    """Callable clock; tests move time forward explicitly."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def _srt_time(seconds: float) -> str:
    h = int(seconds // 3600)
    m = int((seconds % 3600) // 60)
    s = int(seconds % 60)
    ms = int(round((seconds - int(seconds)) * 1000))
    return f"{h:02d}:{m:02d}:{s:02d},{ms:03d}"


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def artifact_root(tmp_path):
    root = tmp_path / "uploads_root"
    root.mkdir()
    return root


@pytest.fixture
def artifact_store(artifact_root) -> LocalArtifactStore:
    return LocalArtifactStore(str(artifact_root))


@pytest.fixture
def write_artifact(artifact_root):
    """write_artifact("/uploads/transcripts/l1.srt", text) -> the stored path."""
    def _write(path: str, content: str) -> str:
        target = artifact_root / path.lstrip("/")
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(content, encoding="utf-8")
        return path
    return _write


@pytest.fixture
def make_srt():
    def _make(cues: List[str], seconds_per_cue: float = 3.0) -> str:
        blocks = []
        for i, text in enumerate(cues):
            start = i * seconds_per_cue
            end = start + seconds_per_cue
            blocks.append(f"{i + 1}\n{_srt_time(start)} --> {_srt_time(end)}\n{text}\n")
        return "\n".join(blocks)
    return _make
