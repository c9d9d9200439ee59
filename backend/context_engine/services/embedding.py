"""
Embedding service using sentence-transformers.
Wraps the all-MiniLM-L6-v2 model (384 dims) used to index and query the
course catalog.
Lazy-loads the model on first use to avoid slow startup.
"""

import logging
from typing import List, Optional, Union

import numpy as np
from sentence_transformers import SentenceTransformer

from context_engine.models.schemas import CandidateCourse

logger = logging.getLogger(__name__)


class EmbeddingService:
    """Generates text embeddings using sentence-transformers."""

    def __init__(self, model_name: str = "all-MiniLM-L6-v2", device: str = "cpu"):
        self.model_name = model_name
        self.device = device
        self._model = None

    def _ensure_model_loaded(self):
        """Lazy-load the model on first use."""
        if self._model is None:
            logger.info(f"Loading embedding model: {self.model_name}...")
            self._model = SentenceTransformer(self.model_name, device=self.device)
            logger.info(f"Embedding model loaded ({self.vector_size} dimensions)")

    def encode(self, texts: Union[str, List[str]]) -> np.ndarray:
        """Encode text(s) into embedding vector(s).

        Args:
            texts: Single string or list of strings to encode

        Returns:
            numpy array of shape (dim,) for single text or (n, dim) for batch
        """
        self._ensure_model_loaded()

        single = isinstance(texts, str)
        if single:
            texts = [texts]

        embeddings = self._model.encode(
            texts,
            show_progress_bar=len(texts) > 50,
            normalize_embeddings=True  # L2-normalize for cosine similarity
        )

        if single:
            return embeddings[0]

        return embeddings

    @property
    def vector_size(self) -> int:
        """Return the embedding dimension size."""
        self._ensure_model_loaded()
        return self._model.get_sentence_embedding_dimension()

    def encode_courses(self, courses: List[CandidateCourse]) -> np.ndarray:
        """Embed a batch of courses; always returns shape (n, dim)."""
        texts = [
            course_embedding_text(
                c.title,
                c.short_description or "",
                c.what_you_learn or "",
                c.category_name or "",
                c.tag_names,
                c.level.value if c.level else ""
            )
            for c in courses
        ]
        embeddings = self.encode(texts)
        if embeddings.ndim == 1:
            embeddings = embeddings.reshape(1, -1)
        return embeddings


def course_embedding_text(title: str, short_description: str = "", what_you_learn: str = "",
                          category: str = "", tags: Optional[List[str]] = None, level: str = "") -> str:
    """Text that represents a course in the vector index."""
    parts = [title, short_description, what_you_learn, category, " ".join(tags or []), level]
    return ". ".join(p.strip() for p in parts if p and p.strip())
