"""
Qdrant-backed semantic search over the course catalog.

Points are written by scripts/index_courses.py: one point per course, the
payload carrying the CandidateCourse fields. Optional collaborator: the
ranker calls available() first and falls back to keyword ranking on any
failure.
"""

import asyncio
import logging
from typing import Any, Dict, List, Optional

from pydantic import ValidationError
from qdrant_client import QdrantClient
from qdrant_client.models import FieldCondition, Filter, MatchValue

from context_engine.errors import MalformedResponseError
from context_engine.models.schemas import CandidateCourse, SkillLevel
from context_engine.repositories.base import SemanticCourseSearch
from context_engine.services.embedding import EmbeddingService

logger = logging.getLogger(__name__)


def payload_to_course(payload: Dict[str, Any], similarity: float) -> CandidateCourse:
    data = dict(payload)
    data["id"] = data.pop("course_id", data.get("id"))
    data["similarity"] = similarity
    return CandidateCourse.model_validate(data)


class QdrantCourseSearch(SemanticCourseSearch):
    """Qdrant client wrapper for course-level vector search."""

    def __init__(
        self,
        qdrant_url: str,
        embedding_service: EmbeddingService,
        qdrant_api_key: Optional[str] = None,
        collection_name: str = "course_catalog",
        score_threshold: float = 0.5,
        client: Optional[QdrantClient] = None
    ):
        if client is not None:
            self.client = client
        elif qdrant_api_key:
            self.client = QdrantClient(url=qdrant_url, api_key=qdrant_api_key)
        else:
            self.client = QdrantClient(url=qdrant_url)

        self.embedding_service = embedding_service
        self.collection_name = collection_name
        self.score_threshold = score_threshold

    def health_check(self) -> bool:
        """Check if Qdrant is reachable and collection exists."""
        try:
            collections = [c.name for c in self.client.get_collections().collections]
            return self.collection_name in collections
        except Exception as e:
            logger.warning(f"Qdrant health check failed: {e}")
            return False

    async def available(self) -> bool:
        return await asyncio.to_thread(self.health_check)

    def _search_sync(self, query: str, limit: int, level: Optional[SkillLevel]) -> List[CandidateCourse]:
        query_vector = self.embedding_service.encode(query).tolist()

        search_filter = None
        if level is not None:
            search_filter = Filter(
                must=[
                    FieldCondition(
                        key="level",
                        match=MatchValue(value=level.value)
                    )
                ]
            )

        results = self.client.query_points(
            collection_name=self.collection_name,
            query_filter=search_filter,
            query=query_vector,
            limit=limit,
            score_threshold=self.score_threshold
        ).points

        courses = []
        for r in results:
            try:
                courses.append(payload_to_course(r.payload or {}, r.score))
            except ValidationError as e:
                raise MalformedResponseError("qdrant", f"bad payload for point {r.id}: {e}") from e
        return courses

    async def search(
        self,
        query: str,
        limit: int = 10,
        level: Optional[SkillLevel] = None
    ) -> List[CandidateCourse]:
        """Courses most similar to the query, above the similarity threshold."""
        return await asyncio.to_thread(self._search_sync, query, limit, level)
