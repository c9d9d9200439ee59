"""
Redis-backed DistributedCache for course rankings shared across workers.

Values are stored as JSON with a Redis TTL. Keys arrive already prefixed
and hashed by the ranker.
"""

import json
import logging
from typing import Any, Optional

import redis.asyncio as aioredis

from context_engine.repositories.base import DistributedCache

logger = logging.getLogger(__name__)


class RedisRankingCache(DistributedCache):

    def __init__(self, redis_url: str, default_ttl: int = 300):
        self._redis = aioredis.from_url(
            redis_url,
            decode_responses=True,
            socket_connect_timeout=5,
            socket_timeout=5,
        )
        self._default_ttl = default_ttl

    async def get(self, key: str) -> Optional[Any]:
        data = await self._redis.get(key)
        if data is None:
            return None
        try:
            return json.loads(data)
        except json.JSONDecodeError:
            logger.warning("Failed to deserialize cached value: %s", key)
            return None

    async def set(self, key: str, value: Any, ttl: Optional[int] = None) -> None:
        await self._redis.set(key, json.dumps(value, ensure_ascii=False), ex=ttl or self._default_ttl)

    async def close(self) -> None:
        """Close the Redis connection pool."""
        await self._redis.aclose()

    async def ping(self) -> bool:
        """Check Redis connectivity."""
        try:
            return await self._redis.ping()
        except aioredis.RedisError:
            return False
