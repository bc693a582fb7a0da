"""
Redis Idempotency Store.

Key pattern: "chatrelay:idem:{key}" → message id, expiring after the TTL.
Shared by every replica, so a retried submission is recognised no matter
which node receives it.

Redis failures surface as ServiceUnavailableError; the submit handler
logs them and proceeds with a normal insert.
"""

import logging
from typing import Optional

from redis.asyncio import Redis
from redis.exceptions import RedisError

from chatrelay.domain.exceptions import ServiceUnavailableError
from chatrelay.domain.ports import IdempotencyStore

logger = logging.getLogger(__name__)


class RedisIdempotencyStore(IdempotencyStore):
    def __init__(self, redis: Redis, prefix: str = "chatrelay:idem"):
        self._redis = redis
        self._prefix = prefix

    def _cache_key(self, key: str) -> str:
        return f"{self._prefix}:{key}"

    async def get(self, key: str) -> Optional[str]:
        try:
            return await self._redis.get(self._cache_key(key))
        except RedisError as e:
            logger.warning(f"Redis idempotency read error for {key}: {str(e)}")
            raise ServiceUnavailableError("Idempotency store unavailable") from e

    async def put(self, key: str, value: str, ttl_seconds: int) -> None:
        try:
            await self._redis.set(self._cache_key(key), value, ex=ttl_seconds)
        except RedisError as e:
            logger.warning(f"Redis idempotency write error for {key}: {str(e)}")
            raise ServiceUnavailableError("Idempotency store unavailable") from e
