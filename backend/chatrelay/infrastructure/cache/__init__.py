"""
Cache Layer - Redis client and idempotency stores.
"""

from chatrelay.infrastructure.cache.redis_client import (
    create_redis_client,
    close_redis_client,
)
from chatrelay.infrastructure.cache.memory_idempotency_store import (
    MemoryIdempotencyStore,
)
from chatrelay.infrastructure.cache.redis_idempotency_store import (
    RedisIdempotencyStore,
)

__all__ = [
    "create_redis_client",
    "close_redis_client",
    "MemoryIdempotencyStore",
    "RedisIdempotencyStore",
]
