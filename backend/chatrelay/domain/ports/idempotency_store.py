"""
Idempotency Store Port - remembers which message a client token produced.

Implementations:
- chatrelay/infrastructure/cache/memory_idempotency_store.py
- chatrelay/infrastructure/cache/redis_idempotency_store.py
"""

from abc import ABC, abstractmethod
from typing import Optional


class IdempotencyStore(ABC):
    @abstractmethod
    async def get(self, key: str) -> Optional[str]: ...

    @abstractmethod
    async def put(self, key: str, value: str, ttl_seconds: int) -> None: ...
