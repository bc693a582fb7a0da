"""In-process idempotency store with per-key expiry."""

import time
from typing import Optional

from chatrelay.domain.ports import IdempotencyStore


class MemoryIdempotencyStore(IdempotencyStore):
    def __init__(self, clock=time.monotonic):
        self._clock = clock
        self._entries: dict[str, tuple[str, float]] = {}

    async def get(self, key: str) -> Optional[str]:
        entry = self._entries.get(key)
        if entry is None:
            return None
        value, expires_at = entry
        if expires_at <= self._clock():
            del self._entries[key]
            return None
        return value

    async def put(self, key: str, value: str, ttl_seconds: int) -> None:
        self._purge()
        self._entries[key] = (value, self._clock() + ttl_seconds)

    def _purge(self) -> None:
        now = self._clock()
        expired = [k for k, (_, expires_at) in self._entries.items() if expires_at <= now]
        for key in expired:
            del self._entries[key]
