"""
Realtime Gateway Port - deliver one event to every live connection in a room.

Implementations:
- chatrelay/infrastructure/realtime/socketio_gateway.py (this process)
- chatrelay/infrastructure/realtime/redis_relay.py (every replica)

Delivery is at-most-once per connection per call. Absent rooms are a no-op.
Room membership lives in the transport; `join` / `leave` only ever touch
connections held by this process.
"""

from abc import ABC, abstractmethod
from typing import Any

from chatrelay.domain.value_objects.room import Room


class RealtimeGateway(ABC):
    @abstractmethod
    async def emit(self, room: Room, event: str, payload: dict[str, Any]) -> None: ...

    @abstractmethod
    async def join(self, connection_id: str, room: Room) -> None: ...

    @abstractmethod
    async def leave(self, connection_id: str, room: Room) -> None: ...
