"""
Redis Fan-out Relay - room emissions across several server replicas.

Each replica only knows its own connections. With REALTIME_BACKEND=redis
every emission is published once on a shared channel and every replica
(this one included) delivers it to its local connections.

Wire format on the channel (JSON):
    {"room": "conversation:<id>", "event": "message-created", "payload": {...}}
"""

import asyncio
import json
import logging
from typing import Any, Optional

from redis.asyncio import Redis
from redis.asyncio.client import PubSub
from redis.exceptions import RedisError

from chatrelay.domain.ports import RealtimeGateway
from chatrelay.domain.value_objects.room import Room
from chatrelay.observability.metrics import MetricsErrorType, increment_error

logger = logging.getLogger(__name__)


class RedisRelayGateway(RealtimeGateway):
    def __init__(self, redis: Redis, local: RealtimeGateway, channel: str):
        self._redis = redis
        self._local = local
        self._channel = channel
        self._pubsub: Optional[PubSub] = None
        self._task: Optional[asyncio.Task] = None
        self._running = False

    async def emit(self, room: Room, event: str, payload: dict[str, Any]) -> None:
        data = json.dumps({"room": room.name, "event": event, "payload": payload})
        try:
            await self._redis.publish(self._channel, data)
        except RedisError as e:
            logger.error(
                f"Relay publish of {event} to {room} failed, delivering locally only: {e}"
            )
            increment_error(MetricsErrorType.RELAY_FAILED)
            await self._local.emit(room, event, payload)

    async def join(self, connection_id: str, room: Room) -> None:
        await self._local.join(connection_id, room)

    async def leave(self, connection_id: str, room: Room) -> None:
        await self._local.leave(connection_id, room)

    async def start(self) -> None:
        if self._running:
            return
        self._pubsub = self._redis.pubsub()
        await self._pubsub.subscribe(self._channel)
        self._running = True
        self._task = asyncio.create_task(self._listen())
        logger.info(f"Relay listening on {self._channel}")

    async def stop(self) -> None:
        self._running = False
        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None
        if self._pubsub:
            await self._pubsub.aclose()
            self._pubsub = None
        logger.info("Relay stopped")

    async def _listen(self) -> None:
        while self._running:
            try:
                message = await self._pubsub.get_message(
                    ignore_subscribe_messages=True, timeout=1.0
                )
            except RedisError as e:
                logger.error(f"Relay listener error: {e}")
                increment_error(MetricsErrorType.RELAY_FAILED)
                await asyncio.sleep(1.0)
                continue
            if message is not None:
                await self.deliver(message.get("data", ""))

    async def deliver(self, data: Any) -> None:
        """Deliver one relayed emission to this replica's connections."""
        if isinstance(data, bytes):
            data = data.decode()
        try:
            envelope = json.loads(data)
            room = Room.parse(envelope["room"])
            event = envelope["event"]
            payload = envelope["payload"]
        except (ValueError, KeyError, TypeError) as e:
            logger.warning(f"Dropping malformed relay message: {e}")
            increment_error(MetricsErrorType.RELAY_FAILED)
            return
        await self._local.emit(room, event, payload)
