"""
Connection Registry - which live connection belongs to which user and which rooms.

One instance per process, injected wherever it is needed (never a module
global), so independent instances do not interfere.

The registry decides who may be in which room; the transport's own room
manager (reached through the RealtimeGateway) does the routing. Membership
is in-memory only. After a restart every client reconnects and `register`
rebuilds its rooms.

Only the owning connection's own lifecycle calls (register / join_room /
leave_room / unregister) mutate its state. The broadcaster never does.

Registry calls never raise to the caller: unknown connections, malformed
ids and conversations the user is not a member of are ignored.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Optional

from chatrelay.application.common.arguments import conversation_id_arg
from chatrelay.domain.exceptions import ChatRelayError
from chatrelay.domain.ports import ConversationStore, RealtimeGateway
from chatrelay.domain.value_objects.conversation_id import ConversationId
from chatrelay.domain.value_objects.room import Room
from chatrelay.domain.value_objects.user_id import UserId

logger = logging.getLogger(__name__)


@dataclass
class ConnectionState:
    connection_id: str
    user_id: Optional[UserId]
    rooms: set[Room] = field(default_factory=set)
    # Held while one event of this connection is processed end to end
    lock: asyncio.Lock = field(default_factory=asyncio.Lock)


class ConnectionRegistry:
    def __init__(self, store: ConversationStore, gateway: RealtimeGateway):
        self._store = store
        self._gateway = gateway
        self._connections: dict[str, ConnectionState] = {}

    # ==================== LIFECYCLE ====================

    async def register(
        self, connection_id: str, user_id: Optional[UserId]
    ) -> ConnectionState:
        """
        Track a new connection.

        Authenticated connections join `user:<id>` and then `conversation:<id>`
        for every conversation the user currently participates in (looked up
        once, here). Anonymous connections join nothing.
        """
        if connection_id in self._connections:
            await self.unregister(connection_id)

        state = ConnectionState(connection_id=connection_id, user_id=user_id)
        self._connections[connection_id] = state
        if user_id is None:
            logger.debug(f"Anonymous connection {connection_id} registered")
            return state

        await self._add(state, Room.for_user(user_id))
        try:
            conversation_ids = await self._store.list_conversation_ids_for_user(user_id)
        except ChatRelayError as e:
            logger.warning(
                f"Could not load conversations for {user_id.value} on connect: {e}"
            )
            return state

        # The connection may have gone away while the store was queried
        if self._connections.get(connection_id) is not state:
            return state
        for conversation_id in conversation_ids:
            await self._add(state, Room.for_conversation(conversation_id))

        logger.info(
            f"Connection {connection_id} registered for {user_id.value} "
            f"({len(conversation_ids)} conversation rooms)"
        )
        return state

    async def join_room(self, connection_id: str, conversation_id: Any) -> bool:
        """Subscribe a connection to a conversation room it is a member of."""
        state = self._connections.get(connection_id)
        if state is None or state.user_id is None:
            return False
        target = self._parse(conversation_id)
        if target is None:
            return False

        room = Room.for_conversation(target)
        if room in state.rooms:
            return True

        try:
            membership = await self._store.find_membership(target, state.user_id)
        except ChatRelayError as e:
            logger.warning(f"Membership lookup failed for join {room}: {e}")
            return False
        if membership is None:
            logger.debug(
                f"Connection {connection_id} is not a member of {room}; join ignored"
            )
            return False

        if self._connections.get(connection_id) is not state:
            return False
        await self._add(state, room)
        logger.debug(f"Connection {connection_id} joined {room}")
        return True

    async def leave_room(self, connection_id: str, conversation_id: Any) -> bool:
        state = self._connections.get(connection_id)
        target = self._parse(conversation_id)
        if state is None or target is None:
            return False
        room = Room.for_conversation(target)
        if room not in state.rooms:
            return False
        await self._discard(state, room)
        logger.debug(f"Connection {connection_id} left {room}")
        return True

    async def unregister(self, connection_id: str) -> None:
        state = self._connections.pop(connection_id, None)
        if state is None:
            return
        for room in list(state.rooms):
            await self._discard(state, room)
        logger.info(f"Connection {connection_id} unregistered")

    # ==================== READS ====================

    def user_of(self, connection_id: str) -> Optional[UserId]:
        state = self._connections.get(connection_id)
        return state.user_id if state else None

    def rooms_of(self, connection_id: str) -> set[Room]:
        state = self._connections.get(connection_id)
        return set(state.rooms) if state else set()

    def lock_for(self, connection_id: str) -> asyncio.Lock:
        state = self._connections.get(connection_id)
        return state.lock if state else asyncio.Lock()

    def is_registered(self, connection_id: str) -> bool:
        return connection_id in self._connections

    @property
    def connection_count(self) -> int:
        return len(self._connections)

    # ==================== INTERNALS ====================

    async def _add(self, state: ConnectionState, room: Room) -> None:
        state.rooms.add(room)
        await self._gateway.join(state.connection_id, room)

    async def _discard(self, state: ConnectionState, room: Room) -> None:
        state.rooms.discard(room)
        await self._gateway.leave(state.connection_id, room)

    @staticmethod
    def _parse(conversation_id: Any) -> Optional[ConversationId]:
        if isinstance(conversation_id, ConversationId):
            return conversation_id
        try:
            return conversation_id_arg(conversation_id)
        except ChatRelayError:
            return None
