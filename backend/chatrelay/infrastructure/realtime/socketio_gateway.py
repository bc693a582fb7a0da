"""
Socket.IO Gateway - rooms and emissions for this process's connections.

Rooms are the Socket.IO server's own rooms, named after `Room.name`. The
ConnectionRegistry decides who may enter a room; this gateway only moves
connections in and out and emits to a room as a whole. The server drops a
connection from all of its rooms on disconnect.
"""

import logging
from typing import Any

import socketio

from chatrelay.domain.ports import RealtimeGateway
from chatrelay.domain.value_objects.room import Room

logger = logging.getLogger(__name__)


class SocketIOGateway(RealtimeGateway):
    def __init__(self, sio: socketio.AsyncServer, namespace: str = "/"):
        self._sio = sio
        self._namespace = namespace

    async def emit(self, room: Room, event: str, payload: dict[str, Any]) -> None:
        await self._sio.emit(event, payload, room=room.name, namespace=self._namespace)

    async def join(self, connection_id: str, room: Room) -> None:
        try:
            await self._sio.enter_room(connection_id, room.name, namespace=self._namespace)
        except ValueError as e:
            # Raised when the connection is not (or no longer) on this namespace
            logger.warning(f"Connection {connection_id} could not enter {room}: {e}")

    async def leave(self, connection_id: str, room: Room) -> None:
        await self._sio.leave_room(connection_id, room.name, namespace=self._namespace)
