"""Realtime gateways: local Socket.IO delivery and the Redis relay."""

from chatrelay.infrastructure.realtime.socketio_gateway import SocketIOGateway
from chatrelay.infrastructure.realtime.redis_relay import RedisRelayGateway

__all__ = [
    "SocketIOGateway",
    "RedisRelayGateway",
]
