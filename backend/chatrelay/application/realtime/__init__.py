"""
Realtime delivery: which connection is in which room, and what to emit
after a message is created or deleted.
"""

from chatrelay.application.realtime.events import ServerEvents, ClientEvents
from chatrelay.application.realtime.connection_registry import (
    ConnectionRegistry,
    ConnectionState,
)
from chatrelay.application.realtime.broadcaster import FanoutBroadcaster
from chatrelay.application.realtime.delivery import MessageDelivery

__all__ = [
    "ServerEvents",
    "ClientEvents",
    "ConnectionRegistry",
    "ConnectionState",
    "FanoutBroadcaster",
    "MessageDelivery",
]
