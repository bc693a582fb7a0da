"""Socket.IO transport."""

from chatrelay.presentation.realtime.namespace import ChatNamespace, error_ack

__all__ = [
    "ChatNamespace",
    "error_ack",
]
