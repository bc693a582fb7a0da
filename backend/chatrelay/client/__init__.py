"""Client side of the delivery protocol."""

from chatrelay.client.timeline import ConversationTimeline, TimelineMessage
from chatrelay.client.chat_client import ChatClient, SendOutcome, SendResult

__all__ = [
    "ConversationTimeline",
    "TimelineMessage",
    "ChatClient",
    "SendOutcome",
    "SendResult",
]
