"""
ENTITIES - Business objects with identity

Each entity:
- Has a unique identifier
- Pure Python dataclasses (no ORM, no Pydantic)
"""

from chatrelay.domain.entities.user import User
from chatrelay.domain.entities.conversation import Conversation
from chatrelay.domain.entities.membership import Membership
from chatrelay.domain.entities.message import Message, message_order_key

__all__ = [
    "User",
    "Conversation",
    "Membership",
    "Message",
    "message_order_key",
]
