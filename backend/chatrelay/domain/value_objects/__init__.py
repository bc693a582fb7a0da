"""
VALUE OBJECTS - Immutable domain types

Each value object:
- Has no identity (compared by value, not by ID)
- Is immutable (frozen dataclass)
- Validates itself on creation
- Pure Python (no framework dependencies)
"""

from chatrelay.domain.value_objects.user_id import UserId
from chatrelay.domain.value_objects.user_email import UserEmail
from chatrelay.domain.value_objects.conversation_id import ConversationId
from chatrelay.domain.value_objects.message_id import MessageId
from chatrelay.domain.value_objects.room import Room

__all__ = [
    "UserId",
    "UserEmail",
    "ConversationId",
    "MessageId",
    "Room",
]
