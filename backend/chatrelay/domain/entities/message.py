"""
Message Entity - A single message in a conversation.

Messages are totally ordered by (created_at, id). Pagination and the
"last message" of a conversation both rely on that order.
"""

from __future__ import annotations
from dataclasses import dataclass
from datetime import datetime, timezone
from uuid import uuid4

from chatrelay.domain.entities.user import User
from chatrelay.domain.value_objects.conversation_id import ConversationId
from chatrelay.domain.value_objects.message_id import MessageId


@dataclass(frozen=True)
class Message:
    id: MessageId
    conversation_id: ConversationId
    sender: User
    body: str
    created_at: datetime

    def __post_init__(self):
        if not self.body or not self.body.strip():
            raise ValueError("Message body cannot be empty")

    @classmethod
    def create(
        cls,
        conversation_id: ConversationId,
        sender: User,
        body: str,
        created_at: datetime | None = None,
    ) -> Message:
        """Factory method to create a new Message with a generated ID and timestamp."""
        return cls(
            id=MessageId(str(uuid4())),
            conversation_id=conversation_id,
            sender=sender,
            body=body.strip(),
            created_at=created_at or datetime.now(timezone.utc),
        )

    @property
    def order_key(self) -> tuple[datetime, str]:
        return message_order_key(self)


def message_order_key(message: Message) -> tuple[datetime, str]:
    return (message.created_at, message.id.value)
