"""Message DTOs for API and socket payloads."""

from __future__ import annotations
from datetime import datetime
from typing import Optional

from chatrelay.application.dto.base import WireModel
from chatrelay.domain.entities.message import Message
from chatrelay.domain.entities.user import User


class SenderDTO(WireModel):
    """Sender identity embedded in every message so receivers need no lookup."""

    id: str
    name: Optional[str] = None
    email: str

    @classmethod
    def from_entity(cls, user: User) -> SenderDTO:
        return cls(id=user.id.value, name=user.name, email=user.email.value)


class MessageDTO(WireModel):
    """DTO for message data returned to clients."""

    id: str
    conversation_id: str
    body: str
    created_at: datetime
    sender: SenderDTO

    @classmethod
    def from_entity(cls, message: Message) -> MessageDTO:
        return cls(
            id=message.id.value,
            conversation_id=message.conversation_id.value,
            body=message.body,
            created_at=message.created_at,
            sender=SenderDTO.from_entity(message.sender),
        )


class MessagePageDTO(WireModel):
    messages: list[MessageDTO]
    next_cursor: Optional[str] = None
