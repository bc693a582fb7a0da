"""Conversation DTOs for API responses."""

from __future__ import annotations
from datetime import datetime
from typing import Optional

from chatrelay.application.dto.base import WireModel
from chatrelay.application.dto.chat import MessageDTO, SenderDTO
from chatrelay.domain.entities.conversation import Conversation


class ConversationDTO(WireModel):
    id: str
    title: Optional[str] = None
    is_group: bool
    created_at: datetime
    updated_at: datetime
    participants: list[SenderDTO]
    last_message: Optional[MessageDTO] = None

    @classmethod
    def from_entity(cls, conversation: Conversation) -> ConversationDTO:
        return cls(
            id=conversation.id.value,
            title=conversation.title,
            is_group=conversation.is_group,
            created_at=conversation.created_at,
            updated_at=conversation.updated_at,
            participants=[SenderDTO.from_entity(p) for p in conversation.participants],
            last_message=(
                MessageDTO.from_entity(conversation.last_message)
                if conversation.last_message
                else None
            ),
        )
