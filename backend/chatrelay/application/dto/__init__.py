"""
DTOs - Data Transfer Objects

- chat.py          → SenderDTO, MessageDTO, MessagePageDTO
- conversation.py  → ConversationDTO
- events.py        → broadcast event payloads

DTOs are for wire input/output (camelCase JSON), entities are for business logic.
"""

from chatrelay.application.dto.chat import SenderDTO, MessageDTO, MessagePageDTO
from chatrelay.application.dto.conversation import ConversationDTO
from chatrelay.application.dto.events import (
    MessageCreatedEvent,
    MessageDeletedEvent,
    ConversationListChangedEvent,
)

__all__ = [
    "SenderDTO",
    "MessageDTO",
    "MessagePageDTO",
    "ConversationDTO",
    "MessageCreatedEvent",
    "MessageDeletedEvent",
    "ConversationListChangedEvent",
]
