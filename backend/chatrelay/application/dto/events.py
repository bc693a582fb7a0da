"""
Broadcast event payloads.

    message-created            {message, conversationId}
    message-deleted            {conversationId, messageId, newLastMessage, newUpdatedAt}
    conversation-list-changed  {conversationId}
"""

from datetime import datetime
from typing import Optional

from chatrelay.application.dto.base import WireModel
from chatrelay.application.dto.chat import MessageDTO


class MessageCreatedEvent(WireModel):
    message: MessageDTO
    conversation_id: str


class MessageDeletedEvent(WireModel):
    conversation_id: str
    message_id: str
    new_last_message: Optional[MessageDTO] = None
    new_updated_at: datetime


class ConversationListChangedEvent(WireModel):
    conversation_id: str
