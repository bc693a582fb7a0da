"""
Conversation Entity - a chat between two or more participants.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

from chatrelay.domain.entities.message import Message
from chatrelay.domain.entities.user import User
from chatrelay.domain.value_objects.conversation_id import ConversationId


@dataclass
class Conversation:
    id: ConversationId
    title: Optional[str]
    created_at: datetime
    updated_at: datetime
    participants: list[User] = field(default_factory=list)
    last_message: Optional[Message] = None

    @property
    def is_group(self) -> bool:
        return len(self.participants) > 2
