"""
Membership Entity - a (conversation, user) pair.

Existence of a membership is the only authorization predicate for message
operations on a conversation.
"""

from dataclasses import dataclass
from datetime import datetime

from chatrelay.domain.value_objects.conversation_id import ConversationId
from chatrelay.domain.value_objects.user_id import UserId


@dataclass(frozen=True)
class Membership:
    conversation_id: ConversationId
    user_id: UserId
    joined_at: datetime
