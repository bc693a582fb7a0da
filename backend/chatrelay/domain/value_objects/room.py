"""
Room Value Object - a logical broadcast address.

Two kinds exist:
- "conversation:<id>"  every connection currently viewing that conversation
- "user:<id>"          every connection belonging to that user
"""

from __future__ import annotations
from dataclasses import dataclass

from chatrelay.domain.value_objects.conversation_id import ConversationId
from chatrelay.domain.value_objects.user_id import UserId

CONVERSATION_PREFIX = "conversation"
USER_PREFIX = "user"


@dataclass(frozen=True)
class Room:
    kind: str
    key: str

    def __post_init__(self):
        if self.kind not in (CONVERSATION_PREFIX, USER_PREFIX):
            raise ValueError(f"Invalid room kind: {self.kind}")
        if not self.key:
            raise ValueError("Room key cannot be empty")

    @classmethod
    def for_conversation(cls, conversation_id: ConversationId) -> Room:
        return cls(kind=CONVERSATION_PREFIX, key=conversation_id.value)

    @classmethod
    def for_user(cls, user_id: UserId) -> Room:
        return cls(kind=USER_PREFIX, key=user_id.value)

    @classmethod
    def parse(cls, name: str) -> Room:
        kind, _, key = name.partition(":")
        return cls(kind=kind, key=key)

    @property
    def name(self) -> str:
        return f"{self.kind}:{self.key}"

    def __str__(self) -> str:
        return self.name
