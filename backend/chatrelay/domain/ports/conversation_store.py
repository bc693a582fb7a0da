"""
Conversation Store Port - durable record of users, conversations,
memberships and messages.

Implementations:
- chatrelay/infrastructure/persistence/memory_conversation_store.py
- chatrelay/infrastructure/persistence/prisma_conversation_store.py

Each call is atomic on its own. No method spans "check membership →
insert → bump timestamp"; callers sequence those steps themselves.
Driver failures surface as ServiceUnavailableError.
"""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Optional

from chatrelay.domain.entities.conversation import Conversation
from chatrelay.domain.entities.membership import Membership
from chatrelay.domain.entities.message import Message
from chatrelay.domain.entities.user import User
from chatrelay.domain.value_objects.conversation_id import ConversationId
from chatrelay.domain.value_objects.message_id import MessageId
from chatrelay.domain.value_objects.user_id import UserId


class ConversationStore(ABC):
    # ---- users ----
    @abstractmethod
    async def save_user(self, user: User) -> None: ...

    @abstractmethod
    async def get_user(self, user_id: UserId) -> Optional[User]: ...

    # ---- conversations ----
    @abstractmethod
    async def create_conversation(
        self, participant_ids: list[UserId], title: Optional[str] = None
    ) -> Conversation: ...

    @abstractmethod
    async def get_conversation(
        self, conversation_id: ConversationId
    ) -> Optional[Conversation]: ...

    @abstractmethod
    async def list_conversations_for_user(
        self, user_id: UserId
    ) -> list[Conversation]:
        """Conversations the user participates in, most recently updated first."""
        ...

    @abstractmethod
    async def list_conversation_ids_for_user(
        self, user_id: UserId
    ) -> list[ConversationId]: ...

    @abstractmethod
    async def find_membership(
        self, conversation_id: ConversationId, user_id: UserId
    ) -> Optional[Membership]: ...

    @abstractmethod
    async def list_participants(
        self, conversation_id: ConversationId
    ) -> list[UserId]: ...

    @abstractmethod
    async def update_conversation_timestamp(
        self, conversation_id: ConversationId, timestamp: datetime
    ) -> list[UserId]:
        """Set updated_at and return the participant ids."""
        ...

    # ---- messages ----
    @abstractmethod
    async def insert_message(
        self, conversation_id: ConversationId, sender_id: UserId, body: str
    ) -> Message:
        """Persist a message; the store assigns id and timestamp."""
        ...

    @abstractmethod
    async def get_message(
        self, conversation_id: ConversationId, message_id: MessageId
    ) -> Optional[Message]: ...

    @abstractmethod
    async def delete_message(self, message_id: MessageId) -> None:
        """Remove a message. Raises EntityNotFoundError if absent."""
        ...

    @abstractmethod
    async def find_latest_message(
        self, conversation_id: ConversationId
    ) -> Optional[Message]: ...

    @abstractmethod
    async def list_messages(
        self,
        conversation_id: ConversationId,
        cursor: Optional[MessageId] = None,
        limit: int = 20,
    ) -> list[Message]:
        """
        Newest-first page by (created_at, id), strictly older than `cursor`.
        Raises EntityNotFoundError for an unknown cursor.
        """
        ...
