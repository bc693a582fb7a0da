"""
Prisma Conversation Store Implementation.

Guidelines:
- Implements ConversationStore port from domain layer
- Uses Prisma client for database operations (schema: backend/prisma/schema.prisma)
- Maps between Prisma models and domain entities
- Driver failures are re-raised as ServiceUnavailableError

Mapping:
- Prisma models: User, Conversation, ConversationParticipant, Message
- Domain entities: User, Conversation, Membership, Message with value objects
- Convert str -> UserId / ConversationId / MessageId when reading
- Convert .value -> str when writing

Ordering:
- Messages are ordered by (created_at, id); the same pair is used for the
  "strictly older than cursor" filter so pages never overlap.
"""

import logging
from contextlib import asynccontextmanager
from datetime import datetime
from typing import Optional

from prisma import Prisma
from prisma.errors import PrismaError
from prisma.models import Conversation as PrismaConversation
from prisma.models import Message as PrismaMessage
from prisma.models import User as PrismaUser

from chatrelay.domain.entities.conversation import Conversation
from chatrelay.domain.entities.membership import Membership
from chatrelay.domain.entities.message import Message
from chatrelay.domain.entities.user import User
from chatrelay.domain.exceptions import EntityNotFoundError, ServiceUnavailableError
from chatrelay.domain.ports import ConversationStore
from chatrelay.domain.value_objects.conversation_id import ConversationId
from chatrelay.domain.value_objects.message_id import MessageId
from chatrelay.domain.value_objects.user_email import UserEmail
from chatrelay.domain.value_objects.user_id import UserId
from chatrelay.observability.metrics import MetricsErrorType, increment_error

logger = logging.getLogger(__name__)

_MESSAGE_ORDER_DESC = [{"created_at": "desc"}, {"id": "desc"}]
_CONVERSATION_INCLUDE = {
    "participants": {"include": {"user": True}},
    "messages": {
        "order_by": _MESSAGE_ORDER_DESC,
        "take": 1,
        "include": {"sender": True},
    },
}


@asynccontextmanager
async def _driver_errors(operation: str):
    try:
        yield
    except PrismaError as e:
        logger.error(f"[Prisma] {operation} failed: {e}")
        increment_error(MetricsErrorType.STORE_FAILED)
        raise ServiceUnavailableError(f"Store unavailable during {operation}") from e


class PrismaConversationStore(ConversationStore):
    _prisma: Prisma

    def __init__(self, prisma: Prisma):
        self._prisma = prisma

    # ==================== MAPPING ====================

    def _user_to_entity(self, record: PrismaUser) -> User:
        return User(id=UserId(record.id), email=UserEmail(record.email), name=record.name)

    def _message_to_entity(self, record: PrismaMessage) -> Message:
        return Message(
            id=MessageId(record.id),
            conversation_id=ConversationId(record.conversation_id),
            sender=self._user_to_entity(record.sender),
            body=record.body,
            created_at=record.created_at,
        )

    def _conversation_to_entity(self, record: PrismaConversation) -> Conversation:
        participants = [
            self._user_to_entity(p.user) for p in (record.participants or []) if p.user
        ]
        last_message = (
            self._message_to_entity(record.messages[0]) if record.messages else None
        )
        return Conversation(
            id=ConversationId(record.id),
            title=record.title,
            created_at=record.created_at,
            updated_at=record.updated_at,
            participants=participants,
            last_message=last_message,
        )

    # ==================== USERS ====================

    async def save_user(self, user: User) -> None:
        async with _driver_errors("save_user"):
            await self._prisma.user.upsert(
                where={"id": user.id.value},
                data={
                    "create": {
                        "id": user.id.value,
                        "email": user.email.value,
                        "name": user.name,
                    },
                    "update": {"email": user.email.value, "name": user.name},
                },
            )

    async def get_user(self, user_id: UserId) -> Optional[User]:
        async with _driver_errors("get_user"):
            record = await self._prisma.user.find_unique(where={"id": user_id.value})
        return self._user_to_entity(record) if record else None

    # ==================== CONVERSATIONS ====================

    async def create_conversation(
        self, participant_ids: list[UserId], title: Optional[str] = None
    ) -> Conversation:
        async with _driver_errors("create_conversation"):
            record = await self._prisma.conversation.create(
                data={
                    "title": title,
                    "participants": {
                        "create": [
                            {"user_id": uid.value} for uid in dict.fromkeys(participant_ids)
                        ]
                    },
                },
                include=_CONVERSATION_INCLUDE,
            )
        return self._conversation_to_entity(record)

    async def get_conversation(
        self, conversation_id: ConversationId
    ) -> Optional[Conversation]:
        async with _driver_errors("get_conversation"):
            record = await self._prisma.conversation.find_unique(
                where={"id": conversation_id.value},
                include=_CONVERSATION_INCLUDE,
            )
        return self._conversation_to_entity(record) if record else None

    async def list_conversations_for_user(self, user_id: UserId) -> list[Conversation]:
        async with _driver_errors("list_conversations_for_user"):
            records = await self._prisma.conversation.find_many(
                where={"participants": {"some": {"user_id": user_id.value}}},
                order={"updated_at": "desc"},
                include=_CONVERSATION_INCLUDE,
            )
        return [self._conversation_to_entity(record) for record in records]

    async def list_conversation_ids_for_user(
        self, user_id: UserId
    ) -> list[ConversationId]:
        async with _driver_errors("list_conversation_ids_for_user"):
            rows = await self._prisma.conversationparticipant.find_many(
                where={"user_id": user_id.value}
            )
        return [ConversationId(row.conversation_id) for row in rows]

    async def find_membership(
        self, conversation_id: ConversationId, user_id: UserId
    ) -> Optional[Membership]:
        async with _driver_errors("find_membership"):
            row = await self._prisma.conversationparticipant.find_unique(
                where={
                    "conversation_id_user_id": {
                        "conversation_id": conversation_id.value,
                        "user_id": user_id.value,
                    }
                }
            )
        if row is None:
            return None
        return Membership(
            conversation_id=ConversationId(row.conversation_id),
            user_id=UserId(row.user_id),
            joined_at=row.joined_at,
        )

    async def list_participants(self, conversation_id: ConversationId) -> list[UserId]:
        async with _driver_errors("list_participants"):
            rows = await self._prisma.conversationparticipant.find_many(
                where={"conversation_id": conversation_id.value}
            )
        return [UserId(row.user_id) for row in rows]

    async def update_conversation_timestamp(
        self, conversation_id: ConversationId, timestamp: datetime
    ) -> list[UserId]:
        async with _driver_errors("update_conversation_timestamp"):
            record = await self._prisma.conversation.update(
                where={"id": conversation_id.value},
                data={"updated_at": timestamp},
                include={"participants": True},
            )
        if record is None:
            raise EntityNotFoundError(f"Conversation {conversation_id.value} not found")
        return [UserId(p.user_id) for p in (record.participants or [])]

    # ==================== MESSAGES ====================

    async def insert_message(
        self, conversation_id: ConversationId, sender_id: UserId, body: str
    ) -> Message:
        async with _driver_errors("insert_message"):
            record = await self._prisma.message.create(
                data={
                    "conversation_id": conversation_id.value,
                    "sender_id": sender_id.value,
                    "body": body,
                },
                include={"sender": True},
            )
        return self._message_to_entity(record)

    async def get_message(
        self, conversation_id: ConversationId, message_id: MessageId
    ) -> Optional[Message]:
        async with _driver_errors("get_message"):
            record = await self._prisma.message.find_first(
                where={"id": message_id.value, "conversation_id": conversation_id.value},
                include={"sender": True},
            )
        return self._message_to_entity(record) if record else None

    async def delete_message(self, message_id: MessageId) -> None:
        async with _driver_errors("delete_message"):
            deleted = await self._prisma.message.delete(where={"id": message_id.value})
        if deleted is None:
            raise EntityNotFoundError(f"Message {message_id.value} not found")

    async def find_latest_message(
        self, conversation_id: ConversationId
    ) -> Optional[Message]:
        async with _driver_errors("find_latest_message"):
            record = await self._prisma.message.find_first(
                where={"conversation_id": conversation_id.value},
                order=_MESSAGE_ORDER_DESC,
                include={"sender": True},
            )
        return self._message_to_entity(record) if record else None

    async def list_messages(
        self,
        conversation_id: ConversationId,
        cursor: Optional[MessageId] = None,
        limit: int = 20,
    ) -> list[Message]:
        where: dict = {"conversation_id": conversation_id.value}
        async with _driver_errors("list_messages"):
            if cursor is not None:
                anchor = await self._prisma.message.find_first(
                    where={"id": cursor.value, "conversation_id": conversation_id.value}
                )
                if anchor is None:
                    raise EntityNotFoundError(f"Cursor message {cursor.value} not found")
                where["OR"] = [
                    {"created_at": {"lt": anchor.created_at}},
                    {"created_at": anchor.created_at, "id": {"lt": anchor.id}},
                ]
            records = await self._prisma.message.find_many(
                where=where,
                order=_MESSAGE_ORDER_DESC,
                take=limit,
                include={"sender": True},
            )
        return [self._message_to_entity(record) for record in records]
