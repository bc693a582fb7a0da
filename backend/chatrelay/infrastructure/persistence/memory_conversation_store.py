"""
In-memory Conversation Store.

Process-local implementation of ConversationStore used by tests and by
single-node development (STORE_BACKEND=memory). Every public coroutine runs
without awaiting anything in between its reads and writes, so each call is
atomic with respect to other tasks on the same event loop.
"""

from datetime import datetime, timedelta, timezone
from typing import Optional
from uuid import uuid4

from chatrelay.domain.entities.conversation import Conversation
from chatrelay.domain.entities.membership import Membership
from chatrelay.domain.entities.message import Message, message_order_key
from chatrelay.domain.entities.user import User
from chatrelay.domain.exceptions import EntityNotFoundError
from chatrelay.domain.ports import ConversationStore
from chatrelay.domain.value_objects.conversation_id import ConversationId
from chatrelay.domain.value_objects.message_id import MessageId
from chatrelay.domain.value_objects.user_id import UserId


class _ConversationRecord:
    def __init__(self, conversation_id: ConversationId, title: Optional[str], now: datetime):
        self.id = conversation_id
        self.title = title
        self.created_at = now
        self.updated_at = now
        self.members: dict[UserId, Membership] = {}


class InMemoryConversationStore(ConversationStore):
    def __init__(self):
        self._users: dict[UserId, User] = {}
        self._conversations: dict[ConversationId, _ConversationRecord] = {}
        self._messages: dict[MessageId, Message] = {}
        self._last_created_at: Optional[datetime] = None

    # ==================== USERS ====================

    async def save_user(self, user: User) -> None:
        self.add_user(user)

    async def get_user(self, user_id: UserId) -> Optional[User]:
        return self._users.get(user_id)

    # ==================== CONVERSATIONS ====================

    async def create_conversation(
        self, participant_ids: list[UserId], title: Optional[str] = None
    ) -> Conversation:
        return self.add_conversation(participant_ids, title)

    async def get_conversation(
        self, conversation_id: ConversationId
    ) -> Optional[Conversation]:
        record = self._conversations.get(conversation_id)
        return self._to_entity(record) if record else None

    async def list_conversations_for_user(self, user_id: UserId) -> list[Conversation]:
        records = [r for r in self._conversations.values() if user_id in r.members]
        records.sort(key=lambda r: r.updated_at, reverse=True)
        return [self._to_entity(r) for r in records]

    async def list_conversation_ids_for_user(
        self, user_id: UserId
    ) -> list[ConversationId]:
        return [cid for cid, r in self._conversations.items() if user_id in r.members]

    async def find_membership(
        self, conversation_id: ConversationId, user_id: UserId
    ) -> Optional[Membership]:
        record = self._conversations.get(conversation_id)
        if record is None:
            return None
        return record.members.get(user_id)

    async def list_participants(self, conversation_id: ConversationId) -> list[UserId]:
        record = self._conversations.get(conversation_id)
        return list(record.members) if record else []

    async def update_conversation_timestamp(
        self, conversation_id: ConversationId, timestamp: datetime
    ) -> list[UserId]:
        record = self._conversations.get(conversation_id)
        if record is None:
            raise EntityNotFoundError(f"Conversation {conversation_id.value} not found")
        record.updated_at = timestamp
        return list(record.members)

    # ---- synchronous seeding, used by tests and fixtures ----

    def add_user(self, user: User) -> None:
        self._users[user.id] = user

    def add_conversation(
        self, participant_ids: list[UserId], title: Optional[str] = None
    ) -> Conversation:
        now = datetime.now(timezone.utc)
        record = _ConversationRecord(ConversationId(str(uuid4())), title, now)
        for user_id in dict.fromkeys(participant_ids):
            if user_id not in self._users:
                raise EntityNotFoundError(f"User {user_id.value} not found")
            record.members[user_id] = Membership(record.id, user_id, now)
        self._conversations[record.id] = record
        return self._to_entity(record)

    def add_message(
        self,
        conversation_id: ConversationId,
        sender_id: UserId,
        body: str,
        created_at: Optional[datetime] = None,
    ) -> Message:
        if conversation_id not in self._conversations:
            raise EntityNotFoundError(f"Conversation {conversation_id.value} not found")
        sender = self._users.get(sender_id)
        if sender is None:
            raise EntityNotFoundError(f"User {sender_id.value} not found")

        message = Message.create(
            conversation_id, sender, body, created_at=created_at or self._next_timestamp()
        )
        self._messages[message.id] = message
        return message

    def add_member(self, conversation_id: ConversationId, user_id: UserId) -> None:
        record = self._conversations[conversation_id]
        record.members[user_id] = Membership(
            conversation_id, user_id, datetime.now(timezone.utc)
        )

    def remove_member(self, conversation_id: ConversationId, user_id: UserId) -> None:
        self._conversations[conversation_id].members.pop(user_id, None)

    # ==================== MESSAGES ====================

    async def insert_message(
        self, conversation_id: ConversationId, sender_id: UserId, body: str
    ) -> Message:
        return self.add_message(conversation_id, sender_id, body)

    async def get_message(
        self, conversation_id: ConversationId, message_id: MessageId
    ) -> Optional[Message]:
        message = self._messages.get(message_id)
        if message is None or message.conversation_id != conversation_id:
            return None
        return message

    async def delete_message(self, message_id: MessageId) -> None:
        if self._messages.pop(message_id, None) is None:
            raise EntityNotFoundError(f"Message {message_id.value} not found")

    async def find_latest_message(
        self, conversation_id: ConversationId
    ) -> Optional[Message]:
        return max(self._in_conversation(conversation_id), key=message_order_key, default=None)

    async def list_messages(
        self,
        conversation_id: ConversationId,
        cursor: Optional[MessageId] = None,
        limit: int = 20,
    ) -> list[Message]:
        messages = sorted(
            self._in_conversation(conversation_id), key=message_order_key, reverse=True
        )
        if cursor is not None:
            anchor = self._messages.get(cursor)
            if anchor is None or anchor.conversation_id != conversation_id:
                raise EntityNotFoundError(f"Cursor message {cursor.value} not found")
            messages = [m for m in messages if m.order_key < anchor.order_key]
        return messages[:limit]

    # ==================== INTERNALS ====================

    def _in_conversation(self, conversation_id: ConversationId) -> list[Message]:
        return [m for m in self._messages.values() if m.conversation_id == conversation_id]

    def _next_timestamp(self) -> datetime:
        # Strictly increasing so insertion order and (created_at, id) order agree
        now = datetime.now(timezone.utc)
        if self._last_created_at is not None and now <= self._last_created_at:
            now = self._last_created_at + timedelta(microseconds=1)
        self._last_created_at = now
        return now

    def _to_entity(self, record: _ConversationRecord) -> Conversation:
        return Conversation(
            id=record.id,
            title=record.title,
            created_at=record.created_at,
            updated_at=record.updated_at,
            participants=[self._users[uid] for uid in record.members if uid in self._users],
            last_message=max(
                self._in_conversation(record.id), key=message_order_key, default=None
            ),
        )
