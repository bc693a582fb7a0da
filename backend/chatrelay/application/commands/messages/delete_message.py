"""
DeleteMessage Command - remove one of your own messages.

Handler:
1. Require a verified user, a conversation id and a message id
2. Require membership (AccessDeniedError "Access denied")
3. Find the message inside that conversation (EntityNotFoundError)
4. Require sender == requester (AccessDeniedError "You can only delete your own messages")
5. Delete, then recompute the conversation's last message and set
   updated_at to its timestamp, or to now when no messages remain
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional

from chatrelay.application.common.interfaces import Command, CommandHandler
from chatrelay.domain.entities.message import Message
from chatrelay.domain.exceptions import (
    AccessDeniedError,
    DomainValidationError,
    EntityNotFoundError,
    UnauthenticatedError,
)
from chatrelay.domain.ports import ConversationStore
from chatrelay.domain.value_objects.conversation_id import ConversationId
from chatrelay.domain.value_objects.message_id import MessageId
from chatrelay.domain.value_objects.user_id import UserId

logger = logging.getLogger(__name__)


@dataclass
class MessageDeletion:
    """Outcome of a delete, carried into the message-deleted broadcast."""

    conversation_id: ConversationId
    message_id: MessageId
    new_last_message: Optional[Message]
    new_updated_at: datetime


@dataclass(frozen=True)
class DeleteMessageCommand(Command[MessageDeletion]):
    user_id: Optional[UserId]
    conversation_id: Optional[ConversationId]
    message_id: Optional[MessageId]


class DeleteMessageHandler(CommandHandler[MessageDeletion]):
    def __init__(self, store: ConversationStore):
        self._store = store

    async def execute(self, command: DeleteMessageCommand) -> MessageDeletion:
        if command.user_id is None:
            raise UnauthenticatedError()
        if command.conversation_id is None or command.message_id is None:
            raise DomainValidationError("Conversation id and message id are required")

        membership = await self._store.find_membership(
            command.conversation_id, command.user_id
        )
        if membership is None:
            raise AccessDeniedError("Access denied")

        message = await self._store.get_message(
            command.conversation_id, command.message_id
        )
        if message is None:
            raise EntityNotFoundError("Message not found")
        if message.sender.id != command.user_id:
            raise AccessDeniedError("You can only delete your own messages")

        await self._store.delete_message(command.message_id)

        last_message = await self._store.find_latest_message(command.conversation_id)
        updated_at = (
            last_message.created_at if last_message else datetime.now(timezone.utc)
        )
        await self._store.update_conversation_timestamp(
            command.conversation_id, updated_at
        )
        logger.info(
            f"Message {command.message_id.value} deleted from conversation "
            f"{command.conversation_id.value} by {command.user_id.value}"
        )

        return MessageDeletion(
            conversation_id=command.conversation_id,
            message_id=command.message_id,
            new_last_message=last_message,
            new_updated_at=updated_at,
        )
