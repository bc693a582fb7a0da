"""
SubmitMessage Command - the single authorized path for creating a message.

Handler:
1. Reject a request without a verified user (UnauthenticatedError)
2. Reject a missing conversation id or a blank body (DomainValidationError)
3. Require membership of (conversation, user) (AccessDeniedError)
4. Replay the remembered message if the client token was already used
5. Persist the trimmed body; the store assigns id and timestamp
6. Bump the conversation's updated_at to the message timestamp
7. Return the message with its sender embedded

No broadcast happens here. Fan-out is a separate step run by the caller
(see chatrelay/application/realtime/delivery.py).

Membership check, insert and timestamp update are three independent store
calls. A membership revoked between the check and the insert can still let
one message through.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from chatrelay.application.common.interfaces import Command, CommandHandler
from chatrelay.config.settings import Config
from chatrelay.domain.entities.message import Message
from chatrelay.domain.exceptions import (
    AccessDeniedError,
    ChatRelayError,
    DomainValidationError,
    UnauthenticatedError,
)
from chatrelay.domain.ports import ConversationStore, IdempotencyStore
from chatrelay.domain.value_objects.conversation_id import ConversationId
from chatrelay.domain.value_objects.message_id import MessageId
from chatrelay.domain.value_objects.user_id import UserId

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SubmitMessageCommand(Command[Message]):
    user_id: Optional[UserId]
    conversation_id: Optional[ConversationId]
    body: Optional[str]
    client_token: Optional[str] = None


class SubmitMessageHandler(CommandHandler[Message]):
    def __init__(
        self,
        store: ConversationStore,
        idempotency_store: IdempotencyStore,
        idempotency_ttl: int = Config.IDEMPOTENCY_TTL,
        max_length: int = Config.MESSAGE_MAX_LENGTH,
    ):
        self._store = store
        self._idempotency_store = idempotency_store
        self._idempotency_ttl = idempotency_ttl
        self._max_length = max_length

    async def execute(self, command: SubmitMessageCommand) -> Message:
        if command.user_id is None:
            raise UnauthenticatedError()
        if command.conversation_id is None:
            raise DomainValidationError("Conversation id is required")
        body = (command.body or "").strip()
        if not body:
            raise DomainValidationError("Message body is required")
        if len(body) > self._max_length:
            raise DomainValidationError(
                f"Message body exceeds {self._max_length} characters"
            )

        membership = await self._store.find_membership(
            command.conversation_id, command.user_id
        )
        if membership is None:
            raise AccessDeniedError("Access denied")

        token_key = self._token_key(command)
        if token_key:
            replayed = await self._replay(token_key, command.conversation_id)
            if replayed is not None:
                logger.info(
                    f"Replayed message {replayed.id.value} for client token "
                    f"in conversation {command.conversation_id.value}"
                )
                # An earlier attempt may have stored the message but failed before
                # bumping the conversation
                await self._bump_to_latest(command.conversation_id, replayed)
                return replayed

        message = await self._store.insert_message(
            command.conversation_id, command.user_id, body
        )
        logger.info(
            f"Message {message.id.value} persisted in conversation "
            f"{command.conversation_id.value} by {command.user_id.value}"
        )

        if token_key:
            await self._remember(token_key, message)

        await self._store.update_conversation_timestamp(
            command.conversation_id, message.created_at
        )
        return message

    def _token_key(self, command: SubmitMessageCommand) -> Optional[str]:
        token = (command.client_token or "").strip()
        if not token:
            return None
        return f"submit:{command.user_id.value}:{token}"

    async def _replay(
        self, token_key: str, conversation_id: ConversationId
    ) -> Optional[Message]:
        try:
            message_id = await self._idempotency_store.get(token_key)
        except ChatRelayError as e:
            logger.warning(f"Idempotency lookup failed, inserting anyway: {e}")
            return None
        if not message_id:
            return None
        # A remembered message may have been deleted since; then insert anew
        return await self._store.get_message(conversation_id, MessageId(message_id))

    async def _bump_to_latest(
        self, conversation_id: ConversationId, replayed: Message
    ) -> None:
        latest = await self._store.find_latest_message(conversation_id)
        timestamp = latest.created_at if latest else replayed.created_at
        await self._store.update_conversation_timestamp(conversation_id, timestamp)

    async def _remember(self, token_key: str, message: Message) -> None:
        try:
            await self._idempotency_store.put(
                token_key, message.id.value, self._idempotency_ttl
            )
        except ChatRelayError as e:
            logger.warning(f"Could not remember client token {token_key}: {e}")
