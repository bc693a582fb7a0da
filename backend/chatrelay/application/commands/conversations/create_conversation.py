"""Create Conversation Command."""

import logging
from dataclasses import dataclass, field
from typing import Optional

from chatrelay.application.common.arguments import user_id_arg
from chatrelay.application.common.interfaces import Command, CommandHandler
from chatrelay.domain.entities.conversation import Conversation
from chatrelay.domain.exceptions import (
    DomainValidationError,
    EntityNotFoundError,
    UnauthenticatedError,
)
from chatrelay.domain.ports import ConversationStore
from chatrelay.domain.value_objects.user_id import UserId

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CreateConversationCommand(Command[Conversation]):
    user_id: Optional[UserId]
    participant_ids: list[str] = field(default_factory=list)
    title: Optional[str] = None
    initial_message: Optional[str] = None


class CreateConversationHandler(CommandHandler[Conversation]):
    def __init__(self, store: ConversationStore):
        self._store = store

    async def execute(self, command: CreateConversationCommand) -> Conversation:
        if command.user_id is None:
            raise UnauthenticatedError()
        if not command.participant_ids:
            raise DomainValidationError("At least one participant is required")

        # Creator is always a participant; order kept, duplicates dropped
        requested = [user_id_arg(raw) for raw in command.participant_ids]
        participant_ids = list(
            dict.fromkeys([pid for pid in requested if pid] + [command.user_id])
        )
        for participant_id in participant_ids:
            if await self._store.get_user(participant_id) is None:
                raise DomainValidationError(
                    f"Unknown participant: {participant_id.value}"
                )

        title = (command.title or "").strip() or None
        conversation = await self._store.create_conversation(participant_ids, title)
        logger.info(
            f"Conversation {conversation.id.value} created by {command.user_id.value} "
            f"with {len(participant_ids)} participants"
        )

        initial = (command.initial_message or "").strip()
        if initial:
            message = await self._store.insert_message(
                conversation.id, command.user_id, initial
            )
            await self._store.update_conversation_timestamp(
                conversation.id, message.created_at
            )

        created = await self._store.get_conversation(conversation.id)
        if created is None:
            raise EntityNotFoundError(f"Conversation {conversation.id.value} not found")
        return created
