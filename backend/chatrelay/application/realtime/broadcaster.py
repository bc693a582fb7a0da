"""
Fan-out Broadcaster - turns a committed change into room emissions.

For a created or deleted message:
    1. emit once to conversation:<id>             (viewers of the thread)
    2. for every participant, resolved AFTER the write:
         emit the same event to user:<pid>       (other tabs, list views)
         emit conversation-list-changed          (re-sort the sidebar)

A connection can sit in both the conversation room and its user room, so it
may see the same message twice. Clients de-duplicate by message id.

Nothing here raises to the caller: the write already succeeded, so a failed
emission is logged and counted and the remaining emissions still run.
"""

import logging
from typing import Any, Iterable

from chatrelay.application.commands.messages.delete_message import MessageDeletion
from chatrelay.application.dto.chat import MessageDTO
from chatrelay.application.dto.events import (
    ConversationListChangedEvent,
    MessageCreatedEvent,
    MessageDeletedEvent,
)
from chatrelay.application.realtime.events import ServerEvents
from chatrelay.domain.entities.conversation import Conversation
from chatrelay.domain.entities.message import Message
from chatrelay.domain.exceptions import ChatRelayError
from chatrelay.domain.ports import ConversationStore, RealtimeGateway
from chatrelay.domain.value_objects.conversation_id import ConversationId
from chatrelay.domain.value_objects.room import Room
from chatrelay.domain.value_objects.user_id import UserId
from chatrelay.observability.metrics import (
    MetricsErrorType,
    increment_error,
    record_fanout_emission,
)

logger = logging.getLogger(__name__)


class FanoutBroadcaster:
    def __init__(self, store: ConversationStore, gateway: RealtimeGateway):
        self._store = store
        self._gateway = gateway

    async def message_created(self, message: Message) -> None:
        payload = MessageCreatedEvent(
            message=MessageDTO.from_entity(message),
            conversation_id=message.conversation_id.value,
        ).to_wire()
        await self._fan_out(
            message.conversation_id, ServerEvents.MESSAGE_CREATED, payload
        )

    async def message_deleted(self, deletion: MessageDeletion) -> None:
        last = deletion.new_last_message
        payload = MessageDeletedEvent(
            conversation_id=deletion.conversation_id.value,
            message_id=deletion.message_id.value,
            new_last_message=MessageDTO.from_entity(last) if last else None,
            new_updated_at=deletion.new_updated_at,
        ).to_wire()
        await self._fan_out(
            deletion.conversation_id, ServerEvents.MESSAGE_DELETED, payload
        )

    async def conversation_created(self, conversation: Conversation) -> None:
        """Tell every participant's sessions to refresh their conversation list."""
        signal = ConversationListChangedEvent(
            conversation_id=conversation.id.value
        ).to_wire()
        for user_id in _unique(p.id for p in conversation.participants):
            await self._emit(
                Room.for_user(user_id), ServerEvents.CONVERSATION_LIST_CHANGED, signal
            )

    async def _fan_out(
        self, conversation_id: ConversationId, event: str, payload: dict[str, Any]
    ) -> None:
        await self._emit(Room.for_conversation(conversation_id), event, payload)

        participants = await self._participants(conversation_id)
        signal = ConversationListChangedEvent(
            conversation_id=conversation_id.value
        ).to_wire()
        for user_id in participants:
            user_room = Room.for_user(user_id)
            await self._emit(user_room, event, payload)
            await self._emit(
                user_room, ServerEvents.CONVERSATION_LIST_CHANGED, signal
            )

        logger.debug(
            f"Fan-out of {event} for {conversation_id.value} reached "
            f"{len(participants)} participant rooms"
        )

    async def _participants(self, conversation_id: ConversationId) -> list[UserId]:
        try:
            return _unique(await self._store.list_participants(conversation_id))
        except ChatRelayError as e:
            logger.error(
                f"Could not resolve participants of {conversation_id.value}, "
                f"user rooms skipped: {e}"
            )
            increment_error(MetricsErrorType.STORE_FAILED)
            return []

    async def _emit(self, room: Room, event: str, payload: dict[str, Any]) -> None:
        try:
            await self._gateway.emit(room, event, payload)
        except Exception as e:
            logger.error(f"Emit of {event} to {room} failed: {e}", exc_info=True)
            increment_error(MetricsErrorType.FANOUT_FAILED)
            return
        record_fanout_emission(event)


def _unique(user_ids: Iterable[UserId]) -> list[UserId]:
    return list(dict.fromkeys(user_ids))
