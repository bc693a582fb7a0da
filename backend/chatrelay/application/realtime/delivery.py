"""
Message Delivery - persist first, then fan out.

The one sequencing point shared by the HTTP routes and the socket
namespace. The command handler returns only after the write is durable;
the broadcaster runs only after that, so no emitted event ever refers to
an uncommitted message.
"""

from chatrelay.application.commands.conversations.create_conversation import (
    CreateConversationCommand,
    CreateConversationHandler,
)
from chatrelay.application.commands.messages.delete_message import (
    DeleteMessageCommand,
    DeleteMessageHandler,
    MessageDeletion,
)
from chatrelay.application.commands.messages.submit_message import (
    SubmitMessageCommand,
    SubmitMessageHandler,
)
from chatrelay.application.realtime.broadcaster import FanoutBroadcaster
from chatrelay.domain.entities.conversation import Conversation
from chatrelay.domain.entities.message import Message
from chatrelay.domain.exceptions import ChatRelayError
from chatrelay.observability.metrics import record_message_operation


class MessageDelivery:
    def __init__(
        self,
        submit_handler: SubmitMessageHandler,
        delete_handler: DeleteMessageHandler,
        create_conversation_handler: CreateConversationHandler,
        broadcaster: FanoutBroadcaster,
    ):
        self._submit = submit_handler
        self._delete = delete_handler
        self._create_conversation = create_conversation_handler
        self._broadcaster = broadcaster

    async def send(self, command: SubmitMessageCommand) -> Message:
        try:
            message = await self._submit.execute(command)
        except ChatRelayError as e:
            record_message_operation("submit", e.code)
            raise
        record_message_operation("submit", "ok")

        await self._broadcaster.message_created(message)
        return message

    async def remove(self, command: DeleteMessageCommand) -> MessageDeletion:
        try:
            deletion = await self._delete.execute(command)
        except ChatRelayError as e:
            record_message_operation("delete", e.code)
            raise
        record_message_operation("delete", "ok")

        await self._broadcaster.message_deleted(deletion)
        return deletion

    async def start_conversation(
        self, command: CreateConversationCommand
    ) -> Conversation:
        conversation = await self._create_conversation.execute(command)
        if conversation.last_message is not None:
            await self._broadcaster.message_created(conversation.last_message)
        else:
            await self._broadcaster.conversation_created(conversation)
        return conversation
