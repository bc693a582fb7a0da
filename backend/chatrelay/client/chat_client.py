"""
Chat Client - a python-socketio AsyncClient that follows the timeline rules.

    client = ChatClient("http://localhost:5001", token, user_id)
    await client.connect()
    timeline = await client.open_conversation(conversation_id)
    result = await client.send(conversation_id, "hello")
    if result.outcome is SendOutcome.INDETERMINATE:
        result = await client.retry(result)   # same client token, no duplicate

Send outcomes:
- SENT           ack {"ok": true}; provisional replaced by the durable message
- FAILED         ack {"ok": false} or not connected; provisional removed and
                 the body returned in `restored_body`
- INDETERMINATE  no ack before the timeout; provisional kept, the message
                 may or may not be stored
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Awaitable, Callable, Optional
from uuid import uuid4

import socketio
from socketio import exceptions as socket_errors

from chatrelay.client.timeline import ConversationTimeline, TimelineMessage

logger = logging.getLogger(__name__)

ListChangedCallback = Callable[[str], Awaitable[None]]


class SendOutcome(str, Enum):
    SENT = "sent"
    FAILED = "failed"
    INDETERMINATE = "indeterminate"


@dataclass
class SendResult:
    outcome: SendOutcome
    conversation_id: str
    temp_id: str
    client_token: str
    body: str
    message: Optional[TimelineMessage] = None
    error: Optional[str] = None
    code: Optional[str] = None
    restored_body: Optional[str] = None


class ChatClient:
    def __init__(
        self,
        url: str,
        token: str,
        user_id: str,
        user_name: Optional[str] = None,
        ack_timeout: float = 10.0,
        sio: Optional[socketio.AsyncClient] = None,
        on_list_changed: Optional[ListChangedCallback] = None,
    ):
        self.url = url
        self.user_id = user_id
        self.user_name = user_name
        self.ack_timeout = ack_timeout
        self.timelines: dict[str, ConversationTimeline] = {}
        self._token = token
        self._sio = sio or socketio.AsyncClient(reconnection=True)
        self._on_list_changed = on_list_changed

        self._sio.on("message-created", self._handle_message_created)
        self._sio.on("message-deleted", self._handle_message_deleted)
        self._sio.on("conversation-list-changed", self._handle_list_changed)

    # ==================== CONNECTION ====================

    async def connect(self) -> None:
        await self._sio.connect(self.url, auth={"token": self._token})
        logger.info(f"Connected to {self.url} as {self.user_id}")

    async def disconnect(self) -> None:
        await self._sio.disconnect()

    async def open_conversation(self, conversation_id: str) -> ConversationTimeline:
        timeline = self.timeline(conversation_id)
        ack = await self._sio.call(
            "join_conversation",
            {"conversationId": conversation_id},
            timeout=self.ack_timeout,
        )
        if not (ack or {}).get("ok"):
            logger.warning(f"Join of conversation {conversation_id} was not accepted")
        return timeline

    async def close_conversation(self, conversation_id: str) -> None:
        await self._sio.call(
            "leave_conversation",
            {"conversationId": conversation_id},
            timeout=self.ack_timeout,
        )
        self.timelines.pop(conversation_id, None)

    def timeline(self, conversation_id: str) -> ConversationTimeline:
        if conversation_id not in self.timelines:
            self.timelines[conversation_id] = ConversationTimeline(conversation_id)
        return self.timelines[conversation_id]

    # ==================== MESSAGES ====================

    async def send(
        self,
        conversation_id: str,
        body: str,
        client_token: Optional[str] = None,
        temp_id: Optional[str] = None,
    ) -> SendResult:
        timeline = self.timeline(conversation_id)
        client_token = client_token or str(uuid4())
        if temp_id is None or timeline.find(temp_id) is None:
            temp_id = timeline.add_provisional(
                body, self.user_id, self.user_name, temp_id=temp_id
            ).id

        result = SendResult(
            outcome=SendOutcome.INDETERMINATE,
            conversation_id=conversation_id,
            temp_id=temp_id,
            client_token=client_token,
            body=body,
        )
        try:
            ack = await self._sio.call(
                "send_message",
                {"conversationId": conversation_id, "body": body, "clientToken": client_token},
                timeout=self.ack_timeout,
            )
        except socket_errors.TimeoutError:
            logger.warning(f"No ack for message {temp_id} within {self.ack_timeout}s")
            return result
        except socket_errors.BadNamespaceError:
            ack = {"ok": False, "error": "Not connected", "code": "UNAVAILABLE"}

        ack = ack or {}
        if ack.get("ok"):
            durable = TimelineMessage.from_wire(ack["message"])
            timeline.confirm_provisional(temp_id, durable)
            result.outcome = SendOutcome.SENT
            result.message = durable
            return result

        result.outcome = SendOutcome.FAILED
        result.error = ack.get("error")
        result.code = ack.get("code")
        result.restored_body = timeline.fail_provisional(temp_id)
        return result

    async def retry(self, previous: SendResult) -> SendResult:
        """Resend an indeterminate submission with the same client token."""
        return await self.send(
            previous.conversation_id,
            previous.body,
            client_token=previous.client_token,
            temp_id=previous.temp_id,
        )

    async def delete(self, conversation_id: str, message_id: str) -> dict[str, Any]:
        ack = await self._sio.call(
            "delete_message",
            {"conversationId": conversation_id, "messageId": message_id},
            timeout=self.ack_timeout,
        )
        ack = ack or {}
        if ack.get("ok"):
            self.timeline(conversation_id).apply_deleted(
                {"conversationId": conversation_id, "messageId": message_id}
            )
        return ack

    # ==================== SERVER EVENTS ====================

    async def _handle_message_created(self, data: dict[str, Any]) -> None:
        timeline = self.timelines.get(data.get("conversationId"))
        if timeline is not None:
            timeline.apply_created(data["message"])

    async def _handle_message_deleted(self, data: dict[str, Any]) -> None:
        timeline = self.timelines.get(data.get("conversationId"))
        if timeline is not None:
            timeline.apply_deleted(data)

    async def _handle_list_changed(self, data: dict[str, Any]) -> None:
        if self._on_list_changed is not None:
            await self._on_list_changed(data.get("conversationId"))
