"""
Socket.IO Chat Namespace - the live transport.

Client → server events (each answered through the Socket.IO ack callback):
    join_conversation   "<conversationId>" or {"conversationId"}   → {"ok": bool}
    leave_conversation  "<conversationId>" or {"conversationId"}   → {"ok": bool}
    send_message        {"conversationId", "body", "clientToken"?} → {"ok": true, "message"}
    delete_message      {"conversationId", "messageId"}            → {"ok": true, ...}

Failures are acknowledged as {"ok": false, "error": <text>, "code": <kind>}.

Server → client events are emitted by FanoutBroadcaster through the gateway:
    message-created, message-deleted, conversation-list-changed

The handshake takes the JWT from the `auth` payload ({"token": ...}).
A connection without a token is accepted as anonymous: it joins no rooms
and every write is refused with UNAUTHENTICATED. A bad token refuses the
connection outright.

Events of one connection are processed one at a time, in arrival order.
"""

import logging
from typing import Any, Optional

import socketio
from socketio import exceptions as socket_errors
from dishka import AsyncContainer

from chatrelay.application.commands.messages import (
    DeleteMessageCommand,
    SubmitMessageCommand,
)
from chatrelay.application.common.arguments import conversation_id_arg, message_id_arg
from chatrelay.application.dto.chat import MessageDTO
from chatrelay.application.realtime.connection_registry import ConnectionRegistry
from chatrelay.application.realtime.delivery import MessageDelivery
from chatrelay.config.logging_config import correlation_id_var
from chatrelay.domain.exceptions import (
    ChatRelayError,
    DomainValidationError,
    ServiceUnavailableError,
    UnauthenticatedError,
)
from chatrelay.observability.metrics import (
    MetricsErrorType,
    connection_closed,
    connection_opened,
    increment_error,
)
from chatrelay.presentation.dependencies.auth import IdentityVerifier

logger = logging.getLogger(__name__)


def error_ack(error: ChatRelayError) -> dict[str, Any]:
    return {"ok": False, "error": error.message, "code": error.code}


def _conversation_ref(data: Any) -> Any:
    if isinstance(data, dict):
        return data.get("conversationId")
    return data


class ChatNamespace(socketio.AsyncNamespace):
    def __init__(self, container: AsyncContainer, namespace: str = "/"):
        super().__init__(namespace)
        self._container = container

    async def _registry(self) -> ConnectionRegistry:
        return await self._container.get(ConnectionRegistry)

    # ==================== LIFECYCLE ====================

    async def on_connect(self, sid: str, environ: dict, auth: Optional[dict] = None):
        correlation_id_var.set(sid)
        token = auth.get("token") if isinstance(auth, dict) else None

        user_id = None
        if token:
            verifier = await self._container.get(IdentityVerifier)
            try:
                user = await verifier.authenticate(token)
            except ChatRelayError as e:
                logger.info(f"Connection {sid} refused: {e.message}")
                raise socket_errors.ConnectionRefusedError(e.message, {"code": e.code}) from e
            user_id = user.id

        registry = await self._registry()
        await registry.register(sid, user_id)
        connection_opened()

    async def on_disconnect(self, sid: str, reason: Optional[str] = None):
        correlation_id_var.set(sid)
        registry = await self._registry()
        if registry.is_registered(sid):
            await registry.unregister(sid)
            connection_closed()
        logger.debug(f"Connection {sid} closed ({reason or 'no reason'})")

    # ==================== ROOMS ====================

    async def on_join_conversation(self, sid: str, data: Any = None):
        correlation_id_var.set(sid)
        registry = await self._registry()
        async with registry.lock_for(sid):
            joined = await registry.join_room(sid, _conversation_ref(data))
        return {"ok": joined}

    async def on_leave_conversation(self, sid: str, data: Any = None):
        correlation_id_var.set(sid)
        registry = await self._registry()
        async with registry.lock_for(sid):
            left = await registry.leave_room(sid, _conversation_ref(data))
        return {"ok": left}

    # ==================== MESSAGES ====================

    async def on_send_message(self, sid: str, data: Any = None):
        correlation_id_var.set(sid)
        registry = await self._registry()
        async with registry.lock_for(sid):
            try:
                if registry.user_of(sid) is None:
                    raise UnauthenticatedError()
                payload = self._require_payload(data)
                command = SubmitMessageCommand(
                    user_id=registry.user_of(sid),
                    conversation_id=conversation_id_arg(payload.get("conversationId")),
                    body=payload.get("body") if isinstance(payload.get("body"), str) else None,
                    client_token=payload.get("clientToken"),
                )
                async with self._container() as request_container:
                    delivery = await request_container.get(MessageDelivery)
                    message = await delivery.send(command)
            except ChatRelayError as e:
                return error_ack(e)
            except Exception as e:
                return self._internal_error("send_message", e)
        return {"ok": True, "message": MessageDTO.from_entity(message).to_wire()}

    async def on_delete_message(self, sid: str, data: Any = None):
        correlation_id_var.set(sid)
        registry = await self._registry()
        async with registry.lock_for(sid):
            try:
                if registry.user_of(sid) is None:
                    raise UnauthenticatedError()
                payload = self._require_payload(data)
                command = DeleteMessageCommand(
                    user_id=registry.user_of(sid),
                    conversation_id=conversation_id_arg(payload.get("conversationId")),
                    message_id=message_id_arg(payload.get("messageId")),
                )
                async with self._container() as request_container:
                    delivery = await request_container.get(MessageDelivery)
                    deletion = await delivery.remove(command)
            except ChatRelayError as e:
                return error_ack(e)
            except Exception as e:
                return self._internal_error("delete_message", e)
        return {
            "ok": True,
            "conversationId": deletion.conversation_id.value,
            "messageId": deletion.message_id.value,
        }

    # ==================== HELPERS ====================

    @staticmethod
    def _require_payload(data: Any) -> dict:
        if not isinstance(data, dict):
            raise DomainValidationError("Event payload must be an object")
        return data

    @staticmethod
    def _internal_error(event: str, error: Exception) -> dict[str, Any]:
        logger.error(f"Unhandled error in {event}: {error}", exc_info=True)
        increment_error(MetricsErrorType.SOCKET_HANDLER_FAILED)
        return error_ack(ServiceUnavailableError("Unexpected server error"))
