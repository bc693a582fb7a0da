"""
Conversations API Router - HTTP endpoints for conversations and messages.

Guidelines:
- Thin layer: only handles HTTP concerns (request/response)
- Receives handlers and MessageDelivery via Dishka
- Sending and deleting go through MessageDelivery, so an HTTP write fans
  out to live sockets exactly like a socket write
- ChatRelayError subclasses are mapped to status codes in fastapi_app.py

Flow:
  HTTP Request → Router → Command → MessageDelivery → Handler → Store
                                          ↓
                                   FanoutBroadcaster → RealtimeGateway
"""

from logging import getLogger
from typing import Optional

from dishka.integrations.fastapi import FromDishka, inject
from fastapi import APIRouter, Depends, Query, status

from chatrelay.application.commands.conversations import CreateConversationCommand
from chatrelay.application.commands.messages import (
    DeleteMessageCommand,
    SubmitMessageCommand,
)
from chatrelay.application.common.arguments import conversation_id_arg, message_id_arg
from chatrelay.application.dto.base import WireModel
from chatrelay.application.dto.chat import MessageDTO, MessagePageDTO
from chatrelay.application.dto.conversation import ConversationDTO
from chatrelay.application.queries.conversations import (
    ListConversationsHandler,
    ListConversationsQuery,
)
from chatrelay.application.queries.messages import (
    ListMessagesHandler,
    ListMessagesQuery,
)
from chatrelay.application.realtime.delivery import MessageDelivery
from chatrelay.config.settings import Config
from chatrelay.presentation.dependencies.auth import AuthUser, get_current_user

logger = getLogger(__name__)


# ==================== REQUEST/RESPONSE MODELS ====================


class CreateConversationRequest(WireModel):
    participant_ids: list[str]
    title: Optional[str] = None
    initial_message: Optional[str] = None


class ConversationResponse(WireModel):
    conversation: ConversationDTO


class ListConversationsResponse(WireModel):
    conversations: list[ConversationDTO]


class SendMessageRequest(WireModel):
    body: str
    client_token: Optional[str] = None


class MessageResponse(WireModel):
    message: MessageDTO


class DeleteMessageResponse(WireModel):
    ok: bool
    conversation_id: str
    message_id: str


# ==================== ROUTER ====================

router = APIRouter(prefix="/conversations", tags=["conversations"])


# ==================== ENDPOINTS ====================


@router.get(
    "",
    response_model=ListConversationsResponse,
    status_code=status.HTTP_200_OK,
)
@inject
async def list_conversations(
    handler: FromDishka[ListConversationsHandler],
    current_user: AuthUser = Depends(get_current_user),
):
    """Conversations of the current user, most recently updated first."""
    conversations = await handler.execute(ListConversationsQuery(user_id=current_user.id))
    return ListConversationsResponse(
        conversations=[ConversationDTO.from_entity(c) for c in conversations]
    )


@router.post(
    "",
    response_model=ConversationResponse,
    status_code=status.HTTP_201_CREATED,
)
@inject
async def create_conversation(
    request: CreateConversationRequest,
    delivery: FromDishka[MessageDelivery],
    current_user: AuthUser = Depends(get_current_user),
):
    """Create a conversation with the current user and the given participants."""
    command = CreateConversationCommand(
        user_id=current_user.id,
        participant_ids=request.participant_ids,
        title=request.title,
        initial_message=request.initial_message,
    )
    conversation = await delivery.start_conversation(command)
    return ConversationResponse(conversation=ConversationDTO.from_entity(conversation))


@router.get(
    "/{conversation_id}/messages",
    response_model=MessagePageDTO,
    status_code=status.HTTP_200_OK,
)
@inject
async def list_messages(
    conversation_id: str,
    handler: FromDishka[ListMessagesHandler],
    current_user: AuthUser = Depends(get_current_user),
    cursor: Optional[str] = None,
    limit: int = Query(Config.MESSAGE_PAGE_SIZE, ge=1, le=Config.MESSAGE_PAGE_MAX),
):
    """
    One page of history, oldest first.

    Pass the returned `nextCursor` as `cursor` to fetch the page before it.
    """
    query = ListMessagesQuery(
        user_id=current_user.id,
        conversation_id=conversation_id_arg(conversation_id),
        cursor=message_id_arg(cursor),
        limit=limit,
    )
    page = await handler.execute(query)
    return MessagePageDTO(
        messages=[MessageDTO.from_entity(m) for m in page.messages],
        next_cursor=page.next_cursor.value if page.next_cursor else None,
    )


@router.post(
    "/{conversation_id}/messages",
    response_model=MessageResponse,
    status_code=status.HTTP_201_CREATED,
)
@inject
async def send_message(
    conversation_id: str,
    request: SendMessageRequest,
    delivery: FromDishka[MessageDelivery],
    current_user: AuthUser = Depends(get_current_user),
):
    command = SubmitMessageCommand(
        user_id=current_user.id,
        conversation_id=conversation_id_arg(conversation_id),
        body=request.body,
        client_token=request.client_token,
    )
    message = await delivery.send(command)
    return MessageResponse(message=MessageDTO.from_entity(message))


@router.delete(
    "/{conversation_id}/messages/{message_id}",
    response_model=DeleteMessageResponse,
    status_code=status.HTTP_200_OK,
)
@inject
async def delete_message(
    conversation_id: str,
    message_id: str,
    delivery: FromDishka[MessageDelivery],
    current_user: AuthUser = Depends(get_current_user),
):
    command = DeleteMessageCommand(
        user_id=current_user.id,
        conversation_id=conversation_id_arg(conversation_id),
        message_id=message_id_arg(message_id),
    )
    deletion = await delivery.remove(command)
    logger.debug(f"Delete of {message_id} acknowledged over HTTP")
    return DeleteMessageResponse(
        ok=True,
        conversation_id=deletion.conversation_id.value,
        message_id=deletion.message_id.value,
    )
