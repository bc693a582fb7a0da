"""
ListMessages Query - one page of a conversation's history.

Pages walk backwards from the newest message. Each page is returned oldest
first so it can be rendered directly; `next_cursor` is the id of the oldest
message on the page while older messages remain.
"""

from dataclasses import dataclass
from typing import Optional

from chatrelay.application.common.interfaces import Query, QueryHandler
from chatrelay.config.settings import Config
from chatrelay.domain.entities.message import Message
from chatrelay.domain.exceptions import (
    AccessDeniedError,
    DomainValidationError,
    UnauthenticatedError,
)
from chatrelay.domain.ports import ConversationStore
from chatrelay.domain.value_objects.conversation_id import ConversationId
from chatrelay.domain.value_objects.message_id import MessageId
from chatrelay.domain.value_objects.user_id import UserId


@dataclass
class MessagePage:
    messages: list[Message]
    next_cursor: Optional[MessageId]


@dataclass(frozen=True)
class ListMessagesQuery(Query[MessagePage]):
    user_id: Optional[UserId]
    conversation_id: Optional[ConversationId]
    cursor: Optional[MessageId] = None
    limit: int = Config.MESSAGE_PAGE_SIZE


class ListMessagesHandler(QueryHandler[MessagePage]):
    def __init__(
        self, store: ConversationStore, max_limit: int = Config.MESSAGE_PAGE_MAX
    ):
        self._store = store
        self._max_limit = max_limit

    async def execute(self, query: ListMessagesQuery) -> MessagePage:
        if query.user_id is None:
            raise UnauthenticatedError()
        if query.conversation_id is None:
            raise DomainValidationError("Conversation id is required")
        if not 1 <= query.limit <= self._max_limit:
            raise DomainValidationError(
                f"Page size must be between 1 and {self._max_limit}"
            )

        membership = await self._store.find_membership(
            query.conversation_id, query.user_id
        )
        if membership is None:
            raise AccessDeniedError("Access denied")

        # One extra row tells us whether an older page exists
        newest_first = await self._store.list_messages(
            query.conversation_id, cursor=query.cursor, limit=query.limit + 1
        )
        has_more = len(newest_first) > query.limit
        page = newest_first[: query.limit]
        next_cursor = page[-1].id if has_more else None
        page.reverse()

        return MessagePage(messages=page, next_cursor=next_cursor)
