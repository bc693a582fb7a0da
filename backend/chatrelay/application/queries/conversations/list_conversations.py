"""List Conversations Query."""

from dataclasses import dataclass
from typing import Optional

from chatrelay.application.common.interfaces import Query, QueryHandler
from chatrelay.domain.entities.conversation import Conversation
from chatrelay.domain.exceptions import UnauthenticatedError
from chatrelay.domain.ports import ConversationStore
from chatrelay.domain.value_objects.user_id import UserId


@dataclass(frozen=True)
class ListConversationsQuery(Query[list[Conversation]]):
    user_id: Optional[UserId]


class ListConversationsHandler(QueryHandler[list[Conversation]]):
    def __init__(self, store: ConversationStore):
        self._store = store

    async def execute(self, query: ListConversationsQuery) -> list[Conversation]:
        if query.user_id is None:
            raise UnauthenticatedError()
        return await self._store.list_conversations_for_user(query.user_id)
