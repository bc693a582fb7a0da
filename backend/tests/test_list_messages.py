from datetime import datetime, timedelta, timezone
import uuid

import pytest

from chatrelay.application.queries.conversations import (
    ListConversationsHandler,
    ListConversationsQuery,
)
from chatrelay.application.queries.messages import ListMessagesHandler, ListMessagesQuery
from chatrelay.domain.exceptions import (
    AccessDeniedError,
    DomainValidationError,
    EntityNotFoundError,
    UnauthenticatedError,
)
from chatrelay.domain.value_objects.message_id import MessageId

T0 = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)


@pytest.fixture()
def handler(store):
    return ListMessagesHandler(store)


def _seed(store, conversation, sender, count):
    return [
        store.add_message(
            conversation.id, sender.id, f"m{i}", created_at=T0 + timedelta(seconds=i)
        )
        for i in range(count)
    ]


def _query(user, conversation, cursor=None, limit=2):
    return ListMessagesQuery(
        user_id=user.id, conversation_id=conversation.id, cursor=cursor, limit=limit
    )


@pytest.mark.asyncio
async def test_pages_walk_backwards_and_each_page_is_oldest_first(
    handler, store, conversation, alice
):
    seeded = _seed(store, conversation, alice, 5)

    first = await handler.execute(_query(alice, conversation))
    assert [m.body for m in first.messages] == ["m3", "m4"]
    assert first.next_cursor == seeded[3].id

    second = await handler.execute(_query(alice, conversation, cursor=first.next_cursor))
    assert [m.body for m in second.messages] == ["m1", "m2"]

    third = await handler.execute(_query(alice, conversation, cursor=second.next_cursor))
    assert [m.body for m in third.messages] == ["m0"]
    assert third.next_cursor is None


@pytest.mark.asyncio
async def test_exact_page_has_no_cursor(handler, store, conversation, alice):
    _seed(store, conversation, alice, 2)

    page = await handler.execute(_query(alice, conversation, limit=2))

    assert len(page.messages) == 2
    assert page.next_cursor is None


@pytest.mark.asyncio
async def test_empty_conversation(handler, conversation, bob):
    page = await handler.execute(_query(bob, conversation))

    assert page.messages == []
    assert page.next_cursor is None


@pytest.mark.asyncio
async def test_same_timestamp_is_ordered_by_id(handler, store, conversation, alice, bob):
    a = store.add_message(conversation.id, alice.id, "a", created_at=T0)
    b = store.add_message(conversation.id, bob.id, "b", created_at=T0)
    expected = sorted([a, b], key=lambda m: m.id.value)

    page = await handler.execute(_query(alice, conversation, limit=10))

    assert [m.id for m in page.messages] == [m.id for m in expected]


@pytest.mark.asyncio
async def test_latest_message_is_last_of_newest_page(handler, store, conversation, alice):
    _seed(store, conversation, alice, 3)

    page = await handler.execute(_query(alice, conversation, limit=10))
    latest = await store.find_latest_message(conversation.id)

    assert page.messages[-1].id == latest.id


@pytest.mark.asyncio
async def test_non_member_cannot_read_history(handler, store, conversation, alice, carol):
    _seed(store, conversation, alice, 1)

    with pytest.raises(AccessDeniedError):
        await handler.execute(_query(carol, conversation))


@pytest.mark.asyncio
async def test_unknown_cursor_is_not_found(handler, conversation, alice):
    with pytest.raises(EntityNotFoundError):
        await handler.execute(
            _query(alice, conversation, cursor=MessageId(str(uuid.uuid4())))
        )


@pytest.mark.asyncio
async def test_cursor_from_another_conversation_is_not_found(
    handler, store, conversation, alice, carol
):
    other = store.add_conversation([alice.id, carol.id])
    foreign = store.add_message(other.id, alice.id, "elsewhere")

    with pytest.raises(EntityNotFoundError):
        await handler.execute(_query(alice, conversation, cursor=foreign.id))


@pytest.mark.asyncio
async def test_query_validation(handler, conversation, alice):
    with pytest.raises(UnauthenticatedError):
        await handler.execute(
            ListMessagesQuery(user_id=None, conversation_id=conversation.id)
        )
    with pytest.raises(DomainValidationError):
        await handler.execute(ListMessagesQuery(user_id=alice.id, conversation_id=None))
    with pytest.raises(DomainValidationError):
        await handler.execute(_query(alice, conversation, limit=0))


@pytest.mark.asyncio
async def test_page_size_is_capped(store, conversation, alice):
    handler = ListMessagesHandler(store, max_limit=5)

    assert (await handler.execute(_query(alice, conversation, limit=5))).messages == []
    with pytest.raises(DomainValidationError) as exc:
        await handler.execute(_query(alice, conversation, limit=6))

    assert exc.value.message == "Page size must be between 1 and 5"


@pytest.mark.asyncio
async def test_conversations_listed_most_recent_first(store, conversation, alice, carol):
    older = store.add_conversation([alice.id, carol.id])
    await store.update_conversation_timestamp(older.id, T0)
    await store.update_conversation_timestamp(conversation.id, T0 + timedelta(minutes=1))

    listed = await ListConversationsHandler(store).execute(
        ListConversationsQuery(user_id=alice.id)
    )

    assert [c.id for c in listed] == [conversation.id, older.id]


@pytest.mark.asyncio
async def test_conversations_only_include_memberships(store, conversation, carol):
    listed = await ListConversationsHandler(store).execute(
        ListConversationsQuery(user_id=carol.id)
    )

    assert listed == []
