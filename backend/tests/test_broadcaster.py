import pytest

from chatrelay.application.commands.messages import MessageDeletion
from chatrelay.application.realtime.broadcaster import FanoutBroadcaster
from chatrelay.domain.exceptions import ServiceUnavailableError

from conftest import RecordingGateway

CREATED = "message-created"
DELETED = "message-deleted"
LIST_CHANGED = "conversation-list-changed"


@pytest.mark.asyncio
async def test_created_message_targets_conversation_room_and_each_participant(
    broadcaster, gateway, store, conversation, alice, bob
):
    message = store.add_message(conversation.id, alice.id, "hi")

    await broadcaster.message_created(message)

    conversation_room = f"conversation:{conversation.id.value}"
    assert gateway.count(conversation_room, CREATED) == 1
    assert gateway.count(conversation_room, LIST_CHANGED) == 0
    for user in (alice, bob):
        user_room = f"user:{user.id.value}"
        assert gateway.count(user_room, LIST_CHANGED) == 1
        assert gateway.count(user_room, CREATED) == 1

    rooms = {name for name, _, _ in gateway.emissions}
    assert rooms == {
        conversation_room,
        f"user:{alice.id.value}",
        f"user:{bob.id.value}",
    }


@pytest.mark.asyncio
async def test_created_payload_embeds_sender_and_conversation(
    broadcaster, gateway, store, conversation, alice
):
    message = store.add_message(conversation.id, alice.id, "with sender")

    await broadcaster.message_created(message)

    payload = gateway.events_to(f"conversation:{conversation.id.value}", CREATED)[0]
    assert payload["conversationId"] == conversation.id.value
    assert payload["message"]["id"] == message.id.value
    assert payload["message"]["body"] == "with sender"
    assert payload["message"]["sender"] == {
        "id": alice.id.value,
        "name": "Alice",
        "email": "alice@example.com",
    }
    signal = gateway.events_to(f"user:{alice.id.value}", LIST_CHANGED)[0]
    assert signal == {"conversationId": conversation.id.value}


@pytest.mark.asyncio
async def test_conversation_room_emission_happens_first(
    broadcaster, gateway, store, conversation, alice
):
    message = store.add_message(conversation.id, alice.id, "order")

    await broadcaster.message_created(message)

    assert gateway.emissions[0][0] == f"conversation:{conversation.id.value}"


@pytest.mark.asyncio
async def test_participants_resolved_at_broadcast_time(
    broadcaster, gateway, store, conversation, alice, carol
):
    message = store.add_message(conversation.id, alice.id, "late joiner")
    store.add_member(conversation.id, carol.id)

    await broadcaster.message_created(message)

    assert gateway.count(f"user:{carol.id.value}", LIST_CHANGED) == 1


@pytest.mark.asyncio
async def test_deleted_payload_carries_new_last_message(
    broadcaster, gateway, store, conversation, alice, bob
):
    remaining = store.add_message(conversation.id, alice.id, "stays")
    removed = store.add_message(conversation.id, alice.id, "goes")
    deletion = MessageDeletion(
        conversation_id=conversation.id,
        message_id=removed.id,
        new_last_message=remaining,
        new_updated_at=remaining.created_at,
    )

    await broadcaster.message_deleted(deletion)

    payload = gateway.events_to(f"conversation:{conversation.id.value}", DELETED)[0]
    assert payload["messageId"] == removed.id.value
    assert payload["newLastMessage"]["id"] == remaining.id.value
    assert payload["newUpdatedAt"] is not None
    for user in (alice, bob):
        assert gateway.count(f"user:{user.id.value}", DELETED) == 1
        assert gateway.count(f"user:{user.id.value}", LIST_CHANGED) == 1


@pytest.mark.asyncio
async def test_conversation_created_signals_every_participant(
    broadcaster, gateway, conversation, alice, bob
):
    await broadcaster.conversation_created(conversation)

    assert gateway.count(f"user:{alice.id.value}", LIST_CHANGED) == 1
    assert gateway.count(f"user:{bob.id.value}", LIST_CHANGED) == 1
    assert len(gateway.emissions) == 2


class FlakyGateway(RecordingGateway):
    def __init__(self, failing_room):
        super().__init__()
        self.failing_room = failing_room
        self.delivered = []

    async def emit(self, room, event, payload):
        if room.name == self.failing_room:
            raise ConnectionError("socket gone")
        self.delivered.append((room.name, event))


@pytest.mark.asyncio
async def test_failed_emission_does_not_stop_the_rest(store, conversation, alice, bob):
    gateway = FlakyGateway(f"conversation:{conversation.id.value}")
    broadcaster = FanoutBroadcaster(store, gateway)
    message = store.add_message(conversation.id, alice.id, "resilient")

    await broadcaster.message_created(message)

    assert (f"user:{bob.id.value}", CREATED) in gateway.delivered
    assert (f"user:{bob.id.value}", LIST_CHANGED) in gateway.delivered


@pytest.mark.asyncio
async def test_participant_lookup_failure_still_reaches_conversation_room(
    store, gateway, conversation, alice
):
    message = store.add_message(conversation.id, alice.id, "partial")

    async def broken(_conversation_id):
        raise ServiceUnavailableError()

    store.list_participants = broken
    await FanoutBroadcaster(store, gateway).message_created(message)

    assert [name for name, _, _ in gateway.emissions] == [
        f"conversation:{conversation.id.value}"
    ]
