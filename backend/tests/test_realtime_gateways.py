import json

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from chatrelay.application.realtime.connection_registry import ConnectionRegistry
from chatrelay.domain.value_objects.room import Room
from chatrelay.infrastructure.realtime import RedisRelayGateway, SocketIOGateway

from conftest import RecordingGateway


class FakeServer:
    """Stands in for socketio.AsyncServer's room and emit API."""

    def __init__(self, connected=()):
        self.connected = set(connected)
        self.rooms = {}
        self.sent = []

    async def emit(self, event, data, room=None, namespace=None):
        self.sent.append((room, event, data, namespace))

    async def enter_room(self, sid, room, namespace=None):
        if sid not in self.connected:
            raise ValueError("sid is not connected to requested namespace")
        self.rooms.setdefault((namespace, room), set()).add(sid)

    async def leave_room(self, sid, room, namespace=None):
        self.rooms.get((namespace, room), set()).discard(sid)


class FakeRedis:
    def __init__(self, fail=False):
        self.fail = fail
        self.published = []

    async def publish(self, channel, data):
        if self.fail:
            raise RedisConnectionError("redis down")
        self.published.append((channel, data))


@pytest.mark.asyncio
async def test_socketio_gateway_emits_once_to_the_whole_room(conversation):
    sio = FakeServer()

    await SocketIOGateway(sio).emit(
        Room.for_conversation(conversation.id), "message-created", {"x": 1}
    )

    assert sio.sent == [
        (f"conversation:{conversation.id.value}", "message-created", {"x": 1}, "/")
    ]


@pytest.mark.asyncio
async def test_registry_rooms_become_server_rooms(store, conversation, alice, bob):
    sio = FakeServer(connected={"sid-a", "sid-b"})
    registry = ConnectionRegistry(store, SocketIOGateway(sio, namespace="/chat"))
    room_name = f"conversation:{conversation.id.value}"

    await registry.register("sid-a", alice.id)
    await registry.register("sid-b", bob.id)
    assert sio.rooms[("/chat", room_name)] == {"sid-a", "sid-b"}
    assert sio.rooms[("/chat", f"user:{alice.id.value}")] == {"sid-a"}

    await registry.leave_room("sid-b", conversation.id.value)
    assert sio.rooms[("/chat", room_name)] == {"sid-a"}


@pytest.mark.asyncio
async def test_socketio_gateway_join_of_gone_connection_is_ignored(conversation):
    sio = FakeServer()

    await SocketIOGateway(sio).join("gone", Room.for_conversation(conversation.id))

    assert sio.rooms == {}


@pytest.mark.asyncio
async def test_relay_routes_membership_to_local_gateway(conversation):
    local = RecordingGateway()
    relay = RedisRelayGateway(FakeRedis(), local, "fanout")
    room = Room.for_conversation(conversation.id)

    await relay.join("sid-1", room)
    assert local.members_of(room) == ["sid-1"]

    await relay.leave("sid-1", room)
    assert local.members_of(room) == []


@pytest.mark.asyncio
async def test_relay_publishes_envelope(conversation):
    redis = FakeRedis()
    local = RecordingGateway()
    relay = RedisRelayGateway(redis, local, "fanout")

    await relay.emit(Room.for_conversation(conversation.id), "message-deleted", {"a": 1})

    [(channel, data)] = redis.published
    assert channel == "fanout"
    assert json.loads(data) == {
        "room": f"conversation:{conversation.id.value}",
        "event": "message-deleted",
        "payload": {"a": 1},
    }
    assert local.emissions == []


@pytest.mark.asyncio
async def test_relay_falls_back_to_local_delivery(conversation):
    local = RecordingGateway()
    relay = RedisRelayGateway(FakeRedis(fail=True), local, "fanout")

    await relay.emit(Room.for_conversation(conversation.id), "message-created", {"a": 1})

    assert local.emissions == [
        (f"conversation:{conversation.id.value}", "message-created", {"a": 1})
    ]


@pytest.mark.asyncio
async def test_relay_delivers_received_envelopes_locally(alice):
    local = RecordingGateway()
    relay = RedisRelayGateway(FakeRedis(), local, "fanout")
    envelope = {
        "room": f"user:{alice.id.value}",
        "event": "conversation-list-changed",
        "payload": {"conversationId": "c"},
    }

    await relay.deliver(json.dumps(envelope).encode())

    assert local.emissions == [
        (f"user:{alice.id.value}", "conversation-list-changed", {"conversationId": "c"})
    ]


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "data",
    [
        "not json",
        json.dumps({"event": "message-created", "payload": {}}),
        json.dumps({"room": "lobby:1", "event": "x", "payload": {}}),
    ],
)
async def test_relay_drops_malformed_envelopes(data):
    local = RecordingGateway()

    await RedisRelayGateway(FakeRedis(), local, "fanout").deliver(data)

    assert local.emissions == []
