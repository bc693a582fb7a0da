import time
import uuid

import jwt
import pytest
from fastapi.testclient import TestClient

from chatrelay.application.commands.conversations import CreateConversationHandler
from chatrelay.application.commands.messages import (
    DeleteMessageHandler,
    SubmitMessageHandler,
)
from chatrelay.application.realtime.broadcaster import FanoutBroadcaster
from chatrelay.application.realtime.connection_registry import ConnectionRegistry
from chatrelay.application.realtime.delivery import MessageDelivery
from chatrelay.config.settings import TestingConfig
from chatrelay.domain.entities.user import User
from chatrelay.domain.ports import RealtimeGateway
from chatrelay.domain.value_objects.user_email import UserEmail
from chatrelay.domain.value_objects.user_id import UserId
from chatrelay.fastapi_app import create_fastapi_app
from chatrelay.infrastructure.cache import MemoryIdempotencyStore
from chatrelay.infrastructure.persistence import InMemoryConversationStore
from chatrelay.setup.ioc.container import AppProvider, create_container


class Settings(TestingConfig):
    SERVICE_AUTH_SECRET = "test-secret"
    SERVICE_AUTH_AUDIENCE = "chatrelay-tests"
    SERVICE_AUTH_ISSUER = "chatrelay-issuer"
    IDEMPOTENCY_TTL = 600
    MESSAGE_MAX_LENGTH = 50


class RecordingGateway(RealtimeGateway):
    """Collects (room name, event, payload) and room members instead of talking to sockets."""

    def __init__(self):
        self.emissions = []
        self.members = {}

    async def emit(self, room, event, payload):
        self.emissions.append((room.name, event, payload))

    async def join(self, connection_id, room):
        self.members.setdefault(room.name, set()).add(connection_id)

    async def leave(self, connection_id, room):
        self.members.get(room.name, set()).discard(connection_id)

    def members_of(self, room):
        return sorted(self.members.get(room.name, ()))

    def events_to(self, room_name, event=None):
        return [
            payload
            for name, ev, payload in self.emissions
            if name == room_name and (event is None or ev == event)
        ]

    def count(self, room_name, event):
        return len(self.events_to(room_name, event))


def make_token(user, ttl=300, **overrides):
    now = int(time.time())
    claims = {
        "sub": user.id.value,
        "email": user.email.value,
        "name": user.name,
        "iat": now,
        "exp": now + ttl,
        "iss": Settings.SERVICE_AUTH_ISSUER,
        "aud": Settings.SERVICE_AUTH_AUDIENCE,
    }
    claims.update(overrides)
    return jwt.encode(claims, Settings.SERVICE_AUTH_SECRET, algorithm="HS256")


def _user(name):
    return User(
        id=UserId(str(uuid.uuid4())),
        email=UserEmail(f"{name.lower()}@example.com"),
        name=name,
    )


@pytest.fixture()
def alice():
    return _user("Alice")


@pytest.fixture()
def bob():
    return _user("Bob")


@pytest.fixture()
def carol():
    return _user("Carol")


@pytest.fixture()
def store(alice, bob, carol):
    store = InMemoryConversationStore()
    for user in (alice, bob, carol):
        store.add_user(user)
    return store


@pytest.fixture()
def conversation(store, alice, bob):
    """A direct conversation between Alice and Bob."""
    return store.add_conversation([alice.id, bob.id])


@pytest.fixture()
def gateway():
    return RecordingGateway()


@pytest.fixture()
def idempotency_store():
    return MemoryIdempotencyStore()


@pytest.fixture()
def registry(store, gateway):
    return ConnectionRegistry(store, gateway)


@pytest.fixture()
def broadcaster(store, gateway):
    return FanoutBroadcaster(store, gateway)


@pytest.fixture()
def submit_handler(store, idempotency_store):
    return SubmitMessageHandler(
        store,
        idempotency_store,
        idempotency_ttl=Settings.IDEMPOTENCY_TTL,
        max_length=Settings.MESSAGE_MAX_LENGTH,
    )


@pytest.fixture()
def delete_handler(store):
    return DeleteMessageHandler(store)


@pytest.fixture()
def delivery(submit_handler, delete_handler, store, broadcaster):
    return MessageDelivery(
        submit_handler, delete_handler, CreateConversationHandler(store), broadcaster
    )


@pytest.fixture()
def provider(store, gateway, idempotency_store):
    return AppProvider(
        settings=Settings,
        store=store,
        gateway=gateway,
        idempotency_store=idempotency_store,
    )


@pytest.fixture()
def app(provider):
    """Create and configure a new FastAPI app instance for each test."""
    return create_fastapi_app(create_container(provider), Settings)


@pytest.fixture()
def client(app):
    """A test client for the FastAPI app (lifespan included)."""
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture()
def headers_for():
    """Authentication headers with a valid JWT for the given user."""

    def _headers(user):
        return {"Authorization": f"Bearer {make_token(user)}"}

    return _headers
