"""
Dishka DI Container Setup.

- Registers stores, gateways, handlers and services
- Maps abstract ports to concrete implementations chosen by config
- Manages lifecycle (Scope.APP = one per process, Scope.REQUEST = per HTTP
  request or per socket event)

Flow:
  Container → provides → ConversationStore → to → SubmitMessageHandler
                                                        ↓
                                   MessageDelivery ← FanoutBroadcaster ← RealtimeGateway
                                                                          ↓
                                                        ConnectionRegistry (rooms)

Overrides (used by tests): pass `store`, `gateway` or `idempotency_store`
to AppProvider to replace the configured implementation.
"""

import logging
from collections.abc import AsyncIterator
from dataclasses import dataclass
from typing import Optional

import socketio
from dishka import AsyncContainer, Provider, Scope, make_async_container, provide
from redis.asyncio import Redis

from chatrelay.application.commands.conversations import CreateConversationHandler
from chatrelay.application.commands.messages import (
    DeleteMessageHandler,
    SubmitMessageHandler,
)
from chatrelay.application.queries.conversations import ListConversationsHandler
from chatrelay.application.queries.messages import ListMessagesHandler
from chatrelay.application.realtime.broadcaster import FanoutBroadcaster
from chatrelay.application.realtime.connection_registry import ConnectionRegistry
from chatrelay.application.realtime.delivery import MessageDelivery
from chatrelay.config.settings import Config, get_config
from chatrelay.domain.ports import ConversationStore, IdempotencyStore, RealtimeGateway
from chatrelay.infrastructure.cache import (
    MemoryIdempotencyStore,
    RedisIdempotencyStore,
    close_redis_client,
    create_redis_client,
)
from chatrelay.infrastructure.persistence import InMemoryConversationStore
from chatrelay.infrastructure.realtime import RedisRelayGateway, SocketIOGateway
from chatrelay.presentation.dependencies.auth import IdentityVerifier

logger = logging.getLogger(__name__)


@dataclass
class RedisConnection:
    """Shared Redis client, or None when REDIS_URL is not configured."""

    client: Optional[Redis]


def create_socket_server(settings: type[Config] = Config) -> socketio.AsyncServer:
    return socketio.AsyncServer(
        async_mode="asgi",
        cors_allowed_origins=settings.CORS_ORIGINS,
        ping_interval=settings.SOCKET_PING_INTERVAL,
        ping_timeout=settings.SOCKET_PING_TIMEOUT,
    )


class AppProvider(Provider):
    """
    Application dependency provider.

    Registers all dependencies and their implementations.
    """

    def __init__(
        self,
        settings: Optional[type[Config]] = None,
        sio: Optional[socketio.AsyncServer] = None,
        store: Optional[ConversationStore] = None,
        gateway: Optional[RealtimeGateway] = None,
        idempotency_store: Optional[IdempotencyStore] = None,
    ):
        super().__init__()
        self.settings = settings or get_config()
        self.sio = sio or create_socket_server(self.settings)
        self._store = store
        self._gateway = gateway
        self._idempotency_store = idempotency_store

    # ==================== TRANSPORT ====================

    @provide(scope=Scope.APP)
    def get_socket_server(self) -> socketio.AsyncServer:
        return self.sio

    # ==================== REDIS ====================

    @provide(scope=Scope.APP)
    async def get_redis(self) -> AsyncIterator[RedisConnection]:
        """
        Provide the Redis client (singleton, app-scoped).

        - Only connected when REDIS_URL is set
        - Closed when the container closes
        """
        if not self.settings.REDIS_URL:
            yield RedisConnection(client=None)
            return
        client = await create_redis_client(self.settings.REDIS_URL)
        yield RedisConnection(client=client)
        await close_redis_client(client)

    # ==================== STORES ====================

    @provide(scope=Scope.APP)
    async def get_conversation_store(self) -> AsyncIterator[ConversationStore]:
        """
        Provide ConversationStore implementation.

        - STORE_BACKEND=memory → InMemoryConversationStore
        - STORE_BACKEND=prisma → PrismaConversationStore, connected here and
          disconnected on shutdown
        """
        if self._store is not None:
            yield self._store
            return

        if self.settings.STORE_BACKEND != "prisma":
            yield InMemoryConversationStore()
            return

        from prisma import Prisma
        from chatrelay.infrastructure.persistence.prisma_conversation_store import (
            PrismaConversationStore,
        )

        prisma = Prisma()
        await prisma.connect()
        logger.info("[Prisma] Connected")
        yield PrismaConversationStore(prisma)
        await prisma.disconnect()
        logger.info("[Prisma] Disconnected")

    @provide(scope=Scope.APP)
    def get_idempotency_store(self, redis: RedisConnection) -> IdempotencyStore:
        if self._idempotency_store is not None:
            return self._idempotency_store
        if redis.client is not None:
            return RedisIdempotencyStore(redis.client)
        return MemoryIdempotencyStore()

    # ==================== REALTIME ====================

    @provide(scope=Scope.APP)
    def get_connection_registry(
        self, store: ConversationStore, gateway: RealtimeGateway
    ) -> ConnectionRegistry:
        return ConnectionRegistry(store, gateway)

    @provide(scope=Scope.APP)
    async def get_realtime_gateway(
        self,
        sio: socketio.AsyncServer,
        redis: RedisConnection,
    ) -> AsyncIterator[RealtimeGateway]:
        """
        Provide RealtimeGateway implementation.

        - REALTIME_BACKEND=local → SocketIOGateway (this process only)
        - REALTIME_BACKEND=redis → RedisRelayGateway over SocketIOGateway
        """
        if self._gateway is not None:
            yield self._gateway
            return

        local = SocketIOGateway(sio)
        if self.settings.REALTIME_BACKEND != "redis":
            yield local
            return
        if redis.client is None:
            logger.warning("REALTIME_BACKEND=redis without REDIS_URL, using local fan-out")
            yield local
            return

        relay = RedisRelayGateway(redis.client, local, self.settings.REALTIME_CHANNEL)
        await relay.start()
        yield relay
        await relay.stop()

    @provide(scope=Scope.APP)
    def get_broadcaster(
        self, store: ConversationStore, gateway: RealtimeGateway
    ) -> FanoutBroadcaster:
        return FanoutBroadcaster(store, gateway)

    # ==================== AUTH ====================

    @provide(scope=Scope.APP)
    def get_identity_verifier(self, store: ConversationStore) -> IdentityVerifier:
        return IdentityVerifier(
            store,
            secret=self.settings.SERVICE_AUTH_SECRET,
            audience=self.settings.SERVICE_AUTH_AUDIENCE,
            issuer=self.settings.SERVICE_AUTH_ISSUER,
        )

    # ==================== HANDLERS ====================

    @provide(scope=Scope.REQUEST)
    def get_submit_message_handler(
        self, store: ConversationStore, idempotency_store: IdempotencyStore
    ) -> SubmitMessageHandler:
        return SubmitMessageHandler(
            store,
            idempotency_store,
            idempotency_ttl=self.settings.IDEMPOTENCY_TTL,
            max_length=self.settings.MESSAGE_MAX_LENGTH,
        )

    @provide(scope=Scope.REQUEST)
    def get_delete_message_handler(self, store: ConversationStore) -> DeleteMessageHandler:
        return DeleteMessageHandler(store)

    @provide(scope=Scope.REQUEST)
    def get_create_conversation_handler(
        self, store: ConversationStore
    ) -> CreateConversationHandler:
        return CreateConversationHandler(store)

    @provide(scope=Scope.REQUEST)
    def get_list_conversations_handler(
        self, store: ConversationStore
    ) -> ListConversationsHandler:
        return ListConversationsHandler(store)

    @provide(scope=Scope.REQUEST)
    def get_list_messages_handler(self, store: ConversationStore) -> ListMessagesHandler:
        return ListMessagesHandler(store, max_limit=self.settings.MESSAGE_PAGE_MAX)

    # ==================== SERVICES ====================

    @provide(scope=Scope.REQUEST)
    def get_message_delivery(
        self,
        submit_handler: SubmitMessageHandler,
        delete_handler: DeleteMessageHandler,
        create_conversation_handler: CreateConversationHandler,
        broadcaster: FanoutBroadcaster,
    ) -> MessageDelivery:
        return MessageDelivery(
            submit_handler,
            delete_handler,
            create_conversation_handler,
            broadcaster,
        )


def create_container(provider: Optional[AppProvider] = None) -> AsyncContainer:
    """
    Create and configure the DI container.

    - make_async_container() creates the container with all providers
    - Call this ONCE per application instance
    """
    return make_async_container(provider or AppProvider())
