"""Dependency injection container."""

from chatrelay.setup.ioc.container import (
    AppProvider,
    RedisConnection,
    create_container,
    create_socket_server,
)

__all__ = [
    "AppProvider",
    "RedisConnection",
    "create_container",
    "create_socket_server",
]
