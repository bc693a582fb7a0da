"""
Persistence Layer - ConversationStore implementations.

The Prisma store is imported directly from its module by the DI container,
only when STORE_BACKEND=prisma, because `prisma.models` needs a generated
client.
"""

from chatrelay.infrastructure.persistence.memory_conversation_store import (
    InMemoryConversationStore,
)

__all__ = [
    "InMemoryConversationStore",
]
