"""
PORTS - Interfaces that infrastructure implements

A "port" is an abstract interface that defines WHAT the core needs,
without specifying HOW it's done:
- conversation_store.py  → durable conversations, memberships, messages
- realtime_gateway.py    → room membership and delivery of one event to one room
- idempotency_store.py   → remember client submission tokens
"""

from chatrelay.domain.ports.conversation_store import ConversationStore
from chatrelay.domain.ports.realtime_gateway import RealtimeGateway
from chatrelay.domain.ports.idempotency_store import IdempotencyStore

__all__ = [
    "ConversationStore",
    "RealtimeGateway",
    "IdempotencyStore",
]
