"""
DOMAIN LAYER - Conversations, memberships, messages and broadcast rooms.

This layer contains:
- Entities: User, Conversation, Membership, Message
- Value Objects: UserId, ConversationId, MessageId, UserEmail, Room
- Ports: ConversationStore, RealtimeGateway, IdempotencyStore
- Exceptions: the error taxonomy returned to callers

RULES:
1. NO framework imports (no FastAPI, Socket.IO, Pydantic, etc.)
2. NO I/O operations
3. Only depends on Python stdlib
"""
