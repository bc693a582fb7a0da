"""
APPLICATION LAYER - Use Cases & Orchestration

This layer contains:
- commands/  → Write operations (submit/delete message, create conversation)
- queries/   → Read operations (conversation list, message history)
- realtime/  → Connection registry, fan-out broadcaster, delivery sequencing
- dto/       → Wire payloads (Pydantic)
- common/    → Shared interfaces (Command, Query base classes)

Rules:
- Depends on Domain layer only
- No HTTP/Socket.IO code here
"""
