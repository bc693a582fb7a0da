"""Conversation commands."""

from .create_conversation import CreateConversationCommand, CreateConversationHandler

__all__ = [
    "CreateConversationCommand",
    "CreateConversationHandler",
]
