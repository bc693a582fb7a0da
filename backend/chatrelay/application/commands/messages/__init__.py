"""Message commands."""

from .submit_message import SubmitMessageCommand, SubmitMessageHandler
from .delete_message import DeleteMessageCommand, DeleteMessageHandler, MessageDeletion

__all__ = [
    "SubmitMessageCommand",
    "SubmitMessageHandler",
    "DeleteMessageCommand",
    "DeleteMessageHandler",
    "MessageDeletion",
]
