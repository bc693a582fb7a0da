"""Event names on the Socket.IO wire."""


class ServerEvents:
    """Server → client."""

    MESSAGE_CREATED = "message-created"
    MESSAGE_DELETED = "message-deleted"
    CONVERSATION_LIST_CHANGED = "conversation-list-changed"


class ClientEvents:
    """Client → server."""

    JOIN_CONVERSATION = "join_conversation"
    LEAVE_CONVERSATION = "leave_conversation"
    SEND_MESSAGE = "send_message"
    DELETE_MESSAGE = "delete_message"
