"""
EntityNotFoundError - Raised when a requested entity does not exist.
Maps to: HTTP 404 Not Found
"""

from chatrelay.domain.exceptions.base import ChatRelayError


class EntityNotFoundError(ChatRelayError):
    """Exception raised when a requested entity is not found."""

    code = "NOT_FOUND"

    def __init__(self, message: str = "The requested entity was not found."):
        super().__init__(message)
