"""
AccessDeniedError - Raised when user lacks permission to access a resource.
Maps to: HTTP 403 Forbidden
"""

from chatrelay.domain.exceptions.base import ChatRelayError


class AccessDeniedError(ChatRelayError):
    """Raised when user lacks permission to access a resource"""

    code = "FORBIDDEN"

    def __init__(self, message: str = "Access denied"):
        super().__init__(message)
