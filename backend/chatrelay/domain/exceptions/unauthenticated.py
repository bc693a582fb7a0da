"""
UnauthenticatedError - Raised when a connection or request carries no verified identity.
Maps to: HTTP 401 Unauthorized
"""

from chatrelay.domain.exceptions.base import ChatRelayError


class UnauthenticatedError(ChatRelayError):
    code = "UNAUTHENTICATED"

    def __init__(self, message: str = "Authentication required"):
        super().__init__(message)
