"""
DomainValidationError - Raised when a required field is missing or empty.
Maps to: HTTP 400 Bad Request
"""

from chatrelay.domain.exceptions.base import ChatRelayError


class DomainValidationError(ChatRelayError):
    """Exception raised for invalid arguments."""

    code = "INVALID_ARGUMENT"

    def __init__(self, message: str):
        super().__init__(message)
