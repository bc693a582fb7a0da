"""
ServiceUnavailableError - Raised when the store or the transport fails.
Maps to: HTTP 503 Service Unavailable

The only error kind a caller should retry (with backoff).
"""

from chatrelay.domain.exceptions.base import ChatRelayError


class ServiceUnavailableError(ChatRelayError):
    code = "UNAVAILABLE"
    retryable = True

    def __init__(self, message: str = "Service temporarily unavailable"):
        super().__init__(message)
