"""
DOMAIN EXCEPTIONS - Business rule violations

These exceptions are raised by domain and application logic and caught by
the presentation layer, which maps them to HTTP status codes or to
structured Socket.IO acknowledgements.
"""

from chatrelay.domain.exceptions.base import ChatRelayError
from chatrelay.domain.exceptions.unauthenticated import UnauthenticatedError
from chatrelay.domain.exceptions.validation_error import DomainValidationError
from chatrelay.domain.exceptions.access_denied import AccessDeniedError
from chatrelay.domain.exceptions.entity_not_found import EntityNotFoundError
from chatrelay.domain.exceptions.unavailable import ServiceUnavailableError

__all__ = [
    "ChatRelayError",
    "UnauthenticatedError",
    "DomainValidationError",
    "AccessDeniedError",
    "EntityNotFoundError",
    "ServiceUnavailableError",
]
