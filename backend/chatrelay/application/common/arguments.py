"""
Parse raw client identifiers into value objects.

Missing values come back as None so handlers can decide which error kind
applies; malformed values are an InvalidArgument straight away.
"""

from typing import Any, Optional

from chatrelay.domain.exceptions import DomainValidationError
from chatrelay.domain.value_objects.conversation_id import ConversationId
from chatrelay.domain.value_objects.message_id import MessageId
from chatrelay.domain.value_objects.user_id import UserId


def _clean(raw: Any) -> Optional[str]:
    if raw is None:
        return None
    if not isinstance(raw, str):
        raw = str(raw)
    raw = raw.strip()
    return raw or None


def conversation_id_arg(raw: Any) -> Optional[ConversationId]:
    value = _clean(raw)
    if value is None:
        return None
    try:
        return ConversationId(value)
    except ValueError as e:
        raise DomainValidationError(f"Invalid conversation id: {value}") from e


def message_id_arg(raw: Any) -> Optional[MessageId]:
    value = _clean(raw)
    if value is None:
        return None
    try:
        return MessageId(value)
    except ValueError as e:
        raise DomainValidationError(f"Invalid message id: {value}") from e


def user_id_arg(raw: Any) -> Optional[UserId]:
    value = _clean(raw)
    if value is None:
        return None
    try:
        return UserId(value)
    except ValueError as e:
        raise DomainValidationError(f"Invalid user id: {value}") from e
