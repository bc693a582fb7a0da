"""Observability package for the chat relay."""

from chatrelay.observability.metrics import (
    connection_opened,
    connection_closed,
    record_message_operation,
    record_fanout_emission,
    increment_error,
    get_metrics_content,
    MetricsErrorType,
)

__all__ = [
    "connection_opened",
    "connection_closed",
    "record_message_operation",
    "record_fanout_emission",
    "increment_error",
    "get_metrics_content",
    "MetricsErrorType",
]
