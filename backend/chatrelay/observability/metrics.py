"""
Prometheus Metrics for the chat relay.

DATA FLOW:
    This file                  presentation/api/metrics.py         Observability Stack
    ─────────                  ────────────────────────────         ───────────────────
    Define metrics ──────────► /metrics endpoint ──────────────►   Prometheus ──► Grafana

METRIC TYPES:
    - Gauge: Value goes up/down (live socket connections)
    - Counter: Value only goes up (messages handled, fan-out emissions, errors)
"""

from prometheus_client import (
    Gauge,
    Counter,
    generate_latest,
    CONTENT_TYPE_LATEST,
)


# =============================================================================
# METRICS DEFINITIONS
# =============================================================================
ACTIVE_CONNECTIONS = Gauge(
    "chatrelay_active_connections", "Number of live Socket.IO connections"
)

MESSAGES_TOTAL = Counter(
    "chatrelay_messages_total",
    "Message operations by action and outcome",
    ["action", "outcome"],
)

FANOUT_EMISSIONS_TOTAL = Counter(
    "chatrelay_fanout_emissions_total",
    "Room emissions performed by the broadcaster",
    ["event"],
)

ERRORS_TOTAL = Counter(
    "chatrelay_errors_total",
    "Total number of errors by type",
    ["error_type"],
)


# =============================================================================
# LABEL CONSTANTS
# =============================================================================
class MetricsErrorType:
    """Error type labels for chatrelay_errors_total metric."""

    FANOUT_FAILED = "fanout_failed"
    STORE_FAILED = "store_failed"
    RELAY_FAILED = "relay_failed"
    SOCKET_HANDLER_FAILED = "socket_handler_failed"


# =============================================================================
# RECORDING FUNCTIONS
# =============================================================================
def connection_opened():
    """Integration point: presentation/realtime/namespace.py on_connect()"""
    ACTIVE_CONNECTIONS.inc()


def connection_closed():
    """Integration point: presentation/realtime/namespace.py on_disconnect()"""
    ACTIVE_CONNECTIONS.dec()


def record_message_operation(action: str, outcome: str):
    """
    Integration point: application/realtime/delivery.py

    Args:
        action: "submit" or "delete"
        outcome: "ok" or an error code (FORBIDDEN, NOT_FOUND, ...)
    """
    MESSAGES_TOTAL.labels(action=action, outcome=outcome).inc()


def record_fanout_emission(event: str):
    """Integration point: application/realtime/broadcaster.py"""
    FANOUT_EMISSIONS_TOTAL.labels(event=event).inc()


def increment_error(error_type: str):
    ERRORS_TOTAL.labels(error_type=error_type).inc()


# =============================================================================
# HELPER FOR /metrics ENDPOINT
# =============================================================================
def get_metrics_content():
    """
    Generate Prometheus metrics output.

    Returns:
        Tuple of (content_bytes, content_type_string)
    """
    return generate_latest(), CONTENT_TYPE_LATEST


__all__ = [
    "connection_opened",
    "connection_closed",
    "record_message_operation",
    "record_fanout_emission",
    "increment_error",
    "get_metrics_content",
    "MetricsErrorType",
]
