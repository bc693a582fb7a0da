"""
API Routers - FastAPI endpoint definitions.
"""

from chatrelay.presentation.api.conversations import router as conversations_router
from chatrelay.presentation.api.metrics import router as metrics_router

__all__ = [
    "conversations_router",
    "metrics_router",
]
