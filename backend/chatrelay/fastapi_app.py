"""
Application Factory.

Builds one ASGI application serving both transports:
- Socket.IO (engine.io path /socket.io/) → ChatNamespace
- everything else → FastAPI (conversations API, /metrics, health)

Both share a single Dishka container, so the HTTP routes and the socket
namespace see the same store, connection registry and gateway.
"""

import logging
from contextlib import asynccontextmanager
from typing import Optional

import socketio
from dishka import AsyncContainer
from dishka.integrations.fastapi import setup_dishka
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from chatrelay.config.logging_config import correlation_id_var, setup_logging
from chatrelay.config.settings import Config
from chatrelay.domain.exceptions import ChatRelayError
from chatrelay.domain.ports import RealtimeGateway
from chatrelay.presentation.api import conversations_router, metrics_router
from chatrelay.presentation.realtime import ChatNamespace
from chatrelay.setup.ioc.container import AppProvider, create_container

logger = logging.getLogger(__name__)

# Setup logging
setup_logging(Config.LOG_LEVEL, Config.LOG_PATH)

STATUS_BY_CODE = {
    "UNAUTHENTICATED": 401,
    "INVALID_ARGUMENT": 400,
    "FORBIDDEN": 403,
    "NOT_FOUND": 404,
    "UNAVAILABLE": 503,
}


class CorrelationIdMiddleware(BaseHTTPMiddleware):
    """Middleware to extract and set correlation ID from request headers."""

    async def dispatch(self, request: Request, call_next):
        correlation_id = request.headers.get("X-Correlation-ID", "NO Correlation ID")
        correlation_id_var.set(correlation_id)

        response = await call_next(request)
        response.headers["X-Correlation-ID"] = correlation_id

        return response


def create_fastapi_app(container: AsyncContainer, settings=Config) -> FastAPI:
    """
    Application factory for creating the FastAPI app.

    The container is created by the caller, before the app starts, because
    Dishka adds middleware, which must happen before startup.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        # Resolving the gateway starts the Redis relay listener when configured
        await container.get(RealtimeGateway)
        logger.info("Chat relay started. DI container initialized.")
        yield
        await container.close()
        logger.info("Chat relay shutdown. DI container closed.")

    app = FastAPI(
        title="Chat Relay API",
        description="Conversations, message history and real-time fan-out",
        version="1.0.0",
        lifespan=lifespan,
    )

    setup_dishka(container, app)

    # Correlation ID middleware (must be added before CORS)
    app.add_middleware(CorrelationIdMiddleware)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(ChatRelayError)
    async def chat_relay_exception_handler(request: Request, exc: ChatRelayError):
        status_code = STATUS_BY_CODE.get(exc.code, 500)
        if status_code >= 500:
            logger.error(f"[{exc.code}] {exc.message}")
        else:
            logger.info(f"[{exc.code}] {request.method} {request.url.path}: {exc.message}")
        return JSONResponse(
            status_code=status_code,
            content={"error": exc.message, "code": exc.code},
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        errors = exc.errors()
        logger.info(f"[VALIDATION ERROR] {errors}")
        return JSONResponse(
            status_code=400,
            content={
                "error": "Validation error",
                "code": "INVALID_ARGUMENT",
                "details": [
                    {"loc": list(err.get("loc", ())), "msg": err.get("msg", "")}
                    for err in errors
                ],
            },
        )

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        logger.error(f"[GLOBAL ERROR] {type(exc).__name__}: {exc}", exc_info=exc)
        return JSONResponse(
            status_code=500,
            content={"error": "Internal server error", "code": "INTERNAL"},
        )

    @app.get("/", tags=["health"])
    async def root():
        return {"message": "Chat relay is running."}

    @app.get("/health", tags=["health"])
    async def health():
        return {"status": "healthy"}

    app.include_router(conversations_router)
    app.include_router(metrics_router)

    return app


def create_app(provider: Optional[AppProvider] = None) -> socketio.ASGIApp:
    """Socket.IO server and FastAPI app behind one ASGI entry point."""
    provider = provider or AppProvider()
    container = create_container(provider)

    fastapi_app = create_fastapi_app(container, provider.settings)
    provider.sio.register_namespace(ChatNamespace(container))

    return socketio.ASGIApp(provider.sio, other_asgi_app=fastapi_app)


# Create the app instance
app = create_app()
