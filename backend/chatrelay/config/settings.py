"""Application configuration settings"""

import os
from dotenv import load_dotenv

load_dotenv()


def _flag(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).lower() in {"1", "true", "yes", "on"}


class Config:
    # Runtime
    APP_ENV = os.getenv("APP_ENV", "development")
    TESTING = _flag("TESTING")
    DEBUG = _flag("DEBUG")
    CORS_ORIGINS = os.getenv("CORS_ORIGINS", "*").split(",")

    # Logging
    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
    LOG_PATH = os.getenv("LOG_PATH", "")
    LOG_FORMAT = os.getenv(
        "LOG_FORMAT",
        "%(asctime)s %(levelname)s [%(correlation_id)s] %(name)s: %(message)s",
    )

    # Auth
    SERVICE_AUTH_SECRET = os.getenv("SERVICE_AUTH_SECRET", "")
    SERVICE_AUTH_ISSUER = os.getenv("SERVICE_AUTH_ISSUER", "your_service_name")
    SERVICE_AUTH_AUDIENCE = os.getenv("SERVICE_AUTH_AUDIENCE", "your_service_audience")

    # Conversation store: "memory" or "prisma"
    STORE_BACKEND: str = os.getenv("STORE_BACKEND", "memory")
    DATABASE_URL: str = os.getenv("DATABASE_URL", "")

    # Redis settings (empty URL = in-process idempotency store)
    REDIS_URL: str = os.getenv("REDIS_URL", "")
    IDEMPOTENCY_TTL: int = int(os.getenv("IDEMPOTENCY_TTL", "600"))

    # Realtime fan-out: "local" or "redis"
    REALTIME_BACKEND: str = os.getenv("REALTIME_BACKEND", "local")
    REALTIME_CHANNEL: str = os.getenv("REALTIME_CHANNEL", "chatrelay:fanout")
    SOCKET_PING_INTERVAL: int = int(os.getenv("SOCKET_PING_INTERVAL", "20"))
    SOCKET_PING_TIMEOUT: int = int(os.getenv("SOCKET_PING_TIMEOUT", "25"))

    # Messages
    MESSAGE_PAGE_SIZE: int = int(os.getenv("MESSAGE_PAGE_SIZE", "20"))
    MESSAGE_PAGE_MAX: int = int(os.getenv("MESSAGE_PAGE_MAX", "100"))
    MESSAGE_MAX_LENGTH: int = int(os.getenv("MESSAGE_MAX_LENGTH", "4000"))


class DevelopmentConfig(Config):
    """Development configuration"""

    DEBUG = True


class TestingConfig(Config):
    """Testing configuration"""

    TESTING = True
    STORE_BACKEND = "memory"
    REALTIME_BACKEND = "local"
    REDIS_URL = ""


class ProductionConfig(Config):
    """Production configuration"""

    pass


# Configuration dictionary
config = {
    "development": DevelopmentConfig,
    "testing": TestingConfig,
    "production": ProductionConfig,
    "default": DevelopmentConfig,
}


def get_config(env=None):
    """Get configuration based on environment"""
    if env is None:
        env = os.getenv("APP_ENV", "development")
    return config.get(env, config["default"])
