"""
Configuration - Environment-driven settings shared by every service
"""

from functools import lru_cache
from typing import List, Literal

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables or a `.env` file.
    Every service process reads the same settings; only the app it serves differs.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    APP_NAME: str = "TaskHub"
    APP_VERSION: str = "1.0.0"
    ENVIRONMENT: Literal["development", "test", "staging", "production"] = "development"
    DEBUG: bool = False  # Echo SQL and expose tracebacks in logs

    # Database
    DATABASE_URL: str = "sqlite:///./taskhub.db"  # Shared by every service process
    DB_POOL_SIZE: int = 5  # Persistent connections per process
    DB_MAX_OVERFLOW: int = 10  # Extra connections under load
    DB_POOL_TIMEOUT: int = 30  # Seconds to wait for a free connection

    # CORS
    CORS_ORIGINS: List[str] = ["http://localhost:3004"]  # Frontend service origin

    # Security
    BCRYPT_ROUNDS: int = 12  # Cost factor; tests lower it for speed
    SESSION_TTL_HOURS: int = 24  # Session renewal window
    SESSION_CLEANUP_INTERVAL_SECONDS: int = 0  # 0 disables the periodic sweep
    SESSION_COOKIE_NAME: str = "session_token"  # Cookie read by COOKIE-source services

    # Sibling services
    USER_SERVICE_URL: str = "http://localhost:3000"
    TASK_SERVICE_URL: str = "http://localhost:3001"
    ANALYTICS_SERVICE_URL: str = "http://localhost:3002"
    FILE_SERVICE_URL: str = "http://localhost:3003"
    FRONTEND_SERVICE_URL: str = "http://localhost:3004"

    # Outbound HTTP
    HTTP_TIMEOUT: float = 10.0  # Seconds per outbound request
    HTTP_RETRIES: int = 3  # Extra attempts after a connection failure
    HTTP_RETRY_DELAY: float = 1.0  # Base wait between attempts, in seconds
    AUTH_TIMEOUT: float = 5.0  # Session verification is on every request path
    HEALTH_CHECK_TIMEOUT: float = 2.0  # Sibling /up checks, single attempt

    # Task service forwards lifecycle events to analytics
    TRACK_TASK_EVENTS: bool = True


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


settings = get_settings()


def is_production() -> bool:
    return settings.ENVIRONMENT == "production"


def validate_config() -> None:
    """
    Fail fast on settings that would make the service misbehave at runtime.

    Raises:
        ValueError: first invalid setting found
    """
    if settings.HTTP_TIMEOUT <= 0 or settings.AUTH_TIMEOUT <= 0:
        raise ValueError("HTTP_TIMEOUT and AUTH_TIMEOUT must be positive")
    if settings.HTTP_RETRIES < 0:
        raise ValueError("HTTP_RETRIES cannot be negative")
    if settings.HTTP_RETRY_DELAY < 0:
        raise ValueError("HTTP_RETRY_DELAY cannot be negative")
    if settings.SESSION_TTL_HOURS <= 0:
        raise ValueError("SESSION_TTL_HOURS must be positive")
    if is_production() and settings.DATABASE_URL.startswith("sqlite"):
        raise ValueError("SQLite is not supported in production - set DATABASE_URL")
