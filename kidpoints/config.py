from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables and .env file."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
    )

    # App
    APP_NAME: str = "KidPoints API"
    API_PREFIX: str = "/api"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"

    # CORS
    CORS_ORIGINS: list[str] = ["http://localhost:5173"]

    # Durable storage (one JSON blob per key inside DATA_DIR)
    DATA_DIR: str = "data"
    POINTS_KEY: str = "points"
    CREDENTIALS_KEY: str = "credentials"

    # Sessions
    SESSION_COOKIE_NAME: str = "kidpoints_session"
    SESSION_COOKIE_SECURE: bool = False
    SESSION_MAX_AGE_SECONDS: int | None = None  # None = until process restart
    SESSION_BACKEND: Literal["memory", "redis"] = "memory"

    # Redis (optional: redis session backend, and rate-limit counters at import)
    REDIS_URL: str | None = None

    # Rate limiting (read once from the process environment, see core/rate_limit.py)
    LOGIN_RATE_LIMIT: str = "10/minute"

    # Points board
    POINTS_PER_CHILD: int = 20


settings = Settings()
