from __future__ import annotations

from typing import Literal

from pydantic import ConfigDict
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    POSTGRES_USER: str
    POSTGRES_PASSWORD: str
    POSTGRES_DB: str
    DB_HOST: str = "localhost"
    DB_PORT: int = 5432

    DB_POOL_SIZE: int = 10
    DB_MAX_OVERFLOW: int = 20
    DB_POOL_RECYCLE: int = 300

    REDIS_URL: str = "redis://localhost:6379/0"
    CHANGE_FEED_CHANNEL: str = "clinic.changes"

    JWT_SECRET: str = ""
    JWT_VERIFY_MODE: Literal["hs256", "jwks"] = "hs256"
    JWT_ALGORITHM: str = "HS256"
    JWT_AUDIENCE: str | None = None
    JWKS_URL: str | None = None

    AUTH_URL: str = "http://localhost:9999"
    AUTH_API_KEY: str = ""
    AUTH_TIMEOUT_SECONDS: float = 10.0
    IDENTITY_CACHE_PATH: str = "~/.clinic_chat/identity.json"

    APP_HOST: str = "0.0.0.0"
    APP_PORT: int = 8000
    LOG_LEVEL: str = "INFO"

    CORS_ORIGINS: list[str] = ["*"]

    WS_HEARTBEAT_SECONDS: int = 30

    DEFAULT_CONVERSATION_TITLE: str = "New conversation"
    GREETING_MESSAGE: str = "Hello! I need some help."
    QUICK_REPLIES: list[str] = [
        "Good morning! How can I help you?",
        "Let me check the schedule for you",
        "One moment, please",
        "Thank you for getting in touch!",
    ]

    @property
    def database_url(self) -> str:
        return (
            f"postgresql+asyncpg://{self.POSTGRES_USER}:{self.POSTGRES_PASSWORD}"
            f"@{self.DB_HOST}:{self.DB_PORT}/{self.POSTGRES_DB}"
        )

    model_config = ConfigDict(
        env_file=".env",
        extra="ignore",
    )


settings = Settings()  # type: ignore[call-arg]
