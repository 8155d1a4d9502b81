"""Application configuration loaded from environment variables (and an optional .env file)"""
from functools import lru_cache
from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict

from domain.constants import (
    RECONNECT_DELAY_SECONDS,
    TYPING_TIMEOUT_SECONDS,
    DEFAULT_HISTORY_LIMIT,
    MAX_HISTORY_LIMIT,
    MAX_MESSAGE_LENGTH,
)


class Settings(BaseSettings):
    """Chat server and client settings"""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    # Storage
    DB_PATH: str = "chat_history.db"

    # Bearer tokens
    JWT_SECRET: str = "your-secret-key"
    JWT_ALGORITHM: str = "HS256"
    JWT_EXPIRE_MINUTES: int = 60 * 24 * 7

    # Server
    HOST: str = "localhost"
    PORT: int = 8765
    LOG_LEVEL: str = "INFO"

    # Client endpoints
    CHAT_SERVER_URL: str = "ws://localhost:8765/ws"
    API_BASE_URL: str = "http://localhost:8765"

    # Protocol timing and limits
    RECONNECT_DELAY_SECONDS: float = RECONNECT_DELAY_SECONDS
    TYPING_TIMEOUT_SECONDS: float = TYPING_TIMEOUT_SECONDS
    DEFAULT_HISTORY_LIMIT: int = DEFAULT_HISTORY_LIMIT
    MAX_HISTORY_LIMIT: int = MAX_HISTORY_LIMIT
    MAX_MESSAGE_LENGTH: int = MAX_MESSAGE_LENGTH

    # AI assistant
    AI_ENABLED: bool = True
    AI_ASSISTANT_ID: str = "ai-assistant"
    AI_ROLE: Literal["therapist", "coach", "emergency"] = "therapist"


@lru_cache
def get_settings() -> Settings:
    return Settings()
