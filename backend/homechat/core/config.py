"""
Application configuration using Pydantic Settings.

Values come from the environment or a local .env file. Runtime preferences
that the UI edits (API key, summary prompt, default prompt) live in the
settings table instead, see SqliteSettingRepository.
"""

from functools import lru_cache
from typing import List, Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    # ===========================================
    # Environment
    # ===========================================
    ENVIRONMENT: Literal["local", "production"] = "local"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"

    # ===========================================
    # Database
    # ===========================================
    DATABASE_URL: str = "sqlite+aiosqlite:///./homechat.db"

    # ===========================================
    # LLM Configuration (OpenAI-compatible chat completions)
    # ===========================================
    LLM_API_URL: str = "https://api.deepseek.com/chat/completions"
    LLM_MODEL: str = "deepseek-chat"

    # Used only when the "apiKey" setting has not been saved from the UI
    LLM_API_KEY: str = ""

    LLM_TIMEOUT_SECONDS: float = 120.0

    # ===========================================
    # Auth (site password + JWT)
    # ===========================================
    AUTH_ENABLED: bool = True
    # Empty means a random secret per process (tokens die on restart)
    JWT_SECRET: str = ""
    JWT_ISSUER: str = "homechat"
    JWT_EXPIRE_MINUTES: int = 60 * 24 * 7
    MIN_PASSWORD_LENGTH: int = 6

    # ===========================================
    # Server
    # ===========================================
    HOST: str = "0.0.0.0"
    PORT: int = 8000
    ALLOWED_ORIGINS: List[str] = Field(
        default=["http://localhost:3000", "http://localhost:5173"]
    )

    # ===========================================
    # Backup
    # ===========================================
    MAX_IMPORT_BYTES: int = 500 * 1024 * 1024

    @property
    def is_local(self) -> bool:
        """Check if running in local environment."""
        return self.ENVIRONMENT == "local"


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Using lru_cache ensures settings are loaded only once.
    """
    return Settings()
