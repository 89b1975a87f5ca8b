"""Application configuration via Pydantic BaseSettings."""

from __future__ import annotations

from enum import Enum
from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Environment(str, Enum):
    development = "development"
    staging = "staging"
    production = "production"


class Settings(BaseSettings):
    """Application settings loaded from environment variables and .env file."""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8")

    # Environment
    ENVIRONMENT: Environment = Environment.development

    # Logging
    LOG_LEVEL: str = "INFO"

    # Error reporting
    SENTRY_DSN: str = ""

    # CORS
    CORS_ALLOWED_ORIGINS: str = "*"

    # Suggestion engine
    MAX_SUGGESTIONS: int = 5
    CONVERSATION_LOOKBACK_LIMIT: int = 10  # Recent conversations aggregated per deal

    @property
    def cors_origins(self) -> list[str]:
        """CORS origins as a list (comma-separated in the environment)."""
        return [o.strip() for o in self.CORS_ALLOWED_ORIGINS.split(",") if o.strip()]


@lru_cache
def get_settings() -> Settings:
    """Singleton settings instance."""
    return Settings()
