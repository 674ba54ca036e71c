"""Client configuration using pydantic-settings."""
from functools import lru_cache
from typing import Literal

from pydantic import AliasChoices, Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_API_URL = "http://localhost:3000"


class Settings(BaseSettings):
    """Client settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    app_env: Literal["development", "production"] = Field(
        default="development",
        validation_alias=AliasChoices("app_env", "APP_ENV", "MODE"),
    )

    # Backend API - accepts the frontend's VITE_ prefixed name as well
    api_url: str | None = Field(
        default=None,
        validation_alias=AliasChoices("api_url", "API_URL", "VITE_API_URL"),
    )

    # Local persisted state; in-memory when Redis is disabled
    redis_url: str = "redis://localhost:6379"
    redis_enabled: bool = False
    storage_prefix: str = "finance:"

    @model_validator(mode="after")
    def require_api_url_in_production(self) -> "Settings":
        """Production deployments must name their API explicitly."""
        if self.app_env == "production" and not self.api_url:
            raise ValueError(
                "API_URL environment variable is required in production. "
                "Please set it in your .env file or deployment configuration.",
            )
        return self

    @property
    def base_url(self) -> str:
        """API base URL without a trailing slash."""
        return (self.api_url or DEFAULT_API_URL).rstrip("/")


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
