"""
Configuration and settings for the shutdown log service.
"""

from __future__ import annotations

from functools import lru_cache
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Environment-backed settings for the FastAPI service."""

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", extra="ignore"
    )

    api_prefix: str = Field(default="/api")
    log_level: str = Field(default="INFO", validation_alias="SHUTDOWN_LOG_LEVEL")

    # Database (Postgres expected, any SQLAlchemy URL works)
    database_url: Optional[str] = Field(default=None, validation_alias="DATABASE_URL")

    # Auth provider token verification
    jwt_secret: Optional[str] = Field(
        default=None, validation_alias="SHUTDOWN_LOG_JWT_SECRET"
    )
    jwt_algorithm: str = Field(
        default="HS256", validation_alias="SHUTDOWN_LOG_JWT_ALGORITHM"
    )
    jwt_audience: str = Field(
        default="authenticated", validation_alias="SHUTDOWN_LOG_JWT_AUDIENCE"
    )

    # Zone used to decide which calendar date "today" is
    timezone: str = Field(default="UTC", validation_alias="SHUTDOWN_LOG_TIMEZONE")

    # Browser front end
    cors_origins: list[str] = Field(
        default_factory=list, validation_alias="SHUTDOWN_LOG_CORS_ORIGINS"
    )

    # Development toggles
    use_in_memory_backends: bool = Field(
        default=False, validation_alias="SHUTDOWN_LOG_USE_IN_MEMORY_BACKENDS"
    )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return cached settings instance."""
    return Settings()
