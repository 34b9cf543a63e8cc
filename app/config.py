# =============================================================================
# app/config.py - Application Settings
# =============================================================================
# This module loads configuration from environment variables using pydantic-settings.
# It provides a single Settings class with all configuration values.
#
# Usage:
#   from app.config import settings
#   print(settings.PORT)
#
# Environment variables are loaded from:
# 1. System environment variables
# 2. .env file in project root (if exists)
# =============================================================================

from functools import lru_cache
from pathlib import Path
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    Every value has a development-friendly default, so the server starts
    with no configuration at all. Tests build their own instances with
    keyword overrides instead of touching the environment.
    """

    # -------------------------------------------------------------------------
    # Server
    # -------------------------------------------------------------------------

    HOST: str = Field(
        default="0.0.0.0",
        description="Host to bind the server to"
    )

    PORT: int = Field(
        default=3000,
        ge=1,
        le=65535,
        description="Port for the server"
    )

    NODE_ENV: str = Field(
        default="development",
        description="Deployment mode; 'production' restricts CORS and hides error detail"
    )

    DEBUG: bool = Field(
        default=False,
        description="Enable debug logging"
    )

    # -------------------------------------------------------------------------
    # Security
    # -------------------------------------------------------------------------

    CORS_ORIGIN: Optional[str] = Field(
        default=None,
        description="The single origin allowed to read responses in production"
    )

    TRUST_PROXY: bool = Field(
        default=False,
        description="Take the client address from X-Forwarded-For"
    )

    RATE_LIMIT_WINDOW_SECONDS: int = Field(
        default=15 * 60,
        ge=1,
        description="Length of a rate limit window in seconds"
    )

    RATE_LIMIT_MAX_REQUESTS: int = Field(
        default=100,
        ge=1,
        description="Requests allowed per client per window on /api paths"
    )

    # -------------------------------------------------------------------------
    # Request Bodies & Assets
    # -------------------------------------------------------------------------

    MAX_BODY_SIZE_MB: int = Field(
        default=10,
        ge=1,
        le=500,
        description="Maximum JSON / form body size in MB"
    )

    PUBLIC_DIR: Path = Field(
        default=Path("public"),
        description="Directory served as static assets and HTML pages"
    )

    # -------------------------------------------------------------------------
    # Pydantic Settings Configuration
    # -------------------------------------------------------------------------

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_ignore_empty=True,
        case_sensitive=True,
    )

    # -------------------------------------------------------------------------
    # Computed Properties
    # -------------------------------------------------------------------------

    @property
    def is_production(self) -> bool:
        """Check if running in production mode."""
        return self.NODE_ENV == "production"

    @property
    def max_body_size_bytes(self) -> int:
        """
        Convert MB to bytes for body size validation.
        """
        return self.MAX_BODY_SIZE_MB * 1024 * 1024


@lru_cache
def get_settings() -> Settings:
    """
    Get cached Settings instance.

    Returns:
        Settings: The application settings instance
    """
    return Settings()


# Global settings instance for easy importing
settings = get_settings()
