"""Configuration management for the event discovery service."""

from __future__ import annotations

import logging
from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment."""

    # Event generation service
    event_api_url: str = Field(
        default="http://localhost:3001",
        description="Base URL of the event generation service",
    )
    request_timeout_seconds: float = Field(
        default=60.0,
        description="Transport timeout for a single generation request",
    )

    # Discovery pacing
    min_display_ms: int = Field(
        default=5000, ge=0, description="Minimum loading time before hand-off"
    )
    max_timeout_ms: int = Field(
        default=45000, ge=0, description="Hard ceiling before hand-off is forced"
    )
    use_fallback_events: bool = Field(
        default=True,
        description="Synthesize events on the results page when discovery fails",
    )

    # Hand-off storage
    handoff_db_path: str = Field(
        default="",
        description="SQLite path for hand-off storage (empty = in-memory)",
    )

    # Server config
    cors_origins: str = Field(
        default="http://localhost:3000,http://localhost:3001",
        description="Comma-separated CORS origins",
    )
    log_level: str = Field(default="INFO", description="Logging level")

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", extra="ignore"
    )

    @property
    def cors_origins_list(self) -> list[str]:
        """Parse CORS origins into list."""
        return [origin.strip() for origin in self.cors_origins.split(",") if origin]

    @property
    def has_persistent_handoff(self) -> bool:
        """Check if hand-off storage survives process restarts."""
        return bool(self.handoff_db_path)


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


def configure_logging(settings: Settings | None = None) -> None:
    """Configure application logging."""
    if settings is None:
        settings = get_settings()

    logging.basicConfig(
        level=getattr(logging, settings.log_level.upper(), logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    # Suppress verbose third-party loggers
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
