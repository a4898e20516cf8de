"""
Configuration settings for the edukid practice service.

Uses Pydantic Settings for environment variable management with .env file support.
"""
from __future__ import annotations

from functools import lru_cache
from typing import Any, Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ========================================
    # Database
    # ========================================
    database_url: str = Field(
        default="sqlite:///./edukid.db",
        description="SQLAlchemy connection string (SQLite or PostgreSQL)",
    )

    # ========================================
    # Adaptive Practice
    # ========================================
    coin_reward: int = Field(
        default=10,
        ge=0,
        description="Coins awarded for a correct answer",
    )
    mastery_ema_weight: float = Field(
        default=0.1,
        gt=0,
        le=1,
        description="Weight of the newest outcome in the mastery moving average",
    )
    default_year_group: int = Field(
        default=5,
        ge=1,
        le=9,
        description="Year group assumed for students without one",
    )
    mastery_upsert_retries: int = Field(
        default=5,
        ge=1,
        description="Compare-and-swap attempts before a mastery update gives up",
    )

    # ========================================
    # Logging
    # ========================================
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="INFO",
        description="Logging verbosity level",
    )
    log_file: str | None = Field(
        default="logs/edukid.log",
        description="Log file path (None for stderr only)",
    )

    # ========================================
    # API Server
    # ========================================
    api_host: str = Field(
        default="127.0.0.1",
        description="API server host",
    )
    api_port: int = Field(
        default=8100,
        description="API server port",
    )
    user_header: str = Field(
        default="X-User-Id",
        description="Request header carrying the authenticated user id",
    )
    cors_origins: list[str] = Field(
        default=["*"],
        description="Origins allowed to call the API from a browser",
    )

    def get_engine_config(self) -> dict[str, Any]:
        """Get practice engine tunables as a dictionary."""
        return {
            "coin_reward": self.coin_reward,
            "mastery_ema_weight": self.mastery_ema_weight,
            "default_year_group": self.default_year_group,
            "mastery_upsert_retries": self.mastery_upsert_retries,
        }


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
