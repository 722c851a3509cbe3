# analytics_store/config.py
"""
Centralized configuration with validation.

Uses pydantic-settings to load and validate all environment variables once at
startup. The resulting Settings object is passed into the retention engine;
nothing below this module reads the environment directly.
"""

import logging
from functools import lru_cache

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    # Analytics store
    MONGODB_URI: str = Field(
        default="mongodb://localhost:27017",
        description="MongoDB connection string for the analytics store",
    )
    MONGODB_DB_NAME: str = Field(
        default="analytics",
        description="Database holding the analytics collections",
    )
    MONGODB_TIMEOUT_MS: int = Field(
        default=5000,
        ge=1,
        description="Server selection and socket timeout for each store call",
    )

    # Capacity
    MONGODB_MAX_STORAGE_MB: int = Field(
        default=450,
        description="Storage ceiling used to compute usage percent",
    )
    MONGODB_CLEANUP_THRESHOLD_PERCENT: int = Field(
        default=85,
        ge=1,
        le=100,
        description="Usage percent at or above which cleanup is needed",
    )

    # Cleanup lock
    CLEANUP_LOCK_TTL_SECONDS: int = Field(
        default=900,
        ge=1,
        description="Lease lifetime for the cross-process cleanup lock",
    )

    # Authentication
    ADMIN_API_KEY: str | None = Field(
        default=None,
        description="API key for admin storage endpoints",
    )

    # Application
    ENVIRONMENT: str = Field(
        default="development",
        description="Environment: development, staging, production",
    )
    LOG_LEVEL: str = Field(
        default="INFO",
        description="Log level (DEBUG, INFO, WARNING, ERROR)",
    )
    LOG_JSON: bool = Field(
        default=True,
        description="Emit single-line JSON logs instead of human-readable lines",
    )

    @field_validator("MONGODB_MAX_STORAGE_MB")
    @classmethod
    def warn_non_positive_ceiling(cls, v: int) -> int:
        """A non-positive ceiling is accepted but means cleanup always triggers."""
        if v <= 0:
            logging.getLogger(__name__).warning(
                f"MONGODB_MAX_STORAGE_MB={v} is not positive; storage will be reported as 100% used"
            )
        return v

    @field_validator("LOG_LEVEL")
    @classmethod
    def normalize_log_level(cls, v: str) -> str:
        level = v.upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"Unknown log level: {v}")
        return level


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Get cached application settings. Call at startup to validate config."""
    return Settings()
