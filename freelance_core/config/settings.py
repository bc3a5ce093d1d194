"""
Configuration Management for Freelance Core

Uses pydantic-settings for type-safe configuration from environment variables.

DESIGN DECISION: All runtime configuration is centralized here.
This is process configuration (where data lives, how loud logging is).
The user's own preferences live in the AppSettings record inside the store.
"""

from functools import lru_cache
from pathlib import Path
from typing import Literal, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class StorageSettings(BaseSettings):
    """Local key-value storage configuration."""

    model_config = SettingsConfigDict(
        env_prefix="FREELANCE_STORAGE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    backend: Literal["file", "memory"] = Field(
        default="file",
        description="Which key-value backend to use"
    )
    data_dir: Path = Field(
        default=Path("~/.freelance_core"),
        description="Directory holding one JSON file per storage slot"
    )
    write_timeout_seconds: float = Field(
        default=5.0,
        description="Timeout for a single backend write (<= 0 disables)"
    )
    quota_bytes: Optional[int] = Field(
        default=None,
        ge=1,
        description="Simulated device quota for the in-memory backend"
    )

    @field_validator('data_dir')
    @classmethod
    def expand_data_dir(cls, v: Path) -> Path:
        """Expand ~ so the backend never sees a literal tilde."""
        return v.expanduser()


class LoggingSettings(BaseSettings):
    """Structured logging configuration."""

    model_config = SettingsConfigDict(
        env_prefix="FREELANCE_LOG_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    level: str = Field(
        default="INFO",
        description="Minimum log level"
    )
    json_output: bool = Field(
        default=True,
        description="Render JSON lines (False = human-readable console output)"
    )

    @field_validator('level')
    @classmethod
    def normalize_level(cls, v: str) -> str:
        level = v.strip().upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"Unknown log level: {v}")
        return level


class ExchangeRateSettings(BaseSettings):
    """Retry policy for the injected exchange-rate provider."""

    model_config = SettingsConfigDict(
        env_prefix="FREELANCE_RATES_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    retry_attempts: int = Field(
        default=3,
        ge=1,
        le=10,
        description="How many times to ask the provider before giving up"
    )
    retry_min_wait: float = Field(
        default=2.0,
        ge=0.0,
        description="Minimum back-off between attempts (seconds)"
    )
    retry_max_wait: float = Field(
        default=10.0,
        ge=0.0,
        description="Maximum back-off between attempts (seconds)"
    )


class Settings(BaseSettings):
    """
    Root settings container.

    Aggregates all sub-settings for easy access.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    # Sub-settings are built lazily so one bad group doesn't block the others

    @property
    def storage(self) -> StorageSettings:
        return StorageSettings()

    @property
    def logging(self) -> LoggingSettings:
        return LoggingSettings()

    @property
    def exchange_rates(self) -> ExchangeRateSettings:
        return ExchangeRateSettings()


@lru_cache()
def get_settings() -> Settings:
    """
    Get application settings (cached).

    Call get_settings.cache_clear() to reload if needed.
    """
    return Settings()


def validate_all_settings() -> dict[str, bool]:
    """
    Validate all settings groups.

    Returns a dict of {group_name: is_valid}, plus "<group>_error"
    entries carrying the message for any group that failed.
    """
    results = {}

    settings = get_settings()

    for name in ("storage", "logging", "exchange_rates"):
        try:
            getattr(settings, name)
            results[name] = True
        except Exception as e:
            results[name] = False
            results[f"{name}_error"] = str(e)

    return results
