"""
Configuration Management for Cashbox

Uses pydantic-settings for type-safe configuration from environment variables.

All configuration is centralized here. Both external services are optional:
without DATABASE_URL the ledger lives in local storage only, and without
GEMINI_API_KEY the AI report is disabled. Neither absence fails startup.
"""

from functools import lru_cache
from pathlib import Path
from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class DatabaseSettings(BaseSettings):
    """Remote relational store configuration."""

    model_config = SettingsConfigDict(
        env_prefix="DATABASE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    url: Optional[str] = Field(
        default=None,
        description="Database connection string (PostgreSQL or SQLite)"
    )
    echo: bool = Field(
        default=False,
        description="Echo SQL statements to the log"
    )
    timeout_seconds: float = Field(
        default=10.0,
        gt=0,
        le=120,
        description="Upper bound for a single remote storage call"
    )

    @field_validator('url')
    @classmethod
    def blank_url_is_unset(cls, v: Optional[str]) -> Optional[str]:
        """Treat an empty DATABASE_URL the same as a missing one."""
        if v is not None and not v.strip():
            return None
        return v.strip() if v else v

    @property
    def is_configured(self) -> bool:
        return self.url is not None


class GeminiSettings(BaseSettings):
    """Gemini LLM configuration."""

    model_config = SettingsConfigDict(
        env_prefix="GEMINI_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    api_key: Optional[str] = Field(
        default=None,
        description="Gemini API key"
    )
    model_name: str = Field(
        default="gemini-2.0-flash",
        description="Gemini model to use"
    )
    max_tokens: int = Field(
        default=2048,
        ge=100,
        le=8192,
        description="Maximum tokens in response"
    )
    temperature: float = Field(
        default=0.4,
        ge=0.0,
        le=1.0,
        description="Model temperature (lower = more deterministic)"
    )
    timeout_seconds: float = Field(
        default=60.0,
        gt=0,
        description="Upper bound for a single report request"
    )

    @property
    def is_configured(self) -> bool:
        return bool(self.api_key)


class LocalStorageSettings(BaseSettings):
    """Local durable key-value storage configuration."""

    model_config = SettingsConfigDict(
        env_prefix="CASHBOX_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    data_dir: Path = Field(
        default=Path(".cashbox"),
        description="Directory holding the local JSON snapshots"
    )
    users_key: str = Field(
        default="cashbox_users",
        pattern=r"^[A-Za-z0-9_\-]+$",
        description="Storage key for the serialized user list"
    )
    transactions_key: str = Field(
        default="cashbox_txs",
        pattern=r"^[A-Za-z0-9_\-]+$",
        description="Storage key for the serialized transaction list"
    )
    outbox_key: str = Field(
        default="cashbox_outbox",
        pattern=r"^[A-Za-z0-9_\-]+$",
        description="Storage key for remote writes awaiting replay"
    )


class AppSettings(BaseSettings):
    """
    Main application settings.

    Loads configuration from environment variables and .env file.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    # Environment
    app_environment: str = Field(
        default="development",
        description="Application environment"
    )
    debug_mode: bool = Field(
        default=False,
        description="Enable debug mode"
    )

    # Logging
    log_level: str = Field(
        default="INFO",
        description="Root log level"
    )
    log_json: bool = Field(
        default=True,
        description="Render logs as JSON (console rendering otherwise)"
    )

    # Outbox replay
    sync_retry_attempts: int = Field(
        default=3,
        ge=1,
        le=10,
        description="Attempts per queued remote write during sync"
    )
    sync_retry_wait_seconds: float = Field(
        default=1.0,
        ge=0.0,
        le=30.0,
        description="Base wait for exponential backoff during sync"
    )

    # Presentation
    recent_transactions_limit: int = Field(
        default=5,
        ge=1,
        le=100,
        description="How many transactions the dashboard lists"
    )
    currency_label: str = Field(
        default="ر.س",
        description="Currency label shown next to amounts"
    )

    @field_validator('log_level')
    @classmethod
    def normalize_log_level(cls, v: str) -> str:
        level = v.strip().upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"Unknown log level: {v}")
        return level


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

    # Sub-settings are loaded lazily to allow partial configuration

    @property
    def database(self) -> DatabaseSettings:
        return DatabaseSettings()

    @property
    def gemini(self) -> GeminiSettings:
        return GeminiSettings()

    @property
    def local_storage(self) -> LocalStorageSettings:
        return LocalStorageSettings()

    @property
    def app(self) -> AppSettings:
        return AppSettings()


@lru_cache()
def get_settings() -> Settings:
    """
    Get application settings (cached).

    Uses LRU cache to ensure settings are only loaded once.
    Call get_settings.cache_clear() to reload if needed.
    """
    return Settings()


def validate_all_settings() -> dict[str, bool]:
    """
    Report which services are configured.

    Returns a dict of {setting_name: is_configured}, with a
    "<name>_error" entry for settings that failed to load.
    Useful for the settings page and startup checks.
    """
    results = {}

    settings = get_settings()

    try:
        results["database"] = settings.database.is_configured
    except Exception as e:
        results["database"] = False
        results["database_error"] = str(e)

    try:
        results["gemini"] = settings.gemini.is_configured
    except Exception as e:
        results["gemini"] = False
        results["gemini_error"] = str(e)

    try:
        _ = settings.local_storage
        results["local_storage"] = True
    except Exception as e:
        results["local_storage"] = False
        results["local_storage_error"] = str(e)

    try:
        _ = settings.app
        results["app"] = True
    except Exception as e:
        results["app"] = False
        results["app_error"] = str(e)

    return results
