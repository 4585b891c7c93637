"""Configuration package."""

from cashbox.config.settings import (
    AppSettings,
    DatabaseSettings,
    GeminiSettings,
    LocalStorageSettings,
    Settings,
    get_settings,
    validate_all_settings,
)

__all__ = [
    "AppSettings",
    "DatabaseSettings",
    "GeminiSettings",
    "LocalStorageSettings",
    "Settings",
    "get_settings",
    "validate_all_settings",
]
