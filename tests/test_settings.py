"""Tests for environment-driven configuration."""

from pathlib import Path

import pytest
from pydantic import ValidationError

from cashbox.config import (
    AppSettings,
    DatabaseSettings,
    GeminiSettings,
    LocalStorageSettings,
    get_settings,
    validate_all_settings,
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ("DATABASE_URL", "GEMINI_API_KEY", "LOG_LEVEL", "CASHBOX_DATA_DIR"):
        monkeypatch.delenv(name, raising=False)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


class TestDatabaseSettings:

    def test_unset(self):
        assert not DatabaseSettings(_env_file=None).is_configured

    def test_blank_is_unset(self, monkeypatch):
        monkeypatch.setenv("DATABASE_URL", "   ")
        assert DatabaseSettings(_env_file=None).url is None

    def test_from_env(self, monkeypatch):
        monkeypatch.setenv("DATABASE_URL", "postgresql://u:p@host/cash")
        monkeypatch.setenv("DATABASE_TIMEOUT_SECONDS", "3")
        settings = DatabaseSettings(_env_file=None)
        assert settings.is_configured
        assert settings.timeout_seconds == 3.0


class TestGeminiSettings:

    def test_defaults(self):
        settings = GeminiSettings(_env_file=None)
        assert not settings.is_configured
        assert settings.model_name == "gemini-2.0-flash"

    def test_from_env(self, monkeypatch):
        monkeypatch.setenv("GEMINI_API_KEY", "abc")
        assert GeminiSettings(_env_file=None).is_configured

    def test_temperature_bounds(self):
        with pytest.raises(ValidationError):
            GeminiSettings(_env_file=None, temperature=2.0)


class TestLocalAndAppSettings:

    def test_storage_keys(self, monkeypatch, tmp_path):
        monkeypatch.setenv("CASHBOX_DATA_DIR", str(tmp_path))
        settings = LocalStorageSettings(_env_file=None)
        assert settings.data_dir == Path(tmp_path)
        assert settings.users_key == "cashbox_users"
        assert settings.transactions_key == "cashbox_txs"

    def test_bad_storage_key(self):
        with pytest.raises(ValidationError):
            LocalStorageSettings(_env_file=None, users_key="../etc")

    def test_log_level_normalized(self, monkeypatch):
        monkeypatch.setenv("LOG_LEVEL", "debug")
        assert AppSettings(_env_file=None).log_level == "DEBUG"

    def test_unknown_log_level(self):
        with pytest.raises(ValidationError):
            AppSettings(_env_file=None, log_level="LOUD")


class TestValidateAllSettings:

    def test_nothing_configured(self):
        status = validate_all_settings()
        assert status["database"] is False
        assert status["gemini"] is False
        assert status["local_storage"] is True
        assert status["app"] is True

    def test_errors_are_reported(self, monkeypatch):
        monkeypatch.setenv("LOG_LEVEL", "LOUD")
        status = validate_all_settings()
        assert status["app"] is False
        assert "app_error" in status
