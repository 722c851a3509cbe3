# tests/unit/test_config.py
"""Unit tests for settings loading and validation."""

import pytest
from pydantic import ValidationError

from analytics_store.config import Settings

ENV_KEYS = (
    "MONGODB_URI",
    "MONGODB_DB_NAME",
    "MONGODB_MAX_STORAGE_MB",
    "MONGODB_CLEANUP_THRESHOLD_PERCENT",
    "LOG_LEVEL",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for key in ENV_KEYS:
        monkeypatch.delenv(key, raising=False)


class TestDefaults:
    def test_capacity_defaults(self):
        settings = Settings(_env_file=None)

        assert settings.MONGODB_MAX_STORAGE_MB == 450
        assert settings.MONGODB_CLEANUP_THRESHOLD_PERCENT == 85
        assert settings.MONGODB_DB_NAME == "analytics"
        assert settings.ADMIN_API_KEY is None


class TestEnvironment:
    def test_reads_environment(self, monkeypatch):
        monkeypatch.setenv("MONGODB_MAX_STORAGE_MB", "1024")
        monkeypatch.setenv("MONGODB_CLEANUP_THRESHOLD_PERCENT", "70")

        settings = Settings(_env_file=None)

        assert settings.MONGODB_MAX_STORAGE_MB == 1024
        assert settings.MONGODB_CLEANUP_THRESHOLD_PERCENT == 70

    @pytest.mark.parametrize("value", ["0", "101"])
    def test_threshold_out_of_range(self, monkeypatch, value):
        monkeypatch.setenv("MONGODB_CLEANUP_THRESHOLD_PERCENT", value)

        with pytest.raises(ValidationError):
            Settings(_env_file=None)

    def test_non_positive_ceiling_warns(self, caplog):
        """A zero ceiling is accepted with a warning, not rejected."""
        settings = Settings(MONGODB_MAX_STORAGE_MB=0, _env_file=None)

        assert settings.MONGODB_MAX_STORAGE_MB == 0
        assert "not positive" in caplog.text

    def test_log_level_normalized(self):
        assert Settings(LOG_LEVEL="debug", _env_file=None).LOG_LEVEL == "DEBUG"

    def test_unknown_log_level(self):
        with pytest.raises(ValidationError):
            Settings(LOG_LEVEL="loud", _env_file=None)
