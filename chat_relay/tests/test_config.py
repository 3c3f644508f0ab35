# chat_relay/tests/test_config.py

import pytest
from pydantic import ValidationError

from chat_relay.config import Settings


def test_from_env_defaults(monkeypatch):
    for name in ("GEMINI_API_KEY", "GEMINI_MODEL", "MAX_HISTORY", "RATE_LIMIT_MAX", "CORS_ORIGINS"):
        monkeypatch.delenv(name, raising=False)
    settings = Settings.from_env()
    assert settings.gemini_api_key is None
    assert settings.has_upstream is False
    assert settings.gemini_model == "models/gemini-2.5-flash"
    assert settings.max_history == 10
    assert settings.max_message_chars == 20000
    assert settings.upstream_max_retries == 3
    assert settings.rate_limit_max == 150
    assert settings.rate_limit_window_seconds == 3600
    assert settings.cors_origins == ["*"]


def test_from_env_overrides(monkeypatch):
    monkeypatch.setenv("GEMINI_API_KEY", "secret")
    monkeypatch.setenv("GEMINI_MODEL", "models/gemini-pro")
    monkeypatch.setenv("MAX_HISTORY", "4")
    monkeypatch.setenv("UPSTREAM_BACKOFF_BASE_SECONDS", "0.1")
    monkeypatch.setenv("CORS_ORIGINS", "http://localhost:5173, https://chat.example.com")
    settings = Settings.from_env()
    assert settings.has_upstream is True
    assert settings.gemini_model == "models/gemini-pro"
    assert settings.max_history == 4
    assert settings.upstream_backoff_base_seconds == 0.1
    assert settings.cors_origins == ["http://localhost:5173", "https://chat.example.com"]


def test_malformed_numbers_fall_back(monkeypatch):
    monkeypatch.setenv("MAX_HISTORY", "lots")
    monkeypatch.setenv("UPSTREAM_TIMEOUT_SECONDS", "soon")
    settings = Settings.from_env()
    assert settings.max_history == 10
    assert settings.upstream_timeout_seconds == 20.0


def test_blank_api_key_means_fallback(monkeypatch):
    monkeypatch.setenv("GEMINI_API_KEY", "")
    assert Settings.from_env().has_upstream is False


def test_zero_or_negative_limits_fall_back(monkeypatch):
    monkeypatch.setenv("MAX_HISTORY", "0")
    monkeypatch.setenv("MAX_MESSAGE_CHARS", "-5")
    monkeypatch.setenv("RATE_LIMIT_MAX", "0")
    monkeypatch.setenv("UPSTREAM_TIMEOUT_SECONDS", "0")
    settings = Settings.from_env()
    assert settings.max_history == 10
    assert settings.max_message_chars == 20000
    assert settings.rate_limit_max == 150
    assert settings.upstream_timeout_seconds == 20.0


@pytest.mark.parametrize("field", ["max_history", "max_message_chars", "rate_limit_max", "rate_limit_window_seconds"])
def test_settings_reject_non_positive_limits(field):
    with pytest.raises(ValidationError):
        Settings(**{field: 0})
