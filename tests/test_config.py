"""Unit tests for Settings validation in core/config.py."""

import pytest

from core.config import TOKEN_TTL_SECONDS, Settings


def test_defaults_are_offline_mode():
    s = Settings()
    assert s.auth_mode == "local"
    assert s.token_ttl_seconds == TOKEN_TTL_SECONDS == 86400
    assert s.login_timeout_seconds > 0


def test_token_lifetime_is_fixed():
    with pytest.raises(ValueError, match="24 hours"):
        Settings(token_ttl_seconds=3600)


def test_short_secret_key_rejected():
    with pytest.raises(ValueError, match="32 characters"):
        Settings(secret_key="too-short")


def test_long_secret_key_accepted():
    assert Settings(secret_key="k" * 32).secret_key == "k" * 32


def test_non_positive_timeout_rejected():
    with pytest.raises(ValueError):
        Settings(login_timeout_seconds=0)


def test_env_vars_are_read(monkeypatch):
    monkeypatch.setenv("AUTH_MODE", "remote")
    monkeypatch.setenv("API_BASE_URL", "http://backend:5000")
    s = Settings()
    assert s.auth_mode == "remote"
    assert s.api_base_url == "http://backend:5000"
