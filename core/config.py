"""
core/config.py -- Centralized client configuration via pydantic-settings.

All environment variable reads for the Billarpro client happen here. No module
should call os.getenv() or os.environ.get() directly -- import get_settings()
instead.

Design patterns used:
  Singleton via lru_cache: get_settings() instantiates Settings once at first
      call and returns the cached instance on every subsequent call.

  BaseSettings (pydantic-settings): Reads values from environment variables
      and an optional .env file automatically. Field names map to env var names
      (e.g. auth_mode -> AUTH_MODE). Type coercion and validation are built in.

  @model_validator(mode="after"): Cross-field checks after all fields are
      resolved. Used for the token lifetime invariant and the dev authority
      signing key length.

Layer rule: core/ is the kernel. This module may not import from api/, web/,
auth/, or storage/.
"""

from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# Locally issued tokens always live exactly 24 hours.
TOKEN_TTL_SECONDS = 24 * 60 * 60

_DEFAULT_STORAGE_URL = f"sqlite:///{Path.home() / '.billarpro' / 'client.db'}"


class Settings(BaseSettings):
    """Client settings loaded from environment variables and .env file.

    All fields have defaults so Settings() can be instantiated in test
    environments without a real .env file.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ------------------------------------------------------------------
    # Core
    # ------------------------------------------------------------------

    debug: bool = False

    # ------------------------------------------------------------------
    # Authentication strategy
    # ------------------------------------------------------------------

    # "local" = fixed directory (offline/mock), "remote" = HTTP login endpoint
    auth_mode: Literal["local", "remote"] = "local"
    api_base_url: str = "http://localhost:5000"
    # No timeout existed upstream; a hung login resolves as a network error.
    login_timeout_seconds: float = 10.0

    local_password: str = "admin123"
    # Simulated round trip for the offline directory (the web client used 800).
    local_latency_ms: int = 0

    token_ttl_seconds: int = TOKEN_TTL_SECONDS

    # ------------------------------------------------------------------
    # Durable client storage
    # ------------------------------------------------------------------

    storage_url: str = _DEFAULT_STORAGE_URL

    # ------------------------------------------------------------------
    # Development login authority (api/)
    # ------------------------------------------------------------------

    # Empty string means "generate one at startup" (dev only).
    secret_key: str = ""
    login_rate_limit: str = "10/minute"

    # ------------------------------------------------------------------
    # Validators
    # ------------------------------------------------------------------

    @model_validator(mode="after")
    def validate_settings(self) -> "Settings":
        """Reject settings that would break the session invariants.

        token_ttl_seconds is exposed for visibility only: the token format
        fixes expiry at issued-at + 24h, so any other value is an error.

        secret_key, when given, must be at least 32 characters. Short keys
        have insufficient entropy for HS256 signing.
        """
        if self.token_ttl_seconds != TOKEN_TTL_SECONDS:
            raise ValueError(f"TOKEN_TTL_SECONDS is fixed at {TOKEN_TTL_SECONDS} (24 hours).")
        if self.secret_key and len(self.secret_key) < 32:
            raise ValueError("SECRET_KEY must be at least 32 characters.")
        if self.login_timeout_seconds <= 0:
            raise ValueError("LOGIN_TIMEOUT_SECONDS must be positive.")
        return self


@lru_cache
def get_settings() -> Settings:
    """Return the client Settings singleton.

    In tests: call get_settings.cache_clear() between test cases if you need
    to inject different environment variables.
    """
    return Settings()
