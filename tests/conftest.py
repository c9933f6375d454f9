"""
tests/conftest.py -- Shared fixtures for the Billarpro session client tests.

This module provides:
  - NOW / clock: a fixed "current time" so tokens never expire mid-test
  - storage_url / storage: a file-backed SQLite ClientStorage under tmp_path,
    so a second ClientStorage on the same URL simulates a process restart
  - session_store: a SessionStore over that storage, already init()-ed
  - local_validator: one LocalCredentialValidator per test session
    (bcrypt hashing the expected password is deliberately slow)
  - users: the fixed directory, keyed by username

Environment defaults must be set before any core.config import so the
lru_cached Settings never points at the real home directory.
"""

from __future__ import annotations

import os
from collections.abc import Generator
from datetime import datetime, timezone

# Set before any core/auth import: get_settings() is cached on first call.
os.environ.setdefault("STORAGE_URL", "sqlite://")
os.environ.setdefault("LOGIN_RATE_LIMIT", "1000/minute")
os.environ.setdefault("AUTH_MODE", "local")

import pytest

from auth.models import User
from auth.store import SessionStore
from auth.validators import DIRECTORY, LocalCredentialValidator
from storage.store import ClientStorage

NOW = datetime(2026, 3, 14, 9, 30, tzinfo=timezone.utc)


def clock() -> datetime:
    return NOW


# ---------------------------------------------------------------------------
# Storage fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def now() -> datetime:
    return NOW


@pytest.fixture
def storage_url(tmp_path) -> str:
    return f"sqlite:///{tmp_path / 'client.db'}"


@pytest.fixture
def storage(storage_url) -> Generator[ClientStorage, None, None]:
    s = ClientStorage(storage_url)
    yield s
    s.close()


@pytest.fixture
def session_store(storage) -> SessionStore:
    store = SessionStore(storage, clock=clock)
    store.init()
    return store


# ---------------------------------------------------------------------------
# Directory fixtures
# ---------------------------------------------------------------------------


@pytest.fixture(scope="session")
def local_validator() -> LocalCredentialValidator:
    return LocalCredentialValidator(password="admin123", clock=clock)


@pytest.fixture(scope="session")
def users() -> dict[str, User]:
    return {user.username: user for user in DIRECTORY}
