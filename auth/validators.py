"""
auth/validators.py -- Credential validation strategies.

Two interchangeable strategies share one coroutine contract:

    await validator.authenticate(Credentials) -> Authenticated | Rejected

  LocalCredentialValidator   fixed in-process directory (offline/mock mode).
                             Mints its own unsigned token via auth.tokens.
  RemoteCredentialValidator  POST /api/auth/login on the login authority.

Neither strategy touches storage -- persisting the session is the caller's
job (web/login_form.py hands it to SessionStore). Neither strategy raises:
every failure, including transport errors and timeouts, comes back as a
Rejected value.

Layer rule: no imports from api/, web/, or storage/. core.config is allowed
only inside build_validator().
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Iterable
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any, Optional, Protocol

import requests

from auth.exceptions import TokenError
from auth.models import Authenticated, AuthResult, Credentials, Rejected, RoleTag, User
from auth.tokens import decode_token, encode_token, hash_password, verify_password

if TYPE_CHECKING:
    from core.config import Settings

logger = logging.getLogger("billarpro.auth")

LOGIN_PATH = "/api/auth/login"


class CredentialValidator(Protocol):
    async def authenticate(self, credentials: Credentials) -> AuthResult: ...


# ---------------------------------------------------------------------------
# Local directory (offline / mock mode)
# ---------------------------------------------------------------------------

DIRECTORY: tuple[User, ...] = (
    User(1, "admin", "Administrador Sistema", "admin@billarpro.com", RoleTag.admin, "Completo"),
    User(2, "juan_m", "Juan Pérez", "juan@billarpro.com", RoleTag.empleado, "Mañana"),
    User(3, "maria_t", "María García", "maria@billarpro.com", RoleTag.empleado, "Tarde"),
    User(4, "carlos_n", "Carlos López", "carlos@billarpro.com", RoleTag.empleado, "Noche"),
    User(5, "ana_f", "Ana Martínez", "ana@billarpro.com", RoleTag.cajero, "Tarde"),
)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class LocalCredentialValidator:
    """Resolve credentials against a fixed directory sharing one password.

    Every directory user logs in with the same expected password. It is held
    only as a bcrypt hash, and the hash check runs before the username lookup
    result is inspected so unknown and known usernames cost the same.

    Usage:
        validator = LocalCredentialValidator(password="admin123")
        result = await validator.authenticate(Credentials("admin", "admin123"))
    """

    def __init__(
        self,
        password: str = "admin123",
        directory: Iterable[User] = DIRECTORY,
        latency_ms: int = 0,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._password_hash = hash_password(password)
        self._users = {user.username: user for user in directory}
        self.latency_ms = latency_ms
        self._clock = clock

    def lookup(self, username: str) -> User | None:
        return self._users.get(username)

    async def authenticate(self, credentials: Credentials) -> AuthResult:
        if self.latency_ms > 0:
            await asyncio.sleep(self.latency_ms / 1000)
        user = self.lookup(credentials.username)
        password_ok = await asyncio.to_thread(verify_password, credentials.password, self._password_hash)
        if user is None:
            logger.info("Local login rejected: unknown user")
            return Rejected("not_found")
        if not password_ok:
            logger.info("Local login rejected for %s: bad password", user.username)
            return Rejected("bad_password")
        logger.info("Local login succeeded for %s (%s)", user.username, user.role.value)
        return Authenticated(user=user, token=encode_token(user, self._clock()))


# ---------------------------------------------------------------------------
# Remote authority (HTTP delegation)
# ---------------------------------------------------------------------------


class RemoteCredentialValidator:
    """Delegate credential checks to the login authority over HTTP.

    The blocking requests call runs in a worker thread so the event loop stays
    free; asyncio.wait_for bounds the whole round trip. A call that outlives
    the timeout resolves as Rejected("network_error") and its late result is
    dropped.

    Response mapping:
        success + token + parseable user      -> Authenticated
        success: false                        -> Rejected("invalid_credentials", message)
        transport failure / timeout / non-JSON -> Rejected("network_error")
        anything else                         -> Rejected("invalid_response")
    """

    def __init__(
        self,
        base_url: str,
        timeout: float = 10.0,
        session: Optional[requests.Session] = None,
    ) -> None:
        self.url = base_url.rstrip("/") + LOGIN_PATH
        self.timeout = timeout
        if session is None:
            session = requests.Session()
            # Login is a single known endpoint; a long redirect chain is never legitimate.
            session.max_redirects = 3
        self._session = session

    def _post(self, credentials: Credentials, timeout: float) -> Any:
        resp = self._session.post(
            self.url,
            json={"username": credentials.username, "password": credentials.password},
            timeout=timeout,
        )
        return resp.json()

    async def authenticate(self, credentials: Credentials, timeout: float | None = None) -> AuthResult:
        limit = timeout if timeout is not None else self.timeout
        try:
            body = await asyncio.wait_for(asyncio.to_thread(self._post, credentials, limit), timeout=limit)
        except asyncio.TimeoutError:
            logger.warning("Login request to %s timed out after %.1fs", self.url, limit)
            return Rejected("network_error")
        except (requests.RequestException, ValueError) as e:
            # requests raises a ValueError subclass for non-JSON bodies
            logger.warning("Login request to %s failed: %s", self.url, e)
            return Rejected("network_error")
        return self._to_result(body)

    def _to_result(self, body: Any) -> AuthResult:
        if not isinstance(body, dict):
            logger.warning("Login response is not a JSON object")
            return Rejected("invalid_response")

        message = body.get("message") if isinstance(body.get("message"), str) else None
        if body.get("success") is not True:
            return Rejected("invalid_credentials", message)

        # The backend nests token/user under "data"; the documented contract does not.
        data = body["data"] if isinstance(body.get("data"), dict) else body
        token = data.get("token")
        if not isinstance(token, str) or not token:
            logger.warning("Login response reported success without a token")
            return Rejected("invalid_response")
        try:
            user = User.from_dict(data.get("user"))
            payload = decode_token(token)
        except (KeyError, TypeError, ValueError, TokenError) as e:
            logger.warning("Login response could not be used: %s", e)
            return Rejected("invalid_response")
        if payload.user_id != user.id:
            logger.warning("Login response token is bound to a different user")
            return Rejected("invalid_response")

        logger.info("Remote login succeeded for %s (%s)", user.username, user.role.value)
        return Authenticated(user=user, token=token)

    def close(self) -> None:
        self._session.close()


def build_validator(settings: Settings) -> LocalCredentialValidator | RemoteCredentialValidator:
    """Return the strategy selected by AUTH_MODE."""
    if settings.auth_mode == "remote":
        return RemoteCredentialValidator(settings.api_base_url, timeout=settings.login_timeout_seconds)
    return LocalCredentialValidator(password=settings.local_password, latency_ms=settings.local_latency_ms)
