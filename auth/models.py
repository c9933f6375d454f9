"""
auth/models.py -- Domain dataclasses for authentication entities.

Pattern: Data class (pure data container, minimal logic). Stores, validators
and the login form do the work; these types only own the domain shape and
their JSON mapping.

Layer rule: no imports from api/, web/, core/, or storage/.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from enum import Enum
from typing import Any, Union

from auth.exceptions import AuthenticationError, NetworkError, UnknownRoleError


class RoleTag(str, Enum):
    admin = "admin"
    empleado = "empleado"
    cajero = "cajero"
    viewer = "viewer"

    @classmethod
    def parse(cls, value: Any) -> RoleTag:
        """Return the RoleTag for value, raising UnknownRoleError otherwise."""
        if isinstance(value, cls):
            return value
        try:
            return cls(value)
        except ValueError:
            raise UnknownRoleError(value) from None


@dataclass(frozen=True)
class Credentials:
    """Transient login input. Never persisted, never logged."""

    username: str
    password: str

    def __repr__(self) -> str:
        return f"Credentials(username={self.username!r}, password='***')"


@dataclass(frozen=True)
class User:
    """An authenticated identity. Immutable for the lifetime of a session."""

    id: int
    username: str
    full_name: str
    email: str
    role: RoleTag
    shift: str

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["role"] = self.role.value
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> User:
        """Build a User from a stored or server-supplied record.

        The backend returns `name` rather than `full_name` and may omit the
        email; both fall back the same way the web client did. Missing id or
        username, or a role outside RoleTag, raise (KeyError, TypeError,
        ValueError or UnknownRoleError) so callers can discard the record.
        """
        if not isinstance(data, dict):
            raise TypeError(f"user record must be an object, got {type(data).__name__}")
        user_id = data["id"]
        if isinstance(user_id, bool) or not isinstance(user_id, int):
            raise TypeError("user id must be an integer")
        username = data["username"]
        if not isinstance(username, str) or not username:
            raise ValueError("username must be a non-empty string")
        return cls(
            id=user_id,
            username=username,
            full_name=str(data.get("full_name") or data.get("name") or username),
            email=str(data.get("email") or f"{username}@billarpro.com"),
            role=RoleTag.parse(data.get("role")),
            shift=str(data.get("shift") or ""),
        )


@dataclass(frozen=True)
class TokenPayload:
    """Decoded second segment of a session token. iat/exp are Unix seconds."""

    user_id: int
    username: str
    role: str
    iat: int
    exp: int


@dataclass(frozen=True)
class Session:
    token: str
    user: User


@dataclass(frozen=True)
class Authenticated:
    user: User
    token: str


@dataclass(frozen=True)
class Rejected:
    """A failed authentication attempt.

    reason is an internal code ("not_found", "bad_password",
    "invalid_credentials", "network_error", "invalid_response"); message is
    an optional server-supplied, user-displayable string.
    """

    reason: str
    message: str | None = None

    def as_error(self) -> AuthenticationError | NetworkError:
        if self.reason == "network_error":
            return NetworkError(self.message or "network error")
        return AuthenticationError(self.reason, self.message)


AuthResult = Union[Authenticated, Rejected]
