"""
auth/exceptions.py -- Error taxonomy for the authentication subsystem.

None of these may terminate the host process. Each one is converted at a
known boundary:
  ValidationError     -> field-level message (web/login_form.py)
  AuthenticationError -> form-level message, session untouched
  NetworkError        -> generic retry-able form-level message
  TokenError          -> forced logout ("session expired") in auth/store.py
  StorageError        -> form-level message; memory left unchanged
"""

from __future__ import annotations


class AuthError(Exception):
    """Base class for every error raised by auth/ and storage/."""


class ValidationError(AuthError):
    """One or more required login fields are empty.

    field_errors maps field name -> error code ("required").
    """

    def __init__(self, field_errors: dict[str, str]) -> None:
        self.field_errors = dict(field_errors)
        super().__init__(f"invalid fields: {', '.join(sorted(self.field_errors))}")


class AuthenticationError(AuthError):
    """Unknown user or wrong password."""

    def __init__(self, reason: str, message: str | None = None) -> None:
        self.reason = reason
        super().__init__(message or reason)


class NetworkError(AuthError):
    """Transport or connection failure talking to the login authority."""


class TokenError(AuthError):
    """A token is malformed or expired."""


class UnknownRoleError(AuthError, ValueError):
    """A role string outside the closed RoleTag set."""

    def __init__(self, role: object) -> None:
        self.role = role
        super().__init__(f"unknown role: {role!r}")


class AuthorizationError(AuthError):
    """The user's role ranks below the role an action requires."""


class StorageError(AuthError):
    """Durable client storage could not be read or written."""
