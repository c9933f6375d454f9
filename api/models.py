"""
API request and response models for the development login authority.

These Pydantic v2 models define the HTTP contract the client's
RemoteCredentialValidator consumes. They are intentionally separate from the
dataclasses in auth/models.py, which own the client-side domain shape. Route
handlers map between the two.
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from auth.models import RoleTag, User

# ---------------------------------------------------------------------------
# Request models
# ---------------------------------------------------------------------------


class LoginRequest(BaseModel):
    """Request body for POST /api/auth/login.

    Both fields default to "" so the handler can answer a missing field with
    the login envelope ({success: false, message}) instead of a 422.
    """

    username: str = Field(default="", max_length=255)
    password: str = Field(default="", max_length=255)


# ---------------------------------------------------------------------------
# Response models
# ---------------------------------------------------------------------------


class UserOut(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: int
    username: str
    full_name: str
    email: str
    role: RoleTag
    shift: str

    @classmethod
    def from_user(cls, user: User) -> "UserOut":
        return cls(**user.to_dict())


class LoginResponse(BaseModel):
    """Response for POST /api/auth/login. token and user are set on success only."""

    success: bool
    token: Optional[str] = None
    user: Optional[UserOut] = None
    message: Optional[str] = None


class ErrorDetail(BaseModel):
    """Machine-readable error payload."""

    model_config = ConfigDict(frozen=True)

    code: str
    message: str
    detail: Optional[str] = None


class ErrorResponse(BaseModel):
    """Top-level error envelope returned on unexpected 4xx/5xx responses."""

    model_config = ConfigDict(frozen=True)

    error: ErrorDetail


class HealthResponse(BaseModel):
    """Response for GET /api/health."""

    model_config = ConfigDict(frozen=True)

    status: str = "ok"
    version: str
