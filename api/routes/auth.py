"""
api/routes/auth.py -- Login endpoint of the development authority.

Routes:
  POST /api/auth/login   -- username/password login; returns a signed JWT

The development authority stands in for the real backend while working
offline. It checks credentials against the same fixed directory the client's
local strategy uses, but unlike the client it *signs* what it issues (HS256,
python-jose), because signing is the authority's responsibility.

Security:
  POST /login is rate-limited per IP (LOGIN_RATE_LIMIT, default 10/minute).
  Unknown user and wrong password share one 401 message so the response
    does not reveal which usernames exist.
  Cache-Control: no-store on every login response.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse
from jose import jwt

from api.limiter import limiter
from api.models import LoginRequest, LoginResponse, UserOut
from auth.models import Authenticated, Credentials, User
from auth.tokens import TOKEN_LIFETIME
from auth.validators import LocalCredentialValidator
from core.config import get_settings

logger = logging.getLogger("billarpro.api")

_ALGORITHM = "HS256"

router = APIRouter()


def sign_token(user: User, secret_key: str, issued_at: datetime | None = None) -> str:
    """Encode a signed JWT carrying the claims the client codec reads."""
    iat = int((issued_at or datetime.now(timezone.utc)).timestamp())
    claims = {
        "userId": user.id,
        "username": user.username,
        "role": user.role.value,
        "iat": iat,
        "exp": iat + int(TOKEN_LIFETIME.total_seconds()),
    }
    return jwt.encode(claims, secret_key, algorithm=_ALGORITHM)


def _login_response(status_code: int, body: LoginResponse) -> JSONResponse:
    resp = JSONResponse(status_code=status_code, content=body.model_dump(mode="json"))
    resp.headers["Cache-Control"] = "no-store"
    return resp


@limiter.limit(lambda: get_settings().login_rate_limit)
@router.post("/auth/login", response_model=LoginResponse)
async def login(request: Request, body: LoginRequest) -> JSONResponse:
    """Authenticate against the directory and return {success, token, user, message}."""
    if not body.username or not body.password:
        return _login_response(
            400, LoginResponse(success=False, message="Username and password are required.")
        )

    validator: LocalCredentialValidator = request.app.state.validator
    result = await validator.authenticate(Credentials(body.username, body.password))
    if not isinstance(result, Authenticated):
        return _login_response(401, LoginResponse(success=False, message="Invalid credentials."))

    token = sign_token(result.user, request.app.state.secret_key)
    logger.info("Issued token for %s", result.user.username)
    return _login_response(
        200,
        LoginResponse(
            success=True,
            token=token,
            user=UserOut.from_user(result.user),
            message="Login successful.",
        ),
    )
