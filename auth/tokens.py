"""
auth/tokens.py -- Session token codec and password hashing utilities.

Token design:
  Three base64url segments joined by ".":  header.payload.trailer
    header   {"alg": "HS256", "typ": "JWT"}
    payload  {"userId", "username", "role", "iat", "exp"}   (Unix seconds)
    trailer  fixed placeholder authenticator, NOT a signature

  Locally issued tokens are self-minted by the client in offline mode and are
  never trusted for anything beyond structure and expiry. Tokens issued by the
  remote authority carry a real HS256 signature, but verifying it is the
  authority's job: the client only reads the claims. Both kinds decode here
  through python-jose's unverified-claims reader.

  decode_token() raises TokenError; is_expired() never raises and treats an
  undecodable token as expired (fail-safe).

Passwords: bcrypt, used directly (no passlib wrapper). The local directory
  keeps its expected password as a bcrypt hash so the offline strategy runs
  the same constant-cost check on every attempt.

Layer rule: no imports from api/, web/, core/, or storage/.
"""

from __future__ import annotations

import json
import logging
import math
from datetime import datetime, timedelta, timezone

import bcrypt
from jose import jwt
from jose.exceptions import JOSEError
from jose.utils import base64url_encode

from auth.exceptions import TokenError
from auth.models import TokenPayload, User

logger = logging.getLogger("billarpro.auth")

TOKEN_LIFETIME = timedelta(hours=24)

_HEADER = {"alg": "HS256", "typ": "JWT"}
_PLACEHOLDER_TRAILER = b"billarpro-dev-signature"
_REQUIRED_CLAIMS = ("userId", "username", "role", "iat", "exp")


# ---------------------------------------------------------------------------
# Password hashing (bcrypt -- direct usage)
# ---------------------------------------------------------------------------


def hash_password(plain: str) -> str:
    """Return a bcrypt hash of the given plaintext password."""
    return bcrypt.hashpw(plain.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")


def verify_password(plain: str, hashed: str) -> bool:
    """Return True if the plaintext password matches the bcrypt hash."""
    try:
        return bcrypt.checkpw(plain.encode("utf-8"), hashed.encode("utf-8"))
    except ValueError:
        return False


# ---------------------------------------------------------------------------
# Token encode / decode
# ---------------------------------------------------------------------------


def _segment(data: dict | bytes) -> str:
    raw = data if isinstance(data, bytes) else json.dumps(data, separators=(",", ":")).encode("utf-8")
    return base64url_encode(raw).decode("ascii")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _timestamp(moment: datetime | None) -> int:
    return int((moment or _utcnow()).timestamp())


def encode_token(user: User, issued_at: datetime | None = None) -> str:
    """Mint an unsigned session token bound to user.

    Deterministic for the same user and issued_at. Expiry is always
    issued-at + 24 hours.
    """
    iat = _timestamp(issued_at)
    payload = {
        "userId": user.id,
        "username": user.username,
        "role": user.role.value,
        "iat": iat,
        "exp": iat + int(TOKEN_LIFETIME.total_seconds()),
    }
    return ".".join((_segment(_HEADER), _segment(payload), _segment(_PLACEHOLDER_TRAILER)))


def _int_claim(claims: dict, name: str) -> int:
    value = claims[name]
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise TokenError(f"claim {name!r} must be numeric")
    if isinstance(value, float) and not math.isfinite(value):
        raise TokenError(f"claim {name!r} must be finite")
    return int(value)


def decode_token(token: str) -> TokenPayload:
    """Decode the payload segment of token without verifying the trailer.

    Pure: performs no I/O. Raises TokenError when the token does not have
    three segments, a segment is not valid base64url/JSON, or a required
    claim is missing or has the wrong type.
    """
    if not isinstance(token, str) or token.count(".") != 2:
        raise TokenError("token must have three segments")
    try:
        claims = jwt.get_unverified_claims(token)
    except JOSEError as e:
        raise TokenError(f"malformed token: {e}") from e

    missing = [name for name in _REQUIRED_CLAIMS if name not in claims]
    if missing:
        raise TokenError(f"token payload missing {', '.join(missing)}")
    username, role = claims["username"], claims["role"]
    if not isinstance(username, str) or not isinstance(role, str):
        raise TokenError("token username and role must be strings")
    return TokenPayload(
        user_id=_int_claim(claims, "userId"),
        username=username,
        role=role,
        iat=_int_claim(claims, "iat"),
        exp=_int_claim(claims, "exp"),
    )


def is_expired(token: str, now: datetime | None = None) -> bool:
    """Return True iff token decodes and exp < now; True if it does not decode."""
    try:
        payload = decode_token(token)
    except TokenError as e:
        logger.debug("Treating undecodable token as expired: %s", e)
        return True
    return payload.exp < (now or _utcnow()).timestamp()
