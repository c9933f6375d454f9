"""Unit tests for the credential validation strategies in auth/validators.py.

Covers:
- Local directory: not_found, bad_password, Authenticated with a bound token
- Remote authority: response mapping for the flat and "data" envelopes,
  server rejections, transport failures, non-JSON bodies, timeouts,
  unknown roles, and tokens bound to the wrong user
- build_validator() strategy selection
The HTTP session is a MagicMock -- no network access.
"""

import asyncio
import json
import time
from unittest.mock import MagicMock

import pytest
import requests
from jose.utils import base64url_encode

from auth.models import Authenticated, Credentials, Rejected, RoleTag
from auth.tokens import decode_token, encode_token
from auth.validators import (
    LOGIN_PATH,
    LocalCredentialValidator,
    RemoteCredentialValidator,
    build_validator,
)
from core.config import Settings


def _run(coro):
    return asyncio.run(coro)


def _token_with_exp(user, exp) -> str:
    claims = {"userId": user.id, "username": user.username, "role": user.role.value, "iat": 0, "exp": exp}
    segments = [{"alg": "HS256", "typ": "JWT"}, claims]
    encoded = [base64url_encode(json.dumps(s).encode()).decode() for s in segments]
    return ".".join(encoded + [base64url_encode(b"sig").decode()])


# ---------------------------------------------------------------------------
# TestLocalValidator
# ---------------------------------------------------------------------------


class TestLocalValidator:
    def test_unknown_username_is_not_found(self, local_validator):
        result = _run(local_validator.authenticate(Credentials("ghost", "x")))
        assert result == Rejected("not_found")

    def test_unknown_username_with_correct_password_is_not_found(self, local_validator):
        result = _run(local_validator.authenticate(Credentials("ghost", "admin123")))
        assert result == Rejected("not_found")

    def test_wrong_password_is_bad_password(self, local_validator):
        result = _run(local_validator.authenticate(Credentials("admin", "wrong")))
        assert result == Rejected("bad_password")

    def test_correct_password_authenticates(self, local_validator, users):
        result = _run(local_validator.authenticate(Credentials("admin", "admin123")))
        assert isinstance(result, Authenticated)
        assert result.user == users["admin"]
        assert decode_token(result.token).user_id == result.user.id

    def test_every_directory_user_shares_the_password(self, local_validator, users):
        for username, user in users.items():
            result = _run(local_validator.authenticate(Credentials(username, "admin123")))
            assert isinstance(result, Authenticated)
            assert decode_token(result.token).role == user.role.value

    def test_token_is_issued_at_clock_time(self, local_validator, now):
        result = _run(local_validator.authenticate(Credentials("ana_f", "admin123")))
        assert decode_token(result.token).iat == int(now.timestamp())

    def test_custom_password(self):
        validator = LocalCredentialValidator(password="s3cret")
        assert isinstance(_run(validator.authenticate(Credentials("juan_m", "s3cret"))), Authenticated)
        assert _run(validator.authenticate(Credentials("juan_m", "admin123"))) == Rejected("bad_password")


# ---------------------------------------------------------------------------
# TestRemoteValidator
# ---------------------------------------------------------------------------


def _remote(body=None, *, post_side_effect=None, json_side_effect=None) -> tuple[RemoteCredentialValidator, MagicMock]:
    session = MagicMock(spec=requests.Session)
    response = MagicMock()
    if json_side_effect is not None:
        response.json.side_effect = json_side_effect
    else:
        response.json.return_value = body
    if post_side_effect is not None:
        session.post.side_effect = post_side_effect
    else:
        session.post.return_value = response
    return RemoteCredentialValidator("http://authority:5000/", timeout=2.0, session=session), session


class TestRemoteValidator:
    def test_posts_credentials_as_json(self, users, now):
        user = users["juan_m"]
        body = {"success": True, "token": encode_token(user, now), "user": user.to_dict()}
        validator, session = _remote(body)
        _run(validator.authenticate(Credentials("juan_m", "pw")))
        args, kwargs = session.post.call_args
        assert args[0] == "http://authority:5000" + LOGIN_PATH
        assert kwargs["json"] == {"username": "juan_m", "password": "pw"}
        assert kwargs["timeout"] == 2.0

    def test_flat_success_body_authenticates(self, users, now):
        user = users["juan_m"]
        token = encode_token(user, now)
        validator, _ = _remote({"success": True, "token": token, "user": user.to_dict()})
        assert _run(validator.authenticate(Credentials("juan_m", "pw"))) == Authenticated(user=user, token=token)

    def test_data_envelope_success_authenticates(self, users, now):
        user = users["admin"]
        token = encode_token(user, now)
        body = {
            "success": True,
            "data": {"token": token, "user": {"id": 1, "username": "admin", "name": "Administrador", "role": "admin"}},
            "message": "Login exitoso",
        }
        validator, _ = _remote(body)
        result = _run(validator.authenticate(Credentials("admin", "pw")))
        assert isinstance(result, Authenticated)
        assert result.user.full_name == "Administrador"
        assert result.user.email == "admin@billarpro.com"
        assert result.user.role is RoleTag.admin

    def test_server_rejection_keeps_message(self):
        validator, _ = _remote({"success": False, "message": "Credenciales inválidas"})
        result = _run(validator.authenticate(Credentials("admin", "bad")))
        assert result == Rejected("invalid_credentials", "Credenciales inválidas")

    def test_connection_error_is_network_error(self):
        validator, _ = _remote(post_side_effect=requests.ConnectionError("refused"))
        assert _run(validator.authenticate(Credentials("admin", "x"))) == Rejected("network_error")

    def test_non_json_body_is_network_error(self):
        validator, _ = _remote(json_side_effect=ValueError("Expecting value"))
        assert _run(validator.authenticate(Credentials("admin", "x"))) == Rejected("network_error")

    def test_hung_call_times_out_as_network_error(self):
        def slow_post(*args, **kwargs):
            time.sleep(0.3)
            raise AssertionError("response should have been abandoned")

        validator, _ = _remote(post_side_effect=slow_post)
        result = _run(validator.authenticate(Credentials("admin", "x"), timeout=0.05))
        assert result == Rejected("network_error")

    def test_success_without_token_is_invalid_response(self, users):
        validator, _ = _remote({"success": True, "user": users["admin"].to_dict()})
        assert _run(validator.authenticate(Credentials("admin", "x"))) == Rejected("invalid_response")

    def test_unknown_role_is_invalid_response(self, users, now):
        record = dict(users["admin"].to_dict(), role="super_admin")
        validator, _ = _remote({"success": True, "token": encode_token(users["admin"], now), "user": record})
        assert _run(validator.authenticate(Credentials("admin", "x"))) == Rejected("invalid_response")

    def test_token_for_other_user_is_invalid_response(self, users, now):
        body = {"success": True, "token": encode_token(users["ana_f"], now), "user": users["admin"].to_dict()}
        validator, _ = _remote(body)
        assert _run(validator.authenticate(Credentials("admin", "x"))) == Rejected("invalid_response")

    def test_non_object_body_is_invalid_response(self):
        validator, _ = _remote(["not", "an", "object"])
        assert _run(validator.authenticate(Credentials("admin", "x"))) == Rejected("invalid_response")

    def test_infinite_token_expiry_is_invalid_response(self, users):
        user = users["admin"]
        body = {"success": True, "token": _token_with_exp(user, float("inf")), "user": user.to_dict()}
        validator, _ = _remote(body)
        assert _run(validator.authenticate(Credentials("admin", "x"))) == Rejected("invalid_response")

    def test_non_boolean_success_is_a_rejection(self):
        validator, _ = _remote({"success": "false", "message": "Cuenta bloqueada"})
        result = _run(validator.authenticate(Credentials("admin", "x")))
        assert result == Rejected("invalid_credentials", "Cuenta bloqueada")


# ---------------------------------------------------------------------------
# TestBuildValidator
# ---------------------------------------------------------------------------


class TestBuildValidator:
    def test_local_mode(self):
        assert isinstance(build_validator(Settings(auth_mode="local")), LocalCredentialValidator)

    def test_remote_mode_uses_base_url_and_timeout(self):
        validator = build_validator(
            Settings(auth_mode="remote", api_base_url="http://backend:5000", login_timeout_seconds=3)
        )
        assert isinstance(validator, RemoteCredentialValidator)
        assert validator.url == "http://backend:5000/api/auth/login"
        assert validator.timeout == 3
        validator.close()

    @pytest.mark.parametrize("mode", ["ldap", ""])
    def test_unknown_mode_rejected_by_settings(self, mode):
        with pytest.raises(ValueError):
            Settings(auth_mode=mode)
