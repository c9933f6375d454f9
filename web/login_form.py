"""
web/login_form.py -- LoginFormController: the login form's state machine.

    IDLE -> VALIDATING -> SUBMITTING -> SUCCESS
                 |              `-----> ERROR (form message)
                 `--------------------> ERROR (field errors, no network call)

The controller owns the field values and what the view shows (state,
field_errors, message, is_loading). It never owns the session: on success it
hands the Session to the injected SessionStore.

Only one attempt may be in flight. submit() while SUBMITTING is refused, not
queued. abandon() bumps the attempt counter, so a response that lands after
the user left the form is dropped and cannot resurrect a session.

Layer rule: web/ imports from auth/; auth/ never imports from web/.
"""

from __future__ import annotations

import logging
from enum import Enum

from auth.exceptions import NetworkError, StorageError, ValidationError
from auth.models import Authenticated, Credentials, Rejected, Session
from auth.store import SessionStore
from auth.validators import CredentialValidator

logger = logging.getLogger("billarpro.form")

FIELDS = ("username", "password")
REQUIRED = "required"

MSG_NOT_FOUND = "User not found."
MSG_INVALID_CREDENTIALS = "Invalid credentials. Check your username and password."
MSG_NETWORK = "Connection error. Please try again."
MSG_INVALID_RESPONSE = "The server sent an unexpected response. Please try again."
MSG_STORAGE = "Could not save your session. Please try again."

_MESSAGES = {
    "not_found": MSG_NOT_FOUND,
    "bad_password": MSG_INVALID_CREDENTIALS,
    "invalid_credentials": MSG_INVALID_CREDENTIALS,
    "invalid_response": MSG_INVALID_RESPONSE,
}


class FormState(str, Enum):
    IDLE = "idle"
    VALIDATING = "validating"
    SUBMITTING = "submitting"
    SUCCESS = "success"
    ERROR = "error"


def validate_fields(values: dict[str, str]) -> Credentials:
    """Return Credentials, or raise ValidationError naming every empty field."""
    errors = {field: REQUIRED for field in FIELDS if not values.get(field, "").strip()}
    if errors:
        raise ValidationError(errors)
    return Credentials(username=values["username"], password=values["password"])


def message_for(result: Rejected) -> str:
    """Map a rejection to text fit for display. Reason codes never pass through."""
    error = result.as_error()
    if isinstance(error, NetworkError):
        return MSG_NETWORK
    if error.reason == "invalid_credentials" and result.message:
        return result.message
    return _MESSAGES.get(error.reason, MSG_INVALID_CREDENTIALS)


class LoginFormController:
    def __init__(self, validator: CredentialValidator, session_store: SessionStore) -> None:
        self._validator = validator
        self._session_store = session_store
        self.values: dict[str, str] = {field: "" for field in FIELDS}
        self.state = FormState.IDLE
        self.field_errors: dict[str, str] = {}
        self.message: str | None = None
        self._attempt = 0

    @property
    def is_loading(self) -> bool:
        return self.state is FormState.SUBMITTING

    def edit(self, field: str, value: str) -> None:
        """Update one field and clear that field's error only."""
        if field not in self.values:
            raise KeyError(f"unknown login field: {field!r}")
        self.values[field] = value
        if self.field_errors.pop(field, None) and not self.field_errors and self.state is FormState.ERROR:
            self.state = FormState.IDLE

    async def submit(self) -> FormState:
        if self.is_loading:
            logger.warning("Login already in progress, ignoring re-submission")
            return self.state

        self.state = FormState.VALIDATING
        self.message = None
        try:
            credentials = validate_fields(self.values)
        except ValidationError as e:
            self.field_errors = e.field_errors
            self.state = FormState.ERROR
            return self.state

        self.field_errors = {}
        self.state = FormState.SUBMITTING
        self._attempt += 1
        attempt = self._attempt
        try:
            result = await self._validator.authenticate(credentials)
        except Exception:
            logger.exception("Credential validator failed unexpectedly")
            result = Rejected("network_error")

        if attempt != self._attempt or self.state is not FormState.SUBMITTING:
            logger.info("Dropping login response for abandoned attempt %d", attempt)
            return self.state

        if isinstance(result, Authenticated):
            try:
                self._session_store.set(Session(token=result.token, user=result.user))
            except StorageError as e:
                logger.error("Login succeeded but the session was not saved: %s", e)
                return self._fail(MSG_STORAGE)
            self.values["password"] = ""
            self.state = FormState.SUCCESS
            return self.state

        return self._fail(message_for(result))

    def abandon(self) -> None:
        """Leave the form. Any in-flight response will be ignored."""
        self._attempt += 1
        self.values["password"] = ""
        self.field_errors = {}
        self.message = None
        self.state = FormState.IDLE

    def _fail(self, message: str) -> FormState:
        self.message = message
        self.state = FormState.ERROR
        return self.state
