"""
auth/store.py -- SessionStore: the one active {token, user} pair of a client.

Pattern: explicit instance with an init()/teardown() lifecycle, handed to
consumers (login form, CLI, protected actions) by reference. Tests build as
many isolated stores as they like; "one active session per running client"
is kept by constructing one store per process, not by a module global.

Durable layout (storage/store.py ClientStorage), written and read as a pair:
    billarpro_token   the raw token string
    billarpro_user    JSON-serialized User record

Consistency: set() and clear() change durable storage in one transaction
first and only then touch memory. If the storage call fails, memory is left
as it was and StorageError propagates, so memory and storage never disagree
between calls.

Expiry: get() checks the token on every access. An expired or malformed
token forces a logout and get() returns None ("session expired").

Layer rule: no imports from api/ or web/.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Callable
from datetime import datetime, timezone
from typing import TYPE_CHECKING

from auth.exceptions import StorageError, TokenError
from auth.models import Session, User
from auth.tokens import decode_token, is_expired
from storage.store import ClientStorage, StorageUnavailable

if TYPE_CHECKING:
    from core.config import Settings

logger = logging.getLogger("billarpro.session")

TOKEN_KEY = "billarpro_token"
USER_KEY = "billarpro_user"
_KEYS = (TOKEN_KEY, USER_KEY)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class SessionStore:
    """Owner of the current Session, mirrored to durable client storage.

    Usage:
        store = SessionStore(ClientStorage(url))
        store.init()                 # rehydrate after a restart
        store.set(Session(token, user))
        store.get()                  # Session, or None if absent/expired
        store.clear()                # logout
        store.teardown()
    """

    def __init__(
        self,
        storage: ClientStorage,
        clock: Callable[[], datetime] = _utcnow,
        owns_storage: bool = False,
    ) -> None:
        self._storage = storage
        self._clock = clock
        self._owns_storage = owns_storage
        self._session: Session | None = None

    @classmethod
    def from_settings(cls, settings: Settings) -> SessionStore:
        """Build a store over its own ClientStorage at STORAGE_URL."""
        try:
            storage = ClientStorage(settings.storage_url)
        except StorageUnavailable as e:
            raise StorageError(str(e)) from e
        return cls(storage, owns_storage=True)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def init(self) -> Session | None:
        """Rehydrate the in-memory session from durable storage.

        Absent storage yields an empty session. A half-written pair, a
        corrupt user record, or a token that does not belong to the saved
        user is discarded from storage as well. Expiry is left to get().
        """
        self._session = None
        try:
            entries = self._storage.get_many(_KEYS)
        except StorageUnavailable as e:
            logger.warning("Could not read saved session, starting logged out: %s", e)
            return None

        token, raw_user = entries.get(TOKEN_KEY), entries.get(USER_KEY)
        if token is None or raw_user is None:
            if entries:
                logger.warning("Discarding incomplete saved session")
                self._discard()
            return None

        try:
            user = User.from_dict(json.loads(raw_user))
        except (KeyError, TypeError, ValueError) as e:
            logger.warning("Discarding corrupt saved user: %s", e)
            self._discard()
            return None

        try:
            payload = decode_token(token)
        except TokenError as e:
            logger.warning("Discarding saved session with unreadable token: %s", e)
            self._discard()
            return None
        if payload.user_id != user.id:
            logger.warning("Discarding saved session: token does not belong to %s", user.username)
            self._discard()
            return None

        self._session = Session(token=token, user=user)
        logger.info("Restored session for %s", user.username)
        return self._session

    def teardown(self) -> None:
        """Forget the in-memory session and release storage this store opened."""
        self._session = None
        if self._owns_storage:
            self._storage.close()

    def _discard(self) -> None:
        try:
            self._storage.remove_many(_KEYS)
        except StorageUnavailable as e:
            logger.error("Could not discard saved session: %s", e)

    # ------------------------------------------------------------------
    # Mutation
    # ------------------------------------------------------------------

    def set(self, session: Session) -> None:
        """Persist session and make it current. All or nothing."""
        entries = {
            TOKEN_KEY: session.token,
            USER_KEY: json.dumps(session.user.to_dict(), ensure_ascii=False),
        }
        try:
            self._storage.set_many(entries)
        except StorageUnavailable as e:
            raise StorageError(f"could not save session: {e}") from e
        self._session = session
        logger.info("Session started for %s", session.user.username)

    def clear(self) -> None:
        """Remove the session from storage and memory."""
        try:
            self._storage.remove_many(_KEYS)
        except StorageUnavailable as e:
            raise StorageError(f"could not clear session: {e}") from e
        if self._session is not None:
            logger.info("Session ended for %s", self._session.user.username)
        self._session = None

    # ------------------------------------------------------------------
    # Access
    # ------------------------------------------------------------------

    def get(self, now: datetime | None = None) -> Session | None:
        """Return the current session, logging out first if its token expired."""
        session = self._session
        if session is None:
            return None
        if is_expired(session.token, now or self._clock()):
            logger.info("Session for %s expired, logging out", session.user.username)
            try:
                self.clear()
            except StorageError as e:
                logger.error("Expired session could not be removed from storage: %s", e)
            return None
        return session

    def refresh_if_needed(self, now: datetime | None = None) -> bool:
        """Return True if a live session remains; log out and return False otherwise."""
        return self.get(now) is not None

    def is_authenticated(self, now: datetime | None = None) -> bool:
        return self.get(now) is not None

    def current_user(self, now: datetime | None = None) -> User | None:
        session = self.get(now)
        return session.user if session else None

    def token(self, now: datetime | None = None) -> str | None:
        session = self.get(now)
        return session.token if session else None
