"""
storage/store.py -- Durable client storage (key/value) on SQLAlchemy Core.

Plays the role browser localStorage played for the web client: string keys,
string values, surviving restarts. Unlike localStorage, multi-key writes and
removals run in one transaction, so a reader never sees half of a pair.

Usage:
    storage = ClientStorage("sqlite:////tmp/client.db")
    storage.set_many({"billarpro_token": token, "billarpro_user": user_json})
    storage.get_many(["billarpro_token", "billarpro_user"])
    storage.remove_many(["billarpro_token", "billarpro_user"])
    storage.close()

Layer rule: no imports from api/, web/, auth/, or core/.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from datetime import datetime, timezone
from pathlib import Path

from sqlalchemy import Column, MetaData, String, Table, Text, create_engine, delete, event, select
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.pool import StaticPool

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

_metadata = MetaData()

_entries = Table(
    "client_storage",
    _metadata,
    Column("key", String(255), primary_key=True),
    Column("value", Text, nullable=False),
    Column("updated_at", String(32), nullable=False),
)


class StorageUnavailable(Exception):
    """Raised when the backing database cannot be read or written."""


def _set_wal_mode(dbapi_conn, connection_record) -> None:
    """Enable WAL journal mode. Set per-connection: SQLite PRAGMAs are not pooled."""
    dbapi_conn.execute("PRAGMA journal_mode=WAL")


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _ensure_parent_dir(db_url: str) -> None:
    prefix = "sqlite:///"
    if not db_url.startswith(prefix):
        return
    path = db_url[len(prefix) :]
    if not path or path == ":memory:" or path.startswith("file:"):
        return
    Path(path).parent.mkdir(parents=True, exist_ok=True)


class ClientStorage:
    """Transactional string key/value store."""

    def __init__(self, db_url: str) -> None:
        connect_args: dict = {}
        engine_kwargs: dict = {}
        if db_url.startswith("sqlite"):
            connect_args["check_same_thread"] = False
            _ensure_parent_dir(db_url)
        if db_url in ("sqlite://", "sqlite:///:memory:"):
            # One shared connection, otherwise every checkout sees an empty DB.
            engine_kwargs["poolclass"] = StaticPool
        self.engine: Engine = create_engine(db_url, connect_args=connect_args, **engine_kwargs)
        if db_url.startswith("sqlite") and "memory" not in db_url:
            event.listen(self.engine, "connect", _set_wal_mode)
        try:
            _metadata.create_all(self.engine)
        except SQLAlchemyError as e:
            raise StorageUnavailable(f"could not open client storage: {e}") from e

    def get(self, key: str) -> str | None:
        return self.get_many([key]).get(key)

    def get_many(self, keys: Iterable[str]) -> dict[str, str]:
        """Return {key: value} for the keys that exist. Missing keys are omitted."""
        keys = list(keys)
        try:
            with self.engine.connect() as conn:
                rows = conn.execute(select(_entries.c.key, _entries.c.value).where(_entries.c.key.in_(keys)))
                return {row.key: row.value for row in rows}
        except SQLAlchemyError as e:
            raise StorageUnavailable(f"read failed: {e}") from e

    def set_many(self, items: Mapping[str, str]) -> None:
        """Write all items in one transaction (all or nothing)."""
        if not items:
            return
        now = _now_iso()
        try:
            with self.engine.begin() as conn:
                conn.execute(delete(_entries).where(_entries.c.key.in_(list(items))))
                conn.execute(
                    _entries.insert(),
                    [{"key": key, "value": value, "updated_at": now} for key, value in items.items()],
                )
        except SQLAlchemyError as e:
            raise StorageUnavailable(f"write failed: {e}") from e

    def remove_many(self, keys: Iterable[str]) -> None:
        """Delete all keys in one transaction. Absent keys are ignored."""
        try:
            with self.engine.begin() as conn:
                conn.execute(delete(_entries).where(_entries.c.key.in_(list(keys))))
        except SQLAlchemyError as e:
            raise StorageUnavailable(f"delete failed: {e}") from e

    def close(self) -> None:
        self.engine.dispose()
