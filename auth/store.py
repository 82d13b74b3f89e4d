"""
auth/store.py -- SQLAlchemy Core persistence layer for auth entities.

Pattern: Repository + Data Mapper.
SessionStore is the repository for api_sessions; _row_to_session is the
mapper. The schema for users and api_clients lives here too so that one
make_engine() call creates every table; their repositories are in
auth/users.py and auth/clients.py.

Sessions have a surrogate primary key only. The semantic lookup key is
(user_id, client_id, public_key, private_key), matched with AND semantics in
find_one(). Rows are never updated and never swept on expiry -- expiry is
checked when a token is presented, and stale rows stay until deleted.

Security:
  All queries use bound parameters. No f-strings in SQL.
  Every SQLAlchemyError is re-raised as PersistenceError; nothing retries.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from sqlalchemy import Column, Integer, MetaData, String, Table, create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError

from auth.clock import parse_timestamp, to_utc
from auth.errors import PersistenceError
from auth.models import Session

logger = logging.getLogger("sessionauth.store")

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

metadata = MetaData()

users_table = Table(
    "users",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("username", String(255), nullable=False, unique=True),
    Column("created_at", String(32), nullable=False),
)

clients_table = Table(
    "api_clients",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("name", String(100), nullable=False, unique=True),
    Column("created_at", String(32), nullable=False),
)

sessions_table = Table(
    "api_sessions",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("user_id", Integer, nullable=False, index=True),
    Column("client_id", Integer, nullable=False),
    Column("public_key", String(64), nullable=False, unique=True),
    Column("private_key", String(64), nullable=False),  # HMAC-SHA256 hex
    Column("expires", String(32)),  # ISO 8601, NULL = never expires
    Column("created_at", String(32), nullable=False),
)

_REQUIRED_SESSION_FIELDS = ("user_id", "client_id", "public_key", "private_key")

# Largest value an INTEGER primary key can hold (signed 64-bit).
MAX_ROW_ID = 2**63 - 1


# ---------------------------------------------------------------------------
# Engine
# ---------------------------------------------------------------------------


def _set_wal_mode(dbapi_conn, connection_record) -> None:
    """Enable WAL journal mode so lookups are not blocked by concurrent inserts."""
    dbapi_conn.execute("PRAGMA journal_mode=WAL")


def make_engine(db_url: str) -> Engine:
    """Create an engine for db_url and make sure every auth table exists.

    In-memory SQLite URLs skip WAL (it has no effect there).
    """
    connect_args: dict = {}
    if db_url.startswith("sqlite"):
        connect_args["check_same_thread"] = False
    engine = create_engine(db_url, connect_args=connect_args)
    if db_url.startswith("sqlite") and ":memory:" not in db_url and "mode=memory" not in db_url:
        event.listen(engine, "connect", _set_wal_mode)
    metadata.create_all(engine)
    return engine


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def parse_row_id(value: int | str) -> int | None:
    """Return value as a row id, or None if it is not a storable positive integer."""
    if isinstance(value, bool):
        return None
    if isinstance(value, str):
        if not (value.isascii() and value.isdigit()):
            return None
        value = int(value)
    if not isinstance(value, int) or not 0 < value <= MAX_ROW_ID:
        return None
    return value


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class SessionStore:
    """Repository for Session records.

    Usage:
        store = SessionStore(make_engine("sqlite:///:memory:"))
        saved = store.save(Session(user_id=1, client_id=2, public_key=pub, private_key=priv))
        store.find_one(1, 2, pub, priv)
    """

    def __init__(self, engine: Engine) -> None:
        self.engine = engine

    def save(self, session: Session) -> Session:
        """Insert a new session and return it with id and created_at set.

        Raises PersistenceError if a required field is missing or the
        insert fails (e.g. duplicate public_key).
        """
        missing = [name for name in _REQUIRED_SESSION_FIELDS if getattr(session, name) in (None, "")]
        if missing:
            raise PersistenceError(f"Session is missing required fields: {', '.join(missing)}")

        created_at = now_iso()
        expires = to_utc(session.expires_at).isoformat() if session.expires_at is not None else None
        try:
            with self.engine.connect() as conn:
                result = conn.execute(
                    sessions_table.insert().values(
                        user_id=session.user_id,
                        client_id=session.client_id,
                        public_key=session.public_key,
                        private_key=session.private_key,
                        expires=expires,
                        created_at=created_at,
                    )
                )
                conn.commit()
        except SQLAlchemyError as exc:
            raise PersistenceError("Could not save session") from exc

        return Session(
            user_id=session.user_id,
            client_id=session.client_id,
            public_key=session.public_key,
            private_key=session.private_key,
            expires_at=to_utc(session.expires_at) if session.expires_at is not None else None,
            id=result.inserted_primary_key[0],
            created_at=created_at,
        )

    def find_one(self, user_id: int, client_id: int, public_key: str, private_key: str) -> Session | None:
        """Return the session matching all four fields, or None."""
        stmt = sessions_table.select().where(
            (sessions_table.c.user_id == user_id)
            & (sessions_table.c.client_id == client_id)
            & (sessions_table.c.public_key == public_key)
            & (sessions_table.c.private_key == private_key)
        )
        try:
            with self.engine.connect() as conn:
                row = conn.execute(stmt).fetchone()
        except SQLAlchemyError as exc:
            raise PersistenceError("Session lookup failed") from exc
        return _row_to_session(row) if row is not None else None

    def find_by_user(self, user_id: int) -> list[Session]:
        """Return every session for a user, oldest first."""
        stmt = sessions_table.select().where(sessions_table.c.user_id == user_id).order_by(sessions_table.c.id)
        try:
            with self.engine.connect() as conn:
                rows = conn.execute(stmt).fetchall()
        except SQLAlchemyError as exc:
            raise PersistenceError("Session listing failed") from exc
        return [_row_to_session(r) for r in rows]

    def delete_one(self, session: Session) -> bool:
        """Delete a single session. Returns False if it was already gone.

        Matches on the surrogate id and the public key, so a stale Session
        value can never remove a row it does not describe.
        """
        if session.id is None:
            return False
        stmt = sessions_table.delete().where(
            (sessions_table.c.id == session.id) & (sessions_table.c.public_key == session.public_key)
        )
        try:
            with self.engine.connect() as conn:
                result = conn.execute(stmt)
                conn.commit()
        except SQLAlchemyError as exc:
            raise PersistenceError("Session delete failed") from exc
        return result.rowcount > 0

    def delete_all_for_user(self, user_id: int) -> int:
        """Delete every session belonging to user_id. Returns the row count."""
        try:
            with self.engine.connect() as conn:
                result = conn.execute(sessions_table.delete().where(sessions_table.c.user_id == user_id))
                conn.commit()
        except SQLAlchemyError as exc:
            raise PersistenceError("Session purge failed") from exc
        logger.debug("Purged %d session(s) for user %s", result.rowcount, user_id)
        return result.rowcount

    def close(self) -> None:
        self.engine.dispose()


# ---------------------------------------------------------------------------
# Row mappers (Data Mapper pattern)
# ---------------------------------------------------------------------------


def _row_to_session(row) -> Session:
    return Session(
        id=row.id,
        user_id=row.user_id,
        client_id=row.client_id,
        public_key=row.public_key,
        private_key=row.private_key,
        expires_at=parse_timestamp(row.expires) if row.expires else None,
        created_at=row.created_at,
    )
