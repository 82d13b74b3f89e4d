"""
auth/users.py -- Minimal user directory.

The session service only needs two things from a user directory: an
identifier for each principal (User.get_identifier()) and a way back from
that identifier to the User (get_by_id). UserStore provides both on top of
the shared auth schema. Anything richer -- passwords, roles, profile data --
belongs to the application that embeds this package.
"""

from __future__ import annotations

from typing import Protocol

from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError

from auth.errors import PersistenceError
from auth.models import User
from auth.store import now_iso, parse_row_id, users_table


class UserDirectory(Protocol):
    def get_by_id(self, user_id: int) -> User | None: ...


class UserStore:
    """Repository for User records."""

    def __init__(self, engine: Engine) -> None:
        self.engine = engine

    def create_user(self, username: str) -> User:
        """Insert a user and return it. Raises PersistenceError on a duplicate username."""
        created_at = now_iso()
        try:
            with self.engine.connect() as conn:
                result = conn.execute(users_table.insert().values(username=username, created_at=created_at))
                conn.commit()
        except SQLAlchemyError as exc:
            raise PersistenceError(f"Could not create user {username!r}") from exc
        return User(username=username, id=result.inserted_primary_key[0], created_at=created_at)

    def get_by_id(self, user_id: int) -> User | None:
        """Look up a user by primary key. Ids no row can hold resolve to None."""
        row_id = parse_row_id(user_id)
        if row_id is None:
            return None
        return self._fetch_one(users_table.c.id == row_id)

    def get_by_username(self, username: str) -> User | None:
        """Look up a user by exact username (case-sensitive)."""
        return self._fetch_one(users_table.c.username == username)

    def _fetch_one(self, condition) -> User | None:
        try:
            with self.engine.connect() as conn:
                row = conn.execute(users_table.select().where(condition)).fetchone()
        except SQLAlchemyError as exc:
            raise PersistenceError("User lookup failed") from exc
        return _row_to_user(row) if row is not None else None


def _row_to_user(row) -> User:
    return User(id=row.id, username=row.username, created_at=row.created_at)
