"""
auth/models.py -- Domain dataclasses for session authentication.

Pattern: Data class (pure data container, zero logic). Stores return these as
plain values; nothing here lazily loads related rows. A Session carries
user_id, not a User -- resolving the user is an explicit directory lookup.

Layer rule: no imports from other auth/ modules.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Union


@dataclass
class User:
    """A principal that can own sessions.

    Roles, passwords and permissions live outside this package; only the
    identity matters here.
    """

    username: str
    id: int | None = None
    created_at: str | None = None

    def get_identifier(self) -> int | None:
        return self.id


@dataclass
class Client:
    """An application that users log in through (web, mobile, CLI...).

    name is unique and must not collide with another client's id, since
    find_client() treats both as keys in one namespace.
    """

    name: str
    id: int | None = None
    created_at: str | None = None


@dataclass(frozen=True)
class Session:
    """A server-held record binding a user, a client and a key pair.

    private_key is HMAC(SECRET_KEY, public_key). It never leaves the server:
    tokens carry only the public half. expires_at is None for sessions that
    never expire. Immutable once created -- there is no update path.
    """

    user_id: int
    client_id: int
    public_key: str
    private_key: str
    expires_at: datetime | None = None
    id: int | None = None  # surrogate key, set by the store on insert
    created_at: str | None = None  # ISO 8601, set by the store on insert


@dataclass(frozen=True)
class TokenPayload:
    """Decrypted token contents. Deliberately has no private_key field."""

    client_id: int
    user_id: int
    public_key: str
    expires_at: datetime | None = None


@dataclass(frozen=True)
class RawToken:
    """A token string as received from the transport layer."""

    token: str


@dataclass(frozen=True)
class ResolvedSession:
    """A session the caller has already resolved."""

    session: Session


SessionRef = Union[RawToken, ResolvedSession]
