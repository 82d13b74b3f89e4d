"""
auth/service.py -- Session lifecycle: create, serialize, verify, revoke.

Validation runs in two layers on every request, with no cached state:

  1. TokenCodec.deserialize() -- authenticated decryption plus expiry.
     Failures raise InvalidTokenError / TokenExpiredError.
  2. KeyDeriver re-derives private_key from the token's public_key and
     SessionStore.find_one() matches (user_id, client_id, public_key,
     private_key). No row means the session was revoked or never existed:
     the result is None, not an exception.

This split lets callers tell "someone tampered with this token" (hard error)
apart from "this token was logged out" (soft None).

SessionAuthService holds no mutable state. The default expiry is passed in
at construction rather than read from a module-level global.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import Any

from sqlalchemy.engine import Engine

from auth.clock import Clock, parse_timestamp, utcnow
from auth.codec import TokenCodec
from auth.errors import PersistenceError
from auth.keys import KeyDeriver
from auth.models import Client, RawToken, ResolvedSession, Session, SessionRef, User
from auth.store import SessionStore
from auth.users import UserDirectory, UserStore
from core.config import Settings

logger = logging.getLogger("sessionauth.auth")

DEFAULT_EXPIRY = timedelta(weeks=4)


class SessionAuthService:
    """Stateless orchestrator over the key deriver, codec and session store."""

    def __init__(
        self,
        sessions: SessionStore,
        users: UserDirectory,
        keys: KeyDeriver,
        codec: TokenCodec,
        default_expiry: timedelta = DEFAULT_EXPIRY,
        clock: Clock = utcnow,
    ) -> None:
        self.sessions = sessions
        self.users = users
        self.keys = keys
        self.codec = codec
        self.default_expiry = default_expiry
        self._clock = clock

    @classmethod
    def from_settings(cls, engine: Engine, settings: Settings, clock: Clock = utcnow) -> SessionAuthService:
        """Wire a service from Settings. Codec and service share one clock."""
        return cls(
            sessions=SessionStore(engine),
            users=UserStore(engine),
            keys=KeyDeriver(settings.secret_key),
            codec=TokenCodec(settings.token_encryption_key(), clock=clock),
            default_expiry=settings.default_expiry(),
            clock=clock,
        )

    # ------------------------------------------------------------------
    # Creation
    # ------------------------------------------------------------------

    def create_session(self, user: User | None, client: Client | None, expires: Any = True) -> Session | None:
        """Create and persist a session for user on client.

        expires:
            False or None  -- the session never expires.
            datetime, ISO 8601 string, epoch seconds -- expire at that time.
            anything else (True, unparseable) -- now + default_expiry.

        Returns None when user or client is missing an identifier, or when
        the store rejects the insert.
        """
        if user is None or user.get_identifier() is None:
            return None
        if client is None or client.id is None:
            return None

        public_key, private_key = self.keys.generate_pair()
        session = Session(
            user_id=user.get_identifier(),
            client_id=client.id,
            public_key=public_key,
            private_key=private_key,
            expires_at=self._resolve_expiry(expires),
        )

        try:
            saved = self.sessions.save(session)
        except PersistenceError:
            logger.exception("Could not persist session for user %s on client %s", session.user_id, client.id)
            return None

        logger.info("Session %s created for user %s on client %s", saved.id, saved.user_id, saved.client_id)
        return saved

    def _resolve_expiry(self, expires: Any) -> datetime | None:
        if expires is False or expires is None:
            return None
        try:
            return parse_timestamp(expires)
        except (TypeError, ValueError, OverflowError, OSError):
            # Unparseable (including True) means "use the default".
            return self._clock() + self.default_expiry

    # ------------------------------------------------------------------
    # Serialization / lookup
    # ------------------------------------------------------------------

    def serialize_session(self, session: Session) -> str:
        return self.codec.serialize(session)

    def find_session(self, token: str | None) -> Session | None:
        """Resolve a token to its stored session.

        Raises InvalidTokenError / TokenExpiredError for tokens that fail
        decryption or have expired. Returns None for an empty token or for a
        valid token with no matching session row.
        """
        if not token:
            return None

        payload = self.codec.deserialize(token)
        private_key = self.keys.derive_private(payload.public_key)
        session = self.sessions.find_one(payload.user_id, payload.client_id, payload.public_key, private_key)
        if session is None:
            logger.debug("No session row for user %s on client %s", payload.user_id, payload.client_id)
            return None

        if not self.keys.verify(session.public_key, session.private_key):
            logger.warning("Session %s failed key verification", session.id)
            return None
        return session

    def find_user(self, ref: SessionRef) -> User | None:
        session = self._resolve(ref)
        if session is None:
            return None
        return self.users.get_by_id(session.user_id)

    # ------------------------------------------------------------------
    # Revocation
    # ------------------------------------------------------------------

    def purge_sessions(self, user_or_id: User | int) -> bool:
        """Delete every session for a user. True if at least one was removed."""
        user_id = user_or_id.get_identifier() if isinstance(user_or_id, User) else user_or_id
        if user_id is None:
            return False
        removed = self.sessions.delete_all_for_user(user_id)
        if removed:
            logger.info("Purged %d session(s) for user %s", removed, user_id)
        return removed > 0

    def delete_session(self, ref: SessionRef) -> bool:
        """Revoke a single session. False if it cannot be resolved or is already gone."""
        session = self._resolve(ref)
        if session is None:
            return False
        deleted = self.sessions.delete_one(session)
        if deleted:
            logger.info("Session %s revoked", session.id)
        return deleted

    def _resolve(self, ref: SessionRef) -> Session | None:
        if isinstance(ref, ResolvedSession):
            return ref.session
        if isinstance(ref, RawToken):
            return self.find_session(ref.token)
        raise TypeError(f"Expected RawToken or ResolvedSession, got {type(ref).__name__}")
