"""
auth/codec.py -- Token serialization (JWE) and payload validation.

Wire format: JWE compact serialization via python-jose, alg="dir" with
enc="A256GCM". The plaintext is a JSON object:

    {"client_id": 7, "user_id": 42, "public_key": "<hex>", "expires": "<ISO 8601>" | null}

GCM authenticates the header and ciphertext, so a token altered in any
segment fails to decrypt. Every decrypt-side failure -- bad base64, bad
header, wrong key, failed tag, non-JSON plaintext -- collapses into
InvalidTokenError. Callers never see python-jose exception types.

The private key is never part of the payload. The server re-derives it from
public_key on every request (see auth/keys.py).

Expiry is checked here, before anything touches storage: an expired token
costs one decryption and no database round trip.
"""

from __future__ import annotations

import json
import logging

from jose import jwe
from jose.exceptions import JOSEError

from auth.clock import Clock, parse_timestamp, to_utc, utcnow
from auth.errors import InvalidTokenError, TokenExpiredError
from auth.models import Session, TokenPayload

logger = logging.getLogger("sessionauth.codec")

_ALGORITHM = "dir"
_ENCRYPTION = "A256GCM"
_KEY_BYTES = 32

_REQUIRED_FIELDS = ("client_id", "user_id", "public_key")


class TokenCodec:
    """Encrypts session references into tokens and back."""

    def __init__(self, key: bytes, clock: Clock = utcnow) -> None:
        if len(key) != _KEY_BYTES:
            raise ValueError(f"Token encryption key must be exactly {_KEY_BYTES} bytes")
        self._key = key
        self._clock = clock

    def serialize(self, session: Session) -> str:
        payload = {
            "client_id": session.client_id,
            "user_id": session.user_id,
            "public_key": session.public_key,
            "expires": to_utc(session.expires_at).isoformat() if session.expires_at is not None else None,
        }
        token = jwe.encrypt(json.dumps(payload), self._key, algorithm=_ALGORITHM, encryption=_ENCRYPTION)
        return token.decode("ascii")

    def deserialize(self, token: str) -> TokenPayload:
        """Decrypt and validate a token.

        Raises:
            InvalidTokenError: token is empty, tampered, encrypted under a
                different key, or missing client_id / user_id / public_key.
            TokenExpiredError: token is intact but its expiry has passed.
        """
        if not token:
            raise InvalidTokenError("Empty token")

        try:
            plaintext = jwe.decrypt(token, self._key)
        except (JOSEError, KeyError, TypeError, ValueError) as exc:
            logger.debug("Token decryption failed: %s", type(exc).__name__)
            raise InvalidTokenError() from exc
        if plaintext is None:
            raise InvalidTokenError()

        try:
            data = json.loads(plaintext)
        except ValueError as exc:
            raise InvalidTokenError("Token payload is not JSON") from exc

        if not isinstance(data, dict):
            raise InvalidTokenError("Token payload is not an object")
        if any(not data.get(field) for field in _REQUIRED_FIELDS):
            logger.warning("Token decrypted but is missing required fields")
            raise InvalidTokenError("Token payload is incomplete")

        expires_at = None
        if data.get("expires"):
            try:
                expires_at = parse_timestamp(data["expires"])
            except (TypeError, ValueError, OverflowError, OSError) as exc:
                raise InvalidTokenError("Token expiry is unreadable") from exc
            if expires_at < self._clock():
                raise TokenExpiredError()

        return TokenPayload(
            client_id=data["client_id"],
            user_id=data["user_id"],
            public_key=data["public_key"],
            expires_at=expires_at,
        )
