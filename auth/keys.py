"""
auth/keys.py -- Public/private key pair derivation for sessions.

A session's public key is 32 random bytes as hex (256 bits of entropy). Its
private key is HMAC-SHA256(SECRET_KEY, public_key). The pair gives a second,
independent check under the token encryption: a forged payload would need a
public key that matches a stored row, and the stored row is only reachable
with the private key the server re-derives itself.

The DB holds both halves, but not SECRET_KEY -- a leaked sessions table does
not let an attacker mint pairs for new sessions.

verify() uses hmac.compare_digest so comparison time does not leak how many
leading characters of a guess were correct.
"""

from __future__ import annotations

import hashlib
import hmac
import secrets


class KeyDeriver:
    """Generates public keys and derives their private counterparts."""

    def __init__(self, secret: str) -> None:
        if not secret:
            raise ValueError("KeyDeriver requires a non-empty secret")
        self._secret = secret.encode("utf-8")

    def generate_public(self) -> str:
        return secrets.token_hex(32)

    def derive_private(self, public_key: str) -> str:
        """Return HMAC-SHA256(secret, public_key) as a hex string. Deterministic."""
        return hmac.new(self._secret, public_key.encode("utf-8"), hashlib.sha256).hexdigest()

    def generate_pair(self) -> tuple[str, str]:
        public_key = self.generate_public()
        return public_key, self.derive_private(public_key)

    def verify(self, public_key: str, private_key: str) -> bool:
        """Return True if private_key is the derivation of public_key (constant-time)."""
        if not isinstance(public_key, str) or not isinstance(private_key, str):
            return False
        expected = self.derive_private(public_key)
        return hmac.compare_digest(expected.encode("utf-8"), private_key.encode("utf-8"))
