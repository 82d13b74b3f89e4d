"""
auth/errors.py -- Exception taxonomy for session authentication.

Hard errors (raise): the token cannot be trusted, or storage failed.
Soft outcomes (return None / False): a well-formed token whose session is
gone, or malformed input to create_session / find_client.

Callers catch AuthError to treat every hard token failure as unauthenticated,
or catch TokenExpiredError first to prompt re-authentication instead.
"""


class AuthError(Exception):
    """Base class for session authentication errors."""


class InvalidTokenError(AuthError):
    """Token could not be decrypted, or decrypted to an incomplete payload."""

    def __init__(self, message: str = "Invalid token") -> None:
        super().__init__(message)


class TokenExpiredError(AuthError):
    """Token decrypted cleanly but its expiry has passed."""

    def __init__(self, message: str = "Token expired") -> None:
        super().__init__(message)


class PersistenceError(AuthError):
    """An underlying storage operation failed. Never retried internally."""
