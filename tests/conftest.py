"""
tests/conftest.py -- Shared fixtures for session authentication tests.

This module provides:
  - engine: a fresh in-memory SQLite engine with every auth table created
  - session_store / user_store / client_store: repositories on that engine
  - clock: a controllable clock pinned to FIXED_NOW
  - service: a SessionAuthService wired to the above with fixed secrets

The DEBUG env var must be set before any core.config import so
get_settings() auto-generates SECRET_KEY instead of raising ValueError.
"""

from __future__ import annotations

import os
from collections.abc import Generator
from datetime import datetime, timedelta, timezone

# CRITICAL: Set DEBUG before any core import.
os.environ.setdefault("DEBUG", "true")

import pytest
from sqlalchemy.engine import Engine

from auth.clients import ClientResolver, ClientStore
from auth.codec import TokenCodec
from auth.keys import KeyDeriver
from auth.models import Client, User
from auth.service import SessionAuthService
from auth.store import SessionStore, make_engine
from auth.users import UserStore

FIXED_NOW = datetime(2026, 3, 1, 12, 0, 0, tzinfo=timezone.utc)
TEST_SECRET = "test-secret-key-that-is-at-least-32-characters"
TEST_TOKEN_KEY = b"0123456789abcdef0123456789abcdef"


class FakeClock:
    """Callable clock that tests can move forward."""

    def __init__(self, now: datetime = FIXED_NOW) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, delta: timedelta) -> None:
        self.now = self.now + delta


@pytest.fixture
def engine() -> Generator[Engine, None, None]:
    eng = make_engine("sqlite:///:memory:")
    yield eng
    eng.dispose()


@pytest.fixture
def session_store(engine) -> SessionStore:
    return SessionStore(engine)


@pytest.fixture
def user_store(engine) -> UserStore:
    return UserStore(engine)


@pytest.fixture
def client_store(engine) -> ClientStore:
    return ClientStore(engine)


@pytest.fixture
def resolver(client_store) -> ClientResolver:
    return ClientResolver(client_store)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def keys() -> KeyDeriver:
    return KeyDeriver(TEST_SECRET)


@pytest.fixture
def codec(clock) -> TokenCodec:
    return TokenCodec(TEST_TOKEN_KEY, clock=clock)


@pytest.fixture
def service(session_store, user_store, keys, codec, clock) -> SessionAuthService:
    return SessionAuthService(
        sessions=session_store,
        users=user_store,
        keys=keys,
        codec=codec,
        default_expiry=timedelta(weeks=4),
        clock=clock,
    )


@pytest.fixture
def alice(user_store) -> User:
    return user_store.create_user("alice")


@pytest.fixture
def bob(user_store) -> User:
    return user_store.create_user("bob")


@pytest.fixture
def web_client(client_store) -> Client:
    return client_store.create_client("web")
