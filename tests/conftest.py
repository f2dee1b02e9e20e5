"""
tests/conftest.py -- Shared test fixtures for UserAPI tests.

This module provides:
  - FakeRedis: in-test double for the redis client used by UsersCache
  - make_store(): isolated named shared-memory SQLite UserStore
  - add_user: inserts a user straight into the store (bypasses the cache)
  - _patch_lifespan(): wires test components into app.state, bypassing real startup
  - api: a fresh TestClient plus handles on its store, cache, hasher and tokens

Design: Named shared-memory SQLite URIs (not plain :memory:) are required
because TestClient runs sync route handlers in a thread pool. Plain :memory:
DBs are per-connection and would present a blank schema to each worker thread.

DEBUG, HASH_COST and RATE_LIMIT_STORAGE_URI must be set before any app
import: get_settings() is cached on first call and api/limiter.py builds the
limiter at import time.
"""

from __future__ import annotations

import os
import uuid
from collections.abc import Generator
from contextlib import asynccontextmanager
from dataclasses import dataclass

# CRITICAL: set before any api/auth/core import.
os.environ.setdefault("DEBUG", "true")
os.environ.setdefault("HASH_COST", "4")
os.environ.setdefault("RATE_LIMIT_STORAGE_URI", "memory://")

import pytest
import redis
from fastapi.testclient import TestClient

from api.limiter import limiter
from api.main import app
from auth.models import User, UserRole
from auth.store import UserStore
from auth.tokens import PasswordHasher, TokenService
from cache.store import UsersCache
from core.config import get_settings
from users.service import UserService

# ---------------------------------------------------------------------------
# Redis double
# ---------------------------------------------------------------------------


class FakeRedis:
    """Dict-backed stand-in for redis.Redis covering the calls UsersCache makes.

    Set fail=True to make every call raise redis.exceptions.ConnectionError.
    """

    def __init__(self) -> None:
        self.data: dict[str, str] = {}
        self.ttls: dict[str, int | None] = {}
        self.fail = False
        self.closed = False

    def _check(self) -> None:
        if self.fail:
            raise redis.exceptions.ConnectionError("redis is down")

    def get(self, key: str) -> str | None:
        self._check()
        return self.data.get(key)

    def set(self, key: str, value: str, ex: int | None = None) -> bool:
        self._check()
        self.data[key] = value
        self.ttls[key] = ex
        return True

    def delete(self, *keys: str) -> int:
        self._check()
        removed = 0
        for key in keys:
            if self.data.pop(key, None) is not None:
                removed += 1
            self.ttls.pop(key, None)
        return removed

    def ping(self) -> bool:
        self._check()
        return True

    def close(self) -> None:
        self.closed = True


# ---------------------------------------------------------------------------
# Store helpers
# ---------------------------------------------------------------------------


def make_store() -> UserStore:
    """Create an isolated named shared-memory SQLite store."""
    return UserStore(f"sqlite:///file:test_users_{uuid.uuid4().hex}?mode=memory&cache=shared&uri=true")


@dataclass
class Api:
    client: TestClient
    store: UserStore
    redis: FakeRedis
    cache: UsersCache
    hasher: PasswordHasher
    tokens: TokenService
    service: UserService


def _patch_lifespan(service: UserService):
    """Return an async context manager that replaces the real lifespan."""

    @asynccontextmanager
    async def test_lifespan(app):
        app.state.user_store = service.store
        app.state.users_cache = service.cache
        app.state.hasher = service.hasher
        app.state.tokens = service.tokens
        app.state.users = service
        yield

    return test_lifespan


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def _reset_rate_limits() -> Generator[None, None, None]:
    """Every test starts with an empty rate limit window."""
    limiter.reset()
    yield
    limiter.reset()


@pytest.fixture
def fake_redis() -> FakeRedis:
    return FakeRedis()


@pytest.fixture
def store() -> Generator[UserStore, None, None]:
    s = make_store()
    yield s
    s.close()


@pytest.fixture
def hasher() -> PasswordHasher:
    return PasswordHasher(cost=4)


@pytest.fixture
def tokens() -> TokenService:
    return TokenService(get_settings().secret_key, lifetime_seconds=3600)


@pytest.fixture
def add_user(store, hasher):
    """Return a helper that inserts a user directly into the store and returns its id."""

    def _add(
        email: str,
        password: str = "secret123",
        role: UserRole = UserRole.USER,
        name: str = "Test User",
    ) -> int:
        return store.create_user(User(name=name, email=email, password=hasher.hash(password), role=role.value))

    return _add


@pytest.fixture
def api(store, fake_redis, hasher, tokens) -> Generator[Api, None, None]:
    """Yield a TestClient wired to a fresh store and cache.

    raise_server_exceptions=False so unhandled errors come back as the 500
    envelope instead of being re-raised into the test.
    """
    cache = UsersCache(fake_redis, ttl=300)
    service = UserService(store, cache, hasher, tokens)
    app.router.lifespan_context = _patch_lifespan(service)

    with TestClient(app, raise_server_exceptions=False) as client:
        yield Api(
            client=client,
            store=store,
            redis=fake_redis,
            cache=cache,
            hasher=hasher,
            tokens=tokens,
            service=service,
        )
