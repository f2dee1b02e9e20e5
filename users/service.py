"""
users/service.py -- Registration, login, and cached listing of users.

Composes the credential store, the password hasher, the token service and
the users cache. Route handlers in api/routes/v1/users.py validate input and
call into this module; everything that touches storage lives here.

Cache consistency:
  list_users() reads through the "users" key. A miss loads every row from
  the store and writes the snapshot back with the cache TTL. Two concurrent
  misses may both write; the values are equal, so last-write-wins is fine.

  register() deletes the "users" key only after the store insert has been
  committed, and on every successful insert. If that delete fails the
  account still exists, so the request still succeeds; the failure is logged
  at ERROR level and readers may see the old snapshot until the TTL expires.

Layer rule: may import from auth/, cache/, and core/. Never from api/.
"""

from __future__ import annotations

import logging
from dataclasses import asdict
from typing import Optional

from sqlalchemy.exc import IntegrityError

from auth.models import User, UserRole
from auth.store import UserStore
from auth.tokens import PasswordHasher, TokenService
from cache.store import UsersCache
from core.errors import CacheError, Conflict, InvalidCredentials, UserNotFound
from core.monitoring import USERS_CACHE_REQUESTS

logger = logging.getLogger("userapi.users")


def user_to_record(user: User) -> dict:
    """Map a User onto the JSON-safe dict cached and returned by GET /users."""
    return asdict(user)


class UserService:
    def __init__(
        self,
        store: UserStore,
        cache: UsersCache,
        hasher: PasswordHasher,
        tokens: TokenService,
        self_assign_role: bool = False,
    ) -> None:
        self.store = store
        self.cache = cache
        self.hasher = hasher
        self.tokens = tokens
        self.self_assign_role = self_assign_role

    def register(self, name: str, email: str, password: str, role: Optional[str] = None) -> User:
        """Create a user and invalidate the users cache.

        Raises Conflict if the email is taken, ConfigurationMissing if the
        hasher has no cost factor.
        """
        if self.store.get_by_email(email) is not None:
            raise Conflict()

        assigned_role = role if (role and self.self_assign_role) else UserRole.USER.value
        user = User(name=name, email=email, password=self.hasher.hash(password), role=assigned_role)
        try:
            user.id = self.store.create_user(user)
        except IntegrityError as exc:
            # A concurrent registration won the race past the lookup above.
            raise Conflict() from exc
        logger.info("Registered user id=%s role=%s", user.id, user.role)

        self.invalidate_users_cache()
        return user

    def invalidate_users_cache(self) -> None:
        try:
            self.cache.invalidate()
        except CacheError:
            logger.exception(
                "Users cache invalidation failed; GET /users may be stale for up to %ss",
                self.cache.ttl,
            )

    def login(self, email: str, password: str) -> str:
        """Return a signed token for valid credentials.

        Raises UserNotFound for an unknown email, InvalidCredentials for a
        wrong password.
        """
        user = self.store.get_by_email(email)
        if user is None:
            raise UserNotFound()
        if not self.hasher.verify(password, user.password):
            raise InvalidCredentials()
        return self.tokens.issue(user.id, user.role)

    def list_users(self) -> list[dict]:
        """Return every user record, served from the cache when present."""
        cached = self.cache.get_users()
        if cached is not None:
            USERS_CACHE_REQUESTS.labels(result="hit").inc()
            return cached

        USERS_CACHE_REQUESTS.labels(result="miss").inc()
        records = [user_to_record(u) for u in self.store.list_users()]
        self.cache.set_users(records)
        return records
