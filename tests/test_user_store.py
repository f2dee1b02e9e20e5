"""
tests/test_user_store.py -- Unit tests for UserStore (SQLAlchemy Core repository).

Uses the isolated shared-memory store fixture from conftest.py.
"""

from __future__ import annotations

import pytest
from sqlalchemy import inspect
from sqlalchemy.exc import IntegrityError

from auth.models import User


def _user(email: str = "ada@example.com", role: str = "user") -> User:
    return User(name="Ada", email=email, password="$2b$04$digest", role=role)


class TestUserStore:
    def test_create_assigns_id(self, store) -> None:
        uid = store.create_user(_user())
        assert isinstance(uid, int) and uid > 0

    def test_get_by_email_round_trip(self, store) -> None:
        uid = store.create_user(_user(role="admin"))
        user = store.get_by_email("ada@example.com")
        assert user is not None
        assert user.id == uid
        assert user.name == "Ada"
        assert user.role == "admin"
        assert user.password == "$2b$04$digest"

    def test_get_by_email_unknown_returns_none(self, store) -> None:
        assert store.get_by_email("nobody@example.com") is None

    def test_duplicate_email_raises_integrity_error(self, store) -> None:
        """UNIQUE(email) is enforced by the database itself."""
        store.create_user(_user())
        with pytest.raises(IntegrityError):
            store.create_user(_user())
        assert store.count_users() == 1

    def test_role_defaults_to_user(self, store) -> None:
        store.create_user(User(name="Bob", email="bob@example.com", password="x"))
        assert store.get_by_email("bob@example.com").role == "user"

    def test_list_users_ordered_by_id(self, store) -> None:
        first = store.create_user(_user("a@example.com"))
        second = store.create_user(_user("b@example.com"))
        assert [u.id for u in store.list_users()] == [first, second]

    def test_count_users(self, store) -> None:
        assert store.count_users() == 0
        store.create_user(_user("a@example.com"))
        store.create_user(_user("b@example.com"))
        assert store.count_users() == 2

    def test_email_index_exists(self, store) -> None:
        indexes = {ix["name"] for ix in inspect(store.engine).get_indexes("users")}
        assert "IDX_USER_EMAIL" in indexes

    def test_ping(self, store) -> None:
        assert store.ping() is True
