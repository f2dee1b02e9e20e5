"""
Create a user (e.g. the first admin). Run from project root:
  python -m users.create_user NAME EMAIL PASSWORD [--role admin]
Example:
  python -m users.create_user "Site Admin" admin@example.com your-secure-password --role admin

Self-registration through POST /register always yields the "user" role unless
SELF_ASSIGN_ROLE=true, so admins are provisioned here.
"""

import argparse
import sys
from typing import Optional

from auth.models import UserRole
from auth.store import UserStore
from auth.tokens import PasswordHasher, TokenService
from cache.store import UsersCache
from core.config import get_settings
from core.errors import ConfigurationMissing, Conflict
from users.service import UserService


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Create a UserAPI account.")
    parser.add_argument("name", help="Display name (at least 2 chars)")
    parser.add_argument("email", help="Login email (must be unused)")
    parser.add_argument("password", help="Password (at least 6 chars)")
    parser.add_argument("--role", default=UserRole.USER.value, choices=[r.value for r in UserRole])
    parser.add_argument("--db-url", default=None, help="Override DATABASE_URL")
    parser.add_argument("--redis-url", default=None, help="Override REDIS_URL")
    return parser


def main(argv: Optional[list[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    name = args.name.strip()
    if len(name) < 2:
        print("Name must be at least 2 characters.", file=sys.stderr)
        return 1
    if len(args.password) < 6:
        print("Password must be at least 6 characters.", file=sys.stderr)
        return 1

    settings = get_settings()
    store = UserStore(args.db_url or settings.database_url)
    cache = UsersCache.from_url(
        args.redis_url or settings.redis_url,
        ttl=settings.cache_ttl_seconds,
        socket_timeout=settings.cache_socket_timeout_seconds,
    )
    service = UserService(
        store,
        cache,
        PasswordHasher(settings.hash_cost),
        TokenService(settings.secret_key, settings.token_expire_seconds),
        self_assign_role=True,
    )
    try:
        user = service.register(name=name, email=args.email, password=args.password, role=args.role)
    except Conflict:
        print(f"User '{args.email}' already exists.", file=sys.stderr)
        return 1
    except ConfigurationMissing:
        print("HASH_COST is not set.", file=sys.stderr)
        return 1
    finally:
        cache.close()
        store.close()

    print(f"Created user '{user.email}' with role '{user.role}' (id={user.id}).")
    return 0


if __name__ == "__main__":
    sys.exit(main())
