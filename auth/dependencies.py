"""
auth/dependencies.py -- FastAPI Depends() helpers for authentication.

authenticate() reads "Authorization: Bearer <token>", verifies it with the
TokenService on app.state, and returns the verified TokenClaims. Handlers
receive the identity as a plain argument; nothing is attached to the request.

require_roles(*roles) builds a dependency that runs authenticate() first and
then authorize(). The two failures stay distinct:
  - missing or invalid token  -> Unauthenticated / InvalidToken (401)
  - valid token, wrong role   -> Unauthorized (403)

Roles are taken from the token, not re-read from the store, so a role change
takes effect for a user at their next login (tokens live at most one hour).
"""

from __future__ import annotations

from collections.abc import Callable, Iterable

from fastapi import Depends, Request

from auth.models import TokenClaims, UserRole
from auth.tokens import TokenService
from core.errors import InvalidToken, Unauthenticated, Unauthorized


def _bearer_token(request: Request) -> str:
    auth_header = request.headers.get("Authorization")
    if not auth_header:
        raise Unauthenticated()
    scheme, _, token = auth_header.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        raise InvalidToken()
    return token.strip()


def authenticate(request: Request) -> TokenClaims:
    """Require a valid bearer token. Raises 401 if it is missing or invalid.

    Use as a FastAPI dependency:
        @router.get("/protected")
        def route(identity: TokenClaims = Depends(authenticate)): ...
    """
    tokens: TokenService = request.app.state.tokens
    return tokens.verify(_bearer_token(request))


def authorize(identity: TokenClaims, required_roles: Iterable[str]) -> bool:
    """Return True if identity.role is one of required_roles."""
    return identity.role in {str(getattr(r, "value", r)) for r in required_roles}


def require_roles(*roles: UserRole | str) -> Callable[..., TokenClaims]:
    """Build a dependency that requires authentication and one of roles.

    Use as a FastAPI dependency:
        @router.get("/admin")
        def route(identity: TokenClaims = Depends(require_roles(UserRole.ADMIN))): ...
    """

    def _require(identity: TokenClaims = Depends(authenticate)) -> TokenClaims:
        if not authorize(identity, roles):
            raise Unauthorized()
        return identity

    return _require
