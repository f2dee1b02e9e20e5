"""
auth/models.py -- Domain dataclasses for authentication entities.

Pattern: Data class (pure data container, zero logic). Dataclasses own domain
shape; stores, services and routes do the work.

Layer rule: no imports from api/, core/, cache/, or users/.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class UserRole(str, Enum):
    USER = "user"
    ADMIN = "admin"


@dataclass
class User:
    """A registered account.

    password holds the bcrypt digest, never the plaintext. The store assigns
    id on insert; it is None for a record that has not been persisted yet.
    """

    name: str
    email: str
    password: str
    role: str = UserRole.USER.value
    id: int | None = None


@dataclass(frozen=True)
class TokenClaims:
    """Verified identity carried by a bearer token.

    Produced by TokenService.verify() and handed to route handlers by the
    auth dependencies. Only ever exists after signature and expiry checks
    have passed.
    """

    user_id: int
    role: str
    issued_at: int
    expires_at: int

    def to_dict(self) -> dict:
        return {
            "user_id": self.user_id,
            "role": self.role,
            "iat": self.issued_at,
            "exp": self.expires_at,
        }
