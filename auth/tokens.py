"""
auth/tokens.py -- JWT issuing/verification and password hashing.

Security design decisions:
  JWT: python-jose with HS256. Tokens are signed with SECRET_KEY and carry
       user_id, role, iat and exp. verify() raises InvalidToken on any
       failure -- bad signature, malformed value, missing claims and expiry
       all produce the same error so the response cannot be used as an oracle.
       Tokens are never stored server-side; there is no revocation list.

  Passwords: bcrypt used directly (no passlib wrapper). The cost factor comes
       from HASH_COST. PasswordHasher refuses to hash when it is unset rather
       than falling back to a library default.

Both classes take their configuration through the constructor. The
application lifespan builds one instance of each from Settings.

Layer rule: no imports from api/, cache/, or users/. Import from core/ is
allowed -- core/ is the kernel and has no reverse dependencies.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

import bcrypt
from jose import JWTError, jwt

from auth.models import TokenClaims
from core.errors import ConfigurationMissing, InvalidToken

logger = logging.getLogger("userapi.auth")

_ALGORITHM = "HS256"

# ---------------------------------------------------------------------------
# Password hashing
# ---------------------------------------------------------------------------


class PasswordHasher:
    """One-way salted bcrypt hashing with a configurable work factor."""

    def __init__(self, cost: Optional[int]) -> None:
        self.cost = cost

    def hash(self, plain: str) -> str:
        """Return a bcrypt digest of plain.

        Raises ConfigurationMissing if no cost factor was configured.
        bcrypt rejects inputs over 72 bytes, so the encoded value is
        truncated first (schema validation already caps the length).
        """
        if self.cost is None:
            logger.error("Refusing to hash password: HASH_COST is not configured")
            raise ConfigurationMissing()
        return bcrypt.hashpw(plain.encode("utf-8")[:72], bcrypt.gensalt(rounds=self.cost)).decode("utf-8")

    def verify(self, plain: str, hashed: str) -> bool:
        """Return True if plain matches the digest. Never raises on mismatch."""
        try:
            return bcrypt.checkpw(plain.encode("utf-8")[:72], hashed.encode("utf-8"))
        except (ValueError, TypeError):
            return False


# ---------------------------------------------------------------------------
# JWT encode / decode
# ---------------------------------------------------------------------------


class TokenService:
    """Issues and verifies signed, time-limited identity assertions."""

    def __init__(self, secret_key: str, lifetime_seconds: int = 3600) -> None:
        self._secret_key = secret_key
        self.lifetime_seconds = lifetime_seconds

    def issue(self, user_id: int, role: str) -> str:
        """Encode a signed JWT for user_id/role expiring lifetime_seconds from now."""
        now = datetime.now(timezone.utc).replace(microsecond=0)
        payload = {
            "sub": str(user_id),
            "user_id": user_id,
            "role": role,
            "iat": now,
            "exp": now + timedelta(seconds=self.lifetime_seconds),
        }
        return jwt.encode(payload, self._secret_key, algorithm=_ALGORITHM)

    def verify(self, token: str) -> TokenClaims:
        """Decode and verify a JWT. Raises InvalidToken on any failure."""
        try:
            payload = jwt.decode(token, self._secret_key, algorithms=[_ALGORITHM])
        except JWTError as exc:
            logger.info("Token rejected: %s", exc)
            raise InvalidToken() from exc

        user_id = payload.get("user_id")
        role = payload.get("role")
        expires_at = payload.get("exp")
        if not isinstance(user_id, int) or not isinstance(role, str) or not isinstance(expires_at, int):
            logger.info("Token rejected: missing user_id, role or exp claim")
            raise InvalidToken()
        return TokenClaims(
            user_id=user_id,
            role=role,
            issued_at=int(payload.get("iat", 0)),
            expires_at=expires_at,
        )
