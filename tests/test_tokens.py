"""
tests/test_tokens.py -- Unit tests for TokenService and PasswordHasher.

No HTTP stack involved: both classes take their configuration through the
constructor, so each test builds exactly the instance it needs.
"""

from __future__ import annotations

import pytest
from jose import jwt

from auth.tokens import PasswordHasher, TokenService
from core.errors import ConfigurationMissing, InvalidToken

SECRET = "k" * 64
OTHER_SECRET = "z" * 64


class TestTokenService:
    def test_issue_then_verify_returns_claims(self) -> None:
        """A freshly issued token verifies back to the same user_id and role."""
        svc = TokenService(SECRET, lifetime_seconds=3600)
        claims = svc.verify(svc.issue(1, "user"))
        assert claims.user_id == 1
        assert claims.role == "user"

    def test_expiry_is_issue_time_plus_lifetime(self) -> None:
        """exp - iat equals the configured lifetime (one hour by default)."""
        svc = TokenService(SECRET)
        claims = svc.verify(svc.issue(7, "admin"))
        assert claims.expires_at - claims.issued_at == 3600

    def test_to_dict_exposes_user_id_role_iat_exp(self) -> None:
        """The decoded view returned by /protected carries exactly these four claims."""
        svc = TokenService(SECRET)
        decoded = svc.verify(svc.issue(3, "user")).to_dict()
        assert set(decoded) == {"user_id", "role", "iat", "exp"}

    def test_expired_token_rejected(self) -> None:
        """A token whose exp is already in the past raises InvalidToken."""
        svc = TokenService(SECRET, lifetime_seconds=-10)
        token = svc.issue(1, "user")
        with pytest.raises(InvalidToken):
            svc.verify(token)

    def test_wrong_secret_rejected(self) -> None:
        """A token signed with another key does not verify."""
        token = TokenService(OTHER_SECRET).issue(1, "admin")
        with pytest.raises(InvalidToken):
            TokenService(SECRET).verify(token)

    def test_tampered_payload_rejected(self) -> None:
        """Swapping the payload segment breaks the signature."""
        svc = TokenService(SECRET)
        header, _payload, signature = svc.issue(1, "user").split(".")
        forged_payload = jwt.encode({"user_id": 1, "role": "admin"}, OTHER_SECRET).split(".")[1]
        with pytest.raises(InvalidToken):
            svc.verify(f"{header}.{forged_payload}.{signature}")

    def test_garbage_rejected(self) -> None:
        """A value that is not a JWT at all raises InvalidToken, not a decode error."""
        with pytest.raises(InvalidToken):
            TokenService(SECRET).verify("not-a-token")

    def test_missing_claims_rejected(self) -> None:
        """A correctly signed token without user_id/role is still invalid."""
        token = jwt.encode({"sub": "1", "exp": 4102444800}, SECRET, algorithm="HS256")
        with pytest.raises(InvalidToken):
            TokenService(SECRET).verify(token)

    def test_missing_exp_rejected(self) -> None:
        """Tokens must carry an expiry."""
        token = jwt.encode({"user_id": 1, "role": "user"}, SECRET, algorithm="HS256")
        with pytest.raises(InvalidToken):
            TokenService(SECRET).verify(token)

    def test_invalid_token_is_401(self) -> None:
        """InvalidToken renders as 401 with a Bearer challenge."""
        exc = InvalidToken()
        assert exc.status_code == 401
        assert exc.message == "Invalid token"
        assert exc.headers == {"WWW-Authenticate": "Bearer"}


class TestPasswordHasher:
    def test_hash_differs_from_plaintext(self) -> None:
        """The digest never equals or contains the plaintext."""
        digest = PasswordHasher(4).hash("secret123")
        assert digest != "secret123"
        assert "secret123" not in digest

    def test_verify_matches_original(self) -> None:
        hasher = PasswordHasher(4)
        digest = hasher.hash("secret123")
        assert hasher.verify("secret123", digest) is True

    def test_verify_rejects_wrong_password(self) -> None:
        hasher = PasswordHasher(4)
        assert hasher.verify("wrongpass", hasher.hash("secret123")) is False

    def test_same_password_hashes_differently(self) -> None:
        """bcrypt salts every digest."""
        hasher = PasswordHasher(4)
        assert hasher.hash("secret123") != hasher.hash("secret123")

    def test_cost_factor_is_embedded_in_digest(self) -> None:
        """The configured cost shows up in the bcrypt prefix ($2b$05$...)."""
        assert PasswordHasher(5).hash("secret123").split("$")[2] == "05"

    def test_malformed_digest_is_a_mismatch(self) -> None:
        """verify() returns False instead of raising on a corrupt stored value."""
        assert PasswordHasher(4).verify("secret123", "not-a-bcrypt-hash") is False

    def test_missing_cost_raises_configuration_missing(self) -> None:
        """No cost factor: hashing refuses to run instead of using a default."""
        with pytest.raises(ConfigurationMissing) as exc_info:
            PasswordHasher(None).hash("secret123")
        assert exc_info.value.status_code == 500
        assert exc_info.value.message == "Some crucial keys haven't been set"

    def test_long_password_is_accepted(self) -> None:
        """Inputs past bcrypt's 72-byte limit still hash and verify."""
        hasher = PasswordHasher(4)
        long_password = "x" * 120
        assert hasher.verify(long_password, hasher.hash(long_password)) is True
