"""
core/config.py -- Centralized application configuration via pydantic-settings.

All environment variable reads for UserAPI happen here. No module should
call os.getenv() or os.environ.get() directly -- import get_settings() instead.

Design patterns used:
  Singleton via lru_cache: get_settings() instantiates Settings once at first
      call and returns the cached instance on every subsequent call.

  Constructor injection: Settings values are handed to UserStore, UsersCache,
      PasswordHasher and TokenService when the application lifespan builds
      them. Components never read the settings object on their own.

  @model_validator(mode="after"): cross-field validation after all fields are
      resolved. Used for the DEBUG-conditional policy on SECRET_KEY and
      HASH_COST: dev mode tolerates a missing value with a warning, production
      mode refuses to start.

Security notes:
  SECRET_KEY shorter than 32 chars is rejected outright. JWT signing relies on
  key entropy -- a short key weakens every issued token.

Layer rule: core/ is the kernel. This module may not import from api/, auth/,
cache/, or users/.
"""

import logging
import secrets
from functools import lru_cache
from typing import Optional

from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger("userapi.config")

# bcrypt accepts log2 rounds in this range; anything else raises inside gensalt().
HASH_COST_MIN = 4
HASH_COST_MAX = 31


class Settings(BaseSettings):
    """Application settings loaded from environment variables and .env file.

    All fields have defaults so Settings() can be instantiated in test
    environments without a real .env file. The model_validator enforces
    production-safety rules at startup.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ------------------------------------------------------------------
    # Core
    # ------------------------------------------------------------------

    debug: bool = False
    log_level: str = "INFO"
    cors_origins: list[str] = []
    allowed_hosts: list[str] = ["*"]

    # ------------------------------------------------------------------
    # Auth
    # ------------------------------------------------------------------

    # Empty string is the sentinel for "not configured". The model_validator
    # below either generates a dev key or raises, so callers never see "".
    secret_key: str = ""
    token_expire_seconds: int = 3600
    # bcrypt work factor. None means "not configured": registration then
    # fails with ConfigurationMissing instead of silently using a default.
    hash_cost: Optional[int] = None
    # When False the optional "role" field on /register is validated but
    # ignored, and every self-registered account gets the "user" role.
    self_assign_role: bool = False

    # ------------------------------------------------------------------
    # Storage
    # ------------------------------------------------------------------

    database_url: str = "sqlite:///./userapi.db"
    redis_url: str = "redis://localhost:6379/0"
    cache_ttl_seconds: int = 300
    cache_socket_timeout_seconds: float = 2.0

    # ------------------------------------------------------------------
    # Rate limiting
    # ------------------------------------------------------------------

    rate_limit_max: int = 10
    rate_limit_window_seconds: int = 60
    # Empty string means "use redis_url". Tests point this at memory://.
    rate_limit_storage_uri: str = ""

    # ------------------------------------------------------------------
    # Validators
    # ------------------------------------------------------------------

    @field_validator("hash_cost")
    @classmethod
    def validate_hash_cost(cls, v: Optional[int]) -> Optional[int]:
        if v is not None and not (HASH_COST_MIN <= v <= HASH_COST_MAX):
            raise ValueError(f"HASH_COST must be between {HASH_COST_MIN} and {HASH_COST_MAX}")
        return v

    @field_validator("token_expire_seconds", "cache_ttl_seconds", "rate_limit_max", "rate_limit_window_seconds")
    @classmethod
    def validate_positive(cls, v: int) -> int:
        if v < 1:
            raise ValueError("must be a positive integer")
        return v

    @model_validator(mode="after")
    def validate_secrets(self) -> "Settings":
        """Enforce the startup policy for SECRET_KEY and HASH_COST.

        Dev mode (DEBUG=true): a missing SECRET_KEY is auto-generated with a
            warning, and a missing HASH_COST is tolerated so the per-request
            ConfigurationMissing path stays reachable.

        Production mode: both are required and startup fails without them.

        Both modes: reject keys shorter than 32 characters.
        """
        if not self.secret_key:
            if self.debug:
                self.secret_key = secrets.token_hex(32)
                logger.warning(
                    "WARNING: Using auto-generated SECRET_KEY. " "Issued tokens will not survive a restart."
                )
            else:
                raise ValueError(
                    "SECRET_KEY is required in production mode. "
                    "Set SECRET_KEY in your environment or .env file. "
                    "To run in development mode, set DEBUG=true."
                )
        if len(self.secret_key) < 32:
            raise ValueError("SECRET_KEY must be at least 32 characters.")
        if self.hash_cost is None:
            if self.debug:
                logger.warning("WARNING: HASH_COST is not set. Registration will fail until it is configured.")
            else:
                raise ValueError("HASH_COST is required in production mode.")
        return self

    @property
    def rate_limit(self) -> str:
        """Limit string in the `limits` notation, e.g. "10/60 second"."""
        return f"{self.rate_limit_max}/{self.rate_limit_window_seconds} second"

    @property
    def rate_limit_storage(self) -> str:
        return self.rate_limit_storage_uri or self.redis_url


@lru_cache
def get_settings() -> Settings:
    """Return the application Settings singleton.

    In tests: call get_settings.cache_clear() between test cases if you need
    to inject different environment variables.
    """
    return Settings()
