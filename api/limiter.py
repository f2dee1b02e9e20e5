"""
api/limiter.py -- Shared slowapi rate limiter instance.

Import this in both api/main.py (to mount as middleware and register the 429
handler) and api/routes/v1/users.py (to apply limits with @limiter.shared_limit()).

Counters live in the store named by RATE_LIMIT_STORAGE_URI (Redis by
default), so every worker process behind the proxy sees the same global
count per client address. Routes decorated with USERS_RATE_LIMIT share one
counter scope: /register and /login draw from the same budget.

headers_enabled adds X-RateLimit-Limit / -Remaining / -Reset and Retry-After
to limited responses.
"""

from slowapi import Limiter
from slowapi.util import get_remote_address

from core.config import get_settings

_settings = get_settings()

USERS_RATE_LIMIT = _settings.rate_limit
USERS_RATE_LIMIT_SCOPE = "users"

limiter = Limiter(
    key_func=get_remote_address,
    storage_uri=_settings.rate_limit_storage,
    strategy="fixed-window",
    headers_enabled=True,
)


def throttle_message() -> str:
    return (
        "Too many requests from this IP, please try again after "
        f"{_settings.rate_limit_window_seconds} seconds."
    )
