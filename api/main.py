"""
api/main.py -- FastAPI application entry point for UserAPI.

Run with:      uvicorn asgi:app --reload --proxy-headers

Middleware stack (outermost to innermost):
  1. observe_requests      -- access log line + http_request_duration_ms
  2. TrustedHostMiddleware -- rejects requests with unexpected Host headers
  3. CORSMiddleware        -- adds CORS headers for allowed browser origins
  4. SlowAPIMiddleware     -- hands the shared limiter to the route decorators

Lifespan builds every stateful component from Settings once, puts it on
app.state, and closes it again on shutdown.
"""

from __future__ import annotations

import logging
import time
import traceback
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.trustedhost import TrustedHostMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse, Response
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from starlette.exceptions import HTTPException as StarletteHTTPException

from api.limiter import limiter, throttle_message
from api.models import ErrorResponse, HealthResponse
from api.routes.v1.users import router as users_router
from auth.store import UserStore
from auth.tokens import PasswordHasher, TokenService
from cache.store import UsersCache
from core.config import get_settings
from core.errors import CacheError, ServiceError, ValidationFailed
from core.monitoring import HTTP_REQUEST_DURATION_MS, render_metrics
from core.validation import group_errors
from users.service import UserService

__version__ = "0.1.0"

settings = get_settings()

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)-5s %(name)s %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger("userapi.api")

# ---------------------------------------------------------------------------
# Lifespan
# ---------------------------------------------------------------------------


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Manage application-level resources across the full server lifetime.

    Everything before yield runs on startup; everything after yield runs on
    shutdown. The store and cache are built first because UserService needs
    both.
    """
    logger.info("UserAPI starting up")
    app.state.user_store = UserStore(settings.database_url)
    logger.info("User store initialized")
    app.state.users_cache = UsersCache.from_url(
        settings.redis_url,
        ttl=settings.cache_ttl_seconds,
        socket_timeout=settings.cache_socket_timeout_seconds,
    )
    logger.info("Users cache initialized (ttl=%ss)", settings.cache_ttl_seconds)
    app.state.hasher = PasswordHasher(settings.hash_cost)
    app.state.tokens = TokenService(settings.secret_key, settings.token_expire_seconds)
    app.state.users = UserService(
        app.state.user_store,
        app.state.users_cache,
        app.state.hasher,
        app.state.tokens,
        self_assign_role=settings.self_assign_role,
    )

    yield

    app.state.users_cache.close()
    app.state.user_store.close()
    logger.info("UserAPI shutdown complete")


# ---------------------------------------------------------------------------
# App instantiation
# ---------------------------------------------------------------------------

app = FastAPI(
    title="UserAPI",
    description="User registration, JWT login, role checks, and a cached user directory.",
    version=__version__,
    lifespan=lifespan,
)

# ---------------------------------------------------------------------------
# Middleware stack
#
# Starlette wraps middleware in reverse registration order, so the last
# add_middleware() call is the outermost layer.
# ---------------------------------------------------------------------------

app.add_middleware(SlowAPIMiddleware)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_methods=["GET", "POST"],
    allow_headers=["Content-Type", "Authorization"],
    max_age=3600,
)

app.add_middleware(TrustedHostMiddleware, allowed_hosts=settings.allowed_hosts)

# SlowAPI looks for app.state.limiter by convention.
app.state.limiter = limiter


@app.middleware("http")
async def observe_requests(request: Request, call_next):
    """Log every response and record its latency in http_request_duration_ms.

    The route label is the matched path template (e.g. /users), not the raw
    URL, so label cardinality stays bounded.

    Unhandled exceptions propagate out of call_next and are rendered by the
    catch-all handler further out, so they are recorded here as 500 before
    being re-raised.
    """
    start = time.perf_counter()
    try:
        response = await call_next(request)
    except Exception:
        _record_request(request, 500, start)
        raise
    _record_request(request, response.status_code, start)
    return response


def _record_request(request: Request, status_code: int, start: float) -> None:
    ms = (time.perf_counter() - start) * 1000
    route = request.scope.get("route")
    route_path = getattr(route, "path", "unmatched")
    HTTP_REQUEST_DURATION_MS.labels(
        method=request.method,
        route=route_path,
        code=str(status_code),
    ).observe(ms)
    logger.info(
        "%s %s %d %.1fms %s",
        request.method,
        request.url.path,
        status_code,
        ms,
        request.client.host if request.client else "unknown",
    )


# ---------------------------------------------------------------------------
# Router registration
# ---------------------------------------------------------------------------

app.include_router(users_router, tags=["Users"])


# ---------------------------------------------------------------------------
# Exception handlers
#
# All handlers return the same ErrorResponse envelope ({"message", ...}) and
# every error is logged before it is rendered.
# ---------------------------------------------------------------------------


def _error_response(status_code: int, body: ErrorResponse, headers: dict[str, str] | None = None) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=body.model_dump(exclude_none=True),
        headers=headers,
    )


def _unhandled_response(exc: Exception) -> JSONResponse:
    stack = "".join(traceback.format_exception(type(exc), exc, exc.__traceback__)) if settings.debug else None
    return _error_response(500, ErrorResponse(message="An unexpected error occurred", stack=stack))


@app.exception_handler(RateLimitExceeded)
async def rate_limit_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    """Return 429 with the throttle message and the rate limit headers.

    The handler runs before the route body, so a throttled request never
    reaches the service layer.
    """
    logger.warning(
        "Rate limit exceeded for %s on %s",
        request.client.host if request.client else "unknown",
        request.url.path,
    )
    response = _error_response(429, ErrorResponse(message=throttle_message()))
    return request.app.state.limiter._inject_headers(response, request.state.view_rate_limit)


@app.exception_handler(ServiceError)
async def service_error_handler(request: Request, exc: ServiceError) -> JSONResponse:
    """Render typed failures raised by services, validation, and auth."""
    if exc.status_code >= 500:
        logger.error(
            "%s on %s %s",
            type(exc).__name__,
            request.method,
            request.url.path,
            exc_info=exc,
        )
        if isinstance(exc, CacheError):
            return _unhandled_response(exc)
    else:
        logger.warning("%s on %s %s: %s", type(exc).__name__, request.method, request.url.path, exc.message)
    return _error_response(
        exc.status_code,
        ErrorResponse(message=exc.message, errors=exc.errors),
        headers=exc.headers,
    )


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Framework-level request validation failures: same 400 envelope as schema failures."""
    errors = group_errors(list(exc.errors()))
    logger.warning("Request validation failed on %s %s", request.method, request.url.path)
    return _error_response(400, ErrorResponse(message=ValidationFailed.message, errors=errors))


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Framework errors (404 unknown route, 405 wrong method)."""
    logger.info("HTTP %d on %s %s", exc.status_code, request.method, request.url.path)
    return _error_response(
        exc.status_code,
        ErrorResponse(message=str(exc.detail)),
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(Exception)
async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Catch-all handler for unexpected server errors.

    The traceback is always logged. It is included in the response body only
    when DEBUG=true, never in production.
    """
    logger.exception("Unhandled exception on %s %s", request.method, request.url.path)
    return _unhandled_response(exc)


# ---------------------------------------------------------------------------
# Operational endpoints
#
# Defined directly here (not in a router) and never rate limited: load
# balancers and Prometheus scrapers must not be throttled.
# ---------------------------------------------------------------------------


@app.get("/", response_class=PlainTextResponse, include_in_schema=False)
async def root() -> str:
    return "Hello World!"


@app.get("/metrics", include_in_schema=False)
async def metrics() -> Response:
    """Prometheus text exposition of the application registry."""
    body, content_type = render_metrics()
    return Response(content=body, media_type=content_type)


@app.get("/health", tags=["Health"])
def health(request: Request) -> HealthResponse:
    """Return liveness plus database and cache reachability."""
    store: UserStore = request.app.state.user_store
    cache: UsersCache = request.app.state.users_cache
    return HealthResponse(
        version=__version__,
        components={
            "app": "ok",
            "database": "ok" if store.ping() else "error",
            "cache": "ok" if cache.ping() else "error",
        },
    )
