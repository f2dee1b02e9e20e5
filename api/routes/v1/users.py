"""
api/routes/v1/users.py -- Registration, login, and user listing endpoints.

Routes:
  POST /register   -- create an account (rate limited)
  POST /login      -- exchange credentials for a bearer token (rate limited)
  GET  /users      -- list every user, served through the Redis cache
  GET  /admin      -- admin-only greeting (bearer token, role=admin)
  GET  /protected  -- echo the verified token claims (bearer token)

Pipeline per route (any stage may short-circuit to the error handlers in
api/main.py):
  /register  rate check -> decode JSON -> validate(RegisterUserRequest) -> UserService.register
  /login     rate check -> decode JSON -> validate(LoginUserRequest) -> UserService.login
  /admin     authenticate -> authorize(admin)
  /protected authenticate

The request body is read and decoded inside the handler, after the rate
check, so malformed JSON and schema violations both count against the budget
and both come back as 400 "Validation failed". The @limiter decorator must
sit BELOW @router so FastAPI registers the rate-limited wrapper.

Handlers are async so the body can be awaited; the service calls (bcrypt,
SQL, Redis) run in the threadpool.
"""

import json
from typing import Any

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse
from starlette.concurrency import run_in_threadpool

from api.limiter import USERS_RATE_LIMIT, USERS_RATE_LIMIT_SCOPE, limiter
from api.models import (
    LoginUserRequest,
    MessageResponse,
    ProtectedResponse,
    RegisterUserRequest,
    TokenResponse,
    UserResponse,
)
from auth.dependencies import authenticate, require_roles
from auth.models import TokenClaims, UserRole
from core.errors import ValidationFailed
from core.validation import validate
from users.service import UserService

# Auth policy:
# - POST /register:  public, rate limited
# - POST /login:     public, rate limited
# - GET  /users:     public (see DESIGN.md on the password hash in this payload)
# - GET  /admin:     requires role admin (require_roles)
# - GET  /protected: requires a valid token (authenticate)
router = APIRouter()


async def _read_json(request: Request) -> Any:
    """Return the decoded JSON body, None when empty.

    Undecodable bodies raise ValidationFailed with a single "body" group.
    """
    raw = await request.body()
    if not raw:
        return None
    try:
        return json.loads(raw)
    except ValueError as exc:
        raise ValidationFailed(errors=[["body: JSON decode error"]]) from exc


@router.post("/register", response_model=MessageResponse, status_code=201)
@limiter.shared_limit(USERS_RATE_LIMIT, scope=USERS_RATE_LIMIT_SCOPE)
async def register(request: Request) -> JSONResponse:
    """Create an account with the "user" role and invalidate the users cache."""
    body = validate(await _read_json(request), RegisterUserRequest)
    service: UserService = request.app.state.users
    await run_in_threadpool(
        service.register,
        name=body.name,
        email=body.email,
        password=body.password,
        role=body.role.value if body.role else None,
    )
    return JSONResponse(
        status_code=201,
        content=MessageResponse(message="User registered successfully").model_dump(),
    )


@router.post("/login", response_model=TokenResponse)
@limiter.shared_limit(USERS_RATE_LIMIT, scope=USERS_RATE_LIMIT_SCOPE)
async def login(request: Request) -> JSONResponse:
    """Verify email and password; return a one-hour bearer token."""
    body = validate(await _read_json(request), LoginUserRequest)
    service: UserService = request.app.state.users
    token = await run_in_threadpool(service.login, body.email, body.password)
    resp = JSONResponse(status_code=200, content=TokenResponse(token=token).model_dump())
    resp.headers["Cache-Control"] = "no-store"
    return resp


@router.get("/users", response_model=list[UserResponse])
def list_users(request: Request) -> list[dict]:
    """Return every registered user."""
    service: UserService = request.app.state.users
    return service.list_users()


@router.get("/admin", response_model=MessageResponse)
async def admin(identity: TokenClaims = Depends(require_roles(UserRole.ADMIN))) -> MessageResponse:
    return MessageResponse(message="Welcome to the admin panel!")


@router.get("/protected", response_model=ProtectedResponse)
async def protected(identity: TokenClaims = Depends(authenticate)) -> ProtectedResponse:
    return ProtectedResponse(message="This is a protected route", decoded=identity.to_dict())
