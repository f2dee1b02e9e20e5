"""
API request and response models for UserAPI REST endpoints.

These Pydantic v2 models define the HTTP transport contract for the API layer.
They are intentionally separate from the dataclasses in auth/models.py, which
own the internal domain representation. Route handlers and services map
between the two.

Request models are not used as FastAPI body parameters. Handlers read the
raw JSON body themselves and pass it to core.validation.validate(), so the rate limit
is checked before validation and all violations are reported in one
{"message", "errors"} envelope.
"""

from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field

# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------


class RoleEnum(str, Enum):
    """Transport mirror of auth.models.UserRole.

    Values must stay in sync with UserRole: the service layer receives
    RoleEnum.value and stores it as a UserRole value.
    """

    user = "user"
    admin = "admin"


# ---------------------------------------------------------------------------
# Request models
# ---------------------------------------------------------------------------


class RegisterUserRequest(BaseModel):
    """Request body for POST /register."""

    model_config = ConfigDict(extra="ignore")

    name: str = Field(min_length=2, max_length=255)
    email: EmailStr
    password: str = Field(min_length=6, max_length=128)
    role: Optional[RoleEnum] = None


class LoginUserRequest(BaseModel):
    """Request body for POST /login."""

    model_config = ConfigDict(extra="ignore")

    email: EmailStr
    password: str


# ---------------------------------------------------------------------------
# Response models
# ---------------------------------------------------------------------------


class MessageResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    message: str


class TokenResponse(BaseModel):
    """Response for POST /login."""

    model_config = ConfigDict(frozen=True)

    token: str


class UserResponse(BaseModel):
    """One entry of GET /users.

    password is the stored bcrypt digest. See DESIGN.md open questions.
    """

    model_config = ConfigDict(frozen=True)

    id: int
    name: str
    email: str
    password: str
    role: RoleEnum


class ProtectedResponse(BaseModel):
    """Response for GET /protected."""

    model_config = ConfigDict(frozen=True)

    message: str
    decoded: dict[str, Any]


class ErrorResponse(BaseModel):
    """Error envelope returned on every 4xx/5xx response.

    errors is set only for validation failures; stack only in debug mode.
    """

    model_config = ConfigDict(frozen=True)

    message: str
    errors: Optional[list[list[str]]] = None
    stack: Optional[str] = None


class HealthResponse(BaseModel):
    """Response for GET /health."""

    model_config = ConfigDict(frozen=True)

    status: str = "healthy"
    version: str
    components: dict[str, str]
