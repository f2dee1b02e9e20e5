"""
core/errors.py -- Typed failures raised by services and rendered by api/main.py.

Every domain failure is a ServiceError subclass carrying the HTTP status and
the client-facing message. Services raise; the exception handlers in
api/main.py log and render. Nothing below this layer builds HTTP responses.

Login with an unknown email is a 400 (UserNotFound), not a 404, so the status
code alone does not reveal whether an account exists.
"""

from typing import Optional


class ServiceError(Exception):
    """Base class for failures that map onto a fixed HTTP response."""

    status_code: int = 500
    message: str = "An unexpected error occurred"

    def __init__(
        self,
        message: Optional[str] = None,
        errors: Optional[list[list[str]]] = None,
        headers: Optional[dict[str, str]] = None,
    ) -> None:
        self.message = message or self.message
        self.errors = errors
        self.headers = headers
        super().__init__(self.message)


class ValidationFailed(ServiceError):
    """Payload violated its schema. errors holds one message list per field."""

    status_code = 400
    message = "Validation failed"


class Conflict(ServiceError):
    status_code = 400
    message = "This email address have been used"


class UserNotFound(ServiceError):
    status_code = 400
    message = "This user doesn't exist"


class InvalidCredentials(ServiceError):
    status_code = 400
    message = "Invalid credentials"


class Unauthenticated(ServiceError):
    """No usable identity on the request."""

    status_code = 401
    message = "Authorization header missing"

    def __init__(self, message: Optional[str] = None) -> None:
        super().__init__(message, headers={"WWW-Authenticate": "Bearer"})


class InvalidToken(Unauthenticated):
    """Signature, shape, or expiry check failed.

    Expired and tampered tokens share this one message.
    """

    message = "Invalid token"


class Unauthorized(ServiceError):
    """Identity is known but its role is not allowed here."""

    status_code = 403
    message = "Access denied"


class ConfigurationMissing(ServiceError):
    status_code = 500
    message = "Some crucial keys haven't been set"


class CacheError(ServiceError):
    """The key-value store failed or timed out. Rendered as a generic 500."""

    status_code = 500
