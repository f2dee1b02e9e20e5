"""
core/validation.py -- Schema gate run before any handler logic.

validate() checks a raw JSON payload against a pydantic model and either
returns the typed instance or raises ValidationFailed listing every violated
constraint at once, grouped by field in first-seen order:

    {"message": "Validation failed",
     "errors": [["email: value is not a valid email address: ..."],
                ["password: String should have at least 6 characters"]]}
"""

from typing import Any, TypeVar

from pydantic import BaseModel, ValidationError

from core.errors import ValidationFailed

ModelT = TypeVar("ModelT", bound=BaseModel)


def group_errors(errors: list[dict]) -> list[list[str]]:
    """Collapse pydantic error dicts into one message list per field."""
    grouped: dict[str, list[str]] = {}
    for err in errors:
        parts = [part for part in err.get("loc", ()) if isinstance(part, str) and part != "body"]
        loc = ".".join(parts) or "body"
        grouped.setdefault(loc, []).append(f"{loc}: {err['msg']}")
    return list(grouped.values())


def validate(payload: Any, schema: type[ModelT]) -> ModelT:
    """Return payload parsed as schema, or raise ValidationFailed."""
    try:
        return schema.model_validate(payload)
    except ValidationError as exc:
        raise ValidationFailed(errors=group_errors(exc.errors())) from exc
