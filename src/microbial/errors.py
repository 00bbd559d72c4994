"""Service errors and their HTTP mapping."""

from typing import Any

from pydantic import ValidationError
from sqlalchemy.exc import IntegrityError


class ServiceError(Exception):
    """Base error raised by services and mapped onto an HTTP response."""

    status_code = 500
    default_message = "Internal Server Error"

    def __init__(self, message: str | None = None, errors: list[str] | None = None):
        self.message = message or self.default_message
        self.errors = errors or []
        super().__init__(self.message)

    def to_dict(self) -> dict[str, Any]:
        return {
            "status": self.status_code,
            "message": self.message,
            "errors": self.errors,
        }


class Unauthorized(ServiceError):
    status_code = 401
    default_message = "Unauthorized"


class NotFound(ServiceError):
    status_code = 404
    default_message = "Not Found"


class UnprocessableEntity(ServiceError):
    status_code = 422
    default_message = "Unprocessable Entity"


class InternalError(ServiceError):
    status_code = 500


def _format_location(loc: tuple) -> str:
    # Drop the "body"/"query" prefix FastAPI adds to request errors
    parts = [str(p) for p in loc if p not in ("body", "query", "path", "header")]
    return ".".join(parts)


def flatten_errors(exc: Exception) -> list[str]:
    """Flatten nested per-field error structures into a list of messages.

    Handles pydantic validation errors (also FastAPI's RequestValidationError,
    which exposes the same ``errors()`` list) and database integrity errors.
    Anything else yields its string form.
    """
    if isinstance(exc, IntegrityError):
        return [str(exc.orig)]

    errors_fn = getattr(exc, "errors", None)
    if isinstance(exc, ValidationError) or callable(errors_fn):
        messages = []
        for err in errors_fn():
            field = _format_location(tuple(err.get("loc", ())))
            msg = err.get("msg", "invalid value")
            messages.append(f"{field}: {msg}" if field else msg)
        return messages

    return [str(exc)]


def unprocessable_from(exc: Exception) -> UnprocessableEntity:
    """Wrap a persistence or validation failure as a 422."""
    errors = flatten_errors(exc)
    message = errors[0] if errors else str(exc)
    return UnprocessableEntity(message, errors=errors)
