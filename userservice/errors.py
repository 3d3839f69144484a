"""Error taxonomy shared by the HTTP handlers."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Tuple

_MISSING = object()


@dataclass(frozen=True)
class FieldError:
    """A single rejected request field."""

    field: str
    message: str
    value: Any = _MISSING
    location: str = "body"

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "type": "field",
            "path": self.field,
            "location": self.location,
            "msg": self.message,
        }
        if self.value is not _MISSING:
            payload["value"] = self.value
        return payload


class ServiceError(RuntimeError):
    """Base class for failures that map onto an HTTP response."""

    status_code = 500
    public_message = "Internal Server Error"

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or self.public_message)
        self.message = message or self.public_message

    def to_payload(self) -> Dict[str, Any]:
        return {"error": self.message}


class ValidationError(ServiceError):
    """Raised when request input is malformed; lists every offending field."""

    status_code = 400
    public_message = "Validation failed"

    def __init__(self, errors: Iterable[FieldError]) -> None:
        self.errors: Tuple[FieldError, ...] = tuple(errors)
        if not self.errors:
            raise ValueError("ValidationError requires at least one field error")
        fields = ", ".join(error.field for error in self.errors)
        super().__init__(f"Invalid value for: {fields}")

    def to_payload(self) -> Dict[str, Any]:
        return {"errors": [error.to_dict() for error in self.errors]}


class ConflictError(ServiceError):
    """Raised when the input collides with an existing unique value."""

    status_code = 409
    public_message = "Conflict"

    def __init__(self, error: FieldError) -> None:
        self.errors: List[FieldError] = [error]
        super().__init__(error.message)

    def to_payload(self) -> Dict[str, Any]:
        return {"errors": [error.to_dict() for error in self.errors]}


class UnavailableError(ServiceError):
    """Raised when the persistence gateway cannot be reached."""

    status_code = 500
    public_message = "Service Unavailable"


class NotFoundError(ServiceError):
    status_code = 404
    public_message = "Not Found"


class InternalError(ServiceError):
    """Any other failure; the public message never carries internal detail."""

    status_code = 500
    public_message = "Internal Server Error"


__all__ = [
    "ConflictError",
    "FieldError",
    "InternalError",
    "NotFoundError",
    "ServiceError",
    "UnavailableError",
    "ValidationError",
]
