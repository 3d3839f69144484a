"""Input validation for user creation requests."""
from __future__ import annotations

from typing import Any, List, Mapping

import email_validator
from email_validator import EmailNotValidError, validate_email

from .errors import FieldError, ValidationError
from .models import NewUser

MAX_NAME_LENGTH = 255
MAX_EMAIL_LENGTH = 255

# Private-network and test domains are valid for a directory that never sends
# mail. The library still requires a dotted domain with an alphabetic TLD.
ACCEPTED_SPECIAL_USE_DOMAINS = ("local", "onion", "test")

for _domain in ACCEPTED_SPECIAL_USE_DOMAINS:
    if _domain in email_validator.SPECIAL_USE_DOMAIN_NAMES:
        email_validator.SPECIAL_USE_DOMAIN_NAMES.remove(_domain)


def _check_name(payload: Mapping[str, Any], errors: List[FieldError]) -> str:
    if "name" not in payload or payload["name"] is None:
        errors.append(FieldError("name", "name is required"))
        return ""

    raw = payload["name"]
    if not isinstance(raw, str):
        errors.append(FieldError("name", "name must be a string", raw))
        return ""

    name = raw.strip()
    if not name:
        errors.append(FieldError("name", "name must not be empty", raw))
    elif len(name) > MAX_NAME_LENGTH:
        errors.append(FieldError("name", f"name must be at most {MAX_NAME_LENGTH} characters", raw))
    return name


def _check_email(payload: Mapping[str, Any], errors: List[FieldError]) -> str:
    if "email" not in payload or payload["email"] is None:
        errors.append(FieldError("email", "email is required"))
        return ""

    raw = payload["email"]
    if not isinstance(raw, str):
        errors.append(FieldError("email", "email must be a string", raw))
        return ""

    email = raw.strip()
    if not email:
        errors.append(FieldError("email", "email must not be empty", raw))
        return ""
    if len(email) > MAX_EMAIL_LENGTH:
        errors.append(FieldError("email", f"email must be at most {MAX_EMAIL_LENGTH} characters", raw))
        return ""

    try:
        validate_email(email, check_deliverability=False)
    except EmailNotValidError:
        errors.append(FieldError("email", "email must be a valid email address", raw))
        return ""
    return email


def validate_user_input(payload: Any) -> NewUser:
    """Validate a create-user payload.

    Every field is checked before returning so callers can report all problems
    at once. Raises :class:`~userservice.errors.ValidationError` when any field
    is rejected; the store must not be touched in that case.
    """

    if not isinstance(payload, Mapping):
        raise ValidationError(
            [FieldError("body", "request body must be a JSON object")]
        )

    errors: List[FieldError] = []
    name = _check_name(payload, errors)
    email = _check_email(payload, errors)
    if errors:
        raise ValidationError(errors)
    return NewUser(name=name, email=email)


__all__ = ["MAX_EMAIL_LENGTH", "MAX_NAME_LENGTH", "validate_user_input"]
