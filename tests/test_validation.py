from __future__ import annotations

import dataclasses

import pytest

from userservice.errors import ValidationError
from userservice.models import NewUser, User
from userservice.validation import MAX_NAME_LENGTH, validate_user_input


def _fields(exc: ValidationError) -> list[str]:
    return [error.field for error in exc.errors]


def test_valid_payload_is_normalised() -> None:
    result = validate_user_input({"name": "  Jane ", "email": " jane@example.com "})
    assert result == NewUser(name="Jane", email="jane@example.com")


def test_empty_name_is_rejected() -> None:
    with pytest.raises(ValidationError) as excinfo:
        validate_user_input({"name": "", "email": "jane@example.com"})
    assert _fields(excinfo.value) == ["name"]


def test_whitespace_name_is_rejected() -> None:
    with pytest.raises(ValidationError) as excinfo:
        validate_user_input({"name": "   ", "email": "jane@example.com"})
    assert _fields(excinfo.value) == ["name"]


def test_invalid_email_is_rejected() -> None:
    with pytest.raises(ValidationError) as excinfo:
        validate_user_input({"name": "Bob", "email": "not-an-email"})
    assert _fields(excinfo.value) == ["email"]
    assert excinfo.value.errors[0].value == "not-an-email"


def test_every_violation_is_reported() -> None:
    with pytest.raises(ValidationError) as excinfo:
        validate_user_input({})
    assert _fields(excinfo.value) == ["name", "email"]


@pytest.mark.parametrize("value", [None, 42, ["a@example.com"]])
def test_non_string_email_is_rejected(value: object) -> None:
    with pytest.raises(ValidationError) as excinfo:
        validate_user_input({"name": "Bob", "email": value})
    assert _fields(excinfo.value) == ["email"]


def test_overlong_name_is_rejected() -> None:
    with pytest.raises(ValidationError) as excinfo:
        validate_user_input({"name": "x" * (MAX_NAME_LENGTH + 1), "email": "long@example.com"})
    assert _fields(excinfo.value) == ["name"]


def test_non_object_body_is_rejected() -> None:
    with pytest.raises(ValidationError) as excinfo:
        validate_user_input(["Jane", "jane@example.com"])
    assert _fields(excinfo.value) == ["body"]


def test_error_payload_lists_fields() -> None:
    with pytest.raises(ValidationError) as excinfo:
        validate_user_input({"name": "", "email": "nope"})

    payload = excinfo.value.to_payload()
    assert [item["path"] for item in payload["errors"]] == ["name", "email"]
    assert all(item["location"] == "body" for item in payload["errors"])


def test_missing_field_omits_value() -> None:
    with pytest.raises(ValidationError) as excinfo:
        validate_user_input({"email": "jane@example.com"})
    assert "value" not in excinfo.value.errors[0].to_dict()


@pytest.mark.parametrize("email", ["alice@mail.local", "bob@host.test", "dan@x.onion"])
def test_private_network_domains_are_accepted(email: str) -> None:
    assert validate_user_input({"name": "Alice", "email": email}).email == email


@pytest.mark.parametrize("email", ["a@localhost", "a@example.invalid", "a@host.123"])
def test_undotted_or_reserved_domains_are_rejected(email: str) -> None:
    with pytest.raises(ValidationError) as excinfo:
        validate_user_input({"name": "Alice", "email": email})
    assert _fields(excinfo.value) == ["email"]


def test_user_model_carries_only_public_fields() -> None:
    assert [f.name for f in dataclasses.fields(User)] == ["id", "name", "email"]
