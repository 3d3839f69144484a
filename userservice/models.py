"""Domain models for the user directory."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class User:
    """Represents a user row stored in the directory database."""

    id: int
    name: str
    email: str


@dataclass(frozen=True)
class NewUser:
    """Validated input for a user that has not been persisted yet."""

    name: str
    email: str


__all__ = ["NewUser", "User"]
