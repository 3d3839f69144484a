"""User resource: list and create operations plus their HTTP routes."""
from __future__ import annotations

import json
import logging
from typing import Any, Dict, List, Mapping, Optional, Protocol

import anyio
from fastapi import APIRouter, Depends, Request, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from .database import DatabaseError, DatabaseUnavailableError, IntegrityViolationError, QueryResult
from .errors import ConflictError, FieldError, InternalError, UnavailableError, ValidationError
from .models import NewUser, User
from .timeouts import record_committed_response
from .validation import validate_user_input

logger = logging.getLogger("userservice.users")

SELECT_USERS_SQL = "SELECT id, name, email FROM users ORDER BY id"
INSERT_USER_SQL = "INSERT INTO users (name, email) VALUES (:name, :email)"


class Gateway(Protocol):
    def query(self, sql: str, params: Optional[Mapping[str, Any]] = None) -> QueryResult: ...

    def ping(self) -> None: ...


class UserResponse(BaseModel):
    id: int
    name: str
    email: str


def user_to_response(user: User) -> UserResponse:
    return UserResponse(id=user.id, name=user.name, email=user.email)


def _row_to_user(row: Dict[str, Any]) -> User:
    return User(id=int(row["id"]), name=str(row["name"]), email=str(row["email"]))


class UserResource:
    """Validates and executes user operations against the ``users`` table."""

    def __init__(self, database: Gateway) -> None:
        self._database = database

    def list_users(self) -> List[User]:
        try:
            result = self._database.query(SELECT_USERS_SQL)
        except DatabaseUnavailableError as exc:
            logger.error("Listing users failed, database unavailable: %s", exc)
            raise UnavailableError("Failed to fetch users") from exc
        except DatabaseError as exc:
            logger.error("Listing users failed: %s", exc)
            raise InternalError("Failed to fetch users") from exc
        return [_row_to_user(row) for row in result.rows]

    def create_user(self, payload: Any) -> User:
        new_user = validate_user_input(payload)
        return self.insert_user(new_user)

    def insert_user(self, new_user: NewUser) -> User:
        try:
            result = self._database.query(
                INSERT_USER_SQL, {"name": new_user.name, "email": new_user.email}
            )
        except IntegrityViolationError as exc:
            logger.info("Rejected duplicate email %s", new_user.email)
            raise ConflictError(
                FieldError("email", "email is already registered", new_user.email)
            ) from exc
        except DatabaseUnavailableError as exc:
            logger.error("Creating user failed, database unavailable: %s", exc)
            raise UnavailableError("Failed to create user") from exc
        except DatabaseError as exc:
            logger.error("Creating user failed: %s", exc)
            raise InternalError("Failed to create user") from exc

        if result.last_row_id is None:
            logger.error("Insert for %s did not report a row id", new_user.email)
            raise InternalError("Failed to create user")

        user = User(id=result.last_row_id, name=new_user.name, email=new_user.email)
        logger.info("Created user %s <%s>", user.id, user.email)
        return user


def get_user_resource(request: Request) -> UserResource:
    return UserResource(request.app.state.database)


async def _read_json_body(request: Request) -> Any:
    body = await request.body()
    if not body.strip():
        return {}
    try:
        return json.loads(body)
    except (UnicodeDecodeError, json.JSONDecodeError) as exc:
        raise ValidationError(
            [FieldError("body", "request body must be valid JSON")]
        ) from exc


def build_user_router() -> APIRouter:
    router = APIRouter(prefix="/api/users", tags=["users"])

    @router.get("", response_model=List[UserResponse])
    async def list_users(resource: UserResource = Depends(get_user_resource)) -> List[UserResponse]:
        users = await anyio.to_thread.run_sync(resource.list_users, abandon_on_cancel=True)
        return [user_to_response(user) for user in users]

    @router.post("", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
    async def create_user(
        request: Request,
        resource: UserResource = Depends(get_user_resource),
    ) -> UserResponse:
        payload = await _read_json_body(request)
        new_user = validate_user_input(payload)
        # The insert is not abandoned on timeout; once it commits, the 201 is
        # what the caller receives.
        with anyio.CancelScope(shield=True):
            user = await anyio.to_thread.run_sync(resource.insert_user, new_user)
            response = user_to_response(user)
            record_committed_response(
                request,
                JSONResponse(status_code=status.HTTP_201_CREATED, content=response.model_dump()),
            )
        return response

    return router


__all__ = [
    "Gateway",
    "UserResource",
    "UserResponse",
    "build_user_router",
    "get_user_resource",
    "user_to_response",
]
