"""SQLite-backed persistence gateway for the user directory."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional

from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError, OperationalError, SQLAlchemyError
from sqlalchemy.exc import TimeoutError as PoolTimeoutError

logger = logging.getLogger("userservice.database")

DEFAULT_POOL_SIZE = 5
DEFAULT_TIMEOUT = 5.0

DEMO_USERS = (
    ("John Doe", "john@example.com"),
    ("Jane Smith", "jane@example.com"),
)

_SCHEMA = """
CREATE TABLE IF NOT EXISTS users (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    name TEXT NOT NULL,
    email TEXT NOT NULL UNIQUE COLLATE NOCASE,
    created_at TEXT NOT NULL DEFAULT CURRENT_TIMESTAMP
)
"""


class DatabaseError(RuntimeError):
    """Raised when the relational store rejects or fails a statement."""


class DatabaseUnavailableError(DatabaseError):
    """Raised when the relational store cannot be reached."""


class IntegrityViolationError(DatabaseError):
    """Raised when a statement violates a uniqueness or not-null constraint."""


@dataclass(frozen=True)
class QueryResult:
    """Outcome of :meth:`Database.query`.

    ``rows`` holds the fetched rows for ``SELECT`` statements; ``last_row_id``
    and ``row_count`` describe the effect of data-modifying statements.
    """

    rows: List[Dict[str, Any]] = field(default_factory=list)
    last_row_id: Optional[int] = None
    row_count: int = 0


def _ensure_directory(path: Path) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)


def resolve_database_path(env_value: Optional[str]) -> Path:
    """Resolve the on-disk path for the directory database."""

    if env_value:
        return Path(env_value).expanduser().resolve(strict=False)
    base_dir = Path(__file__).resolve().parent.parent / "data"
    return (base_dir / "users.sqlite3").resolve(strict=False)


def _translate_error(exc: SQLAlchemyError) -> DatabaseError:
    if isinstance(exc, IntegrityError):
        return IntegrityViolationError(str(exc.orig))
    if isinstance(exc, PoolTimeoutError):
        return DatabaseUnavailableError("Timed out waiting for a database connection")
    if isinstance(exc, OperationalError):
        message = str(exc.orig).lower()
        if "unable to open" in message or "locked" in message or "disk i/o" in message:
            return DatabaseUnavailableError(str(exc.orig))
        return DatabaseError(str(exc.orig))
    return DatabaseError(str(exc))


class Database:
    """Thin gateway around a pooled SQLAlchemy engine exposing ``query`` and ``ping``."""

    def __init__(
        self,
        path: Path,
        *,
        pool_size: int = DEFAULT_POOL_SIZE,
        timeout: float = DEFAULT_TIMEOUT,
    ) -> None:
        if pool_size < 1:
            raise ValueError("Connection pool size must be at least 1")
        _ensure_directory(path)
        self._path = path
        self._closed = False
        self._engine: Engine = create_engine(
            f"sqlite:///{path}",
            connect_args={"check_same_thread": False, "timeout": timeout},
            pool_size=pool_size,
            max_overflow=0,
            pool_timeout=timeout,
        )

    @property
    def path(self) -> Path:
        return self._path

    @property
    def engine(self) -> Engine:
        return self._engine

    def _require_open(self) -> None:
        if self._closed:
            raise DatabaseUnavailableError("Database gateway has been closed")

    def initialize(self) -> None:
        """Create the required tables if they do not already exist."""

        self._require_open()
        try:
            with self._engine.begin() as conn:
                conn.execute(text(_SCHEMA))
        except SQLAlchemyError as exc:
            raise _translate_error(exc) from exc
        logger.debug("Schema ensured for %s", self._path)

    def query(self, sql: str, params: Optional[Mapping[str, Any]] = None) -> QueryResult:
        """Run a single statement with named parameters inside its own transaction."""

        self._require_open()
        try:
            with self._engine.begin() as conn:
                result = conn.execute(text(sql), dict(params or {}))
                if result.returns_rows:
                    return QueryResult(rows=[dict(row._mapping) for row in result])
                row_count = max(result.rowcount, 0)
                return QueryResult(
                    last_row_id=result.lastrowid if row_count > 0 else None,
                    row_count=row_count,
                )
        except SQLAlchemyError as exc:
            raise _translate_error(exc) from exc

    def ping(self) -> None:
        """Perform a no-op round trip; raise when the store is unreachable."""

        self._require_open()
        try:
            with self._engine.connect() as conn:
                conn.execute(text("SELECT 1")).scalar()
        except SQLAlchemyError as exc:
            raise DatabaseUnavailableError(f"Database ping failed: {_translate_error(exc)}") from exc

    def seed_demo_users(self) -> int:
        """Insert the demo accounts that ship with a fresh install.

        Existing rows are left untouched, so re-seeding is harmless. Returns the
        number of rows that were actually inserted.
        """

        inserted = 0
        for name, email in DEMO_USERS:
            result = self.query(
                "INSERT OR IGNORE INTO users (name, email) VALUES (:name, :email)",
                {"name": name, "email": email},
            )
            inserted += result.row_count
        return inserted

    def close(self) -> None:
        self._closed = True
        self._engine.dispose()


__all__ = [
    "Database",
    "DatabaseError",
    "DatabaseUnavailableError",
    "DEMO_USERS",
    "IntegrityViolationError",
    "QueryResult",
    "resolve_database_path",
]
