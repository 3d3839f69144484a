"""Configuration management for the user directory service."""
from __future__ import annotations

import os
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Dict, Mapping, Optional, Tuple

import yaml

from .database import DEFAULT_POOL_SIZE, DEFAULT_TIMEOUT, resolve_database_path

DEFAULT_HOST = "0.0.0.0"
DEFAULT_PORT = 3000
DEFAULT_REQUEST_TIMEOUT = 30.0
_LOG_LEVELS = {"critical", "error", "warning", "info", "debug"}


def _parse_origins(value: object) -> Tuple[str, ...]:
    if isinstance(value, str):
        items = value.split(",")
    elif isinstance(value, (list, tuple)):
        items = [str(item) for item in value]
    else:
        raise ValueError("CORS origins must be a comma-separated string or a list")
    origins = tuple(item.strip().rstrip("/") for item in items if item.strip())
    return origins or ("*",)


def _positive_int(name: str, value: object) -> int:
    try:
        parsed = int(str(value))
    except ValueError as exc:
        raise ValueError(f"{name} must be an integer, got {value!r}") from exc
    if parsed < 1:
        raise ValueError(f"{name} must be at least 1")
    return parsed


def _positive_float(name: str, value: object) -> float:
    try:
        parsed = float(str(value))
    except ValueError as exc:
        raise ValueError(f"{name} must be a number, got {value!r}") from exc
    if parsed <= 0:
        raise ValueError(f"{name} must be greater than zero")
    return parsed


@dataclass(frozen=True)
class ServiceConfig:
    """Runtime settings for the HTTP service and its database."""

    database_path: Path = field(default_factory=lambda: resolve_database_path(None))
    pool_size: int = DEFAULT_POOL_SIZE
    database_timeout: float = DEFAULT_TIMEOUT
    host: str = DEFAULT_HOST
    port: int = DEFAULT_PORT
    request_timeout: float = DEFAULT_REQUEST_TIMEOUT
    cors_origins: Tuple[str, ...] = ("*",)
    log_level: str = "info"

    @staticmethod
    def from_dict(data: Mapping[str, object], base_path: Path | None = None) -> "ServiceConfig":
        """Create a :class:`ServiceConfig` from parsed YAML data."""

        config = ServiceConfig()
        database = data.get("database") or {}
        server = data.get("server") or {}
        if not isinstance(database, Mapping) or not isinstance(server, Mapping):
            raise ValueError("The 'database' and 'server' sections must be mappings")

        updates: Dict[str, object] = {}
        if database.get("path"):
            raw_path = Path(str(database["path"])).expanduser()
            if not raw_path.is_absolute() and base_path is not None:
                raw_path = base_path / raw_path
            updates["database_path"] = raw_path.resolve(strict=False)
        if database.get("pool_size") is not None:
            updates["pool_size"] = _positive_int("database.pool_size", database["pool_size"])
        if database.get("timeout") is not None:
            updates["database_timeout"] = _positive_float("database.timeout", database["timeout"])
        if server.get("host"):
            updates["host"] = str(server["host"])
        if server.get("port") is not None:
            updates["port"] = _positive_int("server.port", server["port"])
        if server.get("request_timeout") is not None:
            updates["request_timeout"] = _positive_float("server.request_timeout", server["request_timeout"])
        if server.get("log_level"):
            updates["log_level"] = str(server["log_level"])
        if data.get("cors_origins") is not None:
            updates["cors_origins"] = _parse_origins(data["cors_origins"])

        return replace(config, **updates).validated()

    def with_environment(self, environ: Mapping[str, str]) -> "ServiceConfig":
        """Return a copy with values from ``environ`` taking precedence."""

        updates: Dict[str, object] = {}
        db_path = environ.get("USER_SERVICE_DB_PATH")
        if db_path:
            updates["database_path"] = resolve_database_path(db_path)
        if environ.get("USER_SERVICE_DB_POOL_SIZE"):
            updates["pool_size"] = _positive_int("USER_SERVICE_DB_POOL_SIZE", environ["USER_SERVICE_DB_POOL_SIZE"])
        if environ.get("USER_SERVICE_DB_TIMEOUT"):
            updates["database_timeout"] = _positive_float("USER_SERVICE_DB_TIMEOUT", environ["USER_SERVICE_DB_TIMEOUT"])
        if environ.get("USER_SERVICE_HOST"):
            updates["host"] = environ["USER_SERVICE_HOST"].strip()
        port = environ.get("USER_SERVICE_PORT") or environ.get("PORT")
        if port:
            updates["port"] = _positive_int("PORT", port)
        if environ.get("USER_SERVICE_REQUEST_TIMEOUT"):
            updates["request_timeout"] = _positive_float(
                "USER_SERVICE_REQUEST_TIMEOUT", environ["USER_SERVICE_REQUEST_TIMEOUT"]
            )
        if environ.get("USER_SERVICE_CORS_ORIGINS"):
            updates["cors_origins"] = _parse_origins(environ["USER_SERVICE_CORS_ORIGINS"])
        if environ.get("USER_SERVICE_LOG_LEVEL"):
            updates["log_level"] = environ["USER_SERVICE_LOG_LEVEL"]
        return replace(self, **updates).validated()

    def validated(self) -> "ServiceConfig":
        level = self.log_level.strip().lower()
        if level not in _LOG_LEVELS:
            raise ValueError(f"Unsupported log level '{self.log_level}'")
        return replace(self, log_level=level)


def load_config_file(config_path: Path) -> ServiceConfig:
    """Load service settings from a YAML file."""
    with config_path.open("r", encoding="utf-8") as handle:
        raw = yaml.safe_load(handle) or {}

    if not isinstance(raw, Mapping):
        raise ValueError("Configuration file must contain a mapping at the top level")
    return ServiceConfig.from_dict(raw, base_path=config_path.parent)


def load_config(environ: Optional[Mapping[str, str]] = None) -> ServiceConfig:
    """Build the effective configuration: YAML file first, then environment."""

    env = os.environ if environ is None else environ
    config_file = env.get("USER_SERVICE_CONFIG")
    if config_file:
        path = Path(config_file).expanduser().resolve(strict=False)
        if not path.exists():
            raise ValueError(f"Configuration file {path} does not exist")
        base = load_config_file(path)
    else:
        base = ServiceConfig()
    return base.with_environment(env)


__all__ = ["ServiceConfig", "load_config", "load_config_file"]
