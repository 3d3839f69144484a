"""HTTP application that exposes the user directory."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Dict, Iterable, Optional

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import FileResponse, JSONResponse
from fastapi.staticfiles import StaticFiles
from starlette.exceptions import HTTPException as StarletteHTTPException

from .config import ServiceConfig, load_config
from .database import Database
from .errors import NotFoundError, ServiceError
from .health import build_health_router
from .timeouts import RequestTimeoutMiddleware
from .users import build_user_router

logger = logging.getLogger("userservice.service")

STATIC_DIR = Path(__file__).resolve().parent / "static"
INDEX_DOCUMENT = STATIC_DIR / "index.html"


def cors_headers(origin: Optional[str], allowed_origins: Iterable[str]) -> Dict[str, str]:
    """CORS headers for responses rendered outside ``CORSMiddleware``."""

    if not origin:
        return {}
    allowed = set(allowed_origins)
    if "*" in allowed:
        return {"Access-Control-Allow-Origin": "*"}
    if origin in allowed:
        return {"Access-Control-Allow-Origin": origin, "Vary": "Origin"}
    return {}


def _register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(ServiceError)
    async def service_error_handler(request: Request, exc: ServiceError) -> JSONResponse:
        return JSONResponse(status_code=exc.status_code, content=exc.to_payload())

    @app.exception_handler(StarletteHTTPException)
    async def http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        # Unknown methods on known paths are reported as missing routes too.
        if exc.status_code in (status.HTTP_404_NOT_FOUND, status.HTTP_405_METHOD_NOT_ALLOWED):
            error = NotFoundError()
            return JSONResponse(status_code=error.status_code, content=error.to_payload())
        detail = exc.detail if isinstance(exc.detail, str) else "Request failed"
        return JSONResponse(status_code=exc.status_code, content={"error": detail}, headers=exc.headers)

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
        logger.exception("Unhandled error while serving %s %s", request.method, request.url.path)
        # ServerErrorMiddleware renders this response outside CORSMiddleware.
        headers = cors_headers(request.headers.get("origin"), request.app.state.config.cors_origins)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"error": "Internal Server Error"},
            headers=headers,
        )


def _register_frontend(app: FastAPI) -> None:
    if STATIC_DIR.exists():
        app.mount("/static", StaticFiles(directory=str(STATIC_DIR)), name="static")

    @app.get("/", include_in_schema=False)
    async def index() -> FileResponse:
        return FileResponse(INDEX_DOCUMENT, media_type="text/html")


def create_app(
    *,
    database: Database | None = None,
    config: ServiceConfig | None = None,
    initialize_database: bool = True,
) -> FastAPI:
    """Instantiate the FastAPI application for the user directory."""

    settings = config or load_config()
    if database is None:
        database = Database(
            settings.database_path,
            pool_size=settings.pool_size,
            timeout=settings.database_timeout,
        )
    if initialize_database:
        database.initialize()

    app = FastAPI(
        title="User Directory Service",
        version="1.0.0",
        description="Minimal REST service for listing and creating users.",
    )
    app.state.database = database
    app.state.config = settings

    app.add_middleware(RequestTimeoutMiddleware, timeout=settings.request_timeout)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(settings.cors_origins),
        allow_methods=["*"],
        allow_headers=["*"],
    )
    logger.info("CORS enabled for origins: %s", ", ".join(settings.cors_origins))

    _register_exception_handlers(app)
    app.include_router(build_user_router())
    app.include_router(build_health_router())
    _register_frontend(app)

    return app


__all__ = ["RequestTimeoutMiddleware", "cors_headers", "create_app"]
