"""Liveness check for the persistence gateway."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional, Union

import anyio
from fastapi import APIRouter, Request, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from .database import DatabaseError
from .users import Gateway

logger = logging.getLogger("userservice.health")

HEALTHY = "healthy"
UNHEALTHY = "unhealthy"


class HealthyResponse(BaseModel):
    status: str = HEALTHY
    timestamp: datetime


class UnhealthyResponse(BaseModel):
    status: str = UNHEALTHY
    error: str


@dataclass(frozen=True)
class HealthReport:
    healthy: bool
    checked_at: datetime
    error: Optional[str] = None

    def to_response(self) -> Union[HealthyResponse, UnhealthyResponse]:
        if self.healthy:
            return HealthyResponse(timestamp=self.checked_at)
        return UnhealthyResponse(error=self.error or "Database unavailable")


def check_health(database: Gateway) -> HealthReport:
    """Ping the gateway once and report its state at this instant."""

    try:
        database.ping()
    except DatabaseError as exc:
        logger.warning("Health check failed: %s", exc)
        return HealthReport(healthy=False, checked_at=datetime.now(timezone.utc), error=str(exc))
    return HealthReport(healthy=True, checked_at=datetime.now(timezone.utc))


def build_health_router() -> APIRouter:
    router = APIRouter(prefix="/api/health", tags=["health"])

    @router.get(
        "",
        response_model=HealthyResponse,
        responses={status.HTTP_503_SERVICE_UNAVAILABLE: {"model": UnhealthyResponse}},
    )
    async def health(request: Request):
        report = await anyio.to_thread.run_sync(
            check_health,
            request.app.state.database,
            abandon_on_cancel=True,
        )
        if report.healthy:
            return report.to_response()
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content=report.to_response().model_dump(),
        )

    return router


__all__ = ["HealthReport", "HealthyResponse", "UnhealthyResponse", "build_health_router", "check_health"]
