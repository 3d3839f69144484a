"""Per-request deadline handling."""
from __future__ import annotations

import logging
from typing import Optional

import anyio
from fastapi import Request, status
from fastapi.responses import JSONResponse
from starlette.responses import Response
from starlette.types import ASGIApp, Message, Receive, Scope, Send

logger = logging.getLogger("userservice.timeouts")

_COMMITTED_RESPONSE_KEY = "committed_response"


def record_committed_response(request: Request, response: Response) -> None:
    """Remember the outcome of a write that has already been made durable.

    If the request deadline expires after this point, the recorded response is
    sent instead of a timeout so the caller learns what actually happened.
    """

    request.state.committed_response = response


class RequestTimeoutMiddleware:
    """Abort requests that exceed ``timeout`` seconds with a JSON 504."""

    def __init__(self, app: ASGIApp, timeout: Optional[float]) -> None:
        self.app = app
        self.timeout = timeout

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http" or not self.timeout:
            await self.app(scope, receive, send)
            return

        state = scope.setdefault("state", {})
        response_started = False
        response_complete = False

        async def send_wrapper(message: Message) -> None:
            nonlocal response_started, response_complete
            if message["type"] == "http.response.start":
                response_started = True
            elif message["type"] == "http.response.body" and not message.get("more_body", False):
                response_complete = True
            await send(message)

        try:
            with anyio.fail_after(self.timeout):
                await self.app(scope, receive, send_wrapper)
        except TimeoutError:
            if response_complete:
                return
            if response_started:
                raise
            committed = state.get(_COMMITTED_RESPONSE_KEY)
            if committed is not None:
                logger.warning(
                    "Request %s %s exceeded %.1fs timeout after its write committed",
                    scope.get("method"),
                    scope.get("path"),
                    self.timeout,
                )
                await committed(scope, receive, send)
                return
            logger.warning(
                "Request %s %s exceeded %.1fs timeout",
                scope.get("method"),
                scope.get("path"),
                self.timeout,
            )
            response = JSONResponse(
                {"error": "Request Timeout"},
                status_code=status.HTTP_504_GATEWAY_TIMEOUT,
            )
            await response(scope, receive, send)


__all__ = ["RequestTimeoutMiddleware", "record_committed_response"]
