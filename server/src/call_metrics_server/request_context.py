"""Request scoped log context for the metrics API."""

from __future__ import annotations

import time
import uuid
from typing import Awaitable, Callable

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response
from starlette.types import ASGIApp
from structlog.contextvars import bind_contextvars, clear_contextvars

from .logging import request_logger

RequestResponseEndpoint = Callable[[Request], Awaitable[Response]]

REQUEST_ID_HEADER = "X-Request-Id"


def _elapsed_ms(started: float) -> float:
    return round((time.perf_counter() - started) * 1000, 2)


class RequestIdMiddleware(BaseHTTPMiddleware):
    """Tag each request with an id and log its outcome.

    The id is taken from the incoming ``X-Request-Id`` header when the
    dashboard sends one and echoed back on the response.  The raw query
    string is bound as well so every log line names the filters in play.
    """

    def __init__(self, app: ASGIApp, header_name: str = REQUEST_ID_HEADER) -> None:
        super().__init__(app)
        self.header_name = header_name

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        request_id = request.headers.get(self.header_name) or uuid.uuid4().hex
        bind_contextvars(
            request_id=request_id,
            path=request.url.path,
            method=request.method,
            query=request.url.query or None,
        )

        started = time.perf_counter()
        try:
            try:
                response = await call_next(request)
            except Exception:
                bind_contextvars(duration_ms=_elapsed_ms(started))
                request_logger.exception("request_failed")
                raise

            bind_contextvars(status_code=response.status_code, duration_ms=_elapsed_ms(started))
            if response.status_code >= 500:
                request_logger.error("request_completed")
            else:
                request_logger.info("request_completed")
            response.headers.setdefault(self.header_name, request_id)
            return response
        finally:
            clear_contextvars()


__all__ = ["REQUEST_ID_HEADER", "RequestIdMiddleware"]
