"""Request id and timing middleware."""

from __future__ import annotations

import time
from uuid import uuid4

import structlog
from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from plan_chat.observability.logger import get_logger

logger = get_logger("http")

REQUEST_ID_HEADER = "X-Request-ID"
QUIET_PATHS = frozenset({"/health"})


class RequestTimingMiddleware(BaseHTTPMiddleware):
    """Binds a request id (caller-supplied or generated) into the structlog context.

    Every log line emitted while the request is handled carries it, and the
    response echoes it back together with the handling time.
    """

    async def dispatch(self, request: Request, call_next) -> Response:
        request_id = request.headers.get(REQUEST_ID_HEADER) or uuid4().hex
        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(
            request_id=request_id, method=request.method, path=request.url.path
        )
        started = time.perf_counter()

        try:
            response = await call_next(request)
        except Exception as e:
            logger.exception("request_failed", error_type=type(e).__name__, duration_ms=_since(started))
            raise

        duration_ms = _since(started)
        response.headers[REQUEST_ID_HEADER] = request_id
        response.headers["X-Duration-MS"] = str(duration_ms)

        log = logger.debug if request.url.path in QUIET_PATHS else logger.info
        log("request_completed", status=response.status_code, duration_ms=duration_ms)
        return response


def _since(started: float) -> float:
    return round((time.perf_counter() - started) * 1000, 2)
