"""Request logging middleware.

Every request runs inside a correlation scope (``X-Correlation-ID`` from
the trigger, or a fresh UUID) with its method and path bound to the
structlog context. Requests under ``/intakes/{intake_id}/`` also bind the
intake ID, so the orchestrator's events and the access log share keys.
"""

from __future__ import annotations

import re
import time
import uuid
from typing import TYPE_CHECKING, Any

import structlog
from starlette.middleware.base import BaseHTTPMiddleware

from clinidraft.logging import correlation_scope, get_logger

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

    from starlette.requests import Request
    from starlette.responses import Response

logger = get_logger(__name__)

CORRELATION_HEADER = "X-Correlation-ID"

_INTAKE_PATH = re.compile(r"^/intakes/([^/]+)/")


def request_fields(request: Request) -> dict[str, Any]:
    """Context fields bound for the lifetime of a request."""
    fields: dict[str, Any] = {"method": request.method, "path": request.url.path}
    match = _INTAKE_PATH.match(request.url.path)
    if match:
        fields["intake_id"] = match.group(1)
    return fields


def elapsed_ms(start_time: float) -> float:
    return round((time.perf_counter() - start_time) * 1000, 2)


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Log each request with timing, correlation ID and intake ID."""

    async def dispatch(
        self,
        request: Request,
        call_next: Callable[[Request], Awaitable[Response]],
    ) -> Response:
        correlation_id = request.headers.get(CORRELATION_HEADER) or str(uuid.uuid4())

        with correlation_scope(correlation_id), structlog.contextvars.bound_contextvars(
            **request_fields(request)
        ):
            start_time = time.perf_counter()
            logger.info("request_started", force=request.query_params.get("force"))
            try:
                response = await call_next(request)
            except Exception as exc:
                logger.error(
                    "request_failed",
                    duration_ms=elapsed_ms(start_time),
                    error=str(exc),
                    exc_info=True,
                )
                raise
            logger.info(
                "request_completed",
                status_code=response.status_code,
                duration_ms=elapsed_ms(start_time),
            )

        response.headers[CORRELATION_HEADER] = correlation_id
        return response
