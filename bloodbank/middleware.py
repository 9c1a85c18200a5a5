"""FastAPI middleware for cross-cutting concerns."""

import logging
import time
import uuid
from typing import Awaitable, Callable

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from bloodbank.logging_config import correlation_id_var

logger = logging.getLogger("bloodbank.access")


class CorrelationIdMiddleware(BaseHTTPMiddleware):
    """
    Middleware that attaches a correlation ID to every request.

    - Reads ``X-Correlation-ID`` from incoming headers (if present).
    - Generates a new UUID v4 when the header is absent.
    - Stores the ID in a ``ContextVar`` so it is accessible from any log
      statement made during the request lifecycle.
    - Echoes the correlation ID back in the response headers.
    - Emits one access log line per request with its status and duration.
    """

    async def dispatch(
        self,
        request: Request,
        call_next: Callable[[Request], Awaitable[Response]],
    ) -> Response:
        correlation_id = request.headers.get("X-Correlation-ID") or str(uuid.uuid4())
        token = correlation_id_var.set(correlation_id)
        started = time.perf_counter()

        try:
            response = await call_next(request)
            response.headers["X-Correlation-ID"] = correlation_id
            logger.info(
                "%s %s -> %s",
                request.method,
                request.url.path,
                response.status_code,
                extra={
                    "method": request.method,
                    "path": request.url.path,
                    "status_code": response.status_code,
                    "duration_ms": round((time.perf_counter() - started) * 1000, 2),
                },
            )
            return response
        finally:
            correlation_id_var.reset(token)
