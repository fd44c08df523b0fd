"""Correlation ID middleware for request tracing."""

import logging
import time
import uuid
from contextvars import ContextVar

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response

logger = logging.getLogger(__name__)

# Requests slower than this are logged at WARNING
SLOW_REQUEST_SECONDS = 1.0

correlation_id_var: ContextVar[str] = ContextVar("correlation_id", default="")


def get_correlation_id() -> str:
    """
    Get the current correlation ID from context.

    Returns empty string if called outside of a request context.
    """
    return correlation_id_var.get()


def generate_correlation_id() -> str:
    """Generate a short unique correlation ID."""
    return str(uuid.uuid4())[:16]


class CorrelationIDMiddleware(BaseHTTPMiddleware):
    """
    Tag each request with a correlation ID and log its outcome.

    The ID comes from the X-Correlation-ID header when the caller sends one,
    is echoed back in the response headers, and is picked up by
    CorrelationIdFilter for every log line emitted while serving the request.
    """

    async def dispatch(self, request: Request, call_next) -> Response:
        correlation_id = request.headers.get("X-Correlation-ID") or generate_correlation_id()
        token = correlation_id_var.set(correlation_id)
        started = time.perf_counter()

        try:
            response = await call_next(request)
            response.headers["X-Correlation-ID"] = correlation_id

            elapsed = time.perf_counter() - started
            level = logging.WARNING if elapsed >= SLOW_REQUEST_SECONDS else logging.DEBUG
            logger.log(
                level,
                "%s %s -> %s in %.0f ms",
                request.method,
                request.url.path,
                response.status_code,
                elapsed * 1000,
            )
            return response
        finally:
            # Reset context to prevent leaking between requests
            correlation_id_var.reset(token)
