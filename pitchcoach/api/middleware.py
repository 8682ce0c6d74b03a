"""Middleware for request processing and observability."""

import re
from typing import Optional
from uuid import uuid4

import structlog
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

STATUS_PATH = re.compile(r"^/api/evaluate/status/(?P<job_id>[^/]+)/?$")


def job_id_from_path(path: str) -> Optional[str]:
    """Job ID addressed by a status poll, if the path is one."""
    match = STATUS_PATH.match(path)
    return match.group("job_id") if match else None


class CorrelationIdMiddleware(BaseHTTPMiddleware):
    """Attach a correlation ID to every request.

    - Uses the X-Correlation-Id header if present, else a new UUID4
    - Binds it (and the polled job ID on status requests) to the structlog
      context so handler logs line up with the background job's logs
    - Echoes both in the X-Correlation-Id and X-Job-Id response headers
    """

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        correlation_id = request.headers.get("X-Correlation-Id", str(uuid4()))
        request.state.correlation_id = correlation_id

        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(correlation_id=correlation_id)

        job_id = job_id_from_path(request.url.path)
        if job_id:
            structlog.contextvars.bind_contextvars(job_id=job_id)

        response = await call_next(request)
        response.headers["X-Correlation-Id"] = correlation_id
        if job_id:
            response.headers["X-Job-Id"] = job_id

        return response
