"""Correlation ID and request logging middleware."""

import logging
import time
import uuid

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response

logger = logging.getLogger(__name__)


class CorrelationIDMiddleware(BaseHTTPMiddleware):
    """Tag each request with x-correlation-id and log its outcome."""

    async def dispatch(self, request: Request, call_next):
        correlation_id = request.headers.get("x-correlation-id") or str(uuid.uuid4())
        request.state.correlation_id = correlation_id
        started = time.monotonic()

        response: Response = await call_next(request)
        response.headers["x-correlation-id"] = correlation_id

        if not request.url.path.startswith("/metrics"):
            logger.info(
                f"{request.method} {request.url.path} {response.status_code}",
                extra={
                    "correlation_id": correlation_id,
                    "tenant_id": getattr(request.state, "tenant_id", None),
                    "duration_ms": round((time.monotonic() - started) * 1000, 1),
                },
            )
        return response
