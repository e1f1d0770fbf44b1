"""Authentication middleware to extract tenant from API key."""

import logging

from fastapi import Request, status
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import JSONResponse

from ponto_api.auth.api_key import get_tenant_by_api_key
from ponto_api.db.session import SessionLocal

logger = logging.getLogger(__name__)

PUBLIC_PATHS = ["/health", "/ready", "/metrics", "/docs", "/openapi.json", "/"]


class AuthMiddleware(BaseHTTPMiddleware):
    """Extract and validate tenant from API key, caller from x-user-id."""

    async def dispatch(self, request: Request, call_next):
        """Process request with tenant extraction."""
        if request.url.path in PUBLIC_PATHS or request.url.path.startswith("/metrics"):
            return await call_next(request)

        api_key = request.headers.get("x-api-key")
        if not api_key:
            return JSONResponse(
                status_code=status.HTTP_401_UNAUTHORIZED,
                content={"message": "Tenant não identificado", "error": "Missing x-api-key header"},
            )

        db = SessionLocal()
        try:
            resolved = get_tenant_by_api_key(db, api_key)
            if not resolved:
                return JSONResponse(
                    status_code=status.HTTP_401_UNAUTHORIZED,
                    content={"message": "Tenant não identificado", "error": "Invalid or revoked API key"},
                )
            tenant, scopes = resolved

            if tenant.status != "active":
                return JSONResponse(
                    status_code=status.HTTP_403_FORBIDDEN,
                    content={"message": f"Tenant status is {tenant.status}."},
                )

            request.state.tenant_id = tenant.id
            request.state.scopes = scopes
            request.state.user_id = request.headers.get("x-user-id")

            logger.info(
                "Authenticated request",
                extra={
                    "tenant_id": tenant.id,
                    "correlation_id": getattr(request.state, "correlation_id", None),
                    "path": request.url.path,
                },
            )
        finally:
            db.close()

        return await call_next(request)
