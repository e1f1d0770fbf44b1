"""Request-scoped tenant and caller identity."""

from fastapi import HTTPException, Request, status

from ponto_api.ledger.types import AuditContext


def get_tenant_id(request: Request) -> int:
    """Tenant set by AuthMiddleware; 401 if absent."""
    tenant_id = getattr(request.state, "tenant_id", None)
    if not tenant_id:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Tenant não identificado")
    return tenant_id


def get_user_id(request: Request) -> str:
    """Caller identity from the x-user-id header; 401 if absent."""
    get_tenant_id(request)
    user_id = getattr(request.state, "user_id", None)
    if not user_id:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Usuário não autenticado")
    return user_id


def require_scope(scope: str):
    """Dependency factory: 403 unless the API key carries `scope`."""

    def dependency(request: Request) -> None:
        get_tenant_id(request)
        if scope not in (getattr(request.state, "scopes", None) or []):
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Permissão insuficiente: escopo '{scope}' necessário",
            )

    return dependency


def audit_context(request: Request, performed_by: str, reason: str = None) -> AuditContext:
    """AuditContext from the incoming request."""
    return AuditContext(
        performed_by=performed_by,
        ip_address=request.client.host if request.client else None,
        user_agent=request.headers.get("user-agent"),
        reason=reason,
    )
