"""API key authentication with scalable prefix+digest lookup."""

import hashlib
import hmac
import json
from datetime import datetime
from typing import Optional

from sqlalchemy.orm import Session

from ponto_api.models import APIKey, Tenant
from ponto_api.settings import get_settings


def compute_key_prefix(raw_key: str) -> str:
    """Compute prefix (first 8 chars) of API key."""
    return raw_key[:8] if len(raw_key) >= 8 else raw_key


def compute_key_digest(raw_key: str) -> str:
    """Compute HMAC-SHA256 digest of API key."""
    secret = get_settings().secret_key.encode()
    return hmac.new(secret, raw_key.encode(), hashlib.sha256).hexdigest()


def build_api_key(tenant_id: int, raw_key: str, scopes: list[str], label: Optional[str] = None) -> APIKey:
    """Create an APIKey row for a raw key; the raw key itself is never stored."""
    return APIKey(
        tenant_id=tenant_id,
        prefix=compute_key_prefix(raw_key),
        digest=compute_key_digest(raw_key),
        label=label,
        scopes=json.dumps(scopes),
        is_active=True,
    )


def get_api_key(db: Session, raw_key: str) -> Optional[APIKey]:
    """Resolve an active API key using indexed prefix lookup and constant-time digest comparison."""
    if not raw_key or len(raw_key) < 8:
        return None

    prefix = compute_key_prefix(raw_key)
    digest = compute_key_digest(raw_key)

    candidates = (
        db.query(APIKey)
        .filter(
            APIKey.prefix == prefix,
            APIKey.is_active == True,  # noqa: E712
            APIKey.revoked_at.is_(None),
        )
        .all()
    )
    for api_key in candidates:
        if hmac.compare_digest(api_key.digest, digest):
            api_key.last_used_at = datetime.utcnow()
            db.commit()
            return api_key
    return None


def get_tenant_by_api_key(db: Session, raw_key: str) -> Optional[tuple[Tenant, list[str]]]:
    """Tenant and scopes for an API key, or None."""
    api_key = get_api_key(db, raw_key)
    if not api_key:
        return None
    tenant = db.query(Tenant).filter(Tenant.id == api_key.tenant_id).first()
    if not tenant:
        return None
    try:
        scopes = json.loads(api_key.scopes) if api_key.scopes else []
    except json.JSONDecodeError:
        scopes = []
    return tenant, scopes
