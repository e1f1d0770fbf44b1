"""Digital signature key status endpoints."""

from datetime import datetime

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ponto_api.auth.context import get_tenant_id
from ponto_api.db.session import get_db
from ponto_api.ledger.serializers import key_to_dict
from ponto_api.models import DigitalSignatureKey

router = APIRouter(prefix="/compliance", tags=["keys"])


@router.get("/keys")
async def get_digital_keys(
    tenant_id: int = Depends(get_tenant_id),
    db: Session = Depends(get_db),
):
    """Signing keys of the tenant (public metadata only) with a status summary."""
    keys = (
        db.query(DigitalSignatureKey)
        .filter(DigitalSignatureKey.tenant_id == tenant_id)
        .order_by(DigitalSignatureKey.created_at.desc())
        .all()
    )
    now = datetime.utcnow()

    def is_expired(key: DigitalSignatureKey) -> bool:
        return key.expires_at is not None and key.expires_at < now

    return {
        "keys": [key_to_dict(key) for key in keys],
        "summary": {
            "totalKeys": len(keys),
            "activeKeys": sum(
                1 for key in keys if key.is_active and key.revoked_at is None and not is_expired(key)
            ),
            "expiredKeys": sum(1 for key in keys if is_expired(key)),
            "revokedKeys": sum(1 for key in keys if key.revoked_at is not None),
        },
    }
