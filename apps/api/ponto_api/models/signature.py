"""Digital signature key metadata."""

from datetime import datetime

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, String, Text

from ponto_api.db.base import Base


class DigitalSignatureKey(Base):
    """Per-tenant signing key. Provisioned out of band, read by the signer."""

    __tablename__ = "digital_signature_keys"

    id = Column(Integer, primary_key=True, index=True)
    tenant_id = Column(Integer, ForeignKey("tenants.id"), nullable=False, index=True)
    key_name = Column(String(255), nullable=False)
    key_algorithm = Column(String(50), default="RSA-2048", nullable=False)
    public_key = Column(Text, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    expires_at = Column(DateTime, nullable=True)
    revoked_at = Column(DateTime, nullable=True)
    revocation_reason = Column(Text, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
