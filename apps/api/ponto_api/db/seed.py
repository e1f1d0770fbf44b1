"""Seed data for development and testing."""

from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa
from sqlalchemy.orm import Session

from ponto_api.auth.api_key import build_api_key
from ponto_api.ledger.signer import LocalRsaSigner
from ponto_api.models import DigitalSignatureKey, NsrSequence, Tenant
from ponto_api.settings import get_settings

DEMO_API_KEY = "demo-api-key-12345"
DEMO_SCOPES = ["timecard", "compliance", "compliance:admin"]


def _public_key_pem(db: Session) -> str:
    """Public key for the demo signing key row."""
    if get_settings().signing_key_provider.lower() == "local":
        return LocalRsaSigner(db).public_key_pem()
    private_key = rsa.generate_private_key(public_exponent=65537, key_size=2048)
    return (
        private_key.public_key()
        .public_bytes(
            encoding=serialization.Encoding.PEM,
            format=serialization.PublicFormat.SubjectPublicKeyInfo,
        )
        .decode("ascii")
    )


def seed_tenants(db: Session):
    """Seed the demo tenant with an API key, a sequence row and a signing key."""
    demo_tenant = db.query(Tenant).filter(Tenant.label == "demo").first()
    if demo_tenant:
        print(f"✓ Demo tenant already exists: {demo_tenant.label}")
        return demo_tenant

    demo_tenant = Tenant(label="demo", status="active")
    db.add(demo_tenant)
    db.flush()

    db.add(build_api_key(demo_tenant.id, DEMO_API_KEY, DEMO_SCOPES, label="Default API Key"))
    db.add(NsrSequence(tenant_id=demo_tenant.id, current_nsr=0))
    db.add(
        DigitalSignatureKey(
            tenant_id=demo_tenant.id,
            key_name="demo-signing-key",
            key_algorithm="RSA-2048",
            public_key=_public_key_pem(db),
            is_active=True,
        )
    )
    db.commit()
    print(f"✓ Created demo tenant: {demo_tenant.label} (ID: {demo_tenant.id})")
    print(f"  API Key: {DEMO_API_KEY}")
    return demo_tenant


def seed_all(db: Session):
    """Seed all initial data."""
    seed_tenants(db)
