"""Signing abstraction for timecard records (KMS-ready).

Every signer first looks up the tenant's usable DigitalSignatureKey (active,
not revoked, not expired). Signing is best-effort: without a usable key, or
when the backend fails, sign() returns None and the record is stored unsigned.
"""

import hashlib
import logging
from abc import ABC, abstractmethod
from datetime import datetime
from pathlib import Path
from typing import Optional

import boto3
from botocore.exceptions import BotoCoreError, ClientError
from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.backends import default_backend
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import padding, rsa
from sqlalchemy import or_
from sqlalchemy.orm import Session

from ponto_api.models import DigitalSignatureKey
from ponto_api.settings import get_settings
from ponto_api.utils.metrics import signatures_total

logger = logging.getLogger(__name__)


def get_usable_key(db: Session, tenant_id: int, now: Optional[datetime] = None) -> Optional[DigitalSignatureKey]:
    """Return the tenant's active, unrevoked, unexpired key (newest first)."""
    now = now or datetime.utcnow()
    return (
        db.query(DigitalSignatureKey)
        .filter(
            DigitalSignatureKey.tenant_id == tenant_id,
            DigitalSignatureKey.is_active == True,  # noqa: E712
            DigitalSignatureKey.revoked_at.is_(None),
            or_(DigitalSignatureKey.expires_at.is_(None), DigitalSignatureKey.expires_at >= now),
        )
        .order_by(DigitalSignatureKey.created_at.desc())
        .first()
    )


class Signer(ABC):
    """Abstract signer interface: payload in, opaque tagged signature out."""

    def __init__(self, db: Session):
        """Initialize signer."""
        self.db = db

    def sign(self, payload: str, tenant_id: int) -> Optional[str]:
        """Sign payload for tenant, or None when no usable key exists."""
        key = get_usable_key(self.db, tenant_id)
        if key is None:
            signatures_total.labels(outcome="unavailable").inc()
            logger.warning(
                f"No active signing key for tenant {tenant_id}, storing record unsigned",
                extra={"tenant_id": tenant_id},
            )
            return None

        signature = self._sign_with_key(payload, key)
        signatures_total.labels(outcome="signed" if signature else "failed").inc()
        return signature

    @abstractmethod
    def _sign_with_key(self, payload: str, key: DigitalSignatureKey) -> Optional[str]:
        """Produce the tagged signature string."""
        pass


class SimulatedKeySigner(Signer):
    """Hash-based stand-in: SHA-256 over payload, public key and timestamp.

    Not a real asymmetric signature. Replace with KmsSigner in production.
    """

    def _sign_with_key(self, payload: str, key: DigitalSignatureKey) -> Optional[str]:
        signed_at = datetime.utcnow().isoformat()
        signature_data = f"{payload}:{key.public_key}:{signed_at}"
        digest = hashlib.sha256(signature_data.encode("utf-8")).hexdigest()
        return f"{key.key_algorithm or 'RSA-2048'}:{digest}"


class LocalRsaSigner(Signer):
    """Local development signer using an RSA keypair from file."""

    algorithm = "RSA-PSS-SHA256"

    def __init__(self, db: Session, key_path: Optional[str] = None):
        """Initialize local signer."""
        super().__init__(db)
        self.key_path = Path(key_path or get_settings().signing_key_path)
        self._private_key = None
        self._load_or_generate_key()

    def _load_or_generate_key(self):
        """Load or generate RSA keypair."""
        if self.key_path.exists():
            with open(self.key_path, "rb") as f:
                self._private_key = serialization.load_pem_private_key(
                    f.read(), password=None, backend=default_backend()
                )
        else:
            self._private_key = rsa.generate_private_key(
                public_exponent=65537,
                key_size=2048,
                backend=default_backend(),
            )
            self.key_path.parent.mkdir(parents=True, exist_ok=True)
            with open(self.key_path, "wb") as f:
                f.write(
                    self._private_key.private_bytes(
                        encoding=serialization.Encoding.PEM,
                        format=serialization.PrivateFormat.PKCS8,
                        encryption_algorithm=serialization.NoEncryption(),
                    )
                )

    def public_key_pem(self) -> str:
        """Public half of the local key, PEM encoded."""
        return (
            self._private_key.public_key()
            .public_bytes(
                encoding=serialization.Encoding.PEM,
                format=serialization.PublicFormat.SubjectPublicKeyInfo,
            )
            .decode("ascii")
        )

    def _sign_with_key(self, payload: str, key: DigitalSignatureKey) -> Optional[str]:
        signature = self._private_key.sign(
            payload.encode("utf-8"),
            padding.PSS(
                mgf=padding.MGF1(hashes.SHA256()),
                salt_length=padding.PSS.MAX_LENGTH,
            ),
            hashes.SHA256(),
        )
        return f"{self.algorithm}:{signature.hex()}"

    def verify(self, payload: str, signature: str) -> bool:
        """Check a signature produced by this signer."""
        algorithm, _, signature_hex = signature.partition(":")
        if algorithm != self.algorithm or not signature_hex:
            return False
        try:
            self._private_key.public_key().verify(
                bytes.fromhex(signature_hex),
                payload.encode("utf-8"),
                padding.PSS(
                    mgf=padding.MGF1(hashes.SHA256()),
                    salt_length=padding.PSS.MAX_LENGTH,
                ),
                hashes.SHA256(),
            )
            return True
        except (InvalidSignature, ValueError):
            return False


class KmsSigner(Signer):
    """AWS KMS signer for production."""

    algorithm = "RSASSA_PSS_SHA_256"

    def __init__(self, db: Session, key_id: str, region: Optional[str] = None):
        """Initialize KMS signer."""
        super().__init__(db)
        self.key_id = key_id
        self._kms_client = None
        self._initialize_kms(region or get_settings().aws_region)

    def _initialize_kms(self, region: Optional[str]):
        """Initialize AWS KMS client and validate configuration."""
        try:
            self._kms_client = boto3.client("kms", region_name=region)
            response = self._kms_client.describe_key(KeyId=self.key_id)
        except ClientError as e:
            error_code = e.response.get("Error", {}).get("Code", "")
            if error_code == "NotFoundException":
                raise ValueError(f"KMS key {self.key_id} not found")
            elif error_code == "AccessDeniedException":
                raise ValueError(f"Access denied to KMS key {self.key_id}")
            else:
                raise ValueError(f"Failed to access KMS key {self.key_id}: {e}")
        except BotoCoreError as e:
            raise ValueError(f"Failed to initialize KMS client: {e}")

        metadata = response["KeyMetadata"]
        key_spec = metadata.get("KeySpec", "")
        if "RSA" not in key_spec:
            raise ValueError(f"KMS key {self.key_id} must be RSA key spec, got {key_spec}")
        key_usage = metadata.get("KeyUsage", "")
        if key_usage != "SIGN_VERIFY":
            raise ValueError(f"KMS key {self.key_id} must have SIGN_VERIFY usage, got {key_usage}")

        logger.info(
            f"KMS signer initialized for key {self.key_id}",
            extra={"key_arn": metadata.get("Arn")},
        )

    def _sign_with_key(self, payload: str, key: DigitalSignatureKey) -> Optional[str]:
        try:
            response = self._kms_client.sign(
                KeyId=self.key_id,
                Message=payload.encode("utf-8"),
                MessageType="RAW",
                SigningAlgorithm=self.algorithm,
            )
        except (ClientError, BotoCoreError) as e:
            logger.error(f"KMS signing failed: {e}", extra={"key_id": self.key_id})
            return None
        return f"{self.algorithm}:{response['Signature'].hex()}"


def get_signer(db: Session) -> Signer:
    """Get signer instance based on settings."""
    settings = get_settings()
    provider = settings.signing_key_provider.lower()

    if provider == "simulated":
        return SimulatedKeySigner(db)
    elif provider == "local":
        return LocalRsaSigner(db)
    elif provider == "aws_kms":
        if not settings.signing_key_id:
            raise ValueError("SIGNING_KEY_ID required for AWS KMS")
        if not settings.aws_region:
            raise ValueError("AWS_REGION required for AWS KMS")
        return KmsSigner(db, settings.signing_key_id)
    else:
        raise ValueError(f"Unknown signing provider: {provider}")
