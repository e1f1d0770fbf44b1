"""Record hash computation for the per-tenant hash chain."""

from datetime import datetime
from typing import Any, Optional

from sqlalchemy.orm import Session

from ponto_api.ledger.canonical import sha256_hex, to_iso
from ponto_api.ledger.errors import ChainComputationError
from ponto_api.models import TimecardEntry


def build_hash_payload(entry: Any, nsr: int, previous_hash: Optional[str], generated_at: datetime) -> dict:
    """Build the canonical object hashed for a record.

    `entry` may be a TimecardEntry row or a TimecardEntryData; only the
    attributes below are read.
    """
    if isinstance(nsr, bool) or not isinstance(nsr, int) or nsr < 1:
        raise ChainComputationError(f"NSR inválido: {nsr!r}")
    if not isinstance(generated_at, datetime):
        raise ChainComputationError("generated_at must be a datetime")
    for name in ("id", "tenant_id", "user_id"):
        if getattr(entry, name, None) in (None, ""):
            raise ChainComputationError(f"Campo obrigatório ausente: {name}")

    try:
        total_hours = getattr(entry, "total_hours", None)
        return {
            "id": str(entry.id),
            "tenantId": entry.tenant_id,
            "userId": str(entry.user_id),
            "nsr": nsr,
            "checkIn": to_iso(getattr(entry, "check_in", None)),
            "checkOut": to_iso(getattr(entry, "check_out", None)),
            "breakStart": to_iso(getattr(entry, "break_start", None)),
            "breakEnd": to_iso(getattr(entry, "break_end", None)),
            "totalHours": str(total_hours) if total_hours not in (None, "") else None,
            "location": getattr(entry, "location", None) or None,
            "isManualEntry": bool(getattr(entry, "is_manual_entry", False)),
            "previousHash": previous_hash or None,
            "generatedAt": to_iso(generated_at),
        }
    except (AttributeError, TypeError, ValueError) as e:
        raise ChainComputationError(f"Falha ao normalizar registro: {e}") from e


def compute_record_hash(entry: Any, nsr: int, previous_hash: Optional[str], generated_at: datetime) -> str:
    """SHA-256 over the canonical record payload, lowercase hex."""
    payload = build_hash_payload(entry, nsr, previous_hash, generated_at)
    try:
        return sha256_hex(payload)
    except (TypeError, ValueError) as e:
        raise ChainComputationError(f"Falha ao serializar registro: {e}") from e


def expected_record_hash(record: TimecardEntry, previous_hash: Optional[str]) -> str:
    """Recompute a stored record's hash from its persisted fields."""
    return compute_record_hash(record, record.nsr, previous_hash, record.hash_generated_at)


def get_last_hash(db: Session, tenant_id: int) -> Optional[str]:
    """Hash of the tenant's highest-NSR record, or None for an empty chain."""
    last = (
        db.query(TimecardEntry.record_hash)
        .filter(TimecardEntry.tenant_id == tenant_id)
        .order_by(TimecardEntry.nsr.desc())
        .first()
    )
    return last[0] if last else None

