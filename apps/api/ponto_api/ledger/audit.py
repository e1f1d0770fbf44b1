"""Audit trail for timecard actions."""

import logging
from datetime import datetime
from typing import Any, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ponto_api.ledger.canonical import jsonable, sha256_hex, to_iso
from ponto_api.ledger.errors import AuditLogFailure
from ponto_api.ledger.types import AuditAction, AuditContext
from ponto_api.models import AuditLogEntry
from ponto_api.utils.metrics import audit_entries

logger = logging.getLogger(__name__)


def audit_hash_payload(
    tenant_id: int,
    timecard_entry_id: str,
    nsr: Optional[int],
    action: str,
    performed_by: str,
    performed_at: datetime,
    old_values: Any,
    new_values: Any,
    ip_address: Optional[str],
    user_agent: Optional[str],
    device_info: Any,
) -> dict:
    """Fields covered by an audit entry's hash."""
    return {
        "tenantId": tenant_id,
        "timecardEntryId": timecard_entry_id,
        "nsr": nsr,
        "action": action,
        "performedBy": performed_by,
        "performedAt": to_iso(performed_at),
        "oldValues": old_values,
        "newValues": new_values,
        "ipAddress": ip_address,
        "userAgent": user_agent,
        "deviceInfo": device_info,
    }


class AuditService:
    """Writes append-only, individually hashed audit entries.

    Failures are raised as AuditLogFailure: an unaudited mutation is worse
    than a failed one.
    """

    def __init__(self, db: Session):
        """Initialize audit service."""
        self.db = db

    def log_action(
        self,
        tenant_id: int,
        entry_id: str,
        nsr: Optional[int],
        action: str,
        context: AuditContext,
        old_values: Any = None,
        new_values: Any = None,
        system_generated: bool = False,
    ) -> AuditLogEntry:
        """Hash and persist one audit entry (flushed, not committed)."""
        try:
            action = AuditAction(action).value
            old_values = jsonable(old_values)
            new_values = jsonable(new_values)
            device_info = jsonable(context.device_info)
            performed_at = datetime.utcnow()

            audit_hash = sha256_hex(
                audit_hash_payload(
                    tenant_id,
                    entry_id,
                    nsr,
                    action,
                    context.performed_by,
                    performed_at,
                    old_values,
                    new_values,
                    context.ip_address,
                    context.user_agent,
                    device_info,
                )
            )

            audit_entry = AuditLogEntry(
                tenant_id=tenant_id,
                timecard_entry_id=entry_id,
                nsr=nsr,
                action=action,
                performed_by=context.performed_by,
                performed_at=performed_at,
                old_values=old_values,
                new_values=new_values,
                reason=context.reason,
                ip_address=context.ip_address,
                user_agent=context.user_agent,
                device_info=device_info,
                audit_hash=audit_hash,
                is_system_generated=system_generated,
            )
            self.db.add(audit_entry)
            self.db.flush()
        except (SQLAlchemyError, TypeError, ValueError) as e:
            logger.error(
                f"Failed to write audit entry: {e}",
                extra={"tenant_id": tenant_id, "nsr": nsr, "action": action},
            )
            raise AuditLogFailure("Falha ao registrar auditoria") from e

        audit_entries.labels(action=action).inc()
        logger.info(
            f"Audit entry {action} NSR:{nsr} hash:{audit_hash[:8]}",
            extra={"tenant_id": tenant_id, "nsr": nsr},
        )
        return audit_entry

    @staticmethod
    def verify_entry(audit_entry: AuditLogEntry) -> bool:
        """Recompute an audit entry's hash from its stored fields."""
        expected = sha256_hex(
            audit_hash_payload(
                audit_entry.tenant_id,
                audit_entry.timecard_entry_id,
                audit_entry.nsr,
                audit_entry.action,
                audit_entry.performed_by,
                audit_entry.performed_at,
                audit_entry.old_values,
                audit_entry.new_values,
                audit_entry.ip_address,
                audit_entry.user_agent,
                audit_entry.device_info,
            )
        )
        return expected == audit_entry.audit_hash

    def list_entries(
        self,
        tenant_id: int,
        start_date: Optional[datetime] = None,
        end_date: Optional[datetime] = None,
        performed_by: Optional[str] = None,
        action: Optional[str] = None,
        page: int = 1,
        limit: int = 50,
    ) -> tuple[list[AuditLogEntry], int]:
        """Newest-first page of audit entries and the total matching count."""
        query = self.db.query(AuditLogEntry).filter(AuditLogEntry.tenant_id == tenant_id)
        if start_date:
            query = query.filter(AuditLogEntry.performed_at >= start_date)
        if end_date:
            query = query.filter(AuditLogEntry.performed_at <= end_date)
        if performed_by:
            query = query.filter(AuditLogEntry.performed_by == performed_by)
        if action:
            query = query.filter(AuditLogEntry.action == action)

        total = query.count()
        items = (
            query.order_by(AuditLogEntry.performed_at.desc(), AuditLogEntry.id.desc())
            .offset((page - 1) * limit)
            .limit(limit)
            .all()
        )
        return items, total
