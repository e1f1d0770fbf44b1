"""CLT integrity ledger: entry creation, chain verification and rebuild."""

import logging
import time
import uuid
from datetime import datetime
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ponto_api.ledger.audit import AuditService
from ponto_api.ledger.canonical import normalize_datetime
from ponto_api.ledger.chain import compute_record_hash, expected_record_hash, get_last_hash
from ponto_api.ledger.errors import ConflictError, EntryNotFound, LedgerError, SequenceError
from ponto_api.ledger.sequencer import NsrSequencer
from ponto_api.ledger.serializers import entry_to_dict
from ponto_api.ledger.signer import Signer, get_signer
from ponto_api.ledger.types import (
    AuditAction,
    AuditContext,
    CreatedEntry,
    IntegrityCheckResult,
    IntegrityState,
    RebuildResult,
    TimecardEntryData,
)
from ponto_api.models import TimecardEntry
from ponto_api.settings import get_settings
from ponto_api.utils.metrics import (
    entries_created,
    entry_create_failures,
    integrity_check_duration,
    integrity_checks,
    records_rebuilt,
)

logger = logging.getLogger(__name__)

SYSTEM_ACTOR = "system"


class LedgerService:
    """Append-only, hash-chained timecard ledger for one database session."""

    def __init__(self, db: Session, signer: Optional[Signer] = None):
        """Initialize ledger service."""
        self.db = db
        self.sequencer = NsrSequencer(db)
        self.audit = AuditService(db)
        self._signer = signer

    @property
    def signer(self) -> Signer:
        if self._signer is None:
            self._signer = get_signer(self.db)
        return self._signer

    def create_entry(self, data: TimecardEntryData, context: AuditContext) -> CreatedEntry:
        """Append a clock event to the tenant's chain.

        The NSR increment and the record are written in one transaction. The
        record, signature and audit entry live in a savepoint: if any of them
        fails, the savepoint is discarded and the increment is still
        committed, so the NSR is consumed and never handed out again.
        """
        tenant_id = data.tenant_id
        if data.id and self.db.query(TimecardEntry.id).filter(TimecardEntry.id == data.id).first():
            raise ConflictError(f"Registro {data.id} já existe")
        entry_id = data.id or str(uuid.uuid4())

        try:
            nsr = self.sequencer.next_nsr(tenant_id)
        except SequenceError:
            self.db.rollback()
            raise

        try:
            with self.db.begin_nested():
                entry = self._append(entry_id, nsr, data, context)
        except Exception as e:
            entry_create_failures.labels(error=type(e).__name__).inc()
            logger.error(
                f"Failed to create timecard entry, NSR {nsr} consumed: {e}",
                extra={"tenant_id": tenant_id, "nsr": nsr},
            )
            self._commit_consumed_nsr(tenant_id, nsr)
            if isinstance(e, LedgerError):
                raise
            raise LedgerError("Falha ao criar registro CLT-compliant") from e

        try:
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            raise LedgerError("Falha ao criar registro CLT-compliant") from e

        entries_created.labels(
            signed=str(entry.digital_signature is not None).lower()
        ).inc()
        logger.info(
            f"Timecard entry created ID:{entry_id} NSR:{nsr} hash:{entry.record_hash[:8]}",
            extra={"tenant_id": tenant_id, "nsr": nsr},
        )
        return CreatedEntry(id=entry_id, nsr=nsr, record_hash=entry.record_hash)

    def _append(self, entry_id: str, nsr: int, data: TimecardEntryData, context: AuditContext) -> TimecardEntry:
        previous_hash = get_last_hash(self.db, data.tenant_id)
        generated_at = datetime.utcnow()

        entry = TimecardEntry(
            id=entry_id,
            tenant_id=data.tenant_id,
            user_id=data.user_id,
            check_in=normalize_datetime(data.check_in),
            check_out=normalize_datetime(data.check_out),
            break_start=normalize_datetime(data.break_start),
            break_end=normalize_datetime(data.break_end),
            total_hours=data.total_hours or None,
            notes=data.notes,
            location=data.location,
            is_manual_entry=bool(data.is_manual_entry),
            device_info=data.device_info,
            ip_address=data.ip_address,
            geo_location=data.geo_location,
            status="pending",
            nsr=nsr,
            previous_record_hash=previous_hash,
            hash_generated_at=generated_at,
        )
        record_hash = compute_record_hash(entry, nsr, previous_hash, generated_at)
        entry.record_hash = record_hash
        entry.original_record_hash = record_hash

        signature = self.signer.sign(f"{entry_id}:{nsr}:{record_hash}", data.tenant_id)
        if signature:
            entry.digital_signature = signature
            entry.signature_timestamp = datetime.utcnow()
            entry.signed_by = context.performed_by

        self.db.add(entry)
        self.db.flush()

        self.audit.log_action(
            data.tenant_id,
            entry_id,
            nsr,
            AuditAction.CREATE,
            context,
            old_values=None,
            new_values=entry_to_dict(entry),
        )
        return entry

    def _commit_consumed_nsr(self, tenant_id: int, nsr: int):
        try:
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            raise SequenceError(f"Falha ao persistir NSR {nsr} para tenant {tenant_id}") from e

    def get_entry(self, tenant_id: int, entry_id: str) -> TimecardEntry:
        entry = (
            self.db.query(TimecardEntry)
            .filter(TimecardEntry.tenant_id == tenant_id, TimecardEntry.id == entry_id)
            .first()
        )
        if not entry:
            raise EntryNotFound(f"Registro {entry_id} não encontrado")
        return entry

    def list_entries(
        self, tenant_id: int, user_id: Optional[str] = None, page: int = 1, limit: int = 50
    ) -> tuple[list[TimecardEntry], int]:
        query = self.db.query(TimecardEntry).filter(TimecardEntry.tenant_id == tenant_id)
        if user_id:
            query = query.filter(TimecardEntry.user_id == user_id)
        total = query.count()
        items = query.order_by(TimecardEntry.nsr.desc()).offset((page - 1) * limit).limit(limit).all()
        return items, total

    def approve_entry(self, tenant_id: int, entry_id: str, context: AuditContext) -> TimecardEntry:
        return self._change_status(tenant_id, entry_id, "approved", AuditAction.APPROVE, context)

    def reject_entry(self, tenant_id: int, entry_id: str, context: AuditContext) -> TimecardEntry:
        return self._change_status(tenant_id, entry_id, "rejected", AuditAction.REJECT, context)

    def _change_status(
        self, tenant_id: int, entry_id: str, new_status: str, action: AuditAction, context: AuditContext
    ) -> TimecardEntry:
        # status is not part of the record hash, so the chain is untouched
        entry = self.get_entry(tenant_id, entry_id)
        if entry.status != "pending":
            raise ConflictError(f"Registro NSR {entry.nsr} já está {entry.status}")

        old_status = entry.status
        try:
            entry.status = new_status
            self.audit.log_action(
                tenant_id,
                entry.id,
                entry.nsr,
                action,
                context,
                old_values={"status": old_status},
                new_values={"status": new_status},
            )
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        logger.info(f"Timecard entry {action.value} NSR:{entry.nsr}", extra={"tenant_id": tenant_id})
        return entry

    def verify_integrity_chain(self, tenant_id: int) -> IntegrityCheckResult:
        """Walk the chain in NSR order and report every broken link or altered record.

        Integrity failures are returned as data. After a mismatch the walk
        continues from the record's stored hash so one bad record does not
        flag every later one.
        """
        started = time.monotonic()
        result = IntegrityCheckResult(is_valid=False, state=IntegrityState.VERIFYING)
        batch_size = get_settings().report_batch_size

        records = (
            self.db.query(TimecardEntry)
            .filter(TimecardEntry.tenant_id == tenant_id)
            .order_by(TimecardEntry.nsr.asc())
            .yield_per(batch_size)
        )

        previous_hash = None
        for record in records:
            if record.previous_record_hash != previous_hash:
                result.errors.append(f"NSR {record.nsr}: Hash anterior inválido")

            if record.record_hash != expected_record_hash(record, previous_hash):
                result.errors.append(f"NSR {record.nsr}: Hash do registro foi alterado")

            previous_hash = record.record_hash
            result.checked_records += 1

        result.is_valid = not result.errors
        result.state = IntegrityState.VALID if result.is_valid else IntegrityState.INVALID

        integrity_check_duration.observe(time.monotonic() - started)
        integrity_checks.labels(outcome="valid" if result.is_valid else "invalid").inc()
        if not result.is_valid:
            logger.warning(
                f"Integrity chain compromised: {len(result.errors)} error(s)",
                extra={"tenant_id": tenant_id},
            )
        return result

    def rebuild_integrity_chain(self, tenant_id: int, performed_by: str = SYSTEM_ACTOR) -> RebuildResult:
        """Recompute and rewrite the tenant's hash chain from the first record.

        Holds the tenant's sequence row lock for the whole rebuild so no new
        record reads a half-rewritten chain. NSRs are never renumbered and
        original_record_hash is left untouched. Every rewritten record gets a
        REBUILD audit entry with the old and new hashes.
        """
        logger.info("Starting integrity chain rebuild", extra={"tenant_id": tenant_id})
        context = AuditContext(performed_by=performed_by, reason="Reconstituição da cadeia de integridade")

        try:
            if self.sequencer.lock_tenant(tenant_id) is None:
                self.sequencer.ensure_at_least(tenant_id, 0)
                self.sequencer.lock_tenant(tenant_id)
            records = (
                self.db.query(TimecardEntry)
                .filter(TimecardEntry.tenant_id == tenant_id)
                .order_by(TimecardEntry.nsr.asc())
                .all()
            )
            if not records:
                self.db.rollback()
                return RebuildResult(fixed=0, errors=[], state=IntegrityState.VALID)

            fixed = 0
            previous_hash = None
            for record in records:
                correct_hash = expected_record_hash(record, previous_hash)
                if record.record_hash != correct_hash or record.previous_record_hash != previous_hash:
                    old_values = {
                        "recordHash": record.record_hash,
                        "previousRecordHash": record.previous_record_hash,
                    }
                    record.record_hash = correct_hash
                    record.previous_record_hash = previous_hash
                    self.audit.log_action(
                        tenant_id,
                        record.id,
                        record.nsr,
                        AuditAction.REBUILD,
                        context,
                        old_values=old_values,
                        new_values={"recordHash": correct_hash, "previousRecordHash": previous_hash},
                        system_generated=True,
                    )
                    fixed += 1
                    logger.info(
                        f"Rebuilt NSR:{record.nsr} hash:{correct_hash[:8]}",
                        extra={"tenant_id": tenant_id, "nsr": record.nsr},
                    )
                previous_hash = correct_hash

            self.sequencer.ensure_at_least(tenant_id, records[-1].nsr)
            self.db.commit()
        except LedgerError:
            self.db.rollback()
            raise
        except SQLAlchemyError as e:
            self.db.rollback()
            raise LedgerError(f"Erro interno ao reconstituir cadeia: {e}") from e

        records_rebuilt.inc(fixed)
        logger.info(f"Rebuild finished: {fixed} record(s) fixed", extra={"tenant_id": tenant_id})
        return RebuildResult(
            fixed=fixed,
            errors=[],
            state=IntegrityState.REBUILT if fixed else IntegrityState.VALID,
        )
