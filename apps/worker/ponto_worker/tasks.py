"""Celery tasks for scheduled ledger maintenance."""

import logging
from datetime import date, datetime, timedelta
from typing import Optional

from celery import Task
from sqlalchemy.orm import Session

from ponto_worker.celery_app import celery_app
from ponto_worker.db import get_db

logger = logging.getLogger(__name__)


class DatabaseTask(Task):
    """Task with database session."""

    _db: Optional[Session] = None

    @property
    def db(self) -> Session:
        """Get database session."""
        if self._db is None:
            self._db = next(get_db())
        return self._db

    def after_return(self, *args, **kwargs):
        """Close database session after task."""
        if self._db:
            self._db.close()
            self._db = None


def _active_tenant_ids(db: Session) -> list[int]:
    from ponto_api.models import Tenant

    return [tenant_id for (tenant_id,) in db.query(Tenant.id).filter(Tenant.status == "active").all()]


@celery_app.task(base=DatabaseTask, bind=True, max_retries=3, retry_backoff=True)
def create_daily_backups(self, backup_date: Optional[str] = None):
    """Snapshot every active tenant's ledger for the given day (default: yesterday)."""
    from ponto_api.backup.service import BackupService

    day = date.fromisoformat(backup_date) if backup_date else datetime.utcnow().date() - timedelta(days=1)
    service = BackupService(self.db)
    written, failed = 0, []

    for tenant_id in _active_tenant_ids(self.db):
        log_extra = {"task": "create_daily_backups", "tenant_id": tenant_id}
        try:
            backup = service.create_backup(tenant_id, day)
            written += 1
            logger.info(f"Backup {backup.storage_key} written", extra=log_extra)
        except Exception as e:
            self.db.rollback()
            failed.append(tenant_id)
            logger.error(f"Backup failed for {day}: {e}", exc_info=True, extra=log_extra)

    if failed:
        raise self.retry(exc=RuntimeError(f"Backups failed for tenants {failed}"), kwargs={"backup_date": day.isoformat()})
    return {"backupDate": day.isoformat(), "written": written}


@celery_app.task(base=DatabaseTask, bind=True)
def verify_integrity_chains(self):
    """Verify every active tenant's chain and report broken ones. Never rebuilds."""
    from ponto_api.ledger.service import LedgerService

    ledger = LedgerService(self.db)
    compromised = {}
    tenant_ids = _active_tenant_ids(self.db)
    for tenant_id in tenant_ids:
        result = ledger.verify_integrity_chain(tenant_id)
        if not result.is_valid:
            compromised[tenant_id] = result.errors
            logger.error(
                f"Integrity chain compromised: {len(result.errors)} error(s)",
                extra={"task": "verify_integrity_chains", "tenant_id": tenant_id, "errors": result.errors[:20]},
            )
    return {"checkedTenants": len(tenant_ids), "compromisedTenants": sorted(compromised)}
