"""Daily ledger snapshots and their verification."""

import gzip
import hashlib
import json
import logging
from datetime import date, datetime, timedelta
from typing import Optional

from sqlalchemy.orm import Session

from ponto_api.backup.storage import BackupStorage, BackupStorageError, get_backup_storage
from ponto_api.ledger.canonical import canonical_json
from ponto_api.ledger.errors import BackupNotFound
from ponto_api.ledger.serializers import entry_to_dict
from ponto_api.models import TimecardBackup, TimecardEntry
from ponto_api.utils.metrics import backup_verifications

logger = logging.getLogger(__name__)


class BackupService:
    """Writes gzip-compressed canonical snapshots and verifies them against the live ledger."""

    def __init__(self, db: Session, storage: Optional[BackupStorage] = None):
        """Initialize backup service."""
        self.db = db
        self._storage = storage

    @property
    def storage(self) -> BackupStorage:
        if self._storage is None:
            self._storage = get_backup_storage()
        return self._storage

    @staticmethod
    def storage_key(tenant_id: int, backup_date: date) -> str:
        return f"tenant-{tenant_id}/timecard-{backup_date.isoformat()}.json.gz"

    def create_backup(self, tenant_id: int, backup_date: Optional[date] = None) -> TimecardBackup:
        """Snapshot every entry registered up to the end of backup_date."""
        backup_date = backup_date or datetime.utcnow().date()
        cutoff = datetime.combine(backup_date + timedelta(days=1), datetime.min.time())

        records = (
            self.db.query(TimecardEntry)
            .filter(TimecardEntry.tenant_id == tenant_id, TimecardEntry.created_at < cutoff)
            .order_by(TimecardEntry.nsr.asc())
            .all()
        )
        snapshot = {
            "tenantId": tenant_id,
            "backupDate": backup_date.isoformat(),
            "records": [entry_to_dict(record) for record in records],
        }
        raw = canonical_json(snapshot).encode("utf-8")
        compressed = gzip.compress(raw, mtime=0)
        key = self.storage_key(tenant_id, backup_date)
        self.storage.put(key, compressed)

        backup = (
            self.db.query(TimecardBackup)
            .filter(TimecardBackup.tenant_id == tenant_id, TimecardBackup.backup_date == backup_date)
            .first()
        )
        if backup is None:
            backup = TimecardBackup(tenant_id=tenant_id, backup_date=backup_date)
            self.db.add(backup)

        backup.record_count = len(records)
        backup.backup_size = len(compressed)
        backup.backup_hash = hashlib.sha256(raw).hexdigest()
        backup.first_nsr = records[0].nsr if records else None
        backup.last_nsr = records[-1].nsr if records else None
        backup.storage_key = key
        backup.compression_type = "gzip"
        backup.is_verified = False
        backup.verification_date = None
        self.db.commit()

        logger.info(
            f"Backup written for {backup_date}: {len(records)} record(s), {len(compressed)} bytes",
            extra={"tenant_id": tenant_id},
        )
        return backup

    def verify_backup(self, tenant_id: int, backup_date: date) -> bool:
        """Check the artifact's hash and record count, and that every backed-up
        record hash still matches the live ledger."""
        backup = (
            self.db.query(TimecardBackup)
            .filter(TimecardBackup.tenant_id == tenant_id, TimecardBackup.backup_date == backup_date)
            .first()
        )
        if not backup:
            raise BackupNotFound(f"Backup de {backup_date.isoformat()} não encontrado")

        problems = self._check(backup)
        is_valid = not problems

        backup.is_verified = is_valid
        backup.verification_date = datetime.utcnow()
        self.db.commit()

        backup_verifications.labels(outcome="valid" if is_valid else "compromised").inc()
        if is_valid:
            logger.info(f"Backup {backup_date} verified", extra={"tenant_id": tenant_id})
        else:
            logger.warning(
                f"Backup {backup_date} compromised: {'; '.join(problems)}",
                extra={"tenant_id": tenant_id},
            )
        return is_valid

    def _check(self, backup: TimecardBackup) -> list[str]:
        try:
            raw = gzip.decompress(self.storage.get(backup.storage_key))
        except (BackupStorageError, OSError, EOFError) as e:
            return [f"artifact unreadable: {e}"]

        if hashlib.sha256(raw).hexdigest() != backup.backup_hash:
            return ["artifact hash mismatch"]

        snapshot = json.loads(raw)
        records = snapshot.get("records", [])
        if len(records) != backup.record_count:
            return [f"record count {len(records)} != {backup.record_count}"]

        live_hashes = dict(
            self.db.query(TimecardEntry.id, TimecardEntry.record_hash)
            .filter(TimecardEntry.tenant_id == backup.tenant_id)
            .all()
        )
        problems = []
        for record in records:
            if live_hashes.get(record["id"]) != record["recordHash"]:
                problems.append(f"NSR {record['nsr']} differs from ledger")
        return problems

    def list_recent(self, tenant_id: int, days: int = 30) -> list[TimecardBackup]:
        since = datetime.utcnow().date() - timedelta(days=days)
        return (
            self.db.query(TimecardBackup)
            .filter(TimecardBackup.tenant_id == tenant_id, TimecardBackup.backup_date >= since)
            .order_by(TimecardBackup.backup_date.desc())
            .all()
        )
