"""Tests for scheduled worker tasks, run in-process."""

from datetime import datetime

import pytest

from ponto_api.backup.storage import LocalBackupStorage
from ponto_api.ledger.service import LedgerService
from ponto_api.models import TimecardBackup, TimecardEntry
from ponto_worker import tasks
from ponto_worker.settings import Settings


@pytest.fixture
def worker_db(db, monkeypatch):
    """Point DatabaseTask at the test session."""

    def get_test_db():
        yield db

    monkeypatch.setattr(tasks, "get_db", get_test_db)
    yield db
    tasks.create_daily_backups._db = None
    tasks.verify_integrity_chains._db = None


@pytest.fixture
def populated(db, test_tenant, other_tenant, make_entry, audit_context):
    ledger = LedgerService(db)
    for tenant in (test_tenant, other_tenant):
        for hours in ("8.00", "7.50"):
            ledger.create_entry(make_entry(total_hours=hours, tenant_id=tenant.id), audit_context)


def test_nightly_check_reports_without_rebuilding(worker_db, test_tenant, other_tenant, populated):
    tampered = (
        worker_db.query(TimecardEntry)
        .filter(TimecardEntry.tenant_id == other_tenant.id, TimecardEntry.nsr == 1)
        .one()
    )
    tampered.total_hours = "12.00"
    worker_db.commit()
    stored_hash = tampered.record_hash

    result = tasks.verify_integrity_chains()

    assert result == {"checkedTenants": 2, "compromisedTenants": [other_tenant.id]}
    worker_db.refresh(tampered)
    assert tampered.record_hash == stored_hash


def test_daily_backups_for_every_tenant(worker_db, test_tenant, other_tenant, populated, tmp_path, monkeypatch):
    storage = LocalBackupStorage(str(tmp_path))
    monkeypatch.setattr("ponto_api.backup.service.get_backup_storage", lambda: storage)
    today = datetime.utcnow().date().isoformat()

    result = tasks.create_daily_backups(backup_date=today)

    assert result == {"backupDate": today, "written": 2}
    assert worker_db.query(TimecardBackup).count() == 2


def test_worker_settings_cover_database_redis_and_schedules():
    assert set(Settings.model_fields) == {
        "database_url",
        "postgres_user",
        "postgres_password",
        "postgres_db",
        "postgres_host",
        "postgres_port",
        "redis_url",
        "backup_hour",
        "integrity_check_hour",
    }
