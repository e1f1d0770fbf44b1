"""Tests for compliance endpoints."""

from datetime import datetime, timedelta

import pytest

from ponto_api.backup.service import BackupService
from ponto_api.backup.storage import LocalBackupStorage
from ponto_api.ledger.canonical import sha256_hex
from ponto_api.models import DigitalSignatureKey, TimecardEntry


@pytest.fixture
def three_entries(client, headers):
    for hours in ("8.00", "7.50", "8.25"):
        response = client.post(
            "/timecard/entries",
            json={"userId": "employee-1", "checkIn": "2024-03-04T08:00:00", "totalHours": hours},
            headers=headers,
        )
        assert response.status_code == 201


@pytest.fixture
def period():
    now = datetime.utcnow()
    return {
        "periodStart": (now - timedelta(days=1)).isoformat(),
        "periodEnd": (now + timedelta(days=1)).isoformat(),
    }


def test_integrity_check_valid(client, headers, three_entries):
    data = client.get("/compliance/integrity-check", headers=headers).json()

    assert data["isValid"] is True
    assert data["errors"] == []
    assert data["state"] == "VALID"
    assert data["checkedRecords"] == 3


def test_integrity_check_reports_tampering_as_200(client, db, headers, three_entries):
    db.query(TimecardEntry).filter(TimecardEntry.nsr == 2).one().total_hours = "12.00"
    db.commit()

    response = client.get("/compliance/integrity-check", headers=headers)
    assert response.status_code == 200
    assert response.json()["errors"] == ["NSR 2: Hash do registro foi alterado"]


def test_audit_log(client, headers, three_entries):
    data = client.get("/compliance/audit-log", params={"limit": 2}, headers=headers).json()

    assert data["pagination"] == {"page": 1, "limit": 2, "total": 3, "totalPages": 2}
    assert all(log["action"] == "CREATE" for log in data["logs"])

    filtered = client.get("/compliance/audit-log", params={"action": "REBUILD"}, headers=headers).json()
    assert filtered["pagination"]["total"] == 0


def test_audit_log_rejects_unknown_action(client, headers):
    assert client.get("/compliance/audit-log", params={"action": "PURGE"}, headers=headers).status_code == 400


def test_generate_download_and_submit_report(client, headers, three_entries, period):
    response = client.post("/compliance/generate-report", json={"reportType": "MONTHLY", **period}, headers=headers)
    assert response.status_code == 200
    report_id = response.json()["reportId"]

    download = client.get(f"/compliance/reports/{report_id}", headers=headers)
    assert download.status_code == 200
    assert f"compliance-report-{report_id}.json" in download.headers["content-disposition"]
    body = download.json()
    assert body["content"]["statistics"]["totalHours"] == "23.75"
    assert body["content"]["statistics"]["overtimeHours"] == "0.25"
    assert body["metadata"]["reportHash"] == sha256_hex(body["content"])

    listed = client.get("/compliance/reports", params={"reportType": "MONTHLY"}, headers=headers).json()
    assert [r["id"] for r in listed["reports"]] == [report_id]

    submit = client.post(f"/compliance/reports/{report_id}/submit", json={"protocol": "MTE-1"}, headers=headers)
    assert submit.status_code == 200
    again = client.post(f"/compliance/reports/{report_id}/submit", json={"protocol": "MTE-2"}, headers=headers)
    assert again.status_code == 409


def test_generate_report_rejects_inverted_period(client, headers, period):
    body = {"reportType": "MONTHLY", "periodStart": period["periodEnd"], "periodEnd": period["periodStart"]}
    assert client.post("/compliance/generate-report", json=body, headers=headers).status_code == 400


def test_unknown_report(client, headers):
    response = client.get("/compliance/reports/missing", headers=headers)
    assert response.status_code == 404
    assert "message" in response.json()


def test_rebuild_requires_admin_scope(client, headers, three_entries):
    assert client.post("/compliance/rebuild-integrity", headers=headers).status_code == 403


def test_rebuild_repairs_chain(client, db, admin_headers, three_entries):
    db.query(TimecardEntry).filter(TimecardEntry.nsr == 2).one().total_hours = "12.00"
    db.commit()

    data = client.post("/compliance/rebuild-integrity", headers=admin_headers).json()
    assert data["success"] is True
    assert data["fixed"] == 2
    assert data["state"] == "REBUILT"

    assert client.get("/compliance/integrity-check", headers=admin_headers).json()["isValid"] is True
    logs = client.get("/compliance/audit-log", params={"action": "REBUILD"}, headers=admin_headers).json()
    assert {log["performedBy"] for log in logs["logs"]} == {"admin-1"}


def test_backups_and_verification(client, db, test_tenant, headers, three_entries, tmp_path, monkeypatch):
    storage = LocalBackupStorage(str(tmp_path / "backups"))
    monkeypatch.setattr("ponto_api.backup.service.get_backup_storage", lambda: storage)
    today = datetime.utcnow().date().isoformat()

    missing = client.post("/compliance/verify-backup", json={"backupDate": today}, headers=headers)
    assert missing.status_code == 404

    BackupService(db, storage=storage).create_backup(test_tenant.id)

    data = client.post("/compliance/verify-backup", json={"backupDate": today}, headers=headers).json()
    assert data["isValid"] is True
    assert data["message"] == "Backup íntegro"

    status = client.get("/compliance/backups", headers=headers).json()
    assert status["summary"]["totalBackups"] == 1
    assert status["summary"]["verifiedBackups"] == 1


def test_keys_summary(client, headers, signing_key, db):
    expired = DigitalSignatureKey(
        tenant_id=signing_key.tenant_id,
        key_name="old",
        public_key="pem",
        expires_at=datetime.utcnow() - timedelta(days=1),
    )
    db.add(expired)
    db.commit()

    data = client.get("/compliance/keys", headers=headers).json()
    assert data["summary"] == {"totalKeys": 2, "activeKeys": 1, "expiredKeys": 1, "revokedKeys": 0}
    assert all("publicKey" not in key for key in data["keys"])
