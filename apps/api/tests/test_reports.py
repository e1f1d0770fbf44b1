"""Tests for compliance report generation."""

from datetime import datetime, timedelta

import pytest

from ponto_api.ledger.canonical import sha256_hex
from ponto_api.ledger.errors import ConflictError, ReportGenerationError, ReportNotFound
from ponto_api.ledger.reports import ComplianceReportGenerator, parse_hours
from ponto_api.ledger.service import LedgerService
from ponto_api.models import ComplianceReport, TimecardEntry


@pytest.fixture
def period():
    now = datetime.utcnow()
    return now - timedelta(days=1), now + timedelta(days=1)


@pytest.fixture
def populated(db, test_tenant, make_entry, audit_context):
    ledger = LedgerService(db)
    for user_id, hours in (("employee-1", "10.00"), ("employee-2", "6.00"), ("employee-1", None)):
        ledger.create_entry(make_entry(user_id, hours), audit_context)
    return ledger


def test_parse_hours():
    assert str(parse_hours("7.50")) == "7.50"
    assert parse_hours(None) == 0
    assert parse_hours("") == 0


def test_report_statistics_and_hash(db, test_tenant, populated, period):
    generator = ComplianceReportGenerator(db)
    report_id = generator.generate_report(test_tenant.id, "MONTHLY", *period, "manager-1")
    report = generator.get_report(test_tenant.id, report_id)

    assert report.total_records == 3
    assert report.total_employees == 2
    assert report.total_hours == "16.00"
    assert report.overtime_hours == "2.00"
    assert report.report_hash == sha256_hex(report.report_content)
    assert report.report_content["statistics"]["totalHours"] == "16.00"
    assert [r["nsr"] for r in report.report_content["records"]] == [1, 2, 3]
    assert all(r["digitalSignature"] == "MISSING" for r in report.report_content["records"])
    assert report.is_submitted_to_authorities is False


def test_period_outside_records_is_empty(db, test_tenant, populated):
    generator = ComplianceReportGenerator(db)
    report_id = generator.generate_report(
        test_tenant.id, "ANNUAL", datetime(2000, 1, 1), datetime(2000, 12, 31, 23, 59, 59), "manager-1"
    )
    report = generator.get_report(test_tenant.id, report_id)

    assert report.total_records == 0
    assert report.total_hours == "0"
    assert report.report_content["integrityCheck"]["isValid"] is True


def test_report_embeds_failed_integrity_check(db, test_tenant, populated, period):
    db.query(TimecardEntry).filter(TimecardEntry.nsr == 2).one().total_hours = "1.00"
    db.commit()

    generator = ComplianceReportGenerator(db)
    report = generator.get_report(
        test_tenant.id, generator.generate_report(test_tenant.id, "AUDIT", *period, "auditor")
    )
    assert report.report_content["integrityCheck"] == {
        "isValid": False,
        "errors": ["NSR 2: Hash do registro foi alterado"],
    }


def test_reports_are_immutable_snapshots(db, test_tenant, populated, period, make_entry, audit_context):
    """A later generation creates a new row; the earlier one is unchanged."""
    generator = ComplianceReportGenerator(db)
    first_id = generator.generate_report(test_tenant.id, "MONTHLY", *period, "manager-1")
    first_hash = generator.get_report(test_tenant.id, first_id).report_hash

    populated.create_entry(make_entry("employee-3", "8.00"), audit_context)
    second_id = generator.generate_report(test_tenant.id, "MONTHLY", *period, "manager-1")

    assert second_id != first_id
    first = generator.get_report(test_tenant.id, first_id)
    assert first.report_hash == first_hash
    assert first.total_records == 3
    assert generator.get_report(test_tenant.id, second_id).total_records == 4
    assert db.query(ComplianceReport).count() == 2


def test_invalid_stored_hours_fail_generation(db, test_tenant, populated, period):
    db.query(TimecardEntry).filter(TimecardEntry.nsr == 1).one().total_hours = "oito"
    db.commit()

    with pytest.raises(ReportGenerationError):
        ComplianceReportGenerator(db).generate_report(test_tenant.id, "MONTHLY", *period, "manager-1")
    assert db.query(ComplianceReport).count() == 0


def test_invalid_report_type(db, test_tenant, period):
    with pytest.raises(ReportGenerationError):
        ComplianceReportGenerator(db).generate_report(test_tenant.id, "WEEKLY", *period, "manager-1")


def test_submit_report_once(db, test_tenant, populated, period):
    generator = ComplianceReportGenerator(db)
    report_id = generator.generate_report(test_tenant.id, "MONTHLY", *period, "manager-1")
    original_hash = generator.get_report(test_tenant.id, report_id).report_hash

    report = generator.mark_submitted(test_tenant.id, report_id, "MTE-2024-0001")
    assert report.is_submitted_to_authorities is True
    assert report.submission_protocol == "MTE-2024-0001"
    assert report.report_hash == original_hash

    with pytest.raises(ConflictError):
        generator.mark_submitted(test_tenant.id, report_id, "MTE-2024-0002")


def test_report_not_found_for_other_tenant(db, test_tenant, other_tenant, populated, period):
    generator = ComplianceReportGenerator(db)
    report_id = generator.generate_report(test_tenant.id, "MONTHLY", *period, "manager-1")

    with pytest.raises(ReportNotFound):
        generator.get_report(other_tenant.id, report_id)


def test_list_reports_filters(db, test_tenant, populated):
    generator = ComplianceReportGenerator(db)
    generator.generate_report(test_tenant.id, "MONTHLY", datetime(2023, 1, 1), datetime(2023, 1, 31), "m")
    generator.generate_report(test_tenant.id, "ANNUAL", datetime(2023, 1, 1), datetime(2023, 12, 31), "m")
    generator.generate_report(test_tenant.id, "MONTHLY", datetime(2024, 2, 1), datetime(2024, 2, 29), "m")

    assert len(generator.list_reports(test_tenant.id)) == 3
    assert len(generator.list_reports(test_tenant.id, report_type="MONTHLY")) == 2
    assert len(generator.list_reports(test_tenant.id, year=2023)) == 2
    assert len(generator.list_reports(test_tenant.id, report_type="MONTHLY", year=2024)) == 1
