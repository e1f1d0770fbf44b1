"""Compliance report generation for labor inspections."""

import logging
import uuid
from datetime import datetime
from decimal import Decimal, InvalidOperation
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ponto_api.ledger.canonical import jsonable, normalize_datetime, sha256_hex, to_iso
from ponto_api.ledger.errors import ConflictError, LedgerError, ReportGenerationError, ReportNotFound
from ponto_api.ledger.service import LedgerService
from ponto_api.models import ComplianceReport, TimecardEntry
from ponto_api.settings import get_settings
from ponto_api.utils.metrics import reports_generated

logger = logging.getLogger(__name__)

REPORT_TYPES = ("MONTHLY", "QUARTERLY", "ANNUAL", "AUDIT")


def parse_hours(value: Optional[str]) -> Decimal:
    """Parse a stored total_hours string; empty counts as zero."""
    if value in (None, ""):
        return Decimal("0")
    hours = Decimal(str(value))
    if not hours.is_finite():
        raise InvalidOperation(f"non-finite hours: {value}")
    return hours


class ComplianceReportGenerator:
    """Builds immutable, hashed period snapshots of a tenant's ledger."""

    def __init__(self, db: Session, ledger: Optional[LedgerService] = None):
        """Initialize report generator."""
        self.db = db
        self.ledger = ledger or LedgerService(db)

    def generate_report(
        self,
        tenant_id: int,
        report_type: str,
        period_start: datetime,
        period_end: datetime,
        generated_by: str,
    ) -> str:
        """Aggregate the period, embed an integrity check, hash and persist. Returns the report id."""
        if report_type not in REPORT_TYPES:
            raise ReportGenerationError(f"Tipo de relatório inválido: {report_type}")
        period_start = normalize_datetime(period_start)
        period_end = normalize_datetime(period_end)
        if period_end < period_start:
            raise ReportGenerationError("Data final anterior à data inicial")

        settings = get_settings()
        daily_limit = Decimal(str(settings.clt_daily_hours_limit))

        try:
            records = (
                self.db.query(TimecardEntry)
                .filter(
                    TimecardEntry.tenant_id == tenant_id,
                    TimecardEntry.created_at >= period_start,
                    TimecardEntry.created_at <= period_end,
                )
                .order_by(TimecardEntry.nsr.asc())
                .yield_per(settings.report_batch_size)
            )

            summaries = []
            employees = set()
            total_hours = Decimal("0")
            overtime_hours = Decimal("0")
            for record in records:
                hours = parse_hours(record.total_hours)
                total_hours += hours
                if hours > daily_limit:
                    overtime_hours += hours - daily_limit
                employees.add(record.user_id)
                summaries.append(
                    {
                        "nsr": record.nsr,
                        "userId": record.user_id,
                        "checkIn": to_iso(record.check_in),
                        "checkOut": to_iso(record.check_out),
                        "totalHours": record.total_hours,
                        "recordHash": record.record_hash,
                        "digitalSignature": "PRESENT" if record.digital_signature else "MISSING",
                    }
                )

            integrity = self.ledger.verify_integrity_chain(tenant_id)

            report_content = jsonable(
                {
                    "tenantId": tenant_id,
                    "reportType": report_type,
                    "period": {"start": period_start, "end": period_end},
                    "statistics": {
                        "totalRecords": len(summaries),
                        "totalEmployees": len(employees),
                        "totalHours": str(total_hours),
                        "overtimeHours": str(overtime_hours),
                    },
                    "records": summaries,
                    "integrityCheck": integrity.as_dict(),
                    "generatedBy": generated_by,
                    "generatedAt": datetime.utcnow(),
                }
            )
            report_hash = sha256_hex(report_content)

            report = ComplianceReport(
                id=str(uuid.uuid4()),
                tenant_id=tenant_id,
                report_type=report_type,
                period_start=period_start,
                period_end=period_end,
                total_records=len(summaries),
                total_employees=len(employees),
                total_hours=str(total_hours),
                overtime_hours=str(overtime_hours),
                report_hash=report_hash,
                report_content=report_content,
                generated_by=generated_by,
            )
            self.db.add(report)
            self.db.commit()
        except (SQLAlchemyError, InvalidOperation, LedgerError, TypeError, ValueError) as e:
            self.db.rollback()
            logger.error(f"Failed to generate compliance report: {e}", extra={"tenant_id": tenant_id})
            raise ReportGenerationError(f"Falha ao gerar relatório de compliance: {e}") from e

        reports_generated.labels(report_type=report_type).inc()
        logger.info(
            f"Compliance report generated: {report_type} {report.id} hash:{report_hash[:8]}",
            extra={"tenant_id": tenant_id},
        )
        return report.id

    def get_report(self, tenant_id: int, report_id: str) -> ComplianceReport:
        report = (
            self.db.query(ComplianceReport)
            .filter(ComplianceReport.tenant_id == tenant_id, ComplianceReport.id == report_id)
            .first()
        )
        if not report:
            raise ReportNotFound(f"Relatório {report_id} não encontrado")
        return report

    def list_reports(
        self, tenant_id: int, report_type: Optional[str] = None, year: Optional[int] = None
    ) -> list[ComplianceReport]:
        query = self.db.query(ComplianceReport).filter(ComplianceReport.tenant_id == tenant_id)
        if report_type:
            query = query.filter(ComplianceReport.report_type == report_type)
        if year:
            query = query.filter(
                ComplianceReport.period_start >= datetime(year, 1, 1),
                ComplianceReport.period_end < datetime(year + 1, 1, 1),
            )
        return query.order_by(ComplianceReport.created_at.desc()).all()

    def mark_submitted(self, tenant_id: int, report_id: str, protocol: str) -> ComplianceReport:
        """Record submission to the authorities. Content and hash stay untouched."""
        report = self.get_report(tenant_id, report_id)
        if report.is_submitted_to_authorities:
            raise ConflictError(f"Relatório {report_id} já foi enviado (protocolo {report.submission_protocol})")

        report.is_submitted_to_authorities = True
        report.submission_date = datetime.utcnow()
        report.submission_protocol = protocol
        try:
            self.db.commit()
        except SQLAlchemyError:
            self.db.rollback()
            raise

        logger.info(f"Report {report_id} marked as submitted", extra={"tenant_id": tenant_id})
        return report
