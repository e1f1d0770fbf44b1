"""CLT compliance routes: integrity, audit trail, reports, backups."""

import logging
from datetime import date, datetime
from typing import Literal, Optional

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field, model_validator
from sqlalchemy.orm import Session

from ponto_api.auth.context import get_tenant_id, get_user_id, require_scope
from ponto_api.backup.service import BackupService
from ponto_api.db.session import get_db
from ponto_api.ledger.audit import AuditService
from ponto_api.ledger.reports import ComplianceReportGenerator
from ponto_api.ledger.serializers import audit_entry_to_dict, backup_to_dict, report_summary_to_dict
from ponto_api.ledger.service import SYSTEM_ACTOR, LedgerService
from ponto_api.ledger.types import AuditAction
from ponto_api.settings import get_settings

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/compliance", tags=["compliance"])


class GenerateReportRequest(BaseModel):
    """Compliance report generation request."""

    model_config = ConfigDict(populate_by_name=True)

    report_type: Literal["MONTHLY", "QUARTERLY", "ANNUAL", "AUDIT"] = Field(..., alias="reportType")
    period_start: datetime = Field(..., alias="periodStart")
    period_end: datetime = Field(..., alias="periodEnd")

    @model_validator(mode="after")
    def check_period(self):
        if self.period_end < self.period_start:
            raise ValueError("periodEnd must not be before periodStart")
        return self


class SubmitReportRequest(BaseModel):
    """Submission of a report to the labor authorities."""

    protocol: str = Field(..., min_length=1, max_length=255)


class VerifyBackupRequest(BaseModel):
    """Backup verification request."""

    model_config = ConfigDict(populate_by_name=True)

    backup_date: date = Field(..., alias="backupDate")


@router.get("/integrity-check")
async def check_integrity(
    tenant_id: int = Depends(get_tenant_id),
    db: Session = Depends(get_db),
):
    """Verify the tenant's hash chain. A compromised chain is still a 200."""
    logger.info("Verifying integrity chain", extra={"tenant_id": tenant_id})
    result = LedgerService(db).verify_integrity_chain(tenant_id)
    return {
        "isValid": result.is_valid,
        "errors": result.errors,
        "state": result.state.value,
        "checkedRecords": result.checked_records,
        "timestamp": datetime.utcnow().isoformat(),
        "tenantId": tenant_id,
    }


@router.get("/audit-log")
async def get_audit_log(
    start_date: Optional[datetime] = Query(None, alias="startDate"),
    end_date: Optional[datetime] = Query(None, alias="endDate"),
    user_id: Optional[str] = Query(None, alias="userId"),
    action: Optional[AuditAction] = Query(None),
    page: int = Query(1, ge=1),
    limit: Optional[int] = Query(None, ge=1),
    tenant_id: int = Depends(get_tenant_id),
    db: Session = Depends(get_db),
):
    """Paginated audit trail, newest first."""
    settings = get_settings()
    limit = min(limit or settings.audit_log_default_limit, settings.audit_log_max_limit)

    logs, total = AuditService(db).list_entries(
        tenant_id,
        start_date=start_date,
        end_date=end_date,
        performed_by=user_id,
        action=action.value if action else None,
        page=page,
        limit=limit,
    )
    return {
        "logs": [audit_entry_to_dict(log) for log in logs],
        "pagination": {
            "page": page,
            "limit": limit,
            "total": total,
            "totalPages": (total + limit - 1) // limit,
        },
    }


@router.post("/generate-report")
async def generate_report(
    request_data: GenerateReportRequest,
    tenant_id: int = Depends(get_tenant_id),
    user_id: str = Depends(get_user_id),
    db: Session = Depends(get_db),
):
    """Generate and persist a compliance report for a period."""
    logger.info(f"Generating {request_data.report_type} report", extra={"tenant_id": tenant_id})
    report_id = ComplianceReportGenerator(db).generate_report(
        tenant_id,
        request_data.report_type,
        request_data.period_start,
        request_data.period_end,
        user_id,
    )
    return {
        "reportId": report_id,
        "message": "Relatório de compliance gerado com sucesso",
        "downloadUrl": f"/compliance/reports/{report_id}",
    }


@router.get("/reports")
async def list_reports(
    report_type: Optional[str] = Query(None, alias="reportType"),
    year: Optional[int] = Query(None, ge=1970, le=9999),
    tenant_id: int = Depends(get_tenant_id),
    db: Session = Depends(get_db),
):
    """List reports, optionally filtered by type and year."""
    reports = ComplianceReportGenerator(db).list_reports(tenant_id, report_type=report_type, year=year)
    return {"reports": [report_summary_to_dict(report) for report in reports]}


@router.get("/reports/{report_id}")
async def download_report(
    report_id: str,
    tenant_id: int = Depends(get_tenant_id),
    db: Session = Depends(get_db),
):
    """Download a report: metadata plus the hashed content, as stored."""
    report = ComplianceReportGenerator(db).get_report(tenant_id, report_id)
    return JSONResponse(
        content={"metadata": report_summary_to_dict(report), "content": report.report_content},
        headers={"Content-Disposition": f'attachment; filename="compliance-report-{report_id}.json"'},
    )


@router.post("/reports/{report_id}/submit")
async def submit_report(
    report_id: str,
    request_data: SubmitReportRequest,
    tenant_id: int = Depends(get_tenant_id),
    user_id: str = Depends(get_user_id),
    db: Session = Depends(get_db),
):
    """Mark a report as submitted to the authorities."""
    report = ComplianceReportGenerator(db).mark_submitted(tenant_id, report_id, request_data.protocol)
    logger.info(f"Report {report_id} submitted by {user_id}", extra={"tenant_id": tenant_id})
    return report_summary_to_dict(report)


@router.post("/rebuild-integrity", dependencies=[Depends(require_scope("compliance:admin"))])
async def rebuild_integrity(
    request: Request,
    tenant_id: int = Depends(get_tenant_id),
    db: Session = Depends(get_db),
):
    """Emergency recomputation of the hash chain. Every rewrite is audited."""
    user_id = getattr(request.state, "user_id", None) or SYSTEM_ACTOR
    logger.warning(f"Integrity rebuild requested by {user_id}", extra={"tenant_id": tenant_id})
    result = LedgerService(db).rebuild_integrity_chain(tenant_id, performed_by=user_id)
    return {
        "success": not result.errors,
        "message": f"Cadeia de integridade reconstituída: {result.fixed} registros corrigidos",
        "fixed": result.fixed,
        "errors": result.errors,
        "state": result.state.value,
    }


@router.get("/backups")
async def get_backup_status(
    tenant_id: int = Depends(get_tenant_id),
    db: Session = Depends(get_db),
):
    """Backups of the last retention window, with a summary."""
    backups = BackupService(db).list_recent(tenant_id, days=get_settings().backup_retention_days)
    return {
        "backups": [backup_to_dict(backup) for backup in backups],
        "summary": {
            "totalBackups": len(backups),
            "verifiedBackups": sum(1 for backup in backups if backup.is_verified),
            "totalSize": sum(int(backup.backup_size) for backup in backups),
        },
    }


@router.post("/verify-backup")
async def verify_backup(
    request_data: VerifyBackupRequest,
    tenant_id: int = Depends(get_tenant_id),
    db: Session = Depends(get_db),
):
    """Verify one backup against its stored hash and the live ledger."""
    is_valid = BackupService(db).verify_backup(tenant_id, request_data.backup_date)
    return {
        "isValid": is_valid,
        "backupDate": request_data.backup_date.isoformat(),
        "verifiedAt": datetime.utcnow().isoformat(),
        "message": "Backup íntegro" if is_valid else "Backup comprometido",
    }
