"""Compliance report model."""

from datetime import datetime

from sqlalchemy import JSON, Boolean, Column, DateTime, ForeignKey, Integer, String

from ponto_api.db.base import Base


class ComplianceReport(Base):
    """Immutable, hashed snapshot of the ledger for a period."""

    __tablename__ = "compliance_reports"

    id = Column(String(36), primary_key=True)
    tenant_id = Column(Integer, ForeignKey("tenants.id"), nullable=False, index=True)
    report_type = Column(String(20), nullable=False, index=True)  # MONTHLY, QUARTERLY, ANNUAL, AUDIT
    period_start = Column(DateTime, nullable=False)
    period_end = Column(DateTime, nullable=False)
    total_records = Column(Integer, nullable=False)
    total_employees = Column(Integer, nullable=False)
    total_hours = Column(String(20), nullable=False)
    overtime_hours = Column(String(20), nullable=False, default="0")
    report_hash = Column(String(64), nullable=False)
    report_content = Column(JSON, nullable=False)
    generated_by = Column(String(255), nullable=False)
    is_submitted_to_authorities = Column(Boolean, default=False, nullable=False)
    submission_date = Column(DateTime, nullable=True)
    submission_protocol = Column(String(255), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False, index=True)
