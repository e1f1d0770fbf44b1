"""Timecard audit log model."""

from datetime import datetime

from sqlalchemy import JSON, Boolean, Column, DateTime, ForeignKey, Integer, String, Text

from ponto_api.db.base import Base


class AuditLogEntry(Base):
    """Append-only record of an action taken against a timecard entry."""

    __tablename__ = "timecard_audit_log"

    id = Column(Integer, primary_key=True, index=True)
    tenant_id = Column(Integer, ForeignKey("tenants.id"), nullable=False, index=True)
    timecard_entry_id = Column(String(36), nullable=False, index=True)
    nsr = Column(Integer, nullable=True, index=True)
    action = Column(String(20), nullable=False, index=True)  # CREATE, UPDATE, DELETE, APPROVE, REJECT, REBUILD
    performed_by = Column(String(255), nullable=False, index=True)
    performed_at = Column(DateTime, nullable=False, index=True)
    old_values = Column(JSON(none_as_null=True), nullable=True)
    new_values = Column(JSON(none_as_null=True), nullable=True)
    reason = Column(Text, nullable=True)
    ip_address = Column(String(64), nullable=True)
    user_agent = Column(Text, nullable=True)
    device_info = Column(JSON(none_as_null=True), nullable=True)
    audit_hash = Column(String(64), nullable=False)
    is_system_generated = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
