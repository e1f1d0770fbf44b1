"""Timecard ledger models."""

from datetime import datetime

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
)

from ponto_api.db.base import Base


class TimecardEntry(Base):
    """One clock-in/out record, chained by SHA-256 per tenant."""

    __tablename__ = "timecard_entries"
    __table_args__ = (UniqueConstraint("tenant_id", "nsr", name="uq_timecard_tenant_nsr"),)

    id = Column(String(36), primary_key=True)
    tenant_id = Column(Integer, ForeignKey("tenants.id"), nullable=False, index=True)
    user_id = Column(String(255), nullable=False, index=True)

    check_in = Column(DateTime, nullable=True)
    check_out = Column(DateTime, nullable=True)
    break_start = Column(DateTime, nullable=True)
    break_end = Column(DateTime, nullable=True)
    total_hours = Column(String(20), nullable=True)  # exact decimal string, hashed as-is
    notes = Column(Text, nullable=True)
    location = Column(String(255), nullable=True)
    is_manual_entry = Column(Boolean, default=False, nullable=False)
    device_info = Column(JSON(none_as_null=True), nullable=True)
    ip_address = Column(String(64), nullable=True)
    geo_location = Column(JSON(none_as_null=True), nullable=True)
    status = Column(String(20), default="pending", nullable=False)  # pending, approved, rejected

    # Integrity fields
    nsr = Column(Integer, nullable=False, index=True)
    record_hash = Column(String(64), nullable=False, index=True)
    previous_record_hash = Column(String(64), nullable=True)  # NULL for first record
    original_record_hash = Column(String(64), nullable=False)
    hash_generated_at = Column(DateTime, nullable=False)
    digital_signature = Column(Text, nullable=True)
    signature_timestamp = Column(DateTime, nullable=True)
    signed_by = Column(String(255), nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False, index=True)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)


class NsrSequence(Base):
    """Per-tenant NSR counter. Never decreases."""

    __tablename__ = "nsr_sequences"

    tenant_id = Column(Integer, ForeignKey("tenants.id"), primary_key=True)
    current_nsr = Column(Integer, nullable=False, default=0)
    last_updated = Column(DateTime, default=datetime.utcnow, nullable=False)
