"""Timecard backup metadata."""

from datetime import datetime

from sqlalchemy import BigInteger, Boolean, Column, Date, DateTime, ForeignKey, Integer, String, UniqueConstraint

from ponto_api.db.base import Base


class TimecardBackup(Base):
    """Metadata about one daily ledger snapshot."""

    __tablename__ = "timecard_backups"
    __table_args__ = (UniqueConstraint("tenant_id", "backup_date", name="uq_backup_tenant_date"),)

    id = Column(Integer, primary_key=True, index=True)
    tenant_id = Column(Integer, ForeignKey("tenants.id"), nullable=False, index=True)
    backup_date = Column(Date, nullable=False, index=True)
    record_count = Column(Integer, nullable=False)
    backup_size = Column(BigInteger, nullable=False)
    backup_hash = Column(String(64), nullable=False)
    first_nsr = Column(Integer, nullable=True)
    last_nsr = Column(Integer, nullable=True)
    storage_key = Column(String(512), nullable=False)
    compression_type = Column(String(20), default="gzip", nullable=False)
    is_verified = Column(Boolean, default=False, nullable=False)
    verification_date = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
