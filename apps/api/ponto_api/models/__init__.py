"""Database models - import all models here for Alembic discovery."""

from ponto_api.models.audit import AuditLogEntry
from ponto_api.models.backup import TimecardBackup
from ponto_api.models.report import ComplianceReport
from ponto_api.models.signature import DigitalSignatureKey
from ponto_api.models.tenant import APIKey, Tenant
from ponto_api.models.timecard import NsrSequence, TimecardEntry

__all__ = [
    "Tenant",
    "APIKey",
    "TimecardEntry",
    "NsrSequence",
    "AuditLogEntry",
    "DigitalSignatureKey",
    "ComplianceReport",
    "TimecardBackup",
]
