"""JSON shapes for ledger rows (camelCase, ISO-8601 timestamps)."""

from ponto_api.ledger.canonical import to_iso
from ponto_api.models import AuditLogEntry, ComplianceReport, DigitalSignatureKey, TimecardBackup, TimecardEntry


def entry_to_dict(entry: TimecardEntry) -> dict:
    return {
        "id": entry.id,
        "tenantId": entry.tenant_id,
        "userId": entry.user_id,
        "nsr": entry.nsr,
        "checkIn": to_iso(entry.check_in),
        "checkOut": to_iso(entry.check_out),
        "breakStart": to_iso(entry.break_start),
        "breakEnd": to_iso(entry.break_end),
        "totalHours": entry.total_hours,
        "notes": entry.notes,
        "location": entry.location,
        "isManualEntry": entry.is_manual_entry,
        "deviceInfo": entry.device_info,
        "ipAddress": entry.ip_address,
        "geoLocation": entry.geo_location,
        "status": entry.status,
        "recordHash": entry.record_hash,
        "previousRecordHash": entry.previous_record_hash,
        "originalRecordHash": entry.original_record_hash,
        "hashGeneratedAt": to_iso(entry.hash_generated_at),
        "digitalSignature": entry.digital_signature,
        "signatureTimestamp": to_iso(entry.signature_timestamp),
        "signedBy": entry.signed_by,
        "createdAt": to_iso(entry.created_at),
    }


def audit_entry_to_dict(audit_entry: AuditLogEntry) -> dict:
    return {
        "id": audit_entry.id,
        "tenantId": audit_entry.tenant_id,
        "timecardEntryId": audit_entry.timecard_entry_id,
        "nsr": audit_entry.nsr,
        "action": audit_entry.action,
        "performedBy": audit_entry.performed_by,
        "performedAt": to_iso(audit_entry.performed_at),
        "oldValues": audit_entry.old_values,
        "newValues": audit_entry.new_values,
        "reason": audit_entry.reason,
        "ipAddress": audit_entry.ip_address,
        "userAgent": audit_entry.user_agent,
        "deviceInfo": audit_entry.device_info,
        "auditHash": audit_entry.audit_hash,
        "isSystemGenerated": audit_entry.is_system_generated,
        "createdAt": to_iso(audit_entry.created_at),
    }


def report_summary_to_dict(report: ComplianceReport) -> dict:
    return {
        "id": report.id,
        "reportType": report.report_type,
        "periodStart": to_iso(report.period_start),
        "periodEnd": to_iso(report.period_end),
        "totalRecords": report.total_records,
        "totalEmployees": report.total_employees,
        "totalHours": report.total_hours,
        "overtimeHours": report.overtime_hours,
        "reportHash": report.report_hash,
        "generatedBy": report.generated_by,
        "isSubmittedToAuthorities": report.is_submitted_to_authorities,
        "submissionDate": to_iso(report.submission_date),
        "submissionProtocol": report.submission_protocol,
        "createdAt": to_iso(report.created_at),
    }


def backup_to_dict(backup: TimecardBackup) -> dict:
    return {
        "backupDate": backup.backup_date.isoformat(),
        "recordCount": backup.record_count,
        "backupSize": int(backup.backup_size),
        "backupHash": backup.backup_hash,
        "firstNsr": backup.first_nsr,
        "lastNsr": backup.last_nsr,
        "isVerified": backup.is_verified,
        "verificationDate": to_iso(backup.verification_date),
        "compressionType": backup.compression_type,
        "createdAt": to_iso(backup.created_at),
    }


def key_to_dict(key: DigitalSignatureKey) -> dict:
    # Public metadata only
    return {
        "id": key.id,
        "keyName": key.key_name,
        "keyAlgorithm": key.key_algorithm,
        "isActive": key.is_active,
        "expiresAt": to_iso(key.expires_at),
        "revokedAt": to_iso(key.revoked_at),
        "revocationReason": key.revocation_reason,
        "createdAt": to_iso(key.created_at),
    }
