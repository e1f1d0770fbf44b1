"""Prometheus metrics."""

from prometheus_client import Counter, Histogram

# Ledger writes
entries_created = Counter(
    "ponto_timecard_entries_created_total",
    "Timecard entries appended to the ledger",
    ["signed"],
)

entry_create_failures = Counter(
    "ponto_timecard_entry_failures_total",
    "Timecard entry creations that failed after NSR issuance",
    ["error"],
)

nsr_issue_failures = Counter(
    "ponto_nsr_issue_failures_total",
    "NSR issuance failures",
)

signatures_total = Counter(
    "ponto_signatures_total",
    "Signing attempts by outcome",
    ["outcome"],  # signed, unavailable, failed
)

audit_entries = Counter(
    "ponto_audit_entries_total",
    "Audit log entries written",
    ["action"],
)

# Integrity
integrity_checks = Counter(
    "ponto_integrity_checks_total",
    "Chain verifications by outcome",
    ["outcome"],  # valid, invalid
)

integrity_check_duration = Histogram(
    "ponto_integrity_check_duration_seconds",
    "Chain verification duration",
)

records_rebuilt = Counter(
    "ponto_records_rebuilt_total",
    "Records whose hashes were rewritten by a rebuild",
)

# Reports and backups
reports_generated = Counter(
    "ponto_compliance_reports_generated_total",
    "Compliance reports generated",
    ["report_type"],
)

backup_verifications = Counter(
    "ponto_backup_verifications_total",
    "Backup verifications by outcome",
    ["outcome"],  # valid, compromised
)
