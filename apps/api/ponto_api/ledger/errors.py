"""Ledger error taxonomy."""


class LedgerError(Exception):
    """Base class for ledger failures surfaced to the caller."""


class SequenceError(LedgerError):
    """NSR could not be issued or persisted."""


class ChainComputationError(LedgerError):
    """Malformed input prevented record hash computation."""


class AuditLogFailure(LedgerError):
    """Audit entry could not be written; the enclosing operation fails."""


class ReportGenerationError(LedgerError):
    """Aggregation, hashing or persistence of a compliance report failed."""


class NotFoundError(LedgerError):
    """Requested tenant-scoped resource does not exist."""


class EntryNotFound(NotFoundError):
    pass


class ReportNotFound(NotFoundError):
    pass


class BackupNotFound(NotFoundError):
    pass


class ConflictError(LedgerError):
    """Operation is not allowed in the resource's current state."""
