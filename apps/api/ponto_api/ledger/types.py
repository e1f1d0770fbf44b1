"""Value types shared by the ledger components."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Optional


class AuditAction(str, Enum):
    CREATE = "CREATE"
    UPDATE = "UPDATE"
    DELETE = "DELETE"
    APPROVE = "APPROVE"
    REJECT = "REJECT"
    REBUILD = "REBUILD"


class IntegrityState(str, Enum):
    """Chain states: UNVERIFIED -> VERIFYING -> VALID | INVALID; INVALID -> REBUILDING -> REBUILT."""

    UNVERIFIED = "UNVERIFIED"
    VERIFYING = "VERIFYING"
    VALID = "VALID"
    INVALID = "INVALID"
    REBUILDING = "REBUILDING"
    REBUILT = "REBUILT"


@dataclass
class TimecardEntryData:
    """Clock event submitted to the ledger."""

    tenant_id: int
    user_id: str
    id: Optional[str] = None
    check_in: Optional[datetime] = None
    check_out: Optional[datetime] = None
    break_start: Optional[datetime] = None
    break_end: Optional[datetime] = None
    total_hours: Optional[str] = None
    notes: Optional[str] = None
    location: Optional[str] = None
    is_manual_entry: bool = False
    device_info: Any = None
    ip_address: Optional[str] = None
    geo_location: Any = None


@dataclass
class AuditContext:
    """Who performed an action and from where."""

    performed_by: str
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None
    device_info: Any = None
    reason: Optional[str] = None


@dataclass
class CreatedEntry:
    id: str
    nsr: int
    record_hash: str


@dataclass
class IntegrityCheckResult:
    is_valid: bool
    errors: list[str] = field(default_factory=list)
    state: IntegrityState = IntegrityState.UNVERIFIED
    checked_records: int = 0

    def as_dict(self) -> dict:
        return {"isValid": self.is_valid, "errors": list(self.errors)}


@dataclass
class RebuildResult:
    fixed: int
    errors: list[str] = field(default_factory=list)
    state: IntegrityState = IntegrityState.REBUILT
