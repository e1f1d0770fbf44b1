"""Deterministic JSON serialization and SHA-256 hashing.

Keys are sorted and separators are compact so the same logical object always
produces the same bytes, independently of insertion order. Datetimes are
normalized to naive UTC before being rendered as ISO-8601.
"""

import hashlib
import json
from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Any, Optional


def normalize_datetime(value: Optional[datetime]) -> Optional[datetime]:
    """Convert aware datetimes to naive UTC; naive values are assumed UTC."""
    if value is None:
        return None
    if value.tzinfo is not None:
        return value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


def to_iso(value: Optional[datetime]) -> Optional[str]:
    """Render a datetime as ISO-8601 (naive UTC) or None."""
    value = normalize_datetime(value)
    return value.isoformat() if value is not None else None


def _default(value: Any):
    if isinstance(value, datetime):
        return to_iso(value)
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, Decimal):
        return str(value)
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


def canonical_json(data: Any) -> str:
    """Serialize with sorted keys and no insignificant whitespace."""
    return json.dumps(data, sort_keys=True, separators=(",", ":"), ensure_ascii=False, default=_default)


def sha256_hex(data: Any) -> str:
    """SHA-256 lowercase hex digest of the canonical JSON form."""
    return hashlib.sha256(canonical_json(data).encode("utf-8")).hexdigest()


def jsonable(data: Any) -> Any:
    """Round-trip through canonical JSON so the value can be stored in a JSON column."""
    if data is None:
        return None
    return json.loads(canonical_json(data))
