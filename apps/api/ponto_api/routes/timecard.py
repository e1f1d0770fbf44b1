"""Timecard entry routes."""

from datetime import datetime
from decimal import Decimal, InvalidOperation
from typing import Any, Optional

from fastapi import APIRouter, Depends, Query, Request, status
from pydantic import BaseModel, ConfigDict, Field, field_validator
from sqlalchemy.orm import Session

from ponto_api.auth.context import audit_context, get_tenant_id, get_user_id
from ponto_api.db.session import get_db
from ponto_api.ledger.serializers import entry_to_dict
from ponto_api.ledger.service import LedgerService
from ponto_api.ledger.types import TimecardEntryData

router = APIRouter(prefix="/timecard", tags=["timecard"])


class TimecardEntryRequest(BaseModel):
    """Clock event submission."""

    model_config = ConfigDict(populate_by_name=True)

    id: Optional[str] = Field(None, max_length=36)
    user_id: Optional[str] = Field(None, alias="userId", description="Defaults to the caller")
    check_in: Optional[datetime] = Field(None, alias="checkIn")
    check_out: Optional[datetime] = Field(None, alias="checkOut")
    break_start: Optional[datetime] = Field(None, alias="breakStart")
    break_end: Optional[datetime] = Field(None, alias="breakEnd")
    total_hours: Optional[str] = Field(None, alias="totalHours", description="Decimal string, e.g. 8.00")
    notes: Optional[str] = None
    location: Optional[str] = Field(None, max_length=255)
    is_manual_entry: bool = Field(False, alias="isManualEntry")
    device_info: Optional[Any] = Field(None, alias="deviceInfo")
    geo_location: Optional[Any] = Field(None, alias="geoLocation")
    reason: Optional[str] = None

    @field_validator("total_hours")
    @classmethod
    def check_total_hours(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return value
        try:
            hours = Decimal(value)
        except InvalidOperation:
            raise ValueError("totalHours must be a decimal string")
        if not hours.is_finite() or hours < 0:
            raise ValueError("totalHours must be a non-negative decimal")
        return value


class DecisionRequest(BaseModel):
    """Approval or rejection of an entry."""

    reason: Optional[str] = None


@router.post("/entries", status_code=status.HTTP_201_CREATED)
async def create_entry(
    request_data: TimecardEntryRequest,
    request: Request,
    tenant_id: int = Depends(get_tenant_id),
    caller_id: str = Depends(get_user_id),
    db: Session = Depends(get_db),
):
    """Append a clock event to the tenant's ledger."""
    context = audit_context(request, caller_id, request_data.reason)
    data = TimecardEntryData(
        tenant_id=tenant_id,
        user_id=request_data.user_id or caller_id,
        id=request_data.id,
        check_in=request_data.check_in,
        check_out=request_data.check_out,
        break_start=request_data.break_start,
        break_end=request_data.break_end,
        total_hours=request_data.total_hours,
        notes=request_data.notes,
        location=request_data.location,
        is_manual_entry=request_data.is_manual_entry,
        device_info=request_data.device_info,
        ip_address=context.ip_address,
        geo_location=request_data.geo_location,
    )
    created = LedgerService(db).create_entry(data, context)
    return {"id": created.id, "nsr": created.nsr, "recordHash": created.record_hash}


@router.get("/entries")
async def list_entries(
    user_id: Optional[str] = Query(None, alias="userId"),
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=500),
    tenant_id: int = Depends(get_tenant_id),
    db: Session = Depends(get_db),
):
    """Entries of the tenant, highest NSR first."""
    entries, total = LedgerService(db).list_entries(tenant_id, user_id=user_id, page=page, limit=limit)
    return {
        "entries": [entry_to_dict(entry) for entry in entries],
        "pagination": {
            "page": page,
            "limit": limit,
            "total": total,
            "totalPages": (total + limit - 1) // limit,
        },
    }


@router.get("/entries/{entry_id}")
async def get_entry(
    entry_id: str,
    tenant_id: int = Depends(get_tenant_id),
    db: Session = Depends(get_db),
):
    return entry_to_dict(LedgerService(db).get_entry(tenant_id, entry_id))


@router.post("/entries/{entry_id}/approve")
async def approve_entry(
    entry_id: str,
    request: Request,
    request_data: Optional[DecisionRequest] = None,
    tenant_id: int = Depends(get_tenant_id),
    user_id: str = Depends(get_user_id),
    db: Session = Depends(get_db),
):
    context = audit_context(request, user_id, request_data.reason if request_data else None)
    entry = LedgerService(db).approve_entry(tenant_id, entry_id, context)
    return entry_to_dict(entry)


@router.post("/entries/{entry_id}/reject")
async def reject_entry(
    entry_id: str,
    request: Request,
    request_data: Optional[DecisionRequest] = None,
    tenant_id: int = Depends(get_tenant_id),
    user_id: str = Depends(get_user_id),
    db: Session = Depends(get_db),
):
    context = audit_context(request, user_id, request_data.reason if request_data else None)
    entry = LedgerService(db).reject_entry(tenant_id, entry_id, context)
    return entry_to_dict(entry)
