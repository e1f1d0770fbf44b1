"""Tests for the audit trail."""

from datetime import datetime, timedelta

import pytest

from ponto_api.ledger.audit import AuditService
from ponto_api.ledger.errors import AuditLogFailure
from ponto_api.ledger.types import AuditAction, AuditContext


def test_log_action_hashes_and_persists(db, test_tenant, audit_context):
    service = AuditService(db)
    entry = service.log_action(
        test_tenant.id,
        "entry-1",
        1,
        AuditAction.CREATE,
        audit_context,
        new_values={"totalHours": "8.00", "at": datetime(2024, 3, 4, 8, 0)},
    )
    db.commit()

    assert entry.id is not None
    assert len(entry.audit_hash) == 64
    assert entry.performed_by == "manager-1"
    assert entry.new_values == {"totalHours": "8.00", "at": "2024-03-04T08:00:00"}
    assert entry.is_system_generated is False
    assert AuditService.verify_entry(entry)


def test_modified_audit_entry_fails_verification(db, test_tenant, audit_context):
    entry = AuditService(db).log_action(
        test_tenant.id, "entry-1", 1, AuditAction.APPROVE, audit_context, old_values={"status": "pending"}
    )
    db.commit()

    entry.performed_by = "someone-else"
    assert not AuditService.verify_entry(entry)


def test_unknown_action_raises_audit_failure(db, test_tenant, audit_context):
    with pytest.raises(AuditLogFailure):
        AuditService(db).log_action(test_tenant.id, "entry-1", 1, "PURGE", audit_context)


def test_unserializable_values_raise_audit_failure(db, test_tenant, audit_context):
    with pytest.raises(AuditLogFailure):
        AuditService(db).log_action(
            test_tenant.id, "entry-1", 1, AuditAction.UPDATE, audit_context, new_values={"x": object()}
        )


def test_list_entries_filters_and_paginates(db, test_tenant, other_tenant):
    service = AuditService(db)
    for nsr in range(1, 6):
        service.log_action(test_tenant.id, f"entry-{nsr}", nsr, AuditAction.CREATE, AuditContext(performed_by="u1"))
    service.log_action(test_tenant.id, "entry-1", 1, AuditAction.APPROVE, AuditContext(performed_by="u2"))
    service.log_action(other_tenant.id, "entry-x", 1, AuditAction.CREATE, AuditContext(performed_by="u1"))
    db.commit()

    items, total = service.list_entries(test_tenant.id, page=1, limit=4)
    assert total == 6
    assert len(items) == 4

    items, total = service.list_entries(test_tenant.id, page=2, limit=4)
    assert len(items) == 2

    items, total = service.list_entries(test_tenant.id, performed_by="u2")
    assert total == 1
    assert items[0].action == "APPROVE"

    items, total = service.list_entries(test_tenant.id, action="CREATE")
    assert total == 5

    future = datetime.utcnow() + timedelta(days=1)
    assert service.list_entries(test_tenant.id, start_date=future)[1] == 0
