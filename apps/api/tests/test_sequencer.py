"""Tests for per-tenant NSR issuance."""

import threading
from unittest.mock import patch

import pytest
from sqlalchemy import create_engine
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session, sessionmaker

from ponto_api.db.base import Base
from ponto_api.ledger.errors import SequenceError
from ponto_api.ledger.sequencer import NsrSequencer
from ponto_api.models import NsrSequence, Tenant


def test_first_nsr_is_one(db: Session, test_tenant: Tenant):
    """A tenant without a sequence row starts at 1."""
    sequencer = NsrSequencer(db)
    assert sequencer.current_nsr(test_tenant.id) == 0

    assert sequencer.next_nsr(test_tenant.id) == 1
    db.commit()

    assert sequencer.current_nsr(test_tenant.id) == 1


def test_nsr_strictly_increasing(db: Session, test_tenant: Tenant):
    sequencer = NsrSequencer(db)
    issued = []
    for _ in range(5):
        issued.append(sequencer.next_nsr(test_tenant.id))
        db.commit()

    assert issued == [1, 2, 3, 4, 5]


def test_sequences_are_independent_per_tenant(db: Session, test_tenant: Tenant, other_tenant: Tenant):
    sequencer = NsrSequencer(db)
    sequencer.next_nsr(test_tenant.id)
    sequencer.next_nsr(test_tenant.id)
    db.commit()

    assert sequencer.next_nsr(other_tenant.id) == 1
    assert sequencer.next_nsr(test_tenant.id) == 3


def test_rolled_back_increment_is_not_issued(db: Session, test_tenant: Tenant):
    """Without a commit the increment does not survive."""
    sequencer = NsrSequencer(db)
    sequencer.next_nsr(test_tenant.id)
    db.commit()

    sequencer.next_nsr(test_tenant.id)
    db.rollback()

    assert sequencer.next_nsr(test_tenant.id) == 2


def test_database_failure_raises_sequence_error(db: Session, test_tenant: Tenant):
    sequencer = NsrSequencer(db)
    with patch.object(NsrSequencer, "_bump", side_effect=OperationalError("UPDATE", {}, Exception("locked"))):
        with pytest.raises(SequenceError):
            sequencer.next_nsr(test_tenant.id)


def test_ensure_at_least_never_lowers(db: Session, test_tenant: Tenant):
    sequencer = NsrSequencer(db)
    for _ in range(3):
        sequencer.next_nsr(test_tenant.id)
    db.commit()

    assert sequencer.ensure_at_least(test_tenant.id, 2) == 3
    assert sequencer.ensure_at_least(test_tenant.id, 7) == 7
    db.commit()

    assert sequencer.next_nsr(test_tenant.id) == 8


def test_ensure_at_least_recreates_missing_row(db: Session, test_tenant: Tenant):
    sequencer = NsrSequencer(db)
    assert sequencer.ensure_at_least(test_tenant.id, 4) == 4
    db.commit()

    assert db.query(NsrSequence).filter(NsrSequence.tenant_id == test_tenant.id).one().current_nsr == 4


def test_concurrent_issuance_has_no_duplicates_or_gaps(tmp_path):
    """Parallel writers on a file database never receive the same NSR."""
    engine = create_engine(
        f"sqlite:///{tmp_path / 'nsr.db'}",
        connect_args={"check_same_thread": False, "timeout": 30},
    )
    Base.metadata.create_all(engine)
    factory = sessionmaker(autocommit=False, autoflush=False, bind=engine)

    setup = factory()
    tenant = Tenant(label="concurrent", status="active")
    setup.add(tenant)
    setup.flush()
    setup.add(NsrSequence(tenant_id=tenant.id, current_nsr=0))
    setup.commit()
    tenant_id = tenant.id
    setup.close()

    threads_count, per_thread = 6, 10
    issued = []
    errors = []
    lock = threading.Lock()

    def worker():
        session = factory()
        try:
            sequencer = NsrSequencer(session)
            for _ in range(per_thread):
                nsr = sequencer.next_nsr(tenant_id)
                session.commit()
                with lock:
                    issued.append(nsr)
        except Exception as e:  # noqa: BLE001
            with lock:
                errors.append(e)
        finally:
            session.close()

    threads = [threading.Thread(target=worker) for _ in range(threads_count)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()
    engine.dispose()

    assert not errors
    assert sorted(issued) == list(range(1, threads_count * per_thread + 1))
