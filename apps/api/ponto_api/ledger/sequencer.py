"""NSR (Número Sequencial de Registro) issuance per tenant."""

import logging
from datetime import datetime
from typing import Optional

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from ponto_api.ledger.errors import SequenceError
from ponto_api.models import NsrSequence
from ponto_api.utils.metrics import nsr_issue_failures

logger = logging.getLogger(__name__)


class NsrSequencer:
    """Strictly increasing NSR counter backed by the tenant's sequence row.

    The increment is a single UPDATE, so the row stays locked until the
    caller's transaction ends. Everything the caller does after next_nsr()
    in the same transaction is therefore serialized per tenant.
    """

    def __init__(self, db: Session):
        """Initialize sequencer."""
        self.db = db

    def next_nsr(self, tenant_id: int) -> int:
        """Issue the next NSR for a tenant. Caller owns the commit."""
        try:
            nsr = self._increment(tenant_id)
        except SQLAlchemyError as e:
            nsr_issue_failures.inc()
            logger.error(f"Failed to issue NSR: {e}", extra={"tenant_id": tenant_id})
            raise SequenceError(f"Falha ao gerar NSR sequencial para tenant {tenant_id}") from e

        logger.debug("NSR issued", extra={"tenant_id": tenant_id, "nsr": nsr})
        return nsr

    def _increment(self, tenant_id: int) -> int:
        now = datetime.utcnow()
        if self._bump(tenant_id, now):
            return self._read(tenant_id)

        try:
            with self.db.begin_nested():
                self.db.add(NsrSequence(tenant_id=tenant_id, current_nsr=1, last_updated=now))
            return 1
        except IntegrityError:
            # Another writer created the row between our UPDATE and INSERT
            if not self._bump(tenant_id, now):
                raise
            return self._read(tenant_id)

    def _bump(self, tenant_id: int, now: datetime) -> int:
        return (
            self.db.query(NsrSequence)
            .filter(NsrSequence.tenant_id == tenant_id)
            .update(
                {
                    NsrSequence.current_nsr: NsrSequence.current_nsr + 1,
                    NsrSequence.last_updated: now,
                },
                synchronize_session=False,
            )
        )

    def _read(self, tenant_id: int) -> int:
        return (
            self.db.query(NsrSequence.current_nsr)
            .filter(NsrSequence.tenant_id == tenant_id)
            .scalar()
        )

    def current_nsr(self, tenant_id: int) -> int:
        """Return the last issued NSR, 0 if none."""
        value = self._read(tenant_id)
        return value or 0

    def lock_tenant(self, tenant_id: int) -> Optional[NsrSequence]:
        """Take the tenant's sequence row with FOR UPDATE, excluding concurrent writers."""
        return (
            self.db.query(NsrSequence)
            .filter(NsrSequence.tenant_id == tenant_id)
            .with_for_update()
            .one_or_none()
        )

    def ensure_at_least(self, tenant_id: int, nsr: int) -> int:
        """Raise the counter to nsr if it is lower. Never lowers it."""
        now = datetime.utcnow()
        sequence = self.db.query(NsrSequence).filter(NsrSequence.tenant_id == tenant_id).one_or_none()
        if sequence is None:
            sequence = NsrSequence(tenant_id=tenant_id, current_nsr=nsr, last_updated=now)
            self.db.add(sequence)
            self.db.flush()
            logger.warning("NSR sequence recreated", extra={"tenant_id": tenant_id, "nsr": nsr})
        elif sequence.current_nsr < nsr:
            logger.warning(
                f"NSR sequence behind ledger: {sequence.current_nsr} < {nsr}",
                extra={"tenant_id": tenant_id},
            )
            sequence.current_nsr = nsr
            sequence.last_updated = now
            self.db.flush()
        return sequence.current_nsr
