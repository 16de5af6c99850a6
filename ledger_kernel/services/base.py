"""
BaseService -- abstract base for all kernel services.

Responsibility:
    Provides the common constructor, session-handling contract and owner
    scoping used by every service in the kernel layer.  Concrete services
    receive a SQLAlchemy ``Session`` that they use via ``session.flush()``
    -- never ``session.commit()``.

Architecture position:
    Kernel > Services -- imperative shell infrastructure.

Invariants enforced:
    - Transaction boundaries: services flush within the caller's
      transaction and never commit or rollback themselves.  The caller
      (LedgerApi or a test) owns commit/rollback, so a confirmation's vault
      adjustment, ledger append and obligation advance land together or not
      at all.
    - Owner scoping: OWNER-capability access to another owner's row raises
      UnauthorizedError.

Failure modes:
    - OwnerNotFoundError from ``_require_owner`` for an unknown owner id.
    - UnauthorizedError from ``_check_access``.
"""

from abc import ABC
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from ledger_kernel.domain.values import Capability
from ledger_kernel.exceptions import OwnerNotFoundError, UnauthorizedError
from ledger_kernel.models.owner import Owner


class BaseService(ABC):
    """
    Abstract base class for all kernel services.

    Contract:
        Accepts a SQLAlchemy ``Session`` from the caller and uses
        ``session.flush()`` to persist changes within the active
        transaction.

    Non-goals:
        - Does NOT manage transaction lifecycle (commit/rollback).
        - Does NOT provide query-only (read) methods -- those belong
          in ``ledger_kernel/selectors/``.
    """

    def __init__(self, session: Session):
        self.session = session

    def _require_owner(self, owner_id: UUID | None) -> UUID:
        """Return ``owner_id`` if it names an existing owner."""
        if owner_id is None:
            raise UnauthorizedError(None)
        found = self.session.execute(
            select(Owner.id).where(Owner.id == owner_id)
        ).scalar_one_or_none()
        if found is None:
            raise OwnerNotFoundError(str(owner_id))
        return owner_id

    @staticmethod
    def _check_access(
        row_owner_id: UUID,
        owner_id: UUID,
        capability: Capability,
        resource: str,
    ) -> None:
        if capability is Capability.SERVICE:
            return
        if row_owner_id != owner_id:
            raise UnauthorizedError(str(owner_id), resource)
