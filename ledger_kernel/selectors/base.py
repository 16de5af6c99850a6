"""
Module: ledger_kernel.selectors.base
Responsibility: Abstract base class for all read-only query selectors.
    Selectors form the "Q" side of the CQRS-lite split: structured read
    access to balances, movements and obligations without mutation.
Architecture position: Kernel > Selectors.  May import from db/, domain/
    and models/.  MUST NOT import from services/ or outer layers.

Invariants enforced:
    - Read-only access: selectors never call session.add(), delete(),
      commit() or flush().
    - DTO return convention: selectors return frozen dataclasses, not ORM
      instances.
"""

from abc import ABC
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from ledger_kernel.exceptions import OwnerNotFoundError, UnauthorizedError
from ledger_kernel.models.owner import Owner


class BaseSelector(ABC):
    """
    Abstract base class for all selectors.

    Contract:
        Selectors accept a Session from the caller, perform read-only
        queries, and return DTOs or computed results.
    """

    def __init__(self, session: Session):
        self.session = session

    def _require_owner(self, owner_id: UUID | None) -> UUID:
        if owner_id is None:
            raise UnauthorizedError(None)
        found = self.session.execute(
            select(Owner.id).where(Owner.id == owner_id)
        ).scalar_one_or_none()
        if found is None:
            raise OwnerNotFoundError(str(owner_id))
        return owner_id
