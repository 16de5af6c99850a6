"""
AdjustmentService -- owner-entered "set my cash to X".

Responsibility:
    Lets the owner correct a vault to a counted amount without breaking the
    balance-vs-log invariant: the difference is moved through
    VaultStore.adjust and recorded as one MANUAL ledger entry.

Architecture position:
    Kernel > Services.  Composes VaultStore and LedgerService in the
    caller's transaction.

Invariants enforced:
    - The vault row is locked while the difference is computed, so a
      concurrent confirmation cannot slip between the read and the adjust.
    - A zero difference writes nothing.
"""

from dataclasses import dataclass
from decimal import Decimal
from uuid import UUID

from sqlalchemy.orm import Session

from ledger_kernel.db.types import to_money
from ledger_kernel.domain.clock import Clock, SystemClock
from ledger_kernel.domain.values import Direction, SourceKind, VaultKind
from ledger_kernel.logging_config import get_logger
from ledger_kernel.services.base import BaseService
from ledger_kernel.services.ledger_service import LedgerService
from ledger_kernel.services.vault_store import VaultStore

logger = get_logger("services.adjustment")


@dataclass(frozen=True)
class AdjustmentOutcome:
    vault_kind: VaultKind
    previous_balance: Decimal
    new_balance: Decimal
    entry_id: UUID | None

    @property
    def difference(self) -> Decimal:
        return self.new_balance - self.previous_balance


class AdjustmentService(BaseService):
    """Manual balance correction through the ledger."""

    def __init__(self, session: Session, clock: Clock | None = None):
        super().__init__(session)
        self._vaults = VaultStore(session)
        self._ledger = LedgerService(session, clock or SystemClock())

    def set_balance(
        self,
        owner_id: UUID,
        vault_kind: VaultKind,
        new_amount: Decimal,
        currency: str,
        description: str = "Manual balance adjustment",
    ) -> AdjustmentOutcome:
        new_amount = to_money(new_amount)
        self._require_owner(owner_id)

        previous = self._vaults.lock_vault(owner_id, vault_kind)
        difference = new_amount - previous
        if difference == 0:
            return AdjustmentOutcome(vault_kind, previous, previous, None)

        balance = self._vaults.adjust(owner_id, vault_kind, difference, currency)
        entry_id = self._ledger.append(
            owner_id=owner_id,
            vault_kind=vault_kind,
            amount=abs(difference),
            direction=Direction.IN if difference > 0 else Direction.OUT,
            currency=currency,
            description=description,
            source_kind=SourceKind.MANUAL,
        )
        logger.info(
            "manual_adjustment_recorded",
            extra={
                "vault_kind": vault_kind.value,
                "previous_balance": str(previous),
                "new_balance": str(balance),
                "entry_id": str(entry_id),
            },
        )
        return AdjustmentOutcome(vault_kind, previous, balance, entry_id)
