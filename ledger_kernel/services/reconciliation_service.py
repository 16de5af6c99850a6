"""
ReconciliationService -- balance-vs-log consistency check.

Responsibility:
    Compares every vault of an owner against its movement history:
    ``amount == carried_forward + signed sum of live ledger entries``.

Architecture position:
    Kernel > Services.  Read-only in effect, but lives with the services
    because it is the enforcement point that raises.

Invariants enforced:
    - Drift is reported, never corrected.  The kernel does not rewrite a
      balance to match the log or the other way round.

Failure modes:
    - LedgerConsistencyError for the first vault that drifts, after a
      CRITICAL log line carrying every drifting vault.
"""

from decimal import Decimal
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from ledger_kernel.db.types import ZERO
from ledger_kernel.domain.dtos import VaultReconciliation
from ledger_kernel.domain.values import VaultKind
from ledger_kernel.exceptions import LedgerConsistencyError
from ledger_kernel.logging_config import get_logger
from ledger_kernel.models.vault import VaultBalance
from ledger_kernel.selectors.ledger_selector import LedgerSelector
from ledger_kernel.services.base import BaseService

logger = get_logger("services.reconciliation")


class ReconciliationService(BaseService):
    """Detects vaults whose balance no longer matches their ledger."""

    def __init__(self, session: Session):
        super().__init__(session)
        self._ledger = LedgerSelector(session)

    def check(self, owner_id: UUID) -> tuple[VaultReconciliation, ...]:
        """Reconciliation rows for every vault that has a balance or entries."""
        self._require_owner(owner_id)

        vault_rows = self.session.execute(
            select(
                VaultBalance.vault_kind,
                VaultBalance.amount,
                VaultBalance.carried_forward,
            ).where(VaultBalance.owner_id == owner_id)
        ).all()
        balances: dict[VaultKind, tuple[Decimal, Decimal]] = {
            VaultKind(kind): (amount, carried) for kind, amount, carried in vault_rows
        }
        totals = self._ledger.signed_totals(owner_id)

        results = []
        for vault_kind in VaultKind:
            if vault_kind not in balances and vault_kind not in totals:
                continue
            amount, carried = balances.get(vault_kind, (ZERO, ZERO))
            results.append(
                VaultReconciliation(
                    vault_kind=vault_kind,
                    balance=amount,
                    carried_forward=carried,
                    ledger_total=totals.get(vault_kind, ZERO),
                )
            )
        return tuple(results)

    def reconcile(self, owner_id: UUID) -> tuple[VaultReconciliation, ...]:
        """
        Check every vault and raise on drift.

        Raises:
            LedgerConsistencyError: a vault's balance differs from its log.
        """
        results = self.check(owner_id)
        drifting = [r for r in results if not r.is_consistent]
        if not drifting:
            logger.info(
                "ledger_reconciled",
                extra={"vault_count": len(results)},
            )
            return results

        logger.critical(
            "ledger_consistency_alert",
            extra={
                "drifting_vaults": [
                    {
                        "vault_kind": r.vault_kind.value,
                        "balance": str(r.balance),
                        "expected": str(r.expected_balance),
                        "drift": str(r.drift),
                    }
                    for r in drifting
                ],
            },
        )
        first = drifting[0]
        raise LedgerConsistencyError(
            owner_id=str(owner_id),
            vault_kind=first.vault_kind.value,
            balance=first.balance,
            ledger_total=first.expected_balance,
        )
