"""
VaultStore -- per-owner balances with storage-level atomic adjustment.

Responsibility:
    Holds the current balance of each (owner, vault kind) and moves it by a
    signed delta.  This is the only writer of ``VaultBalance.amount``.

Architecture position:
    Kernel > Services -- imperative shell.  Called by the recurring and
    income schedulers and by the manual adjustment path, always in the same
    transaction as the matching LedgerService.append.

Invariants enforced:
    - Atomic increment: ``adjust`` issues a single
      ``UPDATE vault_balances SET amount = amount + :delta``.  It never reads
      the balance into Python and writes it back, so concurrent
      confirmations cannot lose an update.
    - Lazy creation: the first movement into a vault inserts its row inside
      a savepoint.  A concurrent insert of the same (owner, vault) surfaces
      as IntegrityError; the savepoint is rolled back and the increment is
      retried against the row the other transaction created.
    - One currency per vault: the first movement fixes the vault's
      currency; a later movement in another currency is refused.

Failure modes:
    - OwnerNotFoundError for an unknown owner (nothing is written).
    - InvalidCurrencyError for a currency that is not ISO 4217.
    - CurrencyMismatchError for a movement in a currency other than the
      vault's (nothing is written).
"""

from decimal import Decimal
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError

from ledger_kernel.db.types import ZERO, to_money, validate_currency
from ledger_kernel.domain.dtos import VaultBalances
from ledger_kernel.domain.values import VaultKind
from ledger_kernel.exceptions import CurrencyMismatchError
from ledger_kernel.logging_config import get_logger
from ledger_kernel.models.vault import VaultBalance
from ledger_kernel.services.base import BaseService

logger = get_logger("services.vault_store")


class VaultStore(BaseService):
    """
    Current balances of an owner's business, personal and tax-reserve vaults.

    Contract:
        ``get_balances`` never creates rows; missing vaults read as zero.
        ``adjust`` returns the balance as it stands inside the caller's
        transaction after the increment.

    Non-goals:
        - Does NOT write ledger entries.  Pairing every adjust with an
          append is the caller's job.
        - Does NOT convert currencies.
    """

    def get_balances(self, owner_id: UUID) -> VaultBalances:
        """Balances of all three vaults.  Unknown owner -> OwnerNotFoundError."""
        self._require_owner(owner_id)
        rows = self.session.execute(
            select(VaultBalance.vault_kind, VaultBalance.amount, VaultBalance.currency)
            .where(VaultBalance.owner_id == owner_id)
        ).all()
        amounts = {VaultKind(kind): amount for kind, amount, _ in rows}
        return VaultBalances(
            owner_id=owner_id,
            business=amounts.get(VaultKind.BUSINESS, ZERO),
            personal=amounts.get(VaultKind.PERSONAL, ZERO),
            tax_reserve=amounts.get(VaultKind.TAX_RESERVE, ZERO),
            currencies={VaultKind(kind): currency for kind, _, currency in rows},
        )

    def get_balance(self, owner_id: UUID, vault_kind: VaultKind) -> Decimal:
        amount = self.session.execute(
            select(VaultBalance.amount).where(
                VaultBalance.owner_id == owner_id,
                VaultBalance.vault_kind == vault_kind.value,
            )
        ).scalar_one_or_none()
        return ZERO if amount is None else amount

    def lock_vault(self, owner_id: UUID, vault_kind: VaultKind) -> Decimal:
        """Read a vault's balance holding its row lock until commit."""
        amount = self.session.execute(
            select(VaultBalance.amount)
            .where(
                VaultBalance.owner_id == owner_id,
                VaultBalance.vault_kind == vault_kind.value,
            )
            .with_for_update()
        ).scalar_one_or_none()
        return ZERO if amount is None else amount

    def adjust(
        self,
        owner_id: UUID,
        vault_kind: VaultKind,
        delta: Decimal,
        currency: str,
    ) -> Decimal:
        """
        Move a vault by ``delta`` (positive credits, negative debits).

        Preconditions:
            - ``delta`` is a Decimal (floats are rejected).
            - The caller holds an open transaction.
        Postconditions:
            - The vault row exists and its amount grew by exactly ``delta``.

        Returns:
            The new balance.

        Raises:
            CurrencyMismatchError: the vault already holds another currency.
        """
        delta = to_money(delta)
        currency = validate_currency(currency)
        self._require_owner(owner_id)

        if not self._increment(owner_id, vault_kind, delta, currency):
            self._refuse_other_currency(owner_id, vault_kind, currency)
            savepoint = self.session.begin_nested()
            try:
                self.session.add(
                    VaultBalance(
                        owner_id=owner_id,
                        vault_kind=vault_kind.value,
                        amount=delta,
                        currency=currency,
                    )
                )
                self.session.flush()
                savepoint.commit()
                logger.info(
                    "vault_created",
                    extra={
                        "owner_id": str(owner_id),
                        "vault_kind": vault_kind.value,
                        "currency": currency,
                    },
                )
            except IntegrityError:
                logger.debug(
                    "vault_creation_race_retry",
                    extra={"owner_id": str(owner_id), "vault_kind": vault_kind.value},
                )
                savepoint.rollback()
                if not self._increment(owner_id, vault_kind, delta, currency):
                    self._refuse_other_currency(owner_id, vault_kind, currency)
                    raise

        new_balance = self.get_balance(owner_id, vault_kind)
        logger.info(
            "vault_adjusted",
            extra={
                "owner_id": str(owner_id),
                "vault_kind": vault_kind.value,
                "delta": str(delta),
                "new_balance": str(new_balance),
            },
        )
        return new_balance

    def carry_forward(self, owner_id: UUID, vault_kind: VaultKind, signed_total: Decimal) -> None:
        """Record the signed total of purged ledger entries on the vault row."""
        self.session.execute(
            update(VaultBalance)
            .where(
                VaultBalance.owner_id == owner_id,
                VaultBalance.vault_kind == vault_kind.value,
            )
            .values(carried_forward=VaultBalance.carried_forward + signed_total)
            .execution_options(synchronize_session=False)
        )

    def _increment(
        self, owner_id: UUID, vault_kind: VaultKind, delta: Decimal, currency: str
    ) -> bool:
        result = self.session.execute(
            update(VaultBalance)
            .where(
                VaultBalance.owner_id == owner_id,
                VaultBalance.vault_kind == vault_kind.value,
                VaultBalance.currency == currency,
            )
            .values(amount=VaultBalance.amount + delta)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount > 0

    def _refuse_other_currency(self, owner_id: UUID, vault_kind: VaultKind, currency: str) -> None:
        held = self.session.execute(
            select(VaultBalance.currency).where(
                VaultBalance.owner_id == owner_id,
                VaultBalance.vault_kind == vault_kind.value,
            )
        ).scalar_one_or_none()
        if held is not None and held != currency:
            logger.warning(
                "vault_currency_mismatch",
                extra={
                    "owner_id": str(owner_id),
                    "vault_kind": vault_kind.value,
                    "vault_currency": held,
                    "currency": currency,
                },
            )
            raise CurrencyMismatchError(vault_kind.value, held, currency)
