"""
Recurring Expense Domain Models (``ledger_modules.recurring.models``).

Responsibility
--------------
Frozen value objects returned by ``RecurringObligationScheduler``: the read
view of an expense obligation, the outcome of a confirmed payment and the
outcome of a passive rollover.

Architecture position
---------------------
**Modules layer** -- pure data definitions.  ``from_model`` converters are
the only place that touches the ORM row.

Invariants enforced
-------------------
* All monetary fields use ``Decimal``.
* ``PaymentConfirmation.next_renewal_date`` is exactly one calendar month
  after ``cycle_date``.
"""

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from uuid import UUID

from ledger_kernel.domain.values import CategoryClass, VaultKind
from ledger_kernel.models.obligation import ExpenseObligation


@dataclass(frozen=True)
class ExpenseView:
    """An expense obligation as shown on the agenda."""
    id: UUID
    owner_id: UUID
    title: str
    cost: Decimal
    currency: str
    category: str
    category_class: CategoryClass
    renewal_date: date
    active: bool
    project_id: UUID | None = None

    @classmethod
    def from_model(cls, row: ExpenseObligation) -> "ExpenseView":
        return cls(
            id=row.id,
            owner_id=row.owner_id,
            title=row.title,
            cost=row.cost,
            currency=row.currency,
            category=row.category,
            category_class=row.category_class,
            renewal_date=row.renewal_date,
            active=row.active,
            project_id=row.project_id,
        )


@dataclass(frozen=True)
class PaymentConfirmation:
    """What one confirmed expense payment did.

    ``entry_id`` and ``new_balance`` are None for a zero-cost obligation:
    the cycle advances but no money moves.
    """
    obligation_id: UUID
    vault_kind: VaultKind
    amount: Decimal
    currency: str
    cycle_date: date
    next_renewal_date: date
    entry_id: UUID | None
    new_balance: Decimal | None


@dataclass(frozen=True)
class RolloverOutcome:
    """Result of rolling one stale renewal date forward."""
    obligation_id: UUID
    previous_date: date
    renewal_date: date
    months_advanced: int

    @property
    def changed(self) -> bool:
        return self.months_advanced > 0
