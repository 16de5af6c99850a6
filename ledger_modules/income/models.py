"""
Income Domain Models (``ledger_modules.income.models``).

Responsibility
--------------
Frozen value objects returned by ``IncomeObligationScheduler``: the read
view of an expected income, the net/tax preview shown before confirming,
and the outcome of a confirmed receipt.

Invariants enforced
-------------------
* ``net_amount + tax_amount == gross_amount`` on every preview.
* All monetary fields use ``Decimal``.
"""

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from uuid import UUID

from ledger_kernel.domain.values import CategoryClass, IncomeStatus, VaultKind
from ledger_kernel.models.obligation import IncomeObligation


@dataclass(frozen=True)
class IncomeView:
    """An expected income as shown on the agenda."""
    id: UUID
    owner_id: UUID
    title: str
    gross_amount: Decimal
    tax_percentage: Decimal
    currency: str
    category: str
    category_class: CategoryClass
    due_date: date
    status: IncomeStatus
    is_recurring: bool
    project_id: UUID | None = None

    @classmethod
    def from_model(cls, row: IncomeObligation) -> "IncomeView":
        return cls(
            id=row.id,
            owner_id=row.owner_id,
            title=row.title,
            gross_amount=row.gross_amount,
            tax_percentage=row.tax_percentage,
            currency=row.currency,
            category=row.category,
            category_class=row.category_class,
            due_date=row.due_date,
            status=IncomeStatus(row.status),
            is_recurring=row.is_recurring,
            project_id=row.project_id,
        )


@dataclass(frozen=True)
class NetPreview:
    """What confirming an income would put where."""
    gross_amount: Decimal
    tax_percentage: Decimal
    net_amount: Decimal
    tax_amount: Decimal
    net_vault: VaultKind
    currency: str

    def __post_init__(self):
        # INVARIANT: the split never creates or loses money
        if self.net_amount + self.tax_amount != self.gross_amount:
            raise ValueError(
                f"net {self.net_amount} + tax {self.tax_amount} != gross {self.gross_amount}"
            )


@dataclass(frozen=True)
class ReceiptConfirmation:
    """What one confirmed income receipt did."""
    income_id: UUID
    net_vault: VaultKind
    net_amount: Decimal
    tax_amount: Decimal
    currency: str
    cycle_date: date
    status: IncomeStatus
    next_due_date: date | None
    entry_ids: tuple[UUID, ...] = field(default_factory=tuple)
