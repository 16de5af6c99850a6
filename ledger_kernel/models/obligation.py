"""
Module: ledger_kernel.models.obligation
Responsibility: ORM persistence for recurring expense obligations and for
    expected income.
Architecture position: Kernel > Models.  May import from db/ and domain/
    values only.

Invariants enforced:
    - cost and gross_amount are non-negative (check constraints).
    - tax_percentage lies in [0, 100] (ck_income_tax_percentage).
    - Obligations are soft-retired (``active`` / ``status``), never deleted
      by the ledger.

Failure modes:
    - IntegrityError when a check constraint is violated on flush.
"""

from datetime import date
from decimal import Decimal
from uuid import UUID

from sqlalchemy import Boolean, CheckConstraint, Date, ForeignKey, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from ledger_kernel.db.base import TrackedBase
from ledger_kernel.domain.values import CategoryClass, IncomeStatus


class ExpenseObligation(TrackedBase):
    """
    A recurring monthly cost (subscription, rent, tooling).

    Contract:
        ``renewal_date`` is the next date the cost falls due.  Confirming a
        payment advances it by exactly one calendar month; reading the
        agenda rolls stale dates forward without touching any vault.

    Guarantees:
        - ``category`` is kept verbatim as a display label; routing goes
          through ``category_class``.
        - ``project_id`` NULL means the cost is shared overhead, unless the
          category is life/personal.
    """

    __tablename__ = "expense_obligations"

    __table_args__ = (
        CheckConstraint("cost >= 0", name="ck_expense_cost_non_negative"),
        Index("idx_expense_owner_active", "owner_id", "active"),
        Index("idx_expense_project", "project_id"),
    )

    owner_id: Mapped[UUID] = mapped_column(ForeignKey("owners.id"), nullable=False)

    project_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("projects.id"),
        nullable=True,
    )

    title: Mapped[str] = mapped_column(String(255), nullable=False)

    cost: Mapped[Decimal] = mapped_column(nullable=False)

    currency: Mapped[str] = mapped_column(String(3), nullable=False)

    category: Mapped[str] = mapped_column(String(100), nullable=False, default="")

    renewal_date: Mapped[date] = mapped_column(Date, nullable=False)

    active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    @property
    def category_class(self) -> CategoryClass:
        return CategoryClass.from_label(self.category)

    def __repr__(self) -> str:
        return f"<ExpenseObligation {self.title}: {self.cost} {self.currency} due {self.renewal_date}>"


class IncomeObligation(TrackedBase):
    """
    An expected payment to the owner, one-off or monthly.

    Contract:
        Confirming a receipt splits the gross into net and tax.  Recurring
        income advances ``due_date`` by one month and stays EXPECTED;
        one-off income becomes RECEIVED, which is terminal.

    Non-goals:
        - No catch-up roll on read: a stale recurring due date stays put
          until it is confirmed.
    """

    __tablename__ = "income_obligations"

    __table_args__ = (
        CheckConstraint("gross_amount >= 0", name="ck_income_gross_non_negative"),
        CheckConstraint(
            "tax_percentage >= 0 AND tax_percentage <= 100",
            name="ck_income_tax_percentage",
        ),
        Index("idx_income_owner_status", "owner_id", "status"),
    )

    owner_id: Mapped[UUID] = mapped_column(ForeignKey("owners.id"), nullable=False)

    project_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("projects.id"),
        nullable=True,
    )

    title: Mapped[str] = mapped_column(String(255), nullable=False)

    gross_amount: Mapped[Decimal] = mapped_column(nullable=False)

    tax_percentage: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("0"))

    currency: Mapped[str] = mapped_column(String(3), nullable=False)

    category: Mapped[str] = mapped_column(String(100), nullable=False, default="")

    due_date: Mapped[date] = mapped_column(Date, nullable=False)

    status: Mapped[IncomeStatus] = mapped_column(
        String(20),
        nullable=False,
        default=IncomeStatus.EXPECTED,
    )

    is_recurring: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    @property
    def category_class(self) -> CategoryClass:
        return CategoryClass.from_label(self.category)

    def __repr__(self) -> str:
        return f"<IncomeObligation {self.title}: {self.gross_amount} {self.currency} due {self.due_date}>"
