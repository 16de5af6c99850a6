"""
Budget Health Domain Models (``ledger_modules.budget.models``).

Responsibility
--------------
Frozen value objects for per-project budget consumption, the runway
estimate, and the finances audit summary.

Invariants enforced
-------------------
* ``total_consumed == direct_expenses + labor_cost``.
* ``remaining_budget == initial_budget - total_consumed``.
* ``burn_percentage`` lies in [0, 100].
* An unbounded runway is a distinct value, never ``inf`` or a division
  error; it serializes as the string ``"unbounded"``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from uuid import UUID

UNBOUNDED = "unbounded"


@dataclass(frozen=True)
class Runway:
    """Months of budget left at the current monthly burn.

    ``months`` is None when nothing burns the budget.
    """
    months: Decimal | None

    @classmethod
    def unbounded(cls) -> Runway:
        return cls(months=None)

    @property
    def is_unbounded(self) -> bool:
        return self.months is None

    def to_json(self) -> str:
        return UNBOUNDED if self.months is None else str(self.months)

    def __str__(self) -> str:
        return self.to_json()


@dataclass(frozen=True)
class BudgetHealth:
    """Budget consumption of one project."""
    project_id: UUID
    initial_budget: Decimal
    direct_expenses: Decimal
    labor_cost: Decimal
    total_consumed: Decimal
    remaining_budget: Decimal
    burn_percentage: Decimal
    is_depleted: bool
    overhead_weight: Decimal
    runway: Runway
    currency: str = "EUR"

    def __post_init__(self):
        # INVARIANT: consumption is the sum of its parts
        if self.total_consumed != self.direct_expenses + self.labor_cost:
            raise ValueError("total_consumed must equal direct_expenses + labor_cost")
        if not (0 <= self.burn_percentage <= 100):
            raise ValueError(f"burn_percentage out of range: {self.burn_percentage}")


@dataclass(frozen=True)
class ProjectBudgetLine:
    """One row of the finances audit breakdown."""
    project_id: UUID
    title: str
    budget: Decimal
    currency: str
    status: str


@dataclass(frozen=True)
class FinancesAudit:
    """Tax set aside so far and the budget promised to each live project."""
    total_tax_isolated: Decimal
    projects: tuple[ProjectBudgetLine, ...] = field(default_factory=tuple)

    @property
    def total_allocated(self) -> Decimal:
        return sum((p.budget for p in self.projects), Decimal("0"))
