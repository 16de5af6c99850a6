"""
Strategic Summary Models (``ledger_modules.strategic.models``).

Invariants enforced
-------------------
* ``free_cash == total_cash - total_allocated``.
* ``is_over_allocated`` iff ``total_allocated > total_cash``.
* ``portfolio_runway`` is 0 when nothing burns; never infinite.
* ``currencies`` lists every currency behind the cash and burn figures;
  when it holds more than one, those figures are plain sums across
  currencies and ``is_mixed_currency`` is set.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal

from ledger_kernel.domain.dtos import CalendarSection


@dataclass(frozen=True)
class AllocationHealth:
    """Budgets promised to live projects against the cash on hand."""
    total_cash: Decimal
    total_allocated: Decimal
    free_cash: Decimal
    is_over_allocated: bool
    utilization_rate: Decimal

    def __post_init__(self):
        if self.free_cash != self.total_cash - self.total_allocated:
            raise ValueError("free_cash must equal total_cash - total_allocated")


@dataclass(frozen=True)
class StrategicSummary:
    total_cash: Decimal
    business_burn: Decimal
    personal_burn: Decimal
    portfolio_runway: Decimal
    stale_project_count: int
    obligations_due_today: int
    tasks_due_today: int
    unassigned_task_count: int
    active_project_count: int
    allocation: AllocationHealth
    calendar: CalendarSection = field(default_factory=CalendarSection)
    currencies: frozenset[str] = frozenset()

    @property
    def total_burn(self) -> Decimal:
        return self.business_burn + self.personal_burn

    @property
    def is_mixed_currency(self) -> bool:
        return len(self.currencies) > 1
