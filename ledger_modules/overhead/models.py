"""
Overhead Domain Models (``ledger_modules.overhead.models``).

Invariants enforced
-------------------
* ``per_project_weight == total_overhead / active_project_count`` when the
  count is positive, else exactly zero.
"""

from dataclasses import dataclass
from decimal import Decimal


@dataclass(frozen=True)
class OverheadAllocation:
    """Shared business costs spread evenly over the owner's live projects."""
    total_overhead: Decimal
    per_project_weight: Decimal
    active_project_count: int

    def __post_init__(self):
        if self.active_project_count < 0:
            raise ValueError("active_project_count cannot be negative")
        if self.active_project_count == 0 and self.per_project_weight != 0:
            raise ValueError("per_project_weight must be 0 without active projects")
