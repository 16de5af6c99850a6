"""
Budget Module (``ledger_modules.budget``).

Per-project budget health, runway and the finances audit.
"""

from ledger_modules.budget.models import (
    UNBOUNDED,
    BudgetHealth,
    FinancesAudit,
    ProjectBudgetLine,
    Runway,
)
from ledger_modules.budget.service import BudgetHealthCalculator

__all__ = [
    "UNBOUNDED",
    "BudgetHealth",
    "BudgetHealthCalculator",
    "FinancesAudit",
    "ProjectBudgetLine",
    "Runway",
]
