"""
Pure domain layer.

Value vocabulary, calendar-month arithmetic, the injectable clock and the
kernel DTOs.  No ORM, no database, no I/O (SystemClock excepted).
"""

from ledger_kernel.domain.calendar_math import add_months, add_one_month, roll_forward
from ledger_kernel.domain.clock import Clock, DeterministicClock, SystemClock
from ledger_kernel.domain.dtos import (
    CalendarEvent,
    CalendarSection,
    LedgerEntryView,
    LedgerFilters,
    LedgerPage,
    VaultBalances,
    VaultReconciliation,
)
from ledger_kernel.domain.values import (
    Capability,
    CategoryClass,
    Direction,
    IncomeStatus,
    LaborLogStatus,
    ProjectStatus,
    SourceKind,
    VaultKind,
    expense_vault_for,
    income_vault_for,
)

__all__ = [
    "add_months",
    "add_one_month",
    "roll_forward",
    "Clock",
    "DeterministicClock",
    "SystemClock",
    "CalendarEvent",
    "CalendarSection",
    "LedgerEntryView",
    "LedgerFilters",
    "LedgerPage",
    "VaultBalances",
    "VaultReconciliation",
    "Capability",
    "CategoryClass",
    "Direction",
    "IncomeStatus",
    "LaborLogStatus",
    "ProjectStatus",
    "SourceKind",
    "VaultKind",
    "expense_vault_for",
    "income_vault_for",
]
