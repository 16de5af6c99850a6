"""
Recurring Expense Module (``ledger_modules.recurring``).

Responsibility
--------------
Confirmation of recurring expense payments and passive rollover of stale
renewal dates.  See ``service.RecurringObligationScheduler``.
"""

from ledger_modules.recurring.models import ExpenseView, PaymentConfirmation, RolloverOutcome
from ledger_modules.recurring.service import (
    RecurringObligationScheduler,
    expense_idempotency_key,
)

__all__ = [
    "ExpenseView",
    "PaymentConfirmation",
    "RolloverOutcome",
    "RecurringObligationScheduler",
    "expense_idempotency_key",
]
