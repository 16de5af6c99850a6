"""
Income Module (``ledger_modules.income``).

Responsibility
--------------
Confirmation of expected income with the net/tax split, and the net
preview shown before confirming.  See ``service.IncomeObligationScheduler``.
"""

from ledger_modules.income.helpers import split_gross
from ledger_modules.income.models import IncomeView, NetPreview, ReceiptConfirmation
from ledger_modules.income.service import (
    IncomeObligationScheduler,
    income_idempotency_key,
    net_preview,
)

__all__ = [
    "IncomeView",
    "NetPreview",
    "ReceiptConfirmation",
    "IncomeObligationScheduler",
    "income_idempotency_key",
    "net_preview",
    "split_gross",
]
