"""
Pure calculations for income receipts (``ledger_modules.income.helpers``).

No I/O.  Used by the scheduler and by the agenda's net preview.
"""

from decimal import Decimal

from ledger_kernel.db.types import to_money
from ledger_kernel.exceptions import ValidationError

HUNDRED = Decimal("100")


def split_gross(gross_amount: Decimal, tax_percentage: Decimal) -> tuple[Decimal, Decimal]:
    """
    Split a gross income into (net, tax).

    ``tax = gross * pct / 100`` and ``net = gross - tax``, so the two parts
    always add back to the gross exactly.

    Raises:
        ValidationError: negative gross or a percentage outside 0-100.
    """
    gross_amount = to_money(gross_amount)
    tax_percentage = to_money(tax_percentage)
    if gross_amount < 0:
        raise ValidationError("gross_amount", f"cannot be negative: {gross_amount}")
    if not (0 <= tax_percentage <= HUNDRED):
        raise ValidationError("tax_percentage", f"must be within 0-100: {tax_percentage}")
    tax = gross_amount * tax_percentage / HUNDRED
    return gross_amount - tax, tax
