"""
Ledger Modules.

Obligation workflows and read models built on the ledger kernel:

- recurring: recurring expense confirmation and passive rollover
- income: income receipt confirmation with tax isolation
- overhead: global overhead and its per-project weight
- budget: per-project budget health and the finances audit
- strategic: the owner's dashboard aggregate

Modules flush within the caller's session; ``ledger_services.api``
owns the transaction boundary.
"""

from ledger_modules import budget, income, overhead, recurring, strategic

__all__ = [
    "budget",
    "income",
    "overhead",
    "recurring",
    "strategic",
]
