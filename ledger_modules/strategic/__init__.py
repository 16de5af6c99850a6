"""
Strategic Module (``ledger_modules.strategic``).

The owner's dashboard aggregate: cash, burn, runway, due-today counters,
allocation health and the calendar section.
"""

from ledger_modules.strategic.models import AllocationHealth, StrategicSummary
from ledger_modules.strategic.service import (
    StrategicAggregator,
    allocation_health,
    portfolio_runway,
)

__all__ = [
    "AllocationHealth",
    "StrategicAggregator",
    "StrategicSummary",
    "allocation_health",
    "portfolio_runway",
]
