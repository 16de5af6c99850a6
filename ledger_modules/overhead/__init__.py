"""
Overhead Module (``ledger_modules.overhead``).

Global overhead and its even allocation over non-archived projects.
"""

from ledger_modules.overhead.models import OverheadAllocation
from ledger_modules.overhead.service import OverheadAllocator

__all__ = ["OverheadAllocation", "OverheadAllocator"]
