"""Kernel services -- the imperative shell.  Every service flushes, none commits."""

from ledger_kernel.services.adjustment_service import AdjustmentOutcome, AdjustmentService
from ledger_kernel.services.ledger_service import LedgerService
from ledger_kernel.services.reconciliation_service import ReconciliationService
from ledger_kernel.services.sequence_service import SequenceService
from ledger_kernel.services.vault_store import VaultStore

__all__ = [
    "AdjustmentOutcome",
    "AdjustmentService",
    "LedgerService",
    "ReconciliationService",
    "SequenceService",
    "VaultStore",
]
