"""
ledger_services -- Package init and public API.

Responsibility:
    The transaction boundary (``LedgerApi``) and the collaborator pool.
    This is the only layer that commits, rolls back or calls external
    collaborators.

Architecture position:
    Services -- orchestration over ledger_modules and ledger_kernel.

    Dependency direction:
        ledger_services/ -> ledger_modules/, ledger_kernel/  (allowed)
        ledger_modules/, ledger_kernel/ -> ledger_services/  (FORBIDDEN)
"""

from ledger_services.api import LedgerApi, OperationResult, ResultStatus
from ledger_services.collaborators import (
    CalendarProvider,
    CollaboratorInvoker,
    Notifier,
    PendingCalendarFetch,
)

__all__ = [
    "CalendarProvider",
    "CollaboratorInvoker",
    "LedgerApi",
    "Notifier",
    "OperationResult",
    "PendingCalendarFetch",
    "ResultStatus",
]
