"""ORM models for the ledger kernel."""

from ledger_kernel.models.ledger import LedgerEntry
from ledger_kernel.models.obligation import ExpenseObligation, IncomeObligation
from ledger_kernel.models.owner import Owner
from ledger_kernel.models.project import LaborLog, Project, Task
from ledger_kernel.models.sequence import SequenceCounter
from ledger_kernel.models.vault import VaultBalance


def import_all_models() -> None:
    """Import every model module so ``Base.metadata`` holds all tables.

    Idempotent -- repeated calls are harmless.
    """
    # fmt: off
    import ledger_kernel.models.owner  # noqa: F401
    import ledger_kernel.models.project  # noqa: F401
    import ledger_kernel.models.vault  # noqa: F401
    import ledger_kernel.models.ledger  # noqa: F401
    import ledger_kernel.models.sequence  # noqa: F401
    import ledger_kernel.models.obligation  # noqa: F401
    # fmt: on


__all__ = [
    "Owner",
    "VaultBalance",
    "LedgerEntry",
    "SequenceCounter",
    "ExpenseObligation",
    "IncomeObligation",
    "Project",
    "LaborLog",
    "Task",
    "import_all_models",
]
