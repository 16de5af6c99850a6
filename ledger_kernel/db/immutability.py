"""
ORM-Level Immutability Enforcement for the movement log.

===============================================================================
WHY THIS EXISTS
===============================================================================

The movement log is the audit trail of every vault.  A ledger entry, once
written, describes money that actually moved; editing it afterwards would
silently break the balance-vs-log invariant checked by reconciliation.

SQLAlchemy fires events before UPDATE operations reach the database.  We
register listeners that intercept them:

    session.flush()
         |
         v
    [before_update event] --> _check_*() --> ImmutabilityViolationError
         |
         v
    SQL sent to database (only if checks pass)

===============================================================================
PROTECTED ENTITIES
===============================================================================

Entity        | Rule                                   | Why
--------------|----------------------------------------|-----------------------------------
LedgerEntry   | Never updated                          | Movement history is append-only
VaultBalance  | ``amount`` never written through ORM   | Only the atomic increment moves it

Deletion of ledger entries is NOT blocked here: the owner purge operation
removes entries with a bulk DELETE and records their signed total in
``VaultBalance.carried_forward``.

===============================================================================
USAGE
===============================================================================

Called once at startup, after the models are imported:

    from ledger_kernel.db.immutability import register_immutability_listeners
    register_immutability_listeners()

To temporarily disable (TESTS ONLY):

    from ledger_kernel.db.immutability import unregister_immutability_listeners
    unregister_immutability_listeners()

===============================================================================
"""

from sqlalchemy import event, inspect

from ledger_kernel.exceptions import ImmutabilityViolationError
from ledger_kernel.logging_config import get_logger

logger = get_logger("db.immutability")


def _check_ledger_entry_immutability(mapper, connection, target):
    """Prevent any update to a LedgerEntry."""
    from ledger_kernel.models.ledger import LedgerEntry

    if not isinstance(target, LedgerEntry):
        return

    logger.error(
        "immutability_violation_blocked",
        extra={
            "entity_type": "LedgerEntry",
            "entity_id": str(target.id),
            "operation": "UPDATE",
        },
    )
    raise ImmutabilityViolationError(
        entity_type="LedgerEntry",
        entity_id=str(target.id),
        reason="Ledger entries are append-only and cannot be modified",
    )


def _check_vault_balance_amount(mapper, connection, target):
    """
    Block ORM writes to ``VaultBalance.amount``.

    Balances move only through ``VaultStore.adjust`` (a storage-level
    ``amount = amount + :delta``).  An ORM write would be a read-modify-write
    and lose concurrent increments.
    """
    from ledger_kernel.models.vault import VaultBalance

    if not isinstance(target, VaultBalance):
        return

    history = inspect(target).attrs.amount.history
    if not history.has_changes():
        return

    logger.error(
        "immutability_violation_blocked",
        extra={
            "entity_type": "VaultBalance",
            "entity_id": str(target.id),
            "operation": "UPDATE",
            "field": "amount",
        },
    )
    raise ImmutabilityViolationError(
        entity_type="VaultBalance",
        entity_id=str(target.id),
        reason="Vault amounts change only through the atomic increment",
    )


def register_immutability_listeners():
    """
    Register all immutability enforcement event listeners.

    Idempotent: registering twice does not double the checks.
    """
    from ledger_kernel.models.ledger import LedgerEntry
    from ledger_kernel.models.vault import VaultBalance

    if not event.contains(LedgerEntry, "before_update", _check_ledger_entry_immutability):
        event.listen(LedgerEntry, "before_update", _check_ledger_entry_immutability)
    if not event.contains(VaultBalance, "before_update", _check_vault_balance_amount):
        event.listen(VaultBalance, "before_update", _check_vault_balance_amount)


def _safe_remove_listener(target, event_name, listener_fn):
    if event.contains(target, event_name, listener_fn):
        event.remove(target, event_name, listener_fn)


def unregister_immutability_listeners():
    """
    Remove immutability enforcement event listeners.

    WARNING: Only use this in tests that deliberately corrupt data to
    verify detection.
    """
    from ledger_kernel.models.ledger import LedgerEntry
    from ledger_kernel.models.vault import VaultBalance

    _safe_remove_listener(LedgerEntry, "before_update", _check_ledger_entry_immutability)
    _safe_remove_listener(VaultBalance, "before_update", _check_vault_balance_amount)
