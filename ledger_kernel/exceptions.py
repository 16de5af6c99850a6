"""
Typed Exception Hierarchy for the Ledger Kernel.

===============================================================================
WHY TYPED EXCEPTIONS
===============================================================================

A confirmation that fails half-way is the worst thing that can happen to a
vault.  Callers therefore need to know precisely WHAT failed without parsing
message strings:

  1. Every error has a TYPED exception class (catch by type, not message)
  2. Every exception has a CODE attribute (machine-readable, API-safe)
  3. Exceptions carry structured DATA (not just a message string)

The public facade (``ledger_services.api.LedgerApi``) converts the expected
business failures below into ``OperationResult`` values, so no exception
crosses the API boundary for "not found" or "not yours".

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

All exceptions inherit from LedgerKernelError:

    LedgerKernelError (base)
    |
    +-- ValidationError
    |   +-- InvalidCurrencyError
    |   +-- CurrencyMismatchError
    |   +-- ObligationStateError
    |
    +-- NotFoundError
    |   +-- OwnerNotFoundError
    |   +-- ObligationNotFoundError
    |   +-- ProjectNotFoundError
    |   +-- LedgerEntryNotFoundError
    |
    +-- UnauthorizedError
    |
    +-- ExternalServiceError
    |   +-- CalendarUnavailableError
    |   +-- NotificationFailedError
    |
    +-- LedgerConsistencyError
    |
    +-- ConcurrencyError
    |   +-- OptimisticLockError
    |   +-- AlreadyConfirmedError
    |
    +-- ImmutabilityError
        +-- ImmutabilityViolationError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Category        | Code                        | When Raised
----------------|-----------------------------|-----------------------------------------
Validation      | VALIDATION_ERROR            | Negative cost, percentage outside 0-100
                | INVALID_CURRENCY            | Not a valid ISO 4217 code
                | CURRENCY_MISMATCH           | Movement currency != the vault's currency
                | OBLIGATION_STATE            | Confirming a received/inactive obligation
----------------|-----------------------------|-----------------------------------------
Not found       | OWNER_NOT_FOUND             | Owner id doesn't exist
                | OBLIGATION_NOT_FOUND        | Expense/income id doesn't exist
                | PROJECT_NOT_FOUND           | Project id doesn't exist
                | LEDGER_ENTRY_NOT_FOUND      | Ledger entry id doesn't exist
----------------|-----------------------------|-----------------------------------------
Authorization   | UNAUTHORIZED                | Missing identity or ownership mismatch
----------------|-----------------------------|-----------------------------------------
External        | CALENDAR_UNAVAILABLE        | Calendar fetch failed or timed out
                | NOTIFICATION_FAILED         | Notification dispatch failed
----------------|-----------------------------|-----------------------------------------
Consistency     | LEDGER_CONSISTENCY          | Vault balance != signed ledger sum
----------------|-----------------------------|-----------------------------------------
Concurrency     | OPTIMISTIC_LOCK_CONFLICT    | Row changed between read and claim
                | ALREADY_CONFIRMED           | Cycle already confirmed (duplicate click)
----------------|-----------------------------|-----------------------------------------
Immutability    | IMMUTABILITY_VIOLATION      | UPDATE of a ledger entry

===============================================================================
HANDLING PATTERNS
===============================================================================

1. EXPECTED OUTCOMES become results at the facade:

    except NotFoundError as e:
        return OperationResult.failure(ResultStatus.NOT_FOUND, e)

2. EXTERNAL failures are recovered where they happen:

    except ExternalServiceError:
        section = CalendarSection.degraded_empty()

3. CONSISTENCY errors are a hard alert (never auto-corrected):

    except LedgerConsistencyError as e:
        logger.critical("ledger_consistency_alert", exc_info=True)
        page_operator(e)

===============================================================================
"""

from datetime import date
from decimal import Decimal


class LedgerKernelError(Exception):
    """
    Base exception for all ledger kernel errors.

    All subclasses must have a ``code`` class attribute for
    machine-readable error identification.
    """

    code: str = "LEDGER_KERNEL_ERROR"


# Validation


class ValidationError(LedgerKernelError):
    """Input rejected before any state was touched."""

    code: str = "VALIDATION_ERROR"

    def __init__(self, field: str, reason: str):
        self.field = field
        self.reason = reason
        super().__init__(f"Invalid {field}: {reason}")


class InvalidCurrencyError(ValidationError):
    """Currency code is not a recognised ISO 4217 code."""

    code: str = "INVALID_CURRENCY"

    def __init__(self, currency: str):
        self.currency = currency
        super().__init__("currency", f"'{currency}' is not a valid ISO 4217 code")


class CurrencyMismatchError(ValidationError):
    """A movement in one currency aimed at a vault held in another."""

    code: str = "CURRENCY_MISMATCH"

    def __init__(self, vault_kind: str, vault_currency: str, currency: str):
        self.vault_kind = vault_kind
        self.vault_currency = vault_currency
        self.currency = currency
        super().__init__(
            "currency", f"{vault_kind} vault is kept in {vault_currency}, not {currency}"
        )


class ObligationStateError(ValidationError):
    """Obligation is not in a state that allows the requested transition."""

    code: str = "OBLIGATION_STATE"

    def __init__(self, obligation_id: str, state: str):
        self.obligation_id = obligation_id
        self.state = state
        super().__init__("status", f"obligation {obligation_id} is {state}")


# Not found


class NotFoundError(LedgerKernelError):
    """Base exception for unknown identifiers."""

    code: str = "NOT_FOUND"


class OwnerNotFoundError(NotFoundError):
    code: str = "OWNER_NOT_FOUND"

    def __init__(self, owner_id: str):
        self.owner_id = owner_id
        super().__init__(f"Owner not found: {owner_id}")


class ObligationNotFoundError(NotFoundError):
    code: str = "OBLIGATION_NOT_FOUND"

    def __init__(self, obligation_id: str, kind: str = "obligation"):
        self.obligation_id = obligation_id
        self.kind = kind
        super().__init__(f"{kind.capitalize()} not found: {obligation_id}")


class ProjectNotFoundError(NotFoundError):
    code: str = "PROJECT_NOT_FOUND"

    def __init__(self, project_id: str):
        self.project_id = project_id
        super().__init__(f"Project not found: {project_id}")


class LedgerEntryNotFoundError(NotFoundError):
    code: str = "LEDGER_ENTRY_NOT_FOUND"

    def __init__(self, entry_id: str):
        self.entry_id = entry_id
        super().__init__(f"Ledger entry not found: {entry_id}")


# Authorization


class UnauthorizedError(LedgerKernelError):
    """Missing identity, or the record belongs to another owner."""

    code: str = "UNAUTHORIZED"

    def __init__(self, owner_id: str | None, resource: str | None = None):
        self.owner_id = owner_id
        self.resource = resource
        if owner_id is None:
            message = "No authenticated owner"
        else:
            message = f"Owner {owner_id} may not access {resource}"
        super().__init__(message)


# External collaborators


class ExternalServiceError(LedgerKernelError):
    """An external collaborator failed.  Always recovered locally."""

    code: str = "EXTERNAL_SERVICE_ERROR"

    def __init__(self, service: str, reason: str):
        self.service = service
        self.reason = reason
        super().__init__(f"{service} failed: {reason}")


class CalendarUnavailableError(ExternalServiceError):
    code: str = "CALENDAR_UNAVAILABLE"

    def __init__(self, reason: str):
        super().__init__("calendar", reason)


class NotificationFailedError(ExternalServiceError):
    code: str = "NOTIFICATION_FAILED"

    def __init__(self, reason: str):
        super().__init__("notification", reason)


# Consistency


class LedgerConsistencyError(LedgerKernelError):
    """
    Vault balance does not equal its movement history.

    The most severe error class.  Requires manual reconciliation; the
    kernel never corrects the balance on its own.
    """

    code: str = "LEDGER_CONSISTENCY"

    def __init__(
        self,
        owner_id: str,
        vault_kind: str,
        balance: Decimal,
        ledger_total: Decimal,
    ):
        self.owner_id = owner_id
        self.vault_kind = vault_kind
        self.balance = balance
        self.ledger_total = ledger_total
        self.drift = balance - ledger_total
        super().__init__(
            f"Vault {vault_kind} of owner {owner_id} holds {balance} "
            f"but its ledger sums to {ledger_total} (drift {self.drift})"
        )


# Concurrency


class ConcurrencyError(LedgerKernelError):
    """Base exception for concurrent-modification errors."""

    code: str = "CONCURRENCY_ERROR"


class OptimisticLockError(ConcurrencyError):
    """Optimistic locking conflict detected."""

    code: str = "OPTIMISTIC_LOCK_CONFLICT"

    def __init__(self, entity_type: str, entity_id: str):
        self.entity_type = entity_type
        self.entity_id = entity_id
        super().__init__(
            f"Optimistic lock conflict on {entity_type} {entity_id}: "
            "entity was modified by another transaction"
        )


class AlreadyConfirmedError(ConcurrencyError):
    """The obligation cycle was already confirmed (duplicate request)."""

    code: str = "ALREADY_CONFIRMED"

    def __init__(self, obligation_id: str, cycle_date: date | None):
        self.obligation_id = obligation_id
        self.cycle_date = cycle_date
        super().__init__(
            f"Obligation {obligation_id} cycle {cycle_date} already confirmed"
        )


# Immutability


class ImmutabilityError(LedgerKernelError):
    """Base exception for immutability-related errors."""

    code: str = "IMMUTABILITY_ERROR"


class ImmutabilityViolationError(ImmutabilityError):
    """Attempted to modify an immutable record."""

    code: str = "IMMUTABILITY_VIOLATION"

    def __init__(self, entity_type: str, entity_id: str, reason: str):
        self.entity_type = entity_type
        self.entity_id = entity_id
        self.reason = reason
        super().__init__(
            f"Cannot modify {entity_type} {entity_id}: {reason}"
        )
