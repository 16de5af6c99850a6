"""
ledger_services.api -- The ledger's public operations.

Responsibility:
    One facade over the kernel and modules.  Every operation runs as one
    unit of work: the session is committed when the operation returns and
    rolled back when it raises.  Expected business outcomes (not found,
    unauthorized, invalid input, duplicate confirmation, concurrent
    conflict, consistency alert) come back as a typed ``OperationResult``
    rather than an exception.

Architecture position:
    Services -- the transaction boundary.  Kernel services and modules
    flush; only this class commits or rolls back.

Invariants enforced:
    - A confirmation's vault adjustment, ledger append and date advance are
      committed together or not at all.
    - Collaborators run outside the transaction: the calendar fetch is
      started before the core reads of the strategic summary, notifications
      are sent only after a successful commit.
    - Every operation binds ``correlation_id``, ``owner_id`` and
      ``operation`` into LogContext for its duration.

Failure modes:
    - Unexpected exceptions (database errors, immutability violations,
      programming errors) roll back, are logged with a traceback and
      re-raised.
"""

from __future__ import annotations

import time
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Any, Callable, Generic, TypeVar
from uuid import UUID, uuid4

from sqlalchemy.orm import Session

from ledger_config.schema import LedgerConfig
from ledger_kernel.domain.clock import Clock, SystemClock
from ledger_kernel.domain.dtos import LedgerFilters
from ledger_kernel.domain.values import Capability, VaultKind
from ledger_kernel.exceptions import (
    AlreadyConfirmedError,
    ConcurrencyError,
    LedgerConsistencyError,
    LedgerKernelError,
    NotFoundError,
    UnauthorizedError,
    ValidationError,
)
from ledger_kernel.logging_config import LogContext, get_logger
from ledger_kernel.selectors.ledger_selector import LedgerSelector
from ledger_kernel.services.adjustment_service import AdjustmentService
from ledger_kernel.services.ledger_service import LedgerService
from ledger_kernel.services.reconciliation_service import ReconciliationService
from ledger_kernel.services.vault_store import VaultStore
from ledger_modules.budget.service import BudgetHealthCalculator
from ledger_modules.income.service import IncomeObligationScheduler
from ledger_modules.overhead.service import OverheadAllocator
from ledger_modules.recurring.service import RecurringObligationScheduler
from ledger_modules.strategic.service import StrategicAggregator
from ledger_services.collaborators import (
    CalendarProvider,
    CollaboratorInvoker,
    Notifier,
    PendingCalendarFetch,
)

logger = get_logger("services.api")

T = TypeVar("T")


class ResultStatus(str, Enum):
    """Outcome of a ledger operation."""

    SUCCESS = "success"
    ALREADY_CONFIRMED = "already_confirmed"
    NOT_FOUND = "not_found"
    UNAUTHORIZED = "unauthorized"
    VALIDATION_ERROR = "validation_error"
    CONFLICT = "conflict"
    CONSISTENCY_ALERT = "consistency_alert"


@dataclass(frozen=True)
class OperationResult(Generic[T]):
    """Value of a successful operation, or the typed reason it failed."""

    status: ResultStatus
    value: T | None = None
    message: str | None = None
    error_code: str | None = None

    @property
    def is_success(self) -> bool:
        return self.status == ResultStatus.SUCCESS

    @classmethod
    def success(cls, value: T) -> OperationResult[T]:
        return cls(status=ResultStatus.SUCCESS, value=value)

    @classmethod
    def failure(cls, status: ResultStatus, error: Exception) -> OperationResult[T]:
        code = getattr(error, "code", None) or status.value.upper()
        return cls(status=status, message=str(error), error_code=code)


def _status_for(error: Exception) -> ResultStatus | None:
    """Result status for an expected failure; None means unexpected."""
    if isinstance(error, AlreadyConfirmedError):
        return ResultStatus.ALREADY_CONFIRMED
    if isinstance(error, ConcurrencyError):
        return ResultStatus.CONFLICT
    if isinstance(error, NotFoundError):
        return ResultStatus.NOT_FOUND
    if isinstance(error, UnauthorizedError):
        return ResultStatus.UNAUTHORIZED
    if isinstance(error, ValidationError):
        return ResultStatus.VALIDATION_ERROR
    if isinstance(error, LedgerConsistencyError):
        return ResultStatus.CONSISTENCY_ALERT
    return None


class LedgerApi:
    """
    Public entry point of the ledger.

    Contract:
        Each public method returns an ``OperationResult``.  On SUCCESS the
        session has been committed; on any other status it has been rolled
        back.

    Guarantees:
        - Duplicate confirmations are reported as ALREADY_CONFIRMED and
          never debit or credit twice.
        - A confirmation must name the cycle date the caller displayed;
          without it the call is a VALIDATION_ERROR.
        - Collaborator failures never change an operation's status.

    Non-goals:
        - Does NOT authenticate callers; ``owner_id`` comes from the
          identity collaborator, ``None`` means unauthenticated.
    """

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        config: LedgerConfig | None = None,
        calendar: CalendarProvider | None = None,
        notifier: Notifier | None = None,
        invoker: CollaboratorInvoker | None = None,
    ):
        self._session = session
        self._clock = clock or SystemClock()
        self._config = config or LedgerConfig()
        self._calendar = calendar
        self._notifier = notifier
        self._owns_invoker = invoker is None and (calendar is not None or notifier is not None)
        if self._owns_invoker:
            invoker = CollaboratorInvoker(self._config.collaborator_timeout_seconds)
        self._invoker = invoker

    def close(self) -> None:
        """Shut down the collaborator pool if this facade created it."""
        if self._owns_invoker and self._invoker is not None:
            self._invoker.shutdown(wait=True)

    # =========================================================================
    # Vaults and ledger
    # =========================================================================

    def get_balances(self, owner_id: UUID | None) -> OperationResult:
        return self._run(
            "get_balances",
            owner_id,
            lambda: VaultStore(self._session).get_balances(owner_id),
        )

    def list_ledger(
        self,
        owner_id: UUID | None,
        filters: LedgerFilters | None = None,
        limit: int | None = None,
        offset: int = 0,
    ) -> OperationResult:
        page_size = self._config.clamp_page_size(limit)
        return self._run(
            "list_ledger",
            owner_id,
            lambda: LedgerSelector(self._session).list(owner_id, filters, page_size, offset),
        )

    def record_manual_adjustment(
        self,
        owner_id: UUID | None,
        vault_kind: VaultKind,
        new_amount: Decimal,
        currency: str | None = None,
    ) -> OperationResult:
        service = AdjustmentService(self._session, self._clock)
        return self._run(
            "record_manual_adjustment",
            owner_id,
            lambda: service.set_balance(
                owner_id,
                vault_kind,
                new_amount,
                currency or self._config.default_currency,
            ),
        )

    def purge_ledger_entry(self, owner_id: UUID | None, entry_id: UUID) -> OperationResult:
        service = LedgerService(self._session, self._clock)
        return self._run(
            "purge_ledger_entry",
            owner_id,
            lambda: service.purge(owner_id, entry_id),
            entry_id=str(entry_id),
        )

    def purge_ledger(self, owner_id: UUID | None) -> OperationResult:
        service = LedgerService(self._session, self._clock)
        return self._run("purge_ledger", owner_id, lambda: service.purge(owner_id))

    def reconcile(self, owner_id: UUID | None) -> OperationResult:
        return self._run(
            "reconcile",
            owner_id,
            lambda: ReconciliationService(self._session).reconcile(owner_id),
        )

    # =========================================================================
    # Obligations
    # =========================================================================

    def register_expense(
        self,
        owner_id: UUID | None,
        title: str,
        cost: Decimal,
        renewal_date: date,
        category: str = "",
        currency: str | None = None,
        project_id: UUID | None = None,
    ) -> OperationResult:
        """Add a recurring expense; ``currency`` defaults to the configured one."""
        scheduler = RecurringObligationScheduler(self._session, self._clock)
        return self._run(
            "register_expense",
            owner_id,
            lambda: scheduler.register_expense(
                owner_id,
                title,
                cost,
                renewal_date,
                currency or self._config.default_currency,
                category=category,
                project_id=project_id,
            ),
        )

    def register_income(
        self,
        owner_id: UUID | None,
        title: str,
        gross_amount: Decimal,
        tax_percentage: Decimal,
        due_date: date,
        category: str = "",
        is_recurring: bool = False,
        currency: str | None = None,
        project_id: UUID | None = None,
    ) -> OperationResult:
        scheduler = IncomeObligationScheduler(self._session, self._clock)
        return self._run(
            "register_income",
            owner_id,
            lambda: scheduler.register_income(
                owner_id,
                title,
                gross_amount,
                tax_percentage,
                due_date,
                currency or self._config.default_currency,
                category=category,
                is_recurring=is_recurring,
                project_id=project_id,
            ),
        )

    def confirm_expense_payment(
        self,
        owner_id: UUID | None,
        obligation_id: UUID,
        expected_renewal_date: date,
        capability: Capability = Capability.OWNER,
    ) -> OperationResult:
        scheduler = RecurringObligationScheduler(self._session, self._clock)
        result = self._run(
            "confirm_expense_payment",
            owner_id,
            lambda: scheduler.confirm_payment(
                owner_id, obligation_id, expected_renewal_date, capability
            ),
            obligation_id=str(obligation_id),
        )
        if result.is_success:
            confirmation = result.value
            self._notify(
                "expense_payment_confirmed",
                {
                    "owner_id": str(owner_id),
                    "obligation_id": str(obligation_id),
                    "vault_kind": confirmation.vault_kind.value,
                    "amount": str(confirmation.amount),
                    "currency": confirmation.currency,
                    "next_renewal_date": confirmation.next_renewal_date.isoformat(),
                },
            )
        return result

    def confirm_income_receipt(
        self,
        owner_id: UUID | None,
        income_id: UUID,
        expected_due_date: date,
        capability: Capability = Capability.OWNER,
    ) -> OperationResult:
        scheduler = IncomeObligationScheduler(self._session, self._clock)
        result = self._run(
            "confirm_income_receipt",
            owner_id,
            lambda: scheduler.confirm_receipt(owner_id, income_id, expected_due_date, capability),
            obligation_id=str(income_id),
        )
        if result.is_success:
            receipt = result.value
            self._notify(
                "income_receipt_confirmed",
                {
                    "owner_id": str(owner_id),
                    "income_id": str(income_id),
                    "net_amount": str(receipt.net_amount),
                    "tax_amount": str(receipt.tax_amount),
                    "currency": receipt.currency,
                    "status": receipt.status.value,
                },
            )
        return result

    def list_upcoming_expenses(
        self,
        owner_id: UUID | None,
        within_days: int | None = None,
    ) -> OperationResult:
        scheduler = RecurringObligationScheduler(self._session, self._clock)
        return self._run(
            "list_upcoming_expenses",
            owner_id,
            lambda: scheduler.list_upcoming(owner_id, within_days),
        )

    def pending_expense_count(
        self,
        owner_id: UUID | None,
        within_days: int | None = None,
    ) -> OperationResult:
        days = self._config.upcoming_window_days if within_days is None else within_days
        scheduler = RecurringObligationScheduler(self._session, self._clock)
        return self._run(
            "pending_expense_count",
            owner_id,
            lambda: scheduler.pending_expense_count(owner_id, days),
        )

    def list_expected_incomes(self, owner_id: UUID | None) -> OperationResult:
        scheduler = IncomeObligationScheduler(self._session, self._clock)
        return self._run(
            "list_expected_incomes",
            owner_id,
            lambda: scheduler.list_expected(owner_id),
        )

    def net_preview(self, owner_id: UUID | None, income_id: UUID) -> OperationResult:
        scheduler = IncomeObligationScheduler(self._session, self._clock)
        return self._run(
            "net_preview",
            owner_id,
            lambda: scheduler.preview_receipt(owner_id, income_id),
            obligation_id=str(income_id),
        )

    # =========================================================================
    # Analytics
    # =========================================================================

    def compute_overhead(self, owner_id: UUID | None) -> OperationResult:
        return self._run(
            "compute_overhead",
            owner_id,
            lambda: OverheadAllocator(self._session).compute_global_overhead(owner_id),
        )

    def get_project_budget_health(
        self,
        owner_id: UUID | None,
        project_id: UUID,
        capability: Capability = Capability.OWNER,
    ) -> OperationResult:
        return self._run(
            "get_project_budget_health",
            owner_id,
            lambda: BudgetHealthCalculator(self._session).per_project(
                owner_id, project_id, capability
            ),
        )

    def get_finances_audit(self, owner_id: UUID | None) -> OperationResult:
        return self._run(
            "get_finances_audit",
            owner_id,
            lambda: BudgetHealthCalculator(self._session).finances_audit(owner_id),
        )

    def get_strategic_summary(self, owner_id: UUID | None) -> OperationResult:
        aggregator = StrategicAggregator(
            self._session,
            self._clock,
            stale_project_days=self._config.stale_project_days,
            calendar=self._calendar_fetch if self._calendar is not None else None,
        )
        return self._run(
            "get_strategic_summary",
            owner_id,
            lambda: aggregator.summary(owner_id),
        )

    # =========================================================================
    # Internals
    # =========================================================================

    def _calendar_fetch(self, owner_id: UUID) -> PendingCalendarFetch:
        return self._invoker.start_calendar(self._calendar, owner_id)

    def _notify(self, event: str, payload: dict[str, Any]) -> None:
        if self._notifier is None:
            return
        self._invoker.notify(self._notifier, event, payload)

    def _run(
        self,
        operation: str,
        owner_id: UUID | None,
        action: Callable[[], T],
        **context: str,
    ) -> OperationResult[T]:
        with LogContext.bind(
            correlation_id=str(uuid4()),
            owner_id=str(owner_id) if owner_id is not None else None,
            operation=operation,
            **context,
        ):
            t0 = time.monotonic()
            try:
                value = action()
                self._session.commit()
            except LedgerKernelError as exc:
                status = _status_for(exc)
                self._session.rollback()
                if status is None:
                    logger.error("transaction_rolled_back", exc_info=True)
                    raise
                result = OperationResult.failure(status, exc)
                logger.info(
                    "ledger_operation_refused",
                    extra={
                        "status": status.value,
                        "error_code": result.error_code,
                        "reason": result.message,
                    },
                )
                return result
            except Exception:
                self._session.rollback()
                logger.error("transaction_rolled_back", exc_info=True)
                raise

            logger.info(
                "ledger_operation_completed",
                extra={"duration_ms": round((time.monotonic() - t0) * 1000, 2)},
            )
            return OperationResult.success(value)
