"""
ledger_modules.strategic.service
================================

Responsibility:
    Composes the owner's strategic dashboard: cash, monthly burn split
    into business and personal, portfolio runway, stale projects, what is
    due today, the unassigned backlog, allocation health and the calendar.

Architecture:
    Module layer.  Reads through VaultStore and the recurring scheduler
    (whose upcoming list applies passive rollover first, so a stale
    renewal that lands on today counts as due today).  The calendar is an
    external collaborator: its fetch is started before the core reads and
    collected afterwards.

Invariants enforced:
    - Total cash is business + personal; the tax reserve is not spendable.
    - Business burn counts BUSINESS-class active expenses; personal burn
      counts LIFE and PERSONAL.
    - Nothing is converted.  When cash and burn span more than one
      currency the summary is flagged ``is_mixed_currency`` and a warning
      is logged.
    - A calendar failure or timeout yields an empty, degraded section and
      never aborts the summary.

Failure modes:
    - OwnerNotFoundError / UnauthorizedError from owner scoping.
    - ExternalServiceError from the calendar is recovered here.
"""

from __future__ import annotations

from datetime import timedelta
from decimal import Decimal
from typing import Callable, Protocol
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from ledger_kernel.db.types import ZERO, round_money
from ledger_kernel.domain.clock import Clock, SystemClock
from ledger_kernel.domain.dtos import CalendarSection
from ledger_kernel.domain.values import CategoryClass, IncomeStatus, ProjectStatus
from ledger_kernel.exceptions import ExternalServiceError
from ledger_kernel.logging_config import get_logger
from ledger_kernel.models.obligation import ExpenseObligation, IncomeObligation
from ledger_kernel.models.project import Project, Task
from ledger_kernel.services.base import BaseService
from ledger_kernel.services.vault_store import VaultStore
from ledger_modules.overhead.service import OverheadAllocator
from ledger_modules.recurring.service import RecurringObligationScheduler
from ledger_modules.strategic.models import AllocationHealth, StrategicSummary

logger = get_logger("modules.strategic.service")

HUNDRED = Decimal("100")
DEFAULT_STALE_PROJECT_DAYS = 7


class PendingCalendar(Protocol):
    def result(self) -> CalendarSection: ...


CalendarFetch = Callable[[UUID], PendingCalendar]


def allocation_health(total_cash: Decimal, total_allocated: Decimal) -> AllocationHealth:
    if total_cash > 0:
        utilization = round_money(total_allocated / total_cash * HUNDRED, 0)
    else:
        utilization = ZERO
    return AllocationHealth(
        total_cash=total_cash,
        total_allocated=total_allocated,
        free_cash=total_cash - total_allocated,
        is_over_allocated=total_allocated > total_cash,
        utilization_rate=utilization,
    )


def portfolio_runway(total_cash: Decimal, total_burn: Decimal) -> Decimal:
    """Months of cash at the current monthly burn; 0 when nothing burns."""
    if total_burn <= 0:
        return ZERO
    return round_money(total_cash / total_burn, 1)


class StrategicAggregator(BaseService):
    """
    Read-side composition for the strategic dashboard.

    Contract:
        ``summary`` may persist passive rollovers (flush only) but never
        moves money.
    """

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        stale_project_days: int = DEFAULT_STALE_PROJECT_DAYS,
        calendar: CalendarFetch | None = None,
    ):
        super().__init__(session)
        self._clock = clock or SystemClock()
        self._stale_days = stale_project_days
        self._calendar = calendar
        self._vaults = VaultStore(session)
        self._expenses = RecurringObligationScheduler(session, self._clock)
        self._overhead = OverheadAllocator(session)

    def summary(self, owner_id: UUID) -> StrategicSummary:
        self._require_owner(owner_id)
        pending = self._start_calendar(owner_id)

        balances = self._vaults.get_balances(owner_id)
        business_burn, personal_burn, burn_currencies = self._burn_by_class(owner_id)
        total_cash = balances.total_cash
        currencies = balances.cash_currencies | burn_currencies
        if len(currencies) > 1:
            logger.warning(
                "mixed_currency_summary",
                extra={"owner_id": str(owner_id), "currencies": sorted(currencies)},
            )

        result = StrategicSummary(
            total_cash=total_cash,
            business_burn=business_burn,
            personal_burn=personal_burn,
            portfolio_runway=portfolio_runway(total_cash, business_burn + personal_burn),
            stale_project_count=self._stale_project_count(owner_id),
            obligations_due_today=self._obligations_due_today(owner_id),
            tasks_due_today=self._count_tasks(owner_id, Task.due_date == self._clock.today()),
            unassigned_task_count=self._count_tasks(owner_id, Task.project_id.is_(None)),
            active_project_count=self._overhead.active_project_count(owner_id),
            allocation=allocation_health(total_cash, self._total_allocated(owner_id)),
            calendar=self._collect_calendar(owner_id, pending),
            currencies=currencies,
        )
        logger.info(
            "strategic_summary_built",
            extra={
                "total_cash": str(result.total_cash),
                "total_burn": str(result.total_burn),
                "portfolio_runway": str(result.portfolio_runway),
                "calendar_degraded": result.calendar.degraded,
                "mixed_currency": result.is_mixed_currency,
            },
        )
        return result

    # =========================================================================
    # Calendar
    # =========================================================================

    def _start_calendar(self, owner_id: UUID) -> PendingCalendar | None:
        if self._calendar is None:
            return None
        try:
            return self._calendar(owner_id)
        except ExternalServiceError as exc:
            self._log_calendar_failure(owner_id, exc)
            return None

    def _collect_calendar(
        self,
        owner_id: UUID,
        pending: PendingCalendar | None,
    ) -> CalendarSection:
        if self._calendar is None:
            return CalendarSection()
        if pending is None:
            return CalendarSection.degraded_empty()
        try:
            return pending.result()
        except ExternalServiceError as exc:
            self._log_calendar_failure(owner_id, exc)
            return CalendarSection.degraded_empty()

    @staticmethod
    def _log_calendar_failure(owner_id: UUID, exc: ExternalServiceError) -> None:
        logger.warning(
            "calendar_section_degraded",
            extra={"owner_id": str(owner_id), "error_code": exc.code, "reason": str(exc)},
        )

    # =========================================================================
    # Core reads
    # =========================================================================

    def _burn_by_class(self, owner_id: UUID) -> tuple[Decimal, Decimal, frozenset[str]]:
        rows = self.session.execute(
            select(
                ExpenseObligation.category,
                ExpenseObligation.cost,
                ExpenseObligation.currency,
            ).where(
                ExpenseObligation.owner_id == owner_id,
                ExpenseObligation.active.is_(True),
            )
        ).all()
        business = personal = ZERO
        for category, cost, _ in rows:
            if CategoryClass.from_label(category).is_private:
                personal += cost
            else:
                business += cost
        return business, personal, frozenset(currency for _, _, currency in rows)

    def _stale_project_count(self, owner_id: UUID) -> int:
        cutoff = self._clock.now() - timedelta(days=self._stale_days)
        return self.session.execute(
            select(func.count())
            .select_from(Project)
            .where(
                Project.owner_id == owner_id,
                Project.status == ProjectStatus.ACTIVE.value,
                Project.updated_at < cutoff,
            )
        ).scalar_one()

    def _obligations_due_today(self, owner_id: UUID) -> int:
        today = self._clock.today()
        expenses = self._expenses.list_upcoming(owner_id, within_days=0)
        incomes = self.session.execute(
            select(func.count())
            .select_from(IncomeObligation)
            .where(
                IncomeObligation.owner_id == owner_id,
                IncomeObligation.status == IncomeStatus.EXPECTED.value,
                IncomeObligation.due_date == today,
            )
        ).scalar_one()
        return len(expenses) + incomes

    def _count_tasks(self, owner_id: UUID, criterion) -> int:
        return self.session.execute(
            select(func.count())
            .select_from(Task)
            .where(
                Task.owner_id == owner_id,
                Task.is_completed.is_(False),
                criterion,
            )
        ).scalar_one()

    def _total_allocated(self, owner_id: UUID) -> Decimal:
        total = self.session.execute(
            select(func.coalesce(func.sum(Project.budget), 0)).where(
                Project.owner_id == owner_id,
                Project.status != ProjectStatus.ARCHIVED.value,
            )
        ).scalar_one()
        return Decimal(total) if total else ZERO
