"""
ledger_modules.budget.service
=============================

Responsibility:
    Per-project budget health: what the project has consumed (direct
    recurring costs plus approved labor), what is left, how fast it burns
    and how many months the remainder lasts once the project's share of
    global overhead is added to the burn.  Also produces the finances audit
    (tax isolated so far, budget promised per live project).

Architecture:
    Module layer, read-only.  Reuses OverheadAllocator for the overhead
    weight and LedgerSelector for the tax total.

Invariants enforced:
    - Only active expense obligations and APPROVED labor logs count.
    - ``burn_percentage`` is rounded half-up to a whole percent and clamped
      to [0, 100]; a zero or negative budget reads as 0 %.
    - ``is_depleted`` requires a positive budget.
    - A non-positive monthly burn yields ``Runway.unbounded()``.

Failure modes:
    - ProjectNotFoundError for an unknown project id.
    - UnauthorizedError when an OWNER call targets another owner's project.
"""

from __future__ import annotations

from decimal import Decimal
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from ledger_kernel.db.types import ZERO, round_money
from ledger_kernel.domain.values import Capability, LaborLogStatus, ProjectStatus
from ledger_kernel.exceptions import ProjectNotFoundError
from ledger_kernel.logging_config import get_logger
from ledger_kernel.models.obligation import ExpenseObligation
from ledger_kernel.models.project import LaborLog, Project
from ledger_kernel.selectors.ledger_selector import LedgerSelector
from ledger_kernel.services.base import BaseService
from ledger_modules.budget.models import (
    BudgetHealth,
    FinancesAudit,
    ProjectBudgetLine,
    Runway,
)
from ledger_modules.overhead.service import OverheadAllocator

logger = get_logger("modules.budget.service")

HUNDRED = Decimal("100")


def burn_percentage(consumed: Decimal, budget: Decimal) -> Decimal:
    """Whole-percent share of the budget consumed, clamped to [0, 100]."""
    if budget <= 0:
        return ZERO
    pct = round_money(consumed / budget * HUNDRED, 0)
    return min(max(pct, Decimal("0")), HUNDRED)


def project_runway(remaining: Decimal, monthly_burn: Decimal) -> Runway:
    if monthly_burn <= 0:
        return Runway.unbounded()
    return Runway(months=round_money(remaining / monthly_burn, 1))


class BudgetHealthCalculator(BaseService):
    """
    Budget consumption and runway for projects.

    Non-goals:
        - No currency conversion: amounts are summed as stored.
        - Pending or rejected labor never counts.
    """

    def __init__(self, session: Session):
        super().__init__(session)
        self._overhead = OverheadAllocator(session)
        self._ledger = LedgerSelector(session)

    def per_project(
        self,
        owner_id: UUID,
        project_id: UUID,
        capability: Capability = Capability.OWNER,
    ) -> BudgetHealth:
        self._require_owner(owner_id)
        project = self.session.get(Project, project_id)
        if project is None:
            raise ProjectNotFoundError(str(project_id))
        self._check_access(project.owner_id, owner_id, capability, f"project {project_id}")

        direct = self._direct_expenses(project_id)
        labor = self._approved_labor(project_id)
        consumed = direct + labor
        budget = project.budget
        remaining = budget - consumed

        allocation = self._overhead.compute_global_overhead(project.owner_id)
        runway = project_runway(remaining, direct + allocation.per_project_weight)

        health = BudgetHealth(
            project_id=project_id,
            initial_budget=budget,
            direct_expenses=direct,
            labor_cost=labor,
            total_consumed=consumed,
            remaining_budget=remaining,
            burn_percentage=burn_percentage(consumed, budget),
            is_depleted=budget > 0 and consumed >= budget,
            overhead_weight=allocation.per_project_weight,
            runway=runway,
            currency=project.currency,
        )
        if health.is_depleted:
            logger.warning(
                "project_budget_depleted",
                extra={
                    "project_id": str(project_id),
                    "budget": str(budget),
                    "total_consumed": str(consumed),
                },
            )
        return health

    def finances_audit(self, owner_id: UUID) -> FinancesAudit:
        self._require_owner(owner_id)
        projects = self.session.execute(
            select(Project)
            .where(
                Project.owner_id == owner_id,
                Project.status != ProjectStatus.ARCHIVED.value,
            )
            .order_by(Project.title)
        ).scalars().all()
        lines = tuple(
            ProjectBudgetLine(
                project_id=p.id,
                title=p.title,
                budget=p.budget,
                currency=p.currency,
                status=ProjectStatus(p.status).value,
            )
            for p in projects
        )
        return FinancesAudit(
            total_tax_isolated=self._ledger.tax_isolated_total(owner_id),
            projects=lines,
        )

    def _direct_expenses(self, project_id: UUID) -> Decimal:
        total = self.session.execute(
            select(func.coalesce(func.sum(ExpenseObligation.cost), 0)).where(
                ExpenseObligation.project_id == project_id,
                ExpenseObligation.active.is_(True),
            )
        ).scalar_one()
        return Decimal(total) if total else ZERO

    def _approved_labor(self, project_id: UUID) -> Decimal:
        total = self.session.execute(
            select(func.coalesce(func.sum(LaborLog.cost_impact), 0)).where(
                LaborLog.project_id == project_id,
                LaborLog.status == LaborLogStatus.APPROVED.value,
            )
        ).scalar_one()
        return Decimal(total) if total else ZERO
