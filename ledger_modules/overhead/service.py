"""
ledger_modules.overhead.service
===============================

Responsibility:
    Computes the owner's global overhead -- active expense obligations that
    belong to no project and are not life/personal spending -- and the
    share each non-archived project carries.

Architecture:
    Module layer, read-only.  Computed on demand from current rows; there is
    no cache to invalidate.

Invariants enforced:
    - Division by zero is impossible: no live project -> weight 0.
    - Category exclusion is case-insensitive and ignores surrounding
      whitespace, matching ``CategoryClass.from_label``.
"""

from __future__ import annotations

from decimal import Decimal
from uuid import UUID

from sqlalchemy import func, select

from ledger_kernel.db.types import ZERO
from ledger_kernel.domain.values import CategoryClass, ProjectStatus
from ledger_kernel.logging_config import get_logger
from ledger_kernel.models.obligation import ExpenseObligation
from ledger_kernel.models.project import Project
from ledger_kernel.services.base import BaseService
from ledger_modules.overhead.models import OverheadAllocation

logger = get_logger("modules.overhead.service")

_PRIVATE_LABELS = (CategoryClass.LIFE.value, CategoryClass.PERSONAL.value)


class OverheadAllocator(BaseService):
    """Even split of unassigned business costs across live projects."""

    def compute_global_overhead(self, owner_id: UUID) -> OverheadAllocation:
        self._require_owner(owner_id)

        total = self.session.execute(
            select(func.coalesce(func.sum(ExpenseObligation.cost), 0)).where(
                ExpenseObligation.owner_id == owner_id,
                ExpenseObligation.active.is_(True),
                ExpenseObligation.project_id.is_(None),
                func.lower(func.trim(ExpenseObligation.category)).notin_(_PRIVATE_LABELS),
            )
        ).scalar_one()
        total_overhead = Decimal(total) if total else ZERO

        active_projects = self.active_project_count(owner_id)
        weight = total_overhead / active_projects if active_projects > 0 else ZERO

        logger.debug(
            "overhead_computed",
            extra={
                "total_overhead": str(total_overhead),
                "active_project_count": active_projects,
                "per_project_weight": str(weight),
            },
        )
        return OverheadAllocation(
            total_overhead=total_overhead,
            per_project_weight=weight,
            active_project_count=active_projects,
        )

    def active_project_count(self, owner_id: UUID) -> int:
        """Projects whose status is anything but ARCHIVED."""
        return self.session.execute(
            select(func.count())
            .select_from(Project)
            .where(
                Project.owner_id == owner_id,
                Project.status != ProjectStatus.ARCHIVED.value,
            )
        ).scalar_one()
