"""
Module: ledger_kernel.models.project
Responsibility: ORM persistence for projects and the rows that consume
    their budget (approved labor) or feed the strategic counters (tasks).
Architecture position: Kernel > Models.  May import from db/ and domain/
    values only.

Invariants enforced:
    - Only LaborLog rows with status APPROVED count towards consumption;
      enforced by the budget calculator's query, not here.
    - A project with status ARCHIVED is excluded from overhead allocation
      and from allocated budget totals.
"""

from datetime import date
from decimal import Decimal
from uuid import UUID

from sqlalchemy import Boolean, Date, ForeignKey, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from ledger_kernel.db.base import TrackedBase
from ledger_kernel.domain.values import LaborLogStatus, ProjectStatus


class Project(TrackedBase):
    """
    A budgeted piece of work.

    ``updated_at`` (from TrackedBase) drives stale-project detection.
    """

    __tablename__ = "projects"

    __table_args__ = (
        Index("idx_project_owner_status", "owner_id", "status"),
    )

    owner_id: Mapped[UUID] = mapped_column(ForeignKey("owners.id"), nullable=False)

    title: Mapped[str] = mapped_column(String(255), nullable=False)

    budget: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("0"))

    currency: Mapped[str] = mapped_column(String(3), nullable=False, default="EUR")

    status: Mapped[ProjectStatus] = mapped_column(
        String(20),
        nullable=False,
        default=ProjectStatus.ACTIVE,
    )

    def __repr__(self) -> str:
        return f"<Project {self.title} ({self.status})>"


class LaborLog(TrackedBase):
    """Time booked against a project; ``cost_impact`` is its money value."""

    __tablename__ = "labor_logs"

    __table_args__ = (
        Index("idx_labor_project_status", "project_id", "status"),
    )

    project_id: Mapped[UUID] = mapped_column(ForeignKey("projects.id"), nullable=False)

    user_id: Mapped[UUID | None] = mapped_column(nullable=True)

    minutes: Mapped[int] = mapped_column(nullable=False, default=0)

    cost_impact: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("0"))

    status: Mapped[LaborLogStatus] = mapped_column(
        String(20),
        nullable=False,
        default=LaborLogStatus.PENDING,
    )


class Task(TrackedBase):
    """A to-do item.  Tasks without a project form the unassigned backlog."""

    __tablename__ = "tasks"

    __table_args__ = (
        Index("idx_task_owner_due", "owner_id", "due_date"),
    )

    owner_id: Mapped[UUID] = mapped_column(ForeignKey("owners.id"), nullable=False)

    project_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("projects.id"),
        nullable=True,
    )

    title: Mapped[str] = mapped_column(String(255), nullable=False)

    due_date: Mapped[date | None] = mapped_column(Date, nullable=True)

    is_completed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
