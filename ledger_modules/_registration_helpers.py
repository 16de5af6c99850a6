"""
Shared input checks for registering obligations.

Used by ledger_modules/recurring/service.py and ledger_modules/income/service.py
so that a bad title, amount, percentage or project is refused with
a ValidationError before anything is flushed.

Architecture: Modules layer. Imports only from ledger_kernel.
"""

from __future__ import annotations

from decimal import Decimal, InvalidOperation
from uuid import UUID

from sqlalchemy.orm import Session

from ledger_kernel.db.types import to_money
from ledger_kernel.exceptions import ProjectNotFoundError, UnauthorizedError, ValidationError
from ledger_kernel.models.project import Project

HUNDRED = Decimal("100")
MAX_TITLE_LENGTH = 255
MAX_CATEGORY_LENGTH = 100


def clean_text(field: str, value: str | None, max_length: int, required: bool = True) -> str:
    text = (value or "").strip()
    if required and not text:
        raise ValidationError(field, "must not be empty")
    if len(text) > max_length:
        raise ValidationError(field, f"longer than {max_length} characters")
    return text


def non_negative_amount(field: str, value: Decimal | int | str) -> Decimal:
    try:
        amount = to_money(value)
    except (TypeError, InvalidOperation) as exc:
        raise ValidationError(field, f"not a decimal amount: {value!r}") from exc
    if not amount.is_finite() or amount < 0:
        raise ValidationError(field, f"must be a non-negative amount, got {amount}")
    return amount


def percentage(field: str, value: Decimal | int | str) -> Decimal:
    pct = non_negative_amount(field, value)
    if pct > HUNDRED:
        raise ValidationError(field, f"must be within 0-100, got {pct}")
    return pct


def require_own_project(session: Session, owner_id: UUID, project_id: UUID | None) -> UUID | None:
    """Check that ``project_id`` (when given) is one of the owner's projects."""
    if project_id is None:
        return None
    project = session.get(Project, project_id)
    if project is None:
        raise ProjectNotFoundError(str(project_id))
    if project.owner_id != owner_id:
        raise UnauthorizedError(str(owner_id), f"project {project_id}")
    return project_id
