"""
ledger_modules.income.service
=============================

Responsibility:
    Registers expected income and confirms its receipt.  The gross is
    split into net and tax; the net lands in the routed vault, the tax in
    the tax reserve, each with its own ``in`` movement.

Architecture:
    Module layer.  Composes VaultStore and LedgerService; flushes, never
    commits.

Invariants enforced:
    - ``tax = gross * pct / 100``; ``net = gross - tax``.
    - Routing: only the ``personal`` category credits the personal vault;
      every other category (``life`` included) credits business.
    - A tax entry exists only when tax > 0 and is tagged ``is_tax``.
    - Recurring income advances ``due_date`` one month and stays EXPECTED.
      One-off income becomes RECEIVED, which is terminal.
    - No catch-up: a stale recurring due date is not rolled on read.
    - Double confirmation guard: row lock, conditional claim on
      (due_date, status) and idempotency keys ``income:<id>:<cycle date>``.

Failure modes:
    - ObligationNotFoundError / UnauthorizedError for unknown or foreign ids.
    - ObligationStateError when the income is already RECEIVED.
    - AlreadyConfirmedError / OptimisticLockError as for expenses.
"""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from ledger_kernel.db.types import validate_currency
from ledger_kernel.domain.calendar_math import add_one_month
from ledger_kernel.domain.clock import Clock, SystemClock
from ledger_kernel.domain.values import (
    Capability,
    Direction,
    IncomeStatus,
    SourceKind,
    VaultKind,
    income_vault_for,
)
from ledger_kernel.exceptions import (
    AlreadyConfirmedError,
    ObligationNotFoundError,
    ObligationStateError,
    OptimisticLockError,
    ValidationError,
)
from ledger_kernel.logging_config import get_logger
from ledger_kernel.models.obligation import IncomeObligation
from ledger_kernel.services.base import BaseService
from ledger_kernel.services.ledger_service import LedgerService
from ledger_kernel.services.vault_store import VaultStore
from ledger_modules._registration_helpers import (
    MAX_CATEGORY_LENGTH,
    MAX_TITLE_LENGTH,
    clean_text,
    non_negative_amount,
    percentage,
    require_own_project,
)
from ledger_modules.income.helpers import split_gross
from ledger_modules.income.models import IncomeView, NetPreview, ReceiptConfirmation

logger = get_logger("modules.income.service")


def income_idempotency_key(income_id: UUID, cycle_date: date, tax: bool = False) -> str:
    key = f"income:{income_id}:{cycle_date.isoformat()}"
    return f"{key}:tax" if tax else key


def net_preview(income: IncomeObligation | IncomeView) -> NetPreview:
    """Net/tax split of an income without touching anything."""
    net, tax = split_gross(income.gross_amount, income.tax_percentage)
    return NetPreview(
        gross_amount=income.gross_amount,
        tax_percentage=income.tax_percentage,
        net_amount=net,
        tax_amount=tax,
        net_vault=income_vault_for(income.category_class),
        currency=income.currency,
    )


class IncomeObligationScheduler(BaseService):
    """
    Income receipt confirmation.

    Non-goals:
        - No reversal of a received income.
        - No rollover of stale due dates.
    """

    def __init__(self, session: Session, clock: Clock | None = None):
        super().__init__(session)
        self._clock = clock or SystemClock()
        self._vaults = VaultStore(session)
        self._ledger = LedgerService(session, self._clock)

    def register_income(
        self,
        owner_id: UUID,
        title: str,
        gross_amount: Decimal | int | str,
        tax_percentage: Decimal | int | str,
        due_date: date,
        currency: str,
        category: str = "",
        is_recurring: bool = False,
        project_id: UUID | None = None,
    ) -> IncomeView:
        """
        Add an EXPECTED income for ``owner_id``.  No vault is touched.

        Raises:
            ValidationError: blank title, negative gross, a tax percentage
                outside 0-100, missing due date or an unknown currency.
            ProjectNotFoundError / UnauthorizedError: foreign or unknown
                ``project_id``.
        """
        self._require_owner(owner_id)
        if not isinstance(due_date, date):
            raise ValidationError("due_date", "required")
        income = IncomeObligation(
            owner_id=owner_id,
            title=clean_text("title", title, MAX_TITLE_LENGTH),
            gross_amount=non_negative_amount("gross_amount", gross_amount),
            tax_percentage=percentage("tax_percentage", tax_percentage),
            currency=validate_currency(currency),
            category=clean_text("category", category, MAX_CATEGORY_LENGTH, required=False),
            due_date=due_date,
            status=IncomeStatus.EXPECTED.value,
            is_recurring=bool(is_recurring),
            project_id=require_own_project(self.session, owner_id, project_id),
        )
        self.session.add(income)
        self.session.flush()

        logger.info(
            "income_registered",
            extra={
                "obligation_id": str(income.id),
                "gross_amount": str(income.gross_amount),
                "currency": income.currency,
                "due_date": due_date,
                "is_recurring": income.is_recurring,
            },
        )
        return IncomeView.from_model(income)

    def confirm_receipt(
        self,
        owner_id: UUID,
        income_id: UUID,
        expected_due_date: date,
        capability: Capability = Capability.OWNER,
    ) -> ReceiptConfirmation:
        """
        Record that an expected income arrived.

        Postconditions:
            - Routed vault credited by net, tax reserve by tax (if > 0).
            - One ``in`` entry per credited vault.
            - Recurring: due_date + 1 month.  One-off: status RECEIVED.

        Raises:
            ValidationError: ``expected_due_date`` is missing.
        """
        if expected_due_date is None:
            raise ValidationError("expected_due_date", "required")
        self._require_owner(owner_id)
        income = self._lock_income(income_id)
        self._check_access(income.owner_id, owner_id, capability, f"income {income_id}")
        owner_id = income.owner_id

        if income.status == IncomeStatus.RECEIVED:
            raise ObligationStateError(str(income_id), IncomeStatus.RECEIVED.value)

        cycle_date = income.due_date
        if expected_due_date != cycle_date:
            if income.is_recurring and expected_due_date < cycle_date:
                raise AlreadyConfirmedError(str(income_id), expected_due_date)
            raise OptimisticLockError("IncomeObligation", str(income_id))

        preview = net_preview(income)
        next_due = add_one_month(cycle_date) if income.is_recurring else None
        self._claim_cycle(income, next_due)

        entry_ids: list[UUID] = []
        if preview.net_amount > 0:
            entry_ids.append(
                self._credit(
                    owner_id,
                    income,
                    preview.net_vault,
                    preview.net_amount,
                    description=f"Income: {income.title}",
                    idempotency_key=income_idempotency_key(income_id, cycle_date),
                )
            )
        if preview.tax_amount > 0:
            entry_ids.append(
                self._credit(
                    owner_id,
                    income,
                    VaultKind.TAX_RESERVE,
                    preview.tax_amount,
                    description=f"Tax Provision: {income.title}",
                    idempotency_key=income_idempotency_key(income_id, cycle_date, tax=True),
                    is_tax=True,
                )
            )

        status = IncomeStatus.EXPECTED if income.is_recurring else IncomeStatus.RECEIVED
        logger.info(
            "income_receipt_confirmed",
            extra={
                "obligation_id": str(income_id),
                "net_vault": preview.net_vault.value,
                "net_amount": str(preview.net_amount),
                "tax_amount": str(preview.tax_amount),
                "currency": income.currency,
                "is_recurring": income.is_recurring,
                "status": status.value,
            },
        )
        return ReceiptConfirmation(
            income_id=income_id,
            net_vault=preview.net_vault,
            net_amount=preview.net_amount,
            tax_amount=preview.tax_amount,
            currency=income.currency,
            cycle_date=cycle_date,
            status=status,
            next_due_date=next_due,
            entry_ids=tuple(entry_ids),
        )

    def preview_receipt(
        self,
        owner_id: UUID,
        income_id: UUID,
        capability: Capability = Capability.OWNER,
    ) -> NetPreview:
        self._require_owner(owner_id)
        income = self.session.get(IncomeObligation, income_id)
        if income is None:
            raise ObligationNotFoundError(str(income_id), "income")
        self._check_access(income.owner_id, owner_id, capability, f"income {income_id}")
        return net_preview(income)

    def list_expected(self, owner_id: UUID) -> tuple[IncomeView, ...]:
        """Expected (not yet received) incomes, soonest first.  Read-only."""
        self._require_owner(owner_id)
        rows = self.session.execute(
            select(IncomeObligation)
            .where(
                IncomeObligation.owner_id == owner_id,
                IncomeObligation.status == IncomeStatus.EXPECTED.value,
            )
            .order_by(IncomeObligation.due_date, IncomeObligation.title)
        ).scalars().all()
        return tuple(IncomeView.from_model(row) for row in rows)

    def _credit(
        self,
        owner_id: UUID,
        income: IncomeObligation,
        vault_kind: VaultKind,
        amount: Decimal,
        description: str,
        idempotency_key: str,
        is_tax: bool = False,
    ) -> UUID:
        self._vaults.adjust(owner_id, vault_kind, amount, income.currency)
        return self._ledger.append(
            owner_id=owner_id,
            vault_kind=vault_kind,
            amount=amount,
            direction=Direction.IN,
            currency=income.currency,
            description=description,
            is_tax=is_tax,
            source_kind=SourceKind.INCOME,
            source_id=income.id,
            idempotency_key=idempotency_key,
        )

    def _lock_income(self, income_id: UUID) -> IncomeObligation:
        income = self.session.execute(
            select(IncomeObligation)
            .where(IncomeObligation.id == income_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()
        if income is None:
            raise ObligationNotFoundError(str(income_id), "income")
        return income

    def _claim_cycle(self, income: IncomeObligation, next_due: date | None) -> None:
        if next_due is not None:
            values = {"due_date": next_due}
        else:
            values = {"status": IncomeStatus.RECEIVED.value}
        result = self.session.execute(
            update(IncomeObligation)
            .where(
                IncomeObligation.id == income.id,
                IncomeObligation.due_date == income.due_date,
                IncomeObligation.status == IncomeStatus.EXPECTED.value,
            )
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            logger.warning(
                "income_cycle_claim_conflict",
                extra={"obligation_id": str(income.id), "cycle_date": income.due_date},
            )
            raise OptimisticLockError("IncomeObligation", str(income.id))
        self.session.expire(income, list(values))
