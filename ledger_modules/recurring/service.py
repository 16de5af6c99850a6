"""
ledger_modules.recurring.service
================================

Responsibility:
    Confirms payments of recurring expense obligations and keeps their
    renewal dates current.  A confirmation debits the right vault, appends
    one ``out`` movement and advances the renewal date by one calendar
    month, all in the caller's transaction.
    New obligations are registered here too, with their inputs checked
    before anything is flushed.

Architecture:
    Module layer.  Composes the kernel's VaultStore and LedgerService;
    flushes, never commits (LedgerApi owns the boundary).

Invariants enforced:
    - One confirmation = one month advance, however stale the date was.
    - Vault routing: ``life`` / ``personal`` categories pay from the personal
      vault, everything else from business.
    - The obligation's own currency is recorded; nothing is converted.
    - Double confirmation guard: the obligation row is locked
      (``SELECT ... FOR UPDATE``), the cycle is claimed with a conditional
      ``UPDATE ... WHERE renewal_date = :read`` and the ledger entry carries
      the idempotency key ``expense:<id>:<cycle date>``.
    - Passive rollover never touches a vault or the ledger.

Failure modes:
    - ValidationError when ``expected_renewal_date`` is not given.
    - ObligationNotFoundError / UnauthorizedError for unknown or foreign ids.
    - ObligationStateError for an inactive obligation.
    - AlreadyConfirmedError when the caller's ``expected_renewal_date`` has
      already been confirmed.
    - OptimisticLockError when the claim finds the row changed underneath.
"""

from __future__ import annotations

from datetime import date, timedelta
from decimal import Decimal
from uuid import UUID

from sqlalchemy import func, select, update
from sqlalchemy.orm import Session

from ledger_kernel.db.types import validate_currency
from ledger_kernel.domain.calendar_math import add_one_month, roll_forward
from ledger_kernel.domain.clock import Clock, SystemClock
from ledger_kernel.domain.values import (
    Capability,
    Direction,
    SourceKind,
    expense_vault_for,
)
from ledger_kernel.exceptions import (
    AlreadyConfirmedError,
    ObligationNotFoundError,
    ObligationStateError,
    OptimisticLockError,
    ValidationError,
)
from ledger_kernel.logging_config import get_logger
from ledger_kernel.models.obligation import ExpenseObligation
from ledger_kernel.services.base import BaseService
from ledger_kernel.services.ledger_service import LedgerService
from ledger_kernel.services.vault_store import VaultStore
from ledger_modules._registration_helpers import (
    MAX_CATEGORY_LENGTH,
    MAX_TITLE_LENGTH,
    clean_text,
    non_negative_amount,
    require_own_project,
)
from ledger_modules.recurring.models import (
    ExpenseView,
    PaymentConfirmation,
    RolloverOutcome,
)

logger = get_logger("modules.recurring.service")


def expense_idempotency_key(obligation_id: UUID, cycle_date: date) -> str:
    return f"expense:{obligation_id}:{cycle_date.isoformat()}"


class RecurringObligationScheduler(BaseService):
    """
    Recurring expense confirmation and date rollover.

    Contract:
        Every public method flushes inside the caller's transaction and
        either completes all of its writes or raises before the caller
        commits.

    Non-goals:
        - Does NOT send notifications (LedgerApi does, after commit).
        - Does NOT undo a confirmed payment.
    """

    def __init__(self, session: Session, clock: Clock | None = None):
        super().__init__(session)
        self._clock = clock or SystemClock()
        self._vaults = VaultStore(session)
        self._ledger = LedgerService(session, self._clock)

    # =========================================================================
    # Registration
    # =========================================================================

    def register_expense(
        self,
        owner_id: UUID,
        title: str,
        cost: Decimal | int | str,
        renewal_date: date,
        currency: str,
        category: str = "",
        project_id: UUID | None = None,
    ) -> ExpenseView:
        """
        Add an active recurring expense for ``owner_id``.

        Every input is checked before the row is flushed; nothing is
        written to a vault or the ledger.

        Raises:
            ValidationError: blank title, negative or non-decimal cost,
                missing renewal date, or an unknown currency.
            ProjectNotFoundError / UnauthorizedError: ``project_id`` is not
                one of the owner's projects.
        """
        self._require_owner(owner_id)
        if not isinstance(renewal_date, date):
            raise ValidationError("renewal_date", "required")
        obligation = ExpenseObligation(
            owner_id=owner_id,
            title=clean_text("title", title, MAX_TITLE_LENGTH),
            cost=non_negative_amount("cost", cost),
            currency=validate_currency(currency),
            category=clean_text("category", category, MAX_CATEGORY_LENGTH, required=False),
            renewal_date=renewal_date,
            project_id=require_own_project(self.session, owner_id, project_id),
            active=True,
        )
        self.session.add(obligation)
        self.session.flush()

        logger.info(
            "expense_registered",
            extra={
                "obligation_id": str(obligation.id),
                "cost": str(obligation.cost),
                "currency": obligation.currency,
                "renewal_date": renewal_date,
            },
        )
        return ExpenseView.from_model(obligation)

    # =========================================================================
    # Confirmation
    # =========================================================================

    def confirm_payment(
        self,
        owner_id: UUID,
        obligation_id: UUID,
        expected_renewal_date: date,
        capability: Capability = Capability.OWNER,
    ) -> PaymentConfirmation:
        """
        Record that the current cycle of an expense has been paid.

        Preconditions:
            - The obligation exists, belongs to ``owner_id`` and is active.
        Postconditions:
            - The routed vault is debited by ``cost``; one ``out`` entry is
              appended; ``renewal_date`` moved forward one month.
        ``expected_renewal_date`` is the cycle the caller was shown.  It is
        required: without it a replayed request would pay the next cycle.

        Raises:
            ValidationError: ``expected_renewal_date`` is missing.
            AlreadyConfirmedError: ``expected_renewal_date`` is older than
                the stored cycle, i.e. that cycle was confirmed already.
            OptimisticLockError: ``expected_renewal_date`` is newer than the
                stored cycle.
        """
        if expected_renewal_date is None:
            raise ValidationError("expected_renewal_date", "required")
        self._require_owner(owner_id)
        obligation = self._lock_expense(obligation_id)
        self._check_access(obligation.owner_id, owner_id, capability, f"expense {obligation_id}")
        if not obligation.active:
            raise ObligationStateError(str(obligation_id), "inactive")
        owner_id = obligation.owner_id

        cycle_date = obligation.renewal_date
        if expected_renewal_date != cycle_date:
            if expected_renewal_date < cycle_date:
                logger.info(
                    "expense_payment_already_confirmed",
                    extra={
                        "obligation_id": str(obligation_id),
                        "expected_renewal_date": expected_renewal_date,
                        "renewal_date": cycle_date,
                    },
                )
                raise AlreadyConfirmedError(str(obligation_id), expected_renewal_date)
            raise OptimisticLockError("ExpenseObligation", str(obligation_id))

        next_date = add_one_month(cycle_date)
        self._claim_cycle(obligation, next_date)

        vault_kind = expense_vault_for(obligation.category_class)
        entry_id = None
        new_balance = None
        if obligation.cost > 0:
            new_balance = self._vaults.adjust(
                owner_id, vault_kind, -obligation.cost, obligation.currency
            )
            entry_id = self._ledger.append(
                owner_id=owner_id,
                vault_kind=vault_kind,
                amount=obligation.cost,
                direction=Direction.OUT,
                currency=obligation.currency,
                description=f"Payment: {obligation.title}",
                source_kind=SourceKind.EXPENSE,
                source_id=obligation_id,
                idempotency_key=expense_idempotency_key(obligation_id, cycle_date),
            )

        logger.info(
            "expense_payment_confirmed",
            extra={
                "obligation_id": str(obligation_id),
                "vault_kind": vault_kind.value,
                "amount": str(obligation.cost),
                "currency": obligation.currency,
                "cycle_date": cycle_date,
                "next_renewal_date": next_date,
            },
        )
        return PaymentConfirmation(
            obligation_id=obligation_id,
            vault_kind=vault_kind,
            amount=obligation.cost,
            currency=obligation.currency,
            cycle_date=cycle_date,
            next_renewal_date=next_date,
            entry_id=entry_id,
            new_balance=new_balance,
        )

    # =========================================================================
    # Passive rollover
    # =========================================================================

    def passive_rollover(self, obligation: ExpenseObligation) -> RolloverOutcome:
        """
        Roll a stale renewal date forward to today or later.

        Idempotent: a second call on the same day changes nothing.  Vaults
        and the ledger are untouched.
        """
        previous = obligation.renewal_date
        rolled, steps = roll_forward(previous, self._clock.today())
        if steps:
            result = self.session.execute(
                update(ExpenseObligation)
                .where(
                    ExpenseObligation.id == obligation.id,
                    ExpenseObligation.renewal_date == previous,
                )
                .values(renewal_date=rolled)
                .execution_options(synchronize_session=False)
            )
            self.session.refresh(obligation, ["renewal_date"])
            if result.rowcount == 0:
                # A concurrent confirmation moved the date; start from its value.
                return self.passive_rollover(obligation)
            logger.info(
                "expense_rolled_over",
                extra={
                    "obligation_id": str(obligation.id),
                    "previous_date": previous,
                    "renewal_date": rolled,
                    "months_advanced": steps,
                },
            )
        return RolloverOutcome(
            obligation_id=obligation.id,
            previous_date=previous,
            renewal_date=obligation.renewal_date,
            months_advanced=steps,
        )

    def list_upcoming(
        self,
        owner_id: UUID,
        within_days: int | None = None,
    ) -> tuple[ExpenseView, ...]:
        """
        Active expenses of the owner, rolled forward, soonest first.

        ``within_days`` keeps only renewals due on or before today + N.
        """
        self._require_owner(owner_id)
        rows = self.session.execute(
            select(ExpenseObligation)
            .where(
                ExpenseObligation.owner_id == owner_id,
                ExpenseObligation.active.is_(True),
            )
        ).scalars().all()

        for row in rows:
            self.passive_rollover(row)
        self.session.flush()

        horizon = None
        if within_days is not None:
            horizon = self._clock.today() + timedelta(days=within_days)
        views = [
            ExpenseView.from_model(row)
            for row in rows
            if horizon is None or row.renewal_date <= horizon
        ]
        return tuple(sorted(views, key=lambda v: (v.renewal_date, v.title)))

    def pending_expense_count(self, owner_id: UUID, within_days: int) -> int:
        """Active expenses due on or before today + ``within_days`` (overdue included)."""
        self._require_owner(owner_id)
        horizon = self._clock.today() + timedelta(days=within_days)
        return self.session.execute(
            select(func.count())
            .select_from(ExpenseObligation)
            .where(
                ExpenseObligation.owner_id == owner_id,
                ExpenseObligation.active.is_(True),
                ExpenseObligation.renewal_date <= horizon,
            )
        ).scalar_one()

    # =========================================================================
    # Internals
    # =========================================================================

    def _lock_expense(self, obligation_id: UUID) -> ExpenseObligation:
        obligation = self.session.execute(
            select(ExpenseObligation)
            .where(ExpenseObligation.id == obligation_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()
        if obligation is None:
            raise ObligationNotFoundError(str(obligation_id), "expense")
        return obligation

    def _claim_cycle(self, obligation: ExpenseObligation, next_date: date) -> None:
        obligation_id = obligation.id
        cycle_date = obligation.renewal_date
        result = self.session.execute(
            update(ExpenseObligation)
            .where(
                ExpenseObligation.id == obligation_id,
                ExpenseObligation.renewal_date == cycle_date,
            )
            .values(renewal_date=next_date)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            logger.warning(
                "expense_cycle_claim_conflict",
                extra={"obligation_id": str(obligation_id), "cycle_date": cycle_date},
            )
            raise OptimisticLockError("ExpenseObligation", str(obligation_id))
        self.session.expire(obligation, ["renewal_date"])
