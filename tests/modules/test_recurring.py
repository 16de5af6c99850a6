"""Recurring expense registration, confirmation and passive rollover."""

from datetime import date, timedelta
from decimal import Decimal
from uuid import uuid4

import pytest
from sqlalchemy import func, select

from ledger_kernel.domain.values import Capability, Direction, VaultKind
from ledger_kernel.exceptions import (
    AlreadyConfirmedError,
    ObligationNotFoundError,
    ObligationStateError,
    OptimisticLockError,
    ProjectNotFoundError,
    UnauthorizedError,
    ValidationError,
)
from ledger_kernel.models.ledger import LedgerEntry
from ledger_kernel.selectors.ledger_selector import LedgerSelector
from ledger_kernel.services.reconciliation_service import ReconciliationService
from ledger_kernel.services.vault_store import VaultStore
from ledger_modules.recurring.service import (
    RecurringObligationScheduler,
    expense_idempotency_key,
)
from tests.conftest import TEST_TODAY, create_expense, create_project

FIRST_CYCLE = date(2024, 1, 15)


def _entry_count(session, owner_id) -> int:
    return session.execute(
        select(func.count()).select_from(LedgerEntry).where(LedgerEntry.owner_id == owner_id)
    ).scalar_one()


class TestConfirmPayment:

    def test_business_payment_debits_business_and_advances_one_month(
        self, session, owner, expense, deterministic_clock
    ):
        scheduler = RecurringObligationScheduler(session, deterministic_clock)

        confirmation = scheduler.confirm_payment(owner.id, expense.id, FIRST_CYCLE)

        assert confirmation.vault_kind is VaultKind.BUSINESS
        assert confirmation.amount == Decimal("20")
        assert confirmation.cycle_date == FIRST_CYCLE
        assert confirmation.next_renewal_date == date(2024, 2, 15)
        assert VaultStore(session).get_balances(owner.id).business == Decimal("-20")

        (entry,) = LedgerSelector(session).list(owner.id).entries
        assert entry.direction is Direction.OUT
        assert entry.amount == Decimal("20")
        assert entry.currency == "EUR"
        assert entry.description == "Payment: Hosting"
        assert entry.source_id == expense.id

        session.refresh(expense)
        assert expense.renewal_date == date(2024, 2, 15)

    def test_one_month_per_confirmation_however_stale(self, session, owner, deterministic_clock):
        stale = create_expense(session, owner.id, renewal_date=date(2023, 6, 10))
        RecurringObligationScheduler(session, deterministic_clock).confirm_payment(
            owner.id, stale.id, date(2023, 6, 10)
        )

        session.refresh(stale)
        assert stale.renewal_date == date(2023, 7, 10)

    @pytest.mark.parametrize("category", ["life", "Personal", " LIFE "])
    def test_private_categories_pay_from_personal(self, session, owner, deterministic_clock, category):
        obligation = create_expense(session, owner.id, category=category, cost=Decimal("12.99"))
        confirmation = RecurringObligationScheduler(session, deterministic_clock).confirm_payment(
            owner.id, obligation.id, FIRST_CYCLE
        )

        assert confirmation.vault_kind is VaultKind.PERSONAL
        balances = VaultStore(session).get_balances(owner.id)
        assert balances.personal == Decimal("-12.99")
        assert balances.business == 0

    def test_currency_is_recorded_not_converted(self, session, owner, deterministic_clock):
        obligation = create_expense(session, owner.id, currency="USD", cost=Decimal("9"))
        RecurringObligationScheduler(session, deterministic_clock).confirm_payment(
            owner.id, obligation.id, FIRST_CYCLE
        )

        (entry,) = LedgerSelector(session).list(owner.id).entries
        assert entry.currency == "USD"
        assert entry.amount == Decimal("9")

    def test_zero_cost_advances_without_money(self, session, owner, deterministic_clock):
        free = create_expense(session, owner.id, cost=Decimal("0"))
        confirmation = RecurringObligationScheduler(session, deterministic_clock).confirm_payment(
            owner.id, free.id, FIRST_CYCLE
        )

        assert confirmation.entry_id is None
        assert _entry_count(session, owner.id) == 0
        session.refresh(free)
        assert free.renewal_date == date(2024, 2, 15)

    def test_idempotency_key_names_the_cycle(self, session, owner, expense, deterministic_clock):
        RecurringObligationScheduler(session, deterministic_clock).confirm_payment(
            owner.id, expense.id, FIRST_CYCLE
        )
        key = session.execute(
            select(LedgerEntry.idempotency_key).where(LedgerEntry.owner_id == owner.id)
        ).scalar_one()
        assert key == expense_idempotency_key(expense.id, FIRST_CYCLE)

    def test_replayed_cycle_is_already_confirmed(self, session, owner, expense, deterministic_clock):
        scheduler = RecurringObligationScheduler(session, deterministic_clock)
        scheduler.confirm_payment(owner.id, expense.id, expected_renewal_date=FIRST_CYCLE)

        with pytest.raises(AlreadyConfirmedError):
            scheduler.confirm_payment(owner.id, expense.id, expected_renewal_date=FIRST_CYCLE)

        assert VaultStore(session).get_balances(owner.id).business == Decimal("-20")
        assert _entry_count(session, owner.id) == 1

    def test_future_expected_date_is_a_conflict(self, session, owner, expense, deterministic_clock):
        with pytest.raises(OptimisticLockError):
            RecurringObligationScheduler(session, deterministic_clock).confirm_payment(
                owner.id, expense.id, expected_renewal_date=date(2024, 3, 15)
            )

    def test_missing_cycle_date_is_refused(self, session, owner, expense, deterministic_clock):
        scheduler = RecurringObligationScheduler(session, deterministic_clock)

        with pytest.raises(ValidationError, match="expected_renewal_date"):
            scheduler.confirm_payment(owner.id, expense.id, None)

        assert VaultStore(session).get_balances(owner.id).business == 0
        assert _entry_count(session, owner.id) == 0
        session.refresh(expense)
        assert expense.renewal_date == FIRST_CYCLE

    def test_inactive_obligation(self, session, owner, deterministic_clock):
        paused = create_expense(session, owner.id, active=False)
        with pytest.raises(ObligationStateError):
            RecurringObligationScheduler(session, deterministic_clock).confirm_payment(
                owner.id, paused.id, FIRST_CYCLE
            )

    def test_unknown_obligation(self, session, owner, deterministic_clock):
        with pytest.raises(ObligationNotFoundError):
            RecurringObligationScheduler(session, deterministic_clock).confirm_payment(
                owner.id, uuid4(), FIRST_CYCLE
            )

    def test_foreign_obligation(self, session, owner, other_owner, expense, deterministic_clock):
        with pytest.raises(UnauthorizedError):
            RecurringObligationScheduler(session, deterministic_clock).confirm_payment(
                other_owner.id, expense.id, FIRST_CYCLE
            )
        assert _entry_count(session, owner.id) == 0

    def test_service_capability_acts_for_the_obligation_owner(
        self, session, owner, other_owner, expense, deterministic_clock
    ):
        RecurringObligationScheduler(session, deterministic_clock).confirm_payment(
            other_owner.id, expense.id, FIRST_CYCLE, capability=Capability.SERVICE
        )

        assert VaultStore(session).get_balances(owner.id).business == Decimal("-20")
        assert VaultStore(session).get_balances(other_owner.id).business == 0

    def test_balance_matches_ledger_after_many_confirmations(self, session, owner, deterministic_clock):
        scheduler = RecurringObligationScheduler(session, deterministic_clock)
        for cost, category in (("20", "business"), ("7.5", "life"), ("100", "software")):
            obligation = create_expense(session, owner.id, cost=Decimal(cost), category=category)
            scheduler.confirm_payment(owner.id, obligation.id, FIRST_CYCLE)
            scheduler.confirm_payment(owner.id, obligation.id, date(2024, 2, 15))

        rows = ReconciliationService(session).reconcile(owner.id)
        assert all(r.is_consistent for r in rows)
        assert VaultStore(session).get_balances(owner.id).business == Decimal("-240")


class TestRegisterExpense:

    def test_registered_expense_is_active_and_moves_no_money(self, session, owner, deterministic_clock):
        view = RecurringObligationScheduler(session, deterministic_clock).register_expense(
            owner.id, "  Hosting  ", "20.00", date(2024, 3, 10), "eur", category="software"
        )

        assert view.title == "Hosting"
        assert view.cost == Decimal("20.00")
        assert view.currency == "EUR"
        assert view.renewal_date == date(2024, 3, 10)
        assert view.active
        assert view.project_id is None
        assert VaultStore(session).get_balances(owner.id).business == 0
        assert _entry_count(session, owner.id) == 0

    def test_registered_expense_can_be_confirmed(self, session, owner, deterministic_clock):
        scheduler = RecurringObligationScheduler(session, deterministic_clock)
        view = scheduler.register_expense(owner.id, "Gym", Decimal("30"), date(2024, 3, 5), "EUR", "life")

        confirmation = scheduler.confirm_payment(owner.id, view.id, view.renewal_date)

        assert confirmation.vault_kind is VaultKind.PERSONAL
        assert VaultStore(session).get_balances(owner.id).personal == Decimal("-30")

    def test_attached_to_own_project(self, session, owner, deterministic_clock):
        project = create_project(session, owner.id)
        view = RecurringObligationScheduler(session, deterministic_clock).register_expense(
            owner.id, "Plugin", Decimal("5"), date(2024, 3, 5), "EUR", project_id=project.id
        )
        assert view.project_id == project.id

    @pytest.mark.parametrize(
        "title, cost, renewal, currency, field",
        [
            ("   ", Decimal("1"), date(2024, 3, 5), "EUR", "title"),
            ("Rent", Decimal("-1"), date(2024, 3, 5), "EUR", "cost"),
            ("Rent", "ten", date(2024, 3, 5), "EUR", "cost"),
            ("Rent", 1.5, date(2024, 3, 5), "EUR", "cost"),
            ("Rent", Decimal("1"), None, "EUR", "renewal_date"),
            ("Rent", Decimal("1"), date(2024, 3, 5), "XXX", "currency"),
        ],
    )
    def test_bad_input_is_refused_before_flush(
        self, session, owner, deterministic_clock, title, cost, renewal, currency, field
    ):
        scheduler = RecurringObligationScheduler(session, deterministic_clock)

        with pytest.raises(ValidationError) as excinfo:
            scheduler.register_expense(owner.id, title, cost, renewal, currency)

        assert excinfo.value.field == field
        assert scheduler.list_upcoming(owner.id) == ()

    def test_unknown_project(self, session, owner, deterministic_clock):
        with pytest.raises(ProjectNotFoundError):
            RecurringObligationScheduler(session, deterministic_clock).register_expense(
                owner.id, "Plugin", Decimal("5"), date(2024, 3, 5), "EUR", project_id=uuid4()
            )

    def test_foreign_project(self, session, owner, other_owner, deterministic_clock):
        project = create_project(session, other_owner.id)
        with pytest.raises(UnauthorizedError):
            RecurringObligationScheduler(session, deterministic_clock).register_expense(
                owner.id, "Plugin", Decimal("5"), date(2024, 3, 5), "EUR", project_id=project.id
            )


class TestPassiveRollover:

    def test_stale_date_rolls_to_first_renewal_from_today(
        self, session, owner, deterministic_clock, stale_date
    ):
        obligation = create_expense(session, owner.id, renewal_date=stale_date)
        scheduler = RecurringObligationScheduler(session, deterministic_clock)

        outcome = scheduler.passive_rollover(obligation)

        assert outcome.months_advanced == 4
        assert outcome.previous_date == stale_date
        assert outcome.renewal_date >= TEST_TODAY
        assert outcome.renewal_date - timedelta(days=31) < TEST_TODAY
        assert VaultStore(session).get_balances(owner.id).business == 0
        assert _entry_count(session, owner.id) == 0

    def test_second_call_changes_nothing(self, session, owner, deterministic_clock, stale_date):
        obligation = create_expense(session, owner.id, renewal_date=stale_date)
        scheduler = RecurringObligationScheduler(session, deterministic_clock)
        first = scheduler.passive_rollover(obligation)

        second = scheduler.passive_rollover(obligation)

        assert not second.changed
        assert second.renewal_date == first.renewal_date

    def test_current_date_untouched(self, session, owner, deterministic_clock):
        obligation = create_expense(session, owner.id, renewal_date=TEST_TODAY)
        outcome = RecurringObligationScheduler(session, deterministic_clock).passive_rollover(obligation)
        assert outcome.months_advanced == 0
        assert obligation.renewal_date == TEST_TODAY


class TestUpcoming:

    def test_list_rolls_forward_and_sorts(self, session, owner, deterministic_clock, stale_date):
        create_expense(session, owner.id, title="Zeta", renewal_date=date(2024, 3, 5))
        create_expense(session, owner.id, title="Alpha", renewal_date=stale_date)
        create_expense(session, owner.id, title="Off", renewal_date=stale_date, active=False)

        views = RecurringObligationScheduler(session, deterministic_clock).list_upcoming(owner.id)

        assert [v.title for v in views] == ["Zeta", "Alpha"]
        assert all(v.renewal_date >= TEST_TODAY for v in views)

    def test_window(self, session, owner, deterministic_clock):
        create_expense(session, owner.id, title="Soon", renewal_date=date(2024, 3, 4))
        create_expense(session, owner.id, title="Later", renewal_date=date(2024, 3, 20))

        views = RecurringObligationScheduler(session, deterministic_clock).list_upcoming(
            owner.id, within_days=7
        )
        assert [v.title for v in views] == ["Soon"]

    def test_pending_count_includes_overdue(self, session, owner, deterministic_clock, stale_date):
        create_expense(session, owner.id, renewal_date=stale_date)
        create_expense(session, owner.id, renewal_date=date(2024, 3, 8))
        create_expense(session, owner.id, renewal_date=date(2024, 3, 9))
        create_expense(session, owner.id, renewal_date=date(2024, 3, 2), active=False)

        count = RecurringObligationScheduler(session, deterministic_clock).pending_expense_count(owner.id, 7)
        assert count == 2
