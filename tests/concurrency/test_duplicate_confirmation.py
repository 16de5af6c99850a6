"""
Two callers confirm the same expense cycle at the same moment.

Each thread gets its own session from the tracked factory, so both
transactions really commit against the shared database.  Exactly one may
debit the vault; the other must see the cycle as already confirmed.  A
call that does not name the cycle it was shown is refused outright.
"""

import threading
from datetime import date
from decimal import Decimal

import pytest
from sqlalchemy import func, select

from ledger_kernel.models.ledger import LedgerEntry
from ledger_kernel.models.obligation import ExpenseObligation
from ledger_kernel.services.vault_store import VaultStore
from ledger_services.api import LedgerApi, ResultStatus
from tests.conftest import create_expense, create_income, create_owner

pytestmark = pytest.mark.slow_locks


def _race(session_factory, clock, call):
    barrier = threading.Barrier(2)
    results = []
    errors = []

    def worker():
        api = LedgerApi(session_factory(), clock)
        try:
            barrier.wait(timeout=10)
            results.append(call(api))
        except Exception as exc:
            errors.append(exc)

    threads = [threading.Thread(target=worker) for _ in range(2)]
    for t in threads:
        t.start()
    for t in threads:
        t.join(timeout=60)

    assert errors == []
    return sorted(r.status.value for r in results)


def test_concurrent_expense_confirmation_debits_once(session_factory, deterministic_clock):
    setup = session_factory()
    owner = create_owner(setup)
    expense = create_expense(setup, owner.id, cost=Decimal("20"))
    owner_id, expense_id = owner.id, expense.id
    setup.commit()

    statuses = _race(
        session_factory,
        deterministic_clock,
        lambda api: api.confirm_expense_payment(owner_id, expense_id, date(2024, 1, 15)),
    )

    assert ResultStatus.SUCCESS.value in statuses
    assert statuses.count(ResultStatus.SUCCESS.value) == 1
    assert set(statuses) <= {
        ResultStatus.SUCCESS.value,
        ResultStatus.ALREADY_CONFIRMED.value,
        ResultStatus.CONFLICT.value,
    }

    check = session_factory()
    assert VaultStore(check).get_balances(owner_id).business == Decimal("-20")
    assert check.execute(
        select(func.count()).select_from(LedgerEntry).where(LedgerEntry.source_id == expense_id)
    ).scalar_one() == 1
    assert check.execute(
        select(ExpenseObligation.renewal_date).where(ExpenseObligation.id == expense_id)
    ).scalar_one() == date(2024, 2, 15)


def test_concurrent_income_confirmation_credits_once(session_factory, deterministic_clock):
    setup = session_factory()
    owner = create_owner(setup)
    income = create_income(setup, owner.id, is_recurring=True)
    owner_id, income_id, due = owner.id, income.id, income.due_date
    setup.commit()

    statuses = _race(
        session_factory,
        deterministic_clock,
        lambda api: api.confirm_income_receipt(owner_id, income_id, due),
    )

    assert statuses.count(ResultStatus.SUCCESS.value) == 1

    balances = VaultStore(session_factory()).get_balances(owner_id)
    assert balances.business == Decimal("780")
    assert balances.tax_reserve == Decimal("220")


def test_concurrent_confirmations_without_cycle_date_are_refused(session_factory, deterministic_clock):
    setup = session_factory()
    owner = create_owner(setup)
    expense = create_expense(setup, owner.id, cost=Decimal("20"))
    income = create_income(setup, owner.id, is_recurring=True)
    owner_id, expense_id, income_id = owner.id, expense.id, income.id
    setup.commit()

    expense_statuses = _race(
        session_factory,
        deterministic_clock,
        lambda api: api.confirm_expense_payment(owner_id, expense_id, None),
    )
    income_statuses = _race(
        session_factory,
        deterministic_clock,
        lambda api: api.confirm_income_receipt(owner_id, income_id, None),
    )

    assert expense_statuses == [ResultStatus.VALIDATION_ERROR.value] * 2
    assert income_statuses == [ResultStatus.VALIDATION_ERROR.value] * 2

    check = session_factory()
    balances = VaultStore(check).get_balances(owner_id)
    assert (balances.business, balances.tax_reserve) == (0, 0)
    assert check.execute(
        select(func.count()).select_from(LedgerEntry).where(LedgerEntry.owner_id == owner_id)
    ).scalar_one() == 0
    assert check.execute(
        select(ExpenseObligation.renewal_date).where(ExpenseObligation.id == expense_id)
    ).scalar_one() == date(2024, 1, 15)
