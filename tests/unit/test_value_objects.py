"""Frozen result objects: runway, budget health, allocation, reconciliation."""

from datetime import datetime, timezone
from decimal import Decimal
from uuid import uuid4

import pytest

from ledger_kernel.domain.dtos import (
    CalendarSection,
    LedgerEntryView,
    LedgerFilters,
    LedgerPage,
    VaultBalances,
    VaultReconciliation,
)
from ledger_kernel.domain.values import Direction, VaultKind
from ledger_modules.budget.models import BudgetHealth, FinancesAudit, ProjectBudgetLine, Runway
from ledger_modules.budget.service import burn_percentage, project_runway
from ledger_modules.overhead.models import OverheadAllocation
from ledger_modules.strategic.service import allocation_health, portfolio_runway

NOW = datetime(2024, 3, 1, 12, tzinfo=timezone.utc)


class TestRunway:

    def test_unbounded_serialises_as_string(self):
        runway = project_runway(Decimal("650"), Decimal("0"))
        assert runway.is_unbounded
        assert runway.to_json() == "unbounded"
        assert str(runway) == "unbounded"

    def test_negative_burn_is_unbounded(self):
        assert project_runway(Decimal("100"), Decimal("-5")) == Runway.unbounded()

    def test_rounded_to_one_decimal(self):
        runway = project_runway(Decimal("650"), Decimal("216.67"))
        assert runway.months == Decimal("3.0")
        assert runway.to_json() == "3.0"


class TestBurnPercentage:

    def test_share_of_budget_consumed(self):
        assert burn_percentage(Decimal("350"), Decimal("1000")) == Decimal("35")

    def test_rounds_half_up(self):
        assert burn_percentage(Decimal("345"), Decimal("1000")) == Decimal("35")

    def test_clamped_at_hundred(self):
        assert burn_percentage(Decimal("1500"), Decimal("1000")) == Decimal("100")

    def test_zero_budget(self):
        assert burn_percentage(Decimal("50"), Decimal("0")) == 0


class TestBudgetHealth:

    def _health(self, **overrides):
        values = dict(
            project_id=uuid4(),
            initial_budget=Decimal("1000"),
            direct_expenses=Decimal("200"),
            labor_cost=Decimal("150"),
            total_consumed=Decimal("350"),
            remaining_budget=Decimal("650"),
            burn_percentage=Decimal("35"),
            is_depleted=False,
            overhead_weight=Decimal("0"),
            runway=Runway.unbounded(),
        )
        values.update(overrides)
        return BudgetHealth(**values)

    def test_valid(self):
        assert self._health().total_consumed == Decimal("350")

    def test_consumed_must_add_up(self):
        with pytest.raises(ValueError):
            self._health(total_consumed=Decimal("300"))

    def test_burn_out_of_range(self):
        with pytest.raises(ValueError):
            self._health(burn_percentage=Decimal("101"))


class TestAllocation:

    def test_under_allocated(self):
        health = allocation_health(Decimal("5000"), Decimal("2000"))
        assert health.free_cash == Decimal("3000")
        assert not health.is_over_allocated
        assert health.utilization_rate == Decimal("40")

    def test_over_allocated(self):
        health = allocation_health(Decimal("1000"), Decimal("1500"))
        assert health.is_over_allocated
        assert health.free_cash == Decimal("-500")
        assert health.utilization_rate == Decimal("150")

    def test_no_cash(self):
        health = allocation_health(Decimal("0"), Decimal("100"))
        assert health.utilization_rate == 0
        assert health.is_over_allocated

    def test_portfolio_runway(self):
        assert portfolio_runway(Decimal("1000"), Decimal("300")) == Decimal("3.3")
        assert portfolio_runway(Decimal("1000"), Decimal("0")) == 0

    def test_finances_audit_total(self):
        audit = FinancesAudit(
            total_tax_isolated=Decimal("220"),
            projects=(
                ProjectBudgetLine(uuid4(), "A", Decimal("1000"), "EUR", "active"),
                ProjectBudgetLine(uuid4(), "B", Decimal("500"), "EUR", "paused"),
            ),
        )
        assert audit.total_allocated == Decimal("1500")


class TestOverheadAllocation:

    def test_weight_must_be_zero_without_projects(self):
        with pytest.raises(ValueError):
            OverheadAllocation(Decimal("50"), Decimal("50"), 0)


class TestKernelDtos:

    def test_total_cash_excludes_tax_reserve(self):
        balances = VaultBalances(uuid4(), Decimal("100"), Decimal("50"), Decimal("999"))
        assert balances.total_cash == Decimal("150")
        assert balances.get(VaultKind.TAX_RESERVE) == Decimal("999")

    def test_cash_currencies_ignore_tax_reserve(self):
        balances = VaultBalances(
            uuid4(),
            Decimal("100"),
            Decimal("50"),
            Decimal("9"),
            currencies={VaultKind.BUSINESS: "EUR", VaultKind.TAX_RESERVE: "USD"},
        )
        assert balances.cash_currencies == frozenset({"EUR"})
        assert not balances.has_mixed_cash_currencies

    def test_entry_amount_must_be_positive(self):
        with pytest.raises(ValueError):
            LedgerEntryView(
                id=uuid4(),
                owner_id=uuid4(),
                vault_kind=VaultKind.BUSINESS,
                amount=Decimal("0"),
                direction=Direction.OUT,
                currency="EUR",
                description="Payment: Hosting",
                created_at=NOW,
            )

    def test_signed_amount(self):
        view = LedgerEntryView(
            id=uuid4(),
            owner_id=uuid4(),
            vault_kind=VaultKind.BUSINESS,
            amount=Decimal("20"),
            direction=Direction.OUT,
            currency="EUR",
            description="Payment: Hosting",
            created_at=NOW,
        )
        assert view.signed_amount == Decimal("-20")

    def test_inverted_filter_range(self):
        with pytest.raises(ValueError):
            LedgerFilters(created_from=NOW, created_to=NOW.replace(year=2023))

    def test_page_has_more(self):
        assert LedgerPage(entries=(), total=5, limit=2, offset=4).has_more is True
        assert LedgerPage(entries=(), total=4, limit=2, offset=4).has_more is False

    def test_degraded_calendar(self):
        section = CalendarSection.degraded_empty()
        assert section.events == ()
        assert section.degraded

    def test_reconciliation_drift(self):
        row = VaultReconciliation(
            vault_kind=VaultKind.BUSINESS,
            balance=Decimal("80"),
            carried_forward=Decimal("100"),
            ledger_total=Decimal("-20"),
        )
        assert row.is_consistent
        drifted = VaultReconciliation(VaultKind.BUSINESS, Decimal("75"), Decimal("100"), Decimal("-20"))
        assert drifted.drift == Decimal("-5")
