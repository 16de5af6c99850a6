"""
DTOs -- Pure kernel data transfer objects.

Responsibility:
    Immutable values that cross the kernel boundary: the three-vault balance
    snapshot, the read view of a ledger entry, list filters and the page
    returned by the ledger selector, and the calendar values consumed by the
    strategic aggregator.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.  Selectors and
    services convert ORM rows into these before returning.

Invariants enforced:
    - All monetary fields are ``Decimal``.
    - ``LedgerEntryView.amount`` is strictly positive; the sign lives in
      ``direction``.
    - ``LedgerFilters`` rejects an inverted created_at range.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from uuid import UUID

from ledger_kernel.db.types import ZERO
from ledger_kernel.domain.values import Direction, SourceKind, VaultKind


@dataclass(frozen=True)
class VaultBalances:
    """
    Snapshot of one owner's three vaults.

    Vaults that have never seen a movement read as zero and have no
    currency yet.  ``total_cash`` is a plain sum; check
    ``has_mixed_cash_currencies`` before treating it as one amount.
    """

    owner_id: UUID
    business: Decimal = ZERO
    personal: Decimal = ZERO
    tax_reserve: Decimal = ZERO
    currencies: dict[VaultKind, str] = field(default_factory=dict, compare=False)

    @property
    def total_cash(self) -> Decimal:
        """Spendable cash: business plus personal.  Tax reserve is excluded."""
        return self.business + self.personal

    @property
    def cash_currencies(self) -> frozenset[str]:
        return frozenset(
            self.currencies[kind]
            for kind in (VaultKind.BUSINESS, VaultKind.PERSONAL)
            if kind in self.currencies
        )

    @property
    def has_mixed_cash_currencies(self) -> bool:
        return len(self.cash_currencies) > 1

    def currency_of(self, vault_kind: VaultKind) -> str | None:
        return self.currencies.get(vault_kind)

    def get(self, vault_kind: VaultKind) -> Decimal:
        return {
            VaultKind.BUSINESS: self.business,
            VaultKind.PERSONAL: self.personal,
            VaultKind.TAX_RESERVE: self.tax_reserve,
        }[vault_kind]


@dataclass(frozen=True)
class LedgerEntryView:
    """Read-only view of one movement-log row."""

    id: UUID
    owner_id: UUID
    vault_kind: VaultKind
    amount: Decimal
    direction: Direction
    currency: str
    description: str
    created_at: datetime
    is_tax: bool = False
    source_kind: SourceKind | None = None
    source_id: UUID | None = None

    def __post_init__(self) -> None:
        if self.amount <= 0:
            raise ValueError(f"Ledger entry amount must be positive, got {self.amount}")

    @property
    def signed_amount(self) -> Decimal:
        return self.amount * self.direction.sign


@dataclass(frozen=True)
class LedgerFilters:
    """Optional narrowing of a ledger listing.  ``None`` means "any"."""

    vault_kind: VaultKind | None = None
    direction: Direction | None = None
    currency: str | None = None
    is_tax: bool | None = None
    created_from: datetime | None = None
    created_to: datetime | None = None

    def __post_init__(self) -> None:
        if (
            self.created_from is not None
            and self.created_to is not None
            and self.created_from > self.created_to
        ):
            raise ValueError("created_from must not be after created_to")


@dataclass(frozen=True)
class LedgerPage:
    """One page of ledger entries, newest first."""

    entries: tuple[LedgerEntryView, ...]
    total: int
    limit: int
    offset: int

    @property
    def has_more(self) -> bool:
        return self.offset + len(self.entries) < self.total


@dataclass(frozen=True)
class CalendarEvent:
    """An event returned by the external calendar collaborator."""

    title: str
    start_time: datetime
    end_time: datetime | None = None


@dataclass(frozen=True)
class CalendarSection:
    """
    Calendar part of the strategic summary.

    ``degraded`` is True when the collaborator failed or timed out; the
    events are then empty rather than stale.
    """

    events: tuple[CalendarEvent, ...] = field(default_factory=tuple)
    degraded: bool = False

    @classmethod
    def degraded_empty(cls) -> CalendarSection:
        return cls(events=(), degraded=True)


@dataclass(frozen=True)
class VaultReconciliation:
    """Balance-vs-log comparison for one vault."""

    vault_kind: VaultKind
    balance: Decimal
    carried_forward: Decimal
    ledger_total: Decimal

    @property
    def expected_balance(self) -> Decimal:
        return self.carried_forward + self.ledger_total

    @property
    def drift(self) -> Decimal:
        return self.balance - self.expected_balance

    @property
    def is_consistent(self) -> bool:
        return self.drift == 0
