"""
Module: ledger_kernel.selectors.ledger_selector
Responsibility: Read side of the movement log -- filtered, paginated
    listings and the signed per-vault totals used by reconciliation and the
    finances audit.
Architecture position: Kernel > Selectors.

Invariants enforced:
    - Listing order is created_at descending, then seq descending; two
      entries written in the same instant still come back in a stable order.
    - Signed totals count ``in`` as positive and ``out`` as negative.
"""

from decimal import Decimal
from uuid import UUID

from sqlalchemy import case, func, select

from ledger_kernel.db.types import ZERO
from ledger_kernel.domain.dtos import LedgerEntryView, LedgerFilters, LedgerPage
from ledger_kernel.domain.values import Direction, SourceKind, VaultKind
from ledger_kernel.exceptions import ValidationError
from ledger_kernel.models.ledger import LedgerEntry
from ledger_kernel.selectors.base import BaseSelector

DEFAULT_PAGE_SIZE = 20


def _signed_amount():
    return case(
        (LedgerEntry.direction == Direction.IN.value, LedgerEntry.amount),
        else_=-LedgerEntry.amount,
    )


class LedgerSelector(BaseSelector):
    """Queries over ledger entries, always scoped to one owner."""

    def list(
        self,
        owner_id: UUID,
        filters: LedgerFilters | None = None,
        limit: int = DEFAULT_PAGE_SIZE,
        offset: int = 0,
    ) -> LedgerPage:
        """
        One page of the owner's movements, newest first.

        Raises:
            OwnerNotFoundError: unknown owner.
            ValidationError: negative offset or non-positive limit.
        """
        if limit <= 0:
            raise ValidationError("limit", f"must be positive, got {limit}")
        if offset < 0:
            raise ValidationError("offset", f"must not be negative, got {offset}")
        self._require_owner(owner_id)

        criteria = self._criteria(owner_id, filters or LedgerFilters())

        total = self.session.execute(
            select(func.count()).select_from(LedgerEntry).where(*criteria)
        ).scalar_one()

        rows = self.session.execute(
            select(LedgerEntry)
            .where(*criteria)
            .order_by(LedgerEntry.created_at.desc(), LedgerEntry.seq.desc())
            .limit(limit)
            .offset(offset)
        ).scalars().all()

        return LedgerPage(
            entries=tuple(self._to_view(row) for row in rows),
            total=total,
            limit=limit,
            offset=offset,
        )

    def get(self, entry_id: UUID) -> LedgerEntryView | None:
        row = self.session.get(LedgerEntry, entry_id)
        return self._to_view(row) if row is not None else None

    def signed_totals(self, owner_id: UUID) -> dict[VaultKind, Decimal]:
        """Signed sum of live entries per vault; vaults with no entries are absent."""
        rows = self.session.execute(
            select(LedgerEntry.vault_kind, func.sum(_signed_amount()))
            .where(LedgerEntry.owner_id == owner_id)
            .group_by(LedgerEntry.vault_kind)
        ).all()
        return {VaultKind(kind): Decimal(total) for kind, total in rows}

    def tax_isolated_total(self, owner_id: UUID) -> Decimal:
        """Sum of tax-tagged ``in`` movements into the tax reserve."""
        total = self.session.execute(
            select(func.coalesce(func.sum(LedgerEntry.amount), 0)).where(
                LedgerEntry.owner_id == owner_id,
                LedgerEntry.vault_kind == VaultKind.TAX_RESERVE.value,
                LedgerEntry.direction == Direction.IN.value,
                LedgerEntry.is_tax.is_(True),
            )
        ).scalar_one()
        return Decimal(total) if total else ZERO

    def entries_for_source(self, source_id: UUID) -> tuple[LedgerEntryView, ...]:
        rows = self.session.execute(
            select(LedgerEntry)
            .where(LedgerEntry.source_id == source_id)
            .order_by(LedgerEntry.seq)
        ).scalars().all()
        return tuple(self._to_view(row) for row in rows)

    @staticmethod
    def _criteria(owner_id: UUID, filters: LedgerFilters):
        criteria = [LedgerEntry.owner_id == owner_id]
        if filters.vault_kind is not None:
            criteria.append(LedgerEntry.vault_kind == filters.vault_kind.value)
        if filters.direction is not None:
            criteria.append(LedgerEntry.direction == filters.direction.value)
        if filters.currency is not None:
            criteria.append(LedgerEntry.currency == filters.currency.upper())
        if filters.is_tax is not None:
            criteria.append(LedgerEntry.is_tax.is_(filters.is_tax))
        if filters.created_from is not None:
            criteria.append(LedgerEntry.created_at >= filters.created_from)
        if filters.created_to is not None:
            criteria.append(LedgerEntry.created_at <= filters.created_to)
        return criteria

    @staticmethod
    def _to_view(row: LedgerEntry) -> LedgerEntryView:
        return LedgerEntryView(
            id=row.id,
            owner_id=row.owner_id,
            vault_kind=VaultKind(row.vault_kind),
            amount=row.amount,
            direction=Direction(row.direction),
            currency=row.currency,
            description=row.description,
            created_at=row.created_at,
            is_tax=row.is_tax,
            source_kind=SourceKind(row.source_kind) if row.source_kind else None,
            source_id=row.source_id,
        )
