"""
Module: ledger_kernel.models.ledger
Responsibility: ORM persistence for the append-only movement log.
Architecture position: Kernel > Models.  May import from db/ only.

Invariants enforced:
    - amount > 0 (ck_ledger_amount_positive); the sign is carried by
      ``direction``.
    - idempotency_key is unique: one obligation cycle produces its entries
      exactly once, even under duplicate confirmation requests.
    - Rows are never updated (db/immutability.py).  They are deleted only
      by the owner purge operation.
    - (owner_id, seq) is unique; seq breaks created_at ties so listings are
      deterministic.

Failure modes:
    - IntegrityError on a repeated idempotency_key -> the cycle was already
      confirmed by a concurrent transaction.
    - ImmutabilityViolationError on any ORM UPDATE.
"""

from datetime import datetime
from decimal import Decimal
from uuid import UUID

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column

from ledger_kernel.db.base import Base
from ledger_kernel.domain.values import Direction, SourceKind, VaultKind


class LedgerEntry(Base):
    """
    One confirmed movement of money into or out of a vault.

    Contract:
        Written once by LedgerService.append, in the same transaction as the
        matching VaultStore.adjust.

    Guarantees:
        - created_at comes from the injected Clock, not the database, so
          replayed tests see the same timestamps.
    """

    __tablename__ = "ledger_entries"

    __table_args__ = (
        UniqueConstraint("idempotency_key", name="uq_ledger_idempotency_key"),
        UniqueConstraint("owner_id", "seq", name="uq_ledger_owner_seq"),
        CheckConstraint("amount > 0", name="ck_ledger_amount_positive"),
        Index("idx_ledger_owner_created", "owner_id", "created_at"),
        Index("idx_ledger_owner_vault", "owner_id", "vault_kind"),
    )

    owner_id: Mapped[UUID] = mapped_column(
        ForeignKey("owners.id"),
        nullable=False,
    )

    vault_kind: Mapped[VaultKind] = mapped_column(String(20), nullable=False)

    amount: Mapped[Decimal] = mapped_column(nullable=False)

    direction: Mapped[Direction] = mapped_column(String(3), nullable=False)

    currency: Mapped[str] = mapped_column(String(3), nullable=False)

    description: Mapped[str] = mapped_column(String(500), nullable=False, default="")

    is_tax: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    source_kind: Mapped[SourceKind | None] = mapped_column(String(20), nullable=True)

    source_id: Mapped[UUID | None] = mapped_column(nullable=True)

    idempotency_key: Mapped[str | None] = mapped_column(String(128), nullable=True)

    seq: Mapped[int] = mapped_column(nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
    )

    @property
    def signed_amount(self) -> Decimal:
        return self.amount if self.direction == Direction.IN else -self.amount

    def __repr__(self) -> str:
        return (
            f"<LedgerEntry {self.id}: {self.direction} {self.amount} "
            f"{self.currency} {self.vault_kind}>"
        )
