"""
Module: ledger_kernel.models.vault
Responsibility: ORM persistence for the current balance of one vault.
Architecture position: Kernel > Models.  May import from db/ only.

Invariants enforced:
    - One row per (owner_id, vault_kind) (uq_vault_owner_kind).
    - amount == carried_forward + signed sum of the vault's live ledger
      entries.  Checked by ReconciliationService, never corrected in place.
    - amount moves only through VaultStore.adjust (storage-level increment);
      ORM writes to amount are blocked by db/immutability.py.

Failure modes:
    - IntegrityError on a duplicate (owner, vault_kind) insert; VaultStore
      treats it as "another transaction created the row first".
"""

from decimal import Decimal
from uuid import UUID

from sqlalchemy import ForeignKey, Index, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from ledger_kernel.db.base import TrackedBase
from ledger_kernel.domain.values import VaultKind


class VaultBalance(TrackedBase):
    """
    Current balance of one vault.

    Contract:
        Created lazily on the first movement into or out of the vault.

    Guarantees:
        - ``carried_forward`` holds the signed total of ledger entries that
          the owner has purged, so the balance stays explainable after purge.

    Non-goals:
        - No currency conversion.  ``currency`` records the currency of the
          first movement; later movements in other currencies are summed as
          numbers, as the dashboard always did.
    """

    __tablename__ = "vault_balances"

    __table_args__ = (
        UniqueConstraint("owner_id", "vault_kind", name="uq_vault_owner_kind"),
        Index("idx_vault_owner", "owner_id"),
    )

    owner_id: Mapped[UUID] = mapped_column(
        ForeignKey("owners.id"),
        nullable=False,
    )

    vault_kind: Mapped[VaultKind] = mapped_column(String(20), nullable=False)

    amount: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("0"))

    carried_forward: Mapped[Decimal] = mapped_column(
        nullable=False,
        default=Decimal("0"),
    )

    currency: Mapped[str] = mapped_column(String(3), nullable=False)

    def __repr__(self) -> str:
        return f"<VaultBalance {self.owner_id}/{self.vault_kind}: {self.amount} {self.currency}>"
