"""
Module: ledger_kernel.models.owner
Responsibility: ORM persistence for the owner of a set of vaults.  Every
    other row in the ledger is scoped by an owner id.
Architecture position: Kernel > Models.  May import from db/ only.

Failure modes:
    - Missing owner row -> OwnerNotFoundError raised by services.
"""

from sqlalchemy import String
from sqlalchemy.orm import Mapped, mapped_column

from ledger_kernel.db.base import TrackedBase


class Owner(TrackedBase):
    """
    The single operator who owns vaults, obligations and projects.

    Guarantees:
        - base_currency is the currency used when a vault is created by a
          movement that does not say otherwise.

    Non-goals:
        - No shared ownership; a vault belongs to exactly one owner.
    """

    __tablename__ = "owners"

    display_name: Mapped[str] = mapped_column(String(255), nullable=False)

    base_currency: Mapped[str] = mapped_column(
        String(3),
        nullable=False,
        default="EUR",
    )

    def __repr__(self) -> str:
        return f"<Owner {self.id}: {self.display_name}>"
