"""
Values -- Enumerated domain vocabulary.

Responsibility:
    Defines the closed sets the ledger works with: vault kinds, movement
    directions, obligation and project states, and the category class that
    replaces free-text category matching.  Free-text categories are
    converted here, once, at the boundary; everything downstream compares
    enum members.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.

Invariants enforced:
    - Category routing is case-insensitive and whitespace-tolerant.
    - Expense and income routing differ on purpose: a ``life`` expense is
      paid from the personal vault, while ``life`` income lands in the
      business vault.  Only ``personal`` income is personal.
"""

from __future__ import annotations

from enum import Enum


class VaultKind(str, Enum):
    """A named cash pool owned by one owner."""

    BUSINESS = "business"
    PERSONAL = "personal"
    TAX_RESERVE = "tax_reserve"


class Direction(str, Enum):
    """Movement direction of a ledger entry."""

    IN = "in"
    OUT = "out"

    @property
    def sign(self) -> int:
        return 1 if self is Direction.IN else -1


class IncomeStatus(str, Enum):
    EXPECTED = "expected"
    RECEIVED = "received"


class ProjectStatus(str, Enum):
    IDEA = "idea"
    PLANNING = "planning"
    ACTIVE = "active"
    PAUSED = "paused"
    ARCHIVED = "archived"


class LaborLogStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"


class SourceKind(str, Enum):
    """What produced a ledger entry."""

    EXPENSE = "expense"
    INCOME = "income"
    MANUAL = "manual"


class Capability(str, Enum):
    """
    Access capability of a repository call.

    OWNER calls are scoped to the authenticated owner.  SERVICE calls
    (scheduled jobs, reconciliation) may read any owner's rows.
    """

    OWNER = "owner"
    SERVICE = "service"


class CategoryClass(str, Enum):
    """Routing class derived from an obligation's free-text category."""

    BUSINESS = "business"
    PERSONAL = "personal"
    LIFE = "life"

    @classmethod
    def from_label(cls, label: str | None) -> CategoryClass:
        """
        Classify a free-text category label.

        ``"Life"``, ``" life "`` and ``"LIFE"`` are all LIFE; anything that
        is not life or personal (including empty) is BUSINESS.
        """
        normalized = (label or "").strip().lower()
        if normalized == cls.LIFE.value:
            return cls.LIFE
        if normalized == cls.PERSONAL.value:
            return cls.PERSONAL
        return cls.BUSINESS

    @property
    def is_private(self) -> bool:
        """True for spending that is not business overhead."""
        return self in (CategoryClass.LIFE, CategoryClass.PERSONAL)


def expense_vault_for(category: CategoryClass) -> VaultKind:
    """Vault debited when an expense of this class is paid."""
    return VaultKind.PERSONAL if category.is_private else VaultKind.BUSINESS


def income_vault_for(category: CategoryClass) -> VaultKind:
    """Vault credited with the net of an income of this class."""
    return VaultKind.PERSONAL if category is CategoryClass.PERSONAL else VaultKind.BUSINESS
