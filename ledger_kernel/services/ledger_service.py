"""
LedgerService -- append-only movement log (write side).

Responsibility:
    Appends one entry per confirmed movement and performs the owner's
    audit-trail purge.  Reads live in ``selectors/ledger_selector.py``.

Architecture position:
    Kernel > Services -- imperative shell.  Composes SequenceService (entry
    ordering) and VaultStore (purge carry-forward).

Invariants enforced:
    - Entries are written once and never updated (ORM listener in
      db/immutability.py).
    - amount > 0; direction carries the sign.
    - An idempotency key is written at most once.  A second append with the
      same key raises AlreadyConfirmedError instead of a second row.
    - created_at comes from the injected Clock; seq comes from the owner's
      locked counter.
    - Purge keeps balance == carried_forward + signed sum of live entries:
      the signed total of the purged rows is added to the vault's
      ``carried_forward``.  The balance itself is never touched.

Failure modes:
    - ValidationError for a non-positive amount or empty description.
    - InvalidCurrencyError for a non-ISO currency.
    - LedgerEntryNotFoundError / UnauthorizedError on purge of an unknown or
      foreign entry.
"""

from collections import defaultdict
from decimal import Decimal
from uuid import UUID, uuid4

from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ledger_kernel.db.types import ZERO, to_money, validate_currency
from ledger_kernel.domain.clock import Clock, SystemClock
from ledger_kernel.domain.values import Direction, SourceKind, VaultKind
from ledger_kernel.exceptions import (
    AlreadyConfirmedError,
    LedgerEntryNotFoundError,
    UnauthorizedError,
    ValidationError,
)
from ledger_kernel.logging_config import get_logger
from ledger_kernel.models.ledger import LedgerEntry
from ledger_kernel.services.base import BaseService
from ledger_kernel.services.sequence_service import SequenceService
from ledger_kernel.services.vault_store import VaultStore

logger = get_logger("services.ledger")


class LedgerService(BaseService):
    """
    Writes to the movement log.

    Contract:
        ``append`` and ``purge`` flush within the caller's transaction.

    Non-goals:
        - Does NOT move vault balances on append; the schedulers pair each
          append with a VaultStore.adjust.
        - No reversal entries: a confirmed movement is never re-stated.
    """

    def __init__(self, session: Session, clock: Clock | None = None):
        super().__init__(session)
        self._clock = clock or SystemClock()
        self._sequences = SequenceService(session)
        self._vaults = VaultStore(session)

    def append(
        self,
        owner_id: UUID,
        vault_kind: VaultKind,
        amount: Decimal,
        direction: Direction,
        currency: str,
        description: str,
        *,
        is_tax: bool = False,
        source_kind: SourceKind | None = None,
        source_id: UUID | None = None,
        idempotency_key: str | None = None,
    ) -> UUID:
        """
        Append one movement and return its id.

        Raises:
            ValidationError: amount <= 0 or blank description.
            AlreadyConfirmedError: idempotency_key already written.
        """
        amount = to_money(amount)
        if amount <= 0:
            raise ValidationError("amount", f"must be positive, got {amount}")
        if not description or not description.strip():
            raise ValidationError("description", "must not be empty")
        currency = validate_currency(currency)

        if idempotency_key is not None and self._key_exists(idempotency_key):
            raise AlreadyConfirmedError(str(source_id), None)

        entry = LedgerEntry(
            id=uuid4(),
            owner_id=owner_id,
            vault_kind=vault_kind.value,
            amount=amount,
            direction=direction.value,
            currency=currency,
            description=description.strip(),
            is_tax=is_tax,
            source_kind=source_kind.value if source_kind else None,
            source_id=source_id,
            idempotency_key=idempotency_key,
            seq=self._sequences.next_value(SequenceService.ledger_sequence_name(owner_id)),
            created_at=self._clock.now(),
        )

        savepoint = self.session.begin_nested()
        try:
            self.session.add(entry)
            self.session.flush()
            savepoint.commit()
        except IntegrityError:
            savepoint.rollback()
            if idempotency_key is not None and self._key_exists(idempotency_key):
                logger.warning(
                    "ledger_duplicate_append_blocked",
                    extra={"idempotency_key": idempotency_key},
                )
                raise AlreadyConfirmedError(str(source_id), None)
            raise

        logger.info(
            "ledger_entry_appended",
            extra={
                "entry_id": str(entry.id),
                "vault_kind": vault_kind.value,
                "direction": direction.value,
                "amount": str(amount),
                "currency": currency,
                "is_tax": is_tax,
                "seq": entry.seq,
            },
        )
        return entry.id

    def purge(self, owner_id: UUID, entry_id: UUID | None = None) -> int:
        """
        Delete one entry, or every entry of the owner when ``entry_id`` is None.

        Returns:
            Number of entries removed.
        """
        self._require_owner(owner_id)

        if entry_id is not None:
            row_owner = self.session.execute(
                select(LedgerEntry.owner_id).where(LedgerEntry.id == entry_id)
            ).scalar_one_or_none()
            if row_owner is None:
                raise LedgerEntryNotFoundError(str(entry_id))
            if row_owner != owner_id:
                raise UnauthorizedError(str(owner_id), f"ledger entry {entry_id}")

        criteria = [LedgerEntry.owner_id == owner_id]
        if entry_id is not None:
            criteria.append(LedgerEntry.id == entry_id)

        rows = self.session.execute(
            select(LedgerEntry.vault_kind, LedgerEntry.direction, LedgerEntry.amount)
            .where(*criteria)
        ).all()

        totals: dict[VaultKind, Decimal] = defaultdict(lambda: ZERO)
        for vault_kind, direction, amount in rows:
            totals[VaultKind(vault_kind)] += amount * Direction(direction).sign

        self.session.execute(
            delete(LedgerEntry)
            .where(*criteria)
            .execution_options(synchronize_session="fetch")
        )
        for vault_kind, signed_total in totals.items():
            if signed_total != 0:
                self._vaults.carry_forward(owner_id, vault_kind, signed_total)
        self.session.flush()

        logger.warning(
            "ledger_entries_purged",
            extra={
                "entry_id": str(entry_id) if entry_id else None,
                "purged_count": len(rows),
                "carried_forward": {k.value: str(v) for k, v in totals.items()},
            },
        )
        return len(rows)

    def _key_exists(self, idempotency_key: str) -> bool:
        return self.session.execute(
            select(LedgerEntry.id).where(LedgerEntry.idempotency_key == idempotency_key)
        ).first() is not None
