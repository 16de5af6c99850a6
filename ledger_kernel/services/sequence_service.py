"""
SequenceService -- per-owner ledger sequence numbers.

Every ledger entry gets ``seq`` from a counter row named
``ledger_entry:<owner_id>``.  Entries written within the same clock instant
still list in a stable newest-first order.

The counter row is read with ``FOR UPDATE`` and incremented in place; the
number is visible to others only once the caller commits, and a rollback
gives it back.  The first use of a counter inserts the row inside a
savepoint: a concurrent first use loses with IntegrityError, rolls the
savepoint back and increments the winner's row instead.
"""

from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ledger_kernel.logging_config import get_logger
from ledger_kernel.models.sequence import SequenceCounter

logger = get_logger("services.sequence")


class SequenceService:
    """Counter allocation.  Flushes, never commits."""

    LEDGER_ENTRY = "ledger_entry"

    def __init__(self, session: Session):
        self._session = session

    @classmethod
    def ledger_sequence_name(cls, owner_id: UUID) -> str:
        return f"{cls.LEDGER_ENTRY}:{owner_id}"

    def next_value(self, sequence_name: str) -> int:
        counter = self._lock(sequence_name)
        if counter is None:
            counter = self._create(sequence_name)
            if counter is None:
                return 1

        counter.current_value += 1
        self._session.flush()
        logger.debug(
            "sequence_allocated",
            extra={"sequence_name": sequence_name, "value": counter.current_value},
        )
        return counter.current_value

    def _lock(self, sequence_name: str) -> SequenceCounter | None:
        return self._session.execute(
            select(SequenceCounter)
            .where(SequenceCounter.name == sequence_name)
            .with_for_update()
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()

    def _create(self, sequence_name: str) -> SequenceCounter | None:
        """Insert the counter at 1.  Returns the existing row if another
        transaction created it first, or None when the insert won."""
        savepoint = self._session.begin_nested()
        try:
            self._session.add(SequenceCounter(name=sequence_name, current_value=1))
            self._session.flush()
        except IntegrityError:
            savepoint.rollback()
            logger.debug("sequence_counter_race_retry", extra={"sequence_name": sequence_name})
            existing = self._lock(sequence_name)
            if existing is None:
                raise
            return existing
        savepoint.commit()
        logger.debug("sequence_allocated", extra={"sequence_name": sequence_name, "value": 1})
        return None
