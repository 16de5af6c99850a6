"""
ledger_services.collaborators -- External calendar and notification calls.

Responsibility:
    Runs calls to external collaborators on a small thread pool with a
    short timeout, so they can overlap core reads and can never hold a
    confirmation's database transaction open.

Architecture position:
    Services -- the only layer that talks to collaborators.  Modules see a
    started fetch (``PendingCalendarFetch``) and nothing else.

Invariants enforced:
    - Every calendar failure or timeout surfaces as CalendarUnavailableError,
      which the strategic aggregator recovers as an empty, degraded section.
    - Notifications are fire-and-forget: failures are logged and dropped.

Failure modes:
    - CalendarUnavailableError from ``PendingCalendarFetch.result``.
"""

from __future__ import annotations

from collections.abc import Mapping
from concurrent.futures import Future, ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeoutError
from datetime import datetime
from typing import Any, Iterable, Protocol
from uuid import UUID

from ledger_kernel.domain.dtos import CalendarEvent, CalendarSection
from ledger_kernel.exceptions import CalendarUnavailableError, NotificationFailedError
from ledger_kernel.logging_config import get_logger

logger = get_logger("services.collaborators")

DEFAULT_TIMEOUT_SECONDS = 2.0


class CalendarProvider(Protocol):
    """Returns the owner's events, or raises."""

    def fetch_events(self, owner_id: UUID) -> Iterable[CalendarEvent | Mapping[str, Any]]: ...


class Notifier(Protocol):
    def notify(self, event: str, payload: dict[str, Any]) -> None: ...


def _coerce_event(item: CalendarEvent | Mapping[str, Any]) -> CalendarEvent:
    if isinstance(item, CalendarEvent):
        return item
    start = item.get("start_time", item.get("startTime"))
    end = item.get("end_time", item.get("endTime"))
    if isinstance(start, str):
        start = datetime.fromisoformat(start)
    if isinstance(end, str):
        end = datetime.fromisoformat(end)
    return CalendarEvent(title=str(item["title"]), start_time=start, end_time=end)


class PendingCalendarFetch:
    """A calendar fetch already running on the pool."""

    def __init__(self, future: Future, timeout_seconds: float):
        self._future = future
        self._timeout = timeout_seconds

    def result(self) -> CalendarSection:
        try:
            raw = self._future.result(timeout=self._timeout)
        except FutureTimeoutError as exc:
            self._future.cancel()
            raise CalendarUnavailableError(
                f"timed out after {self._timeout}s"
            ) from exc
        except CalendarUnavailableError:
            raise
        except Exception as exc:
            raise CalendarUnavailableError(f"{type(exc).__name__}: {exc}") from exc

        try:
            events = tuple(_coerce_event(item) for item in raw or ())
        except (KeyError, TypeError, ValueError) as exc:
            raise CalendarUnavailableError(f"malformed event: {exc}") from exc
        return CalendarSection(events=events, degraded=False)


class CollaboratorInvoker:
    """
    Thread pool for collaborator calls.

    Contract:
        ``start_calendar`` returns immediately; the caller collects the
        result later with ``PendingCalendarFetch.result``.  ``notify``
        returns the future only so tests can wait on it.

    Non-goals:
        - No retries.  A failed collaborator call is reported once.
    """

    def __init__(
        self,
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
        max_workers: int = 4,
    ):
        if timeout_seconds <= 0:
            raise ValueError("timeout_seconds must be positive")
        self.timeout_seconds = timeout_seconds
        self._executor = ThreadPoolExecutor(
            max_workers=max_workers,
            thread_name_prefix="ledger-collab",
        )

    def start_calendar(
        self,
        provider: CalendarProvider,
        owner_id: UUID,
    ) -> PendingCalendarFetch:
        try:
            future = self._executor.submit(provider.fetch_events, owner_id)
        except RuntimeError as exc:
            raise CalendarUnavailableError(str(exc)) from exc
        return PendingCalendarFetch(future, self.timeout_seconds)

    def notify(
        self,
        notifier: Notifier,
        event: str,
        payload: dict[str, Any],
    ) -> Future | None:
        try:
            future = self._executor.submit(notifier.notify, event, payload)
        except RuntimeError as exc:
            self._log_notification_failure(event, NotificationFailedError(str(exc)))
            return None
        future.add_done_callback(lambda f: self._on_notified(event, f))
        return future

    def shutdown(self, wait: bool = True) -> None:
        self._executor.shutdown(wait=wait)

    def _on_notified(self, event: str, future: Future) -> None:
        if future.cancelled():
            return
        exc = future.exception()
        if exc is None:
            logger.debug("notification_sent", extra={"notification": event})
            return
        self._log_notification_failure(
            event, NotificationFailedError(f"{type(exc).__name__}: {exc}")
        )

    @staticmethod
    def _log_notification_failure(event: str, error: NotificationFailedError) -> None:
        logger.warning(
            "notification_failed",
            extra={"notification": event, "error_code": error.code, "reason": error.reason},
        )
