"""Tests for the structured logging system (ledger_kernel/logging_config.py)."""

import json
import logging
from datetime import date
from decimal import Decimal
from io import StringIO
from uuid import uuid4

import pytest

from ledger_kernel.exceptions import AlreadyConfirmedError
from ledger_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    get_logger,
    reset_logging,
)


@pytest.fixture(autouse=True)
def _clean_logging():
    """Reset logging state between tests, then restore the suite's setup."""
    reset_logging()
    LogContext.clear()
    yield
    LogContext.clear()
    reset_logging()
    configure_logging(level=logging.DEBUG)


def _make_handler() -> tuple[logging.Handler, StringIO]:
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(StructuredFormatter())
    return handler, stream


def _parse_log(stream: StringIO) -> dict:
    """Parse the first JSON log line from a stream."""
    line = stream.getvalue().strip().split("\n")[0]
    return json.loads(line)


def _parse_all_logs(stream: StringIO) -> list[dict]:
    lines = stream.getvalue().strip().split("\n")
    return [json.loads(line) for line in lines if line]


# ---------------------------------------------------------------------------
# StructuredFormatter tests
# ---------------------------------------------------------------------------


class TestStructuredFormatter:
    """Tests for JSON log output format."""

    def test_basic_json_output(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        logger = get_logger("test")
        logger.info("hello")

        record = _parse_log(stream)
        assert record["level"] == "INFO"
        assert record["message"] == "hello"
        assert record["logger"] == "ledger_kernel.test"
        assert "ts" in record

    def test_extra_fields_included(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        get_logger("test").info("vault_adjusted", extra={"seq": 42, "vault_kind": "business"})

        record = _parse_log(stream)
        assert record["seq"] == 42
        assert record["vault_kind"] == "business"

    def test_context_fields_included(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        LogContext.set(correlation_id="abc-123", obligation_id="obl-1")
        get_logger("test").info("test_msg")

        record = _parse_log(stream)
        assert record["correlation_id"] == "abc-123"
        assert record["obligation_id"] == "obl-1"

    def test_decimal_and_date_serialized(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        get_logger("test").info(
            "expense_payment_confirmed",
            extra={"amount": Decimal("20.00"), "cycle_date": date(2024, 1, 15)},
        )

        record = _parse_log(stream)
        assert record["amount"] == "20.00"
        assert record["cycle_date"] == "2024-01-15"

    def test_kernel_exception_fields_extracted(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        try:
            raise AlreadyConfirmedError("obl-1", date(2024, 1, 15))
        except AlreadyConfirmedError:
            get_logger("test").error("duplicate", exc_info=True)

        record = _parse_log(stream)
        assert record["exc_code"] == "ALREADY_CONFIRMED"
        assert record["exc_type"] == "AlreadyConfirmedError"
        assert record["exc_obligation_id"] == "obl-1"
        assert record["exc_cycle_date"] == "2024-01-15"
        assert "traceback" in record

    def test_no_context_fields_when_empty(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        get_logger("test").info("bare_message")

        record = _parse_log(stream)
        assert "correlation_id" not in record
        assert "owner_id" not in record

    def test_uuid_serialized(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        uid = uuid4()
        get_logger("test").info("with_uuid", extra={"entry_id": uid})

        assert _parse_log(stream)["entry_id"] == str(uid)

    def test_debug_suppressed_at_default_level(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        logger = get_logger("test")
        logger.info("first")
        logger.warning("second", extra={"k": "v"})
        logger.debug("third")

        logs = _parse_all_logs(stream)
        assert [r["message"] for r in logs] == ["first", "second"]


# ---------------------------------------------------------------------------
# LogContext tests
# ---------------------------------------------------------------------------


class TestLogContext:

    def test_set_and_get(self):
        LogContext.set(correlation_id="x", owner_id="y")
        assert LogContext.get_all() == {"correlation_id": "x", "owner_id": "y"}

    def test_clear(self):
        LogContext.set(correlation_id="x")
        LogContext.clear()
        assert LogContext.get_all() == {}

    def test_bind_restores_previous_value(self):
        LogContext.set(correlation_id="outer")
        with LogContext.bind(correlation_id="inner", operation="confirm"):
            assert LogContext.get_all()["correlation_id"] == "inner"
            assert LogContext.get_all()["operation"] == "confirm"
        assert LogContext.get_all() == {"correlation_id": "outer"}

    def test_bind_ignores_none(self):
        with LogContext.bind(owner_id=None, operation="read"):
            assert LogContext.get_all() == {"operation": "read"}

    def test_unknown_field_rejected(self):
        with pytest.raises(ValueError, match="tenant_id"):
            LogContext.set(tenant_id="t")

    def test_bind_is_exception_safe(self):
        with pytest.raises(RuntimeError):
            with LogContext.bind(operation="confirm"):
                raise RuntimeError("boom")
        assert LogContext.get_all() == {}

    def test_all_fields(self):
        LogContext.set(
            correlation_id="c",
            owner_id="o",
            obligation_id="b",
            entry_id="e",
            operation="p",
        )
        assert len(LogContext.get_all()) == 5


# ---------------------------------------------------------------------------
# configure_logging tests
# ---------------------------------------------------------------------------


class TestConfigureLogging:

    def test_idempotent(self):
        h1, _ = _make_handler()
        configure_logging(handler=h1)
        h2, _ = _make_handler()
        configure_logging(handler=h2)
        assert len(logging.getLogger("ledger_kernel").handlers) == 1

    def test_get_logger_returns_child(self):
        assert get_logger("services.api").name == "ledger_kernel.services.api"

    def test_logger_hierarchy(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler, level=logging.DEBUG)
        get_logger("modules.recurring.service").debug("hierarchy_test")

        record = _parse_log(stream)
        assert record["logger"] == "ledger_kernel.modules.recurring.service"
