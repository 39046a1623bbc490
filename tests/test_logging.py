"""Tests for the structured logging system (pass_kernel/logging_config.py)."""

import json
import logging
from datetime import date, datetime, timezone
from decimal import Decimal
from io import StringIO
from uuid import uuid4

import pytest

from pass_kernel.exceptions import DuplicateActivePassError
from pass_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    get_logger,
    reset_logging,
)


@pytest.fixture(autouse=True)
def _clean_logging():
    """Reset logging state between tests."""
    reset_logging()
    LogContext.clear()
    yield
    LogContext.clear()
    reset_logging()


def _make_handler() -> tuple[logging.Handler, StringIO]:
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(StructuredFormatter())
    return handler, stream


def _parse_all_logs(stream: StringIO) -> list[dict]:
    lines = stream.getvalue().strip().split("\n")
    return [json.loads(line) for line in lines if line]


def _parse_log(stream: StringIO) -> dict:
    return _parse_all_logs(stream)[0]


@pytest.fixture
def stream() -> StringIO:
    handler, buffer = _make_handler()
    configure_logging(handler=handler)
    return buffer


class TestStructuredFormatter:
    def test_basic_json_output(self, stream):
        get_logger("test").info("hello")

        record = _parse_log(stream)
        assert record["level"] == "INFO"
        assert record["message"] == "hello"
        assert record["logger"] == "pass_kernel.test"
        assert "ts" in record

    def test_extra_fields_included(self, stream):
        get_logger("test").info("pass_created", extra={"pass_type": "free", "attempt": 1})

        record = _parse_log(stream)
        assert record["pass_type"] == "free"
        assert record["attempt"] == 1

    def test_context_fields_included(self, stream):
        LogContext.set(correlation_id="req-7", unit_id="unit-1")
        get_logger("test").info("test_msg")

        record = _parse_log(stream)
        assert record["correlation_id"] == "req-7"
        assert record["unit_id"] == "unit-1"

    def test_no_context_fields_when_empty(self, stream):
        get_logger("test").info("bare_message")

        record = _parse_log(stream)
        assert "correlation_id" not in record
        assert "vehicle_id" not in record

    def test_exception_fields(self, stream):
        try:
            raise ValueError("boom")
        except ValueError:
            get_logger("test").error("failed", exc_info=True)

        record = _parse_log(stream)
        assert record["exc_type"] == "ValueError"
        assert record["exc_message"] == "boom"
        assert "traceback" in record

    def test_kernel_exception_data_extracted(self, stream):
        expires_at = datetime(2024, 3, 16, 12, tzinfo=timezone.utc)
        try:
            raise DuplicateActivePassError("veh-1", expires_at)
        except DuplicateActivePassError:
            get_logger("test").error("duplicate", exc_info=True)

        record = _parse_log(stream)
        assert record["exc_code"] == "DUPLICATE_ACTIVE_PASS"
        assert record["exc_type"] == "DuplicateActivePassError"
        assert record["exc_vehicle_id"] == "veh-1"
        assert record["exc_expires_at"] == expires_at.isoformat()

    def test_uuid_and_decimal_serialized(self, stream):
        uid = uuid4()
        get_logger("test").info("typed", extra={"pass_id": uid, "price": Decimal("5.00")})

        record = _parse_log(stream)
        assert record["pass_id"] == str(uid)
        assert record["price"] == "5.00"

    def test_datetimes_serialized_as_iso_8601(self, stream):
        expires_at = datetime(2024, 3, 16, 12, tzinfo=timezone.utc)
        get_logger("test").info(
            "dated",
            extra={"expires_at": expires_at, "party_date": date(2024, 3, 15), "kind": object()},
        )

        record = _parse_log(stream)
        assert record["expires_at"] == "2024-03-16T12:00:00+00:00"
        assert record["party_date"] == "2024-03-15"
        assert record["kind"].startswith("<object object")

    def test_debug_suppressed_at_info(self, stream):
        logger = get_logger("test")
        logger.info("first")
        logger.warning("second", extra={"k": "v"})
        logger.debug("third")

        assert [r["message"] for r in _parse_all_logs(stream)] == ["first", "second"]


class TestLogContext:
    def test_set_and_get(self):
        LogContext.set(unit_id="u", vehicle_id="v")
        assert LogContext.get_all() == {"unit_id": "u", "vehicle_id": "v"}

    def test_clear(self):
        LogContext.set(pass_id="p")
        LogContext.clear()
        assert LogContext.get_all() == {}

    def test_bind_restores_previous_value(self):
        LogContext.set(unit_id="outer")
        with LogContext.bind(unit_id="inner"):
            assert LogContext.get_all()["unit_id"] == "inner"
        assert LogContext.get_all()["unit_id"] == "outer"

    def test_bind_restores_none(self):
        with LogContext.bind(pass_id="temp"):
            assert LogContext.get_all()["pass_id"] == "temp"
        assert "pass_id" not in LogContext.get_all()

    def test_bind_stringifies_and_skips_none(self):
        uid = uuid4()
        with LogContext.bind(unit_id=uid, actor_id=None):
            ctx = LogContext.get_all()
        assert ctx == {"unit_id": str(uid)}

    def test_all_fields(self):
        LogContext.set(
            correlation_id="c",
            unit_id="u",
            vehicle_id="v",
            pass_id="p",
            actor_id="a",
            trace_id="t",
        )
        assert len(LogContext.get_all()) == 6


class TestConfigureLogging:
    def test_idempotent(self):
        h1, _ = _make_handler()
        configure_logging(handler=h1)
        h2, _ = _make_handler()
        configure_logging(handler=h2)

        handlers = logging.getLogger("pass_kernel").handlers
        assert h1 in handlers
        assert h2 not in handlers

    def test_get_logger_returns_child(self):
        assert get_logger("services.pass_ledger").name == "pass_kernel.services.pass_ledger"

    def test_logger_hierarchy(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler, level=logging.DEBUG)
        get_logger("deep.nested.module").debug("hierarchy_test")

        record = _parse_log(stream)
        assert record["logger"] == "pass_kernel.deep.nested.module"
