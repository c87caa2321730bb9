"""Tests for the structured logging system (tender_kernel/logging_config.py)."""

import json
import logging
from decimal import Decimal
from io import StringIO

import pytest

from tender_kernel.domain import SelectionLevel
from tender_kernel.logging_config import (
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


def _parse_log(stream: StringIO) -> dict:
    """Parse the first JSON log line from a stream."""
    line = stream.getvalue().strip().split("\n")[0]
    return json.loads(line)


def _parse_all_logs(stream: StringIO) -> list[dict]:
    """Parse all JSON log lines from a stream."""
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
        assert record["logger"] == "tender_kernel.test"
        assert "ts" in record

    def test_extra_fields_included(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        logger = get_logger("test")
        logger.info("calculated", extra={"rule_count": 3, "status": "balanced"})

        record = _parse_log(stream)
        assert record["rule_count"] == 3
        assert record["status"] == "balanced"

    def test_decimal_and_enum_serialized(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        logger = get_logger("test")
        logger.info(
            "values",
            extra={"amount": Decimal("40.50"), "level_value": SelectionLevel.CATEGORY},
        )

        record = _parse_log(stream)
        assert record["amount"] == "40.50"
        assert record["level_value"] == "category"

    def test_context_fields_included(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        logger = get_logger("test")
        LogContext.set(correlation_id="abc-123", tender_id="tender-1")
        logger.info("test_msg")

        record = _parse_log(stream)
        assert record["correlation_id"] == "abc-123"
        assert record["tender_id"] == "tender-1"

    def test_exception_fields(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        logger = get_logger("test")
        try:
            raise ValueError("boom")
        except ValueError:
            logger.error("failed", exc_info=True)

        record = _parse_log(stream)
        assert record["exc_type"] == "ValueError"
        assert record["exc_message"] == "boom"
        assert "traceback" in record

    def test_kernel_exception_code_extracted(self):
        """Tender kernel exceptions carry .code attribute."""
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        logger = get_logger("test")
        from tender_kernel.exceptions import InvalidSettingError

        try:
            raise InvalidSettingError("default.yaml", "rounding.step", 0, "must be positive")
        except InvalidSettingError:
            logger.error("config_error", exc_info=True)

        record = _parse_log(stream)
        assert record["exc_code"] == "INVALID_SETTING"
        assert record["exc_type"] == "InvalidSettingError"
        assert record["exc_setting"] == "rounding.step"
        assert record["exc_source"] == "default.yaml"

    def test_no_context_fields_when_empty(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        logger = get_logger("test")
        logger.info("bare_message")

        record = _parse_log(stream)
        assert "correlation_id" not in record
        assert "tender_id" not in record

    def test_valid_json_every_line(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        logger = get_logger("test")
        logger.info("first")
        logger.warning("second", extra={"k": "v"})
        logger.debug("third")

        logs = _parse_all_logs(stream)
        # INFO is the default level, so the debug record is dropped
        assert len(logs) == 2
        for record in logs:
            assert "ts" in record
            assert "level" in record
            assert "logger" in record
            assert "message" in record


# ---------------------------------------------------------------------------
# LogContext tests
# ---------------------------------------------------------------------------


class TestLogContext:
    """Tests for context propagation."""

    def test_set_and_get(self):
        LogContext.set(correlation_id="x", markup_tactic_id="y")
        ctx = LogContext.get_all()
        assert ctx == {"correlation_id": "x", "markup_tactic_id": "y"}

    def test_clear(self):
        LogContext.set(correlation_id="x")
        LogContext.clear()
        assert LogContext.get_all() == {}

    def test_bind_context_manager(self):
        LogContext.set(tender_id="outer")
        with LogContext.bind(tender_id="inner"):
            assert LogContext.get_all()["tender_id"] == "inner"
        assert LogContext.get_all()["tender_id"] == "outer"

    def test_bind_restores_none(self):
        """bind() restores to None if there was no previous value."""
        assert "tender_id" not in LogContext.get_all()
        with LogContext.bind(tender_id="temp"):
            assert LogContext.get_all()["tender_id"] == "temp"
        assert "tender_id" not in LogContext.get_all()

    def test_bind_skips_none_values(self):
        with LogContext.bind(tender_id=None, markup_tactic_id="m"):
            assert LogContext.get_all() == {"markup_tactic_id": "m"}

    def test_all_fields(self):
        LogContext.set(
            correlation_id="c",
            tender_id="t",
            markup_tactic_id="m",
            actor_id="a",
        )
        ctx = LogContext.get_all()
        assert len(ctx) == 4
        assert ctx["actor_id"] == "a"


# ---------------------------------------------------------------------------
# configure_logging tests
# ---------------------------------------------------------------------------


class TestConfigureLogging:
    """Tests for initialization."""

    def test_idempotent(self):
        h1, _ = _make_handler()
        configure_logging(handler=h1)
        h2, _ = _make_handler()
        configure_logging(handler=h2)  # second call is no-op
        root = logging.getLogger("tender_kernel")
        assert len(root.handlers) == 1

    def test_get_logger_returns_child(self):
        logger = get_logger("services.redistribution")
        assert logger.name == "tender_kernel.services.redistribution"

    def test_logger_hierarchy(self):
        """Child loggers inherit the tender_kernel root config."""
        handler, stream = _make_handler()
        configure_logging(handler=handler, level=logging.DEBUG)
        child = get_logger("deep.nested.module")
        child.debug("hierarchy_test")

        record = _parse_log(stream)
        assert record["message"] == "hierarchy_test"
        assert record["logger"] == "tender_kernel.deep.nested.module"

    def test_engine_trace_is_structured(self):
        from tender_engines.rounding import smart_round

        handler, stream = _make_handler()
        configure_logging(handler=handler)
        smart_round([], get_quantity=lambda r: 1, step=5)

        traces = [r for r in _parse_all_logs(stream) if r["message"] == "TENDER_ENGINE_TRACE"]
        assert len(traces) == 1
        assert traces[0]["engine_name"] == "rounding"
