"""
Unit tests for structured logging.
"""

import io
import json

import pytest

from logistics_sync.observability.logger import (
    current_run_fields,
    get_logger,
    log_operation,
    run_context,
    setup_logger,
)


@pytest.fixture
def log_output():
    """Route the package logger into a buffer, restoring stdout output afterwards."""
    buffer = io.StringIO()
    package_logger = setup_logger("DEBUG", "json")
    package_logger.handlers[0].setStream(buffer)

    def lines() -> list[dict]:
        return [json.loads(line) for line in buffer.getvalue().splitlines()]

    yield lines
    setup_logger()


@pytest.mark.unit
class TestStructuredLogging:
    """Tests for JSON output and run fields"""

    def test_json_line(self, log_output):
        get_logger("logistics_sync.tests").info("hello", extra={"rows": 3})

        [line] = log_output()
        assert line["message"] == "hello"
        assert line["level"] == "INFO"
        assert line["logger"] == "logistics_sync.tests"
        assert line["rows"] == 3
        assert "timestamp" in line

    def test_run_context_fields(self, log_output):
        logger = get_logger("logistics_sync.tests")

        with run_context(kind="stock", mode="full"):
            logger.info("inside")
            with run_context(mode="windowed"):
                logger.info("nested", extra={"kind": "orders"})
        logger.info("outside")

        inside, nested, outside = log_output()
        assert (inside["kind"], inside["mode"]) == ("stock", "full")
        assert (nested["kind"], nested["mode"]) == ("orders", "windowed")
        assert "kind" not in outside
        assert current_run_fields() == {}

    def test_log_operation(self, log_output):
        logger = get_logger("logistics_sync.tests")

        with log_operation("Import stock", logger=logger, kind="stock"):
            pass
        with pytest.raises(RuntimeError):
            with log_operation("Import orders", logger=logger, kind="orders"):
                raise RuntimeError("store down")

        started, completed, _, aborted = log_output()
        assert started["message"] == "Starting: Import stock"
        assert completed["status"] == "success"
        assert completed["duration_seconds"] >= 0
        assert aborted["level"] == "WARNING"
        assert aborted["error_type"] == "RuntimeError"
        assert "store down" in aborted["message"]

    def test_unknown_level_falls_back_to_info(self):
        try:
            assert setup_logger("LOUD").level == 20
        finally:
            setup_logger()
