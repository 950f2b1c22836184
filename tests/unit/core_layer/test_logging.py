"""
Unit Tests for Structured Logging

Request ID propagation, secret redaction and logger setup.
"""

import pytest

from invport.core.logging.logger import (
    add_request_id,
    clear_request_id,
    get_logger,
    get_request_id,
    log_stage,
    redact_secrets,
    redact_text,
    set_request_id,
    setup_logging,
)


@pytest.mark.unit
class TestRequestId:
    def test_set_get_clear(self):
        set_request_id("req-123")
        assert get_request_id() == "req-123"

        clear_request_id()
        assert get_request_id() is None

    def test_processor_adds_request_id(self):
        set_request_id("req-abc")
        try:
            event = add_request_id(None, "info", {"event": "hello"})
        finally:
            clear_request_id()

        assert event["request_id"] == "req-abc"

    def test_processor_keeps_explicit_request_id(self):
        set_request_id("ctx")
        try:
            event = add_request_id(None, "info", {"event": "hello", "request_id": "explicit"})
        finally:
            clear_request_id()

        assert event["request_id"] == "explicit"


@pytest.mark.unit
class TestRedaction:
    def test_password_masked_in_connection_string(self):
        text = "Server=tcp:db,1433;User ID=app;Password=hunter2;Encrypt=True"

        redacted = redact_text(text)

        assert "hunter2" not in redacted
        assert "Password=[REDACTED]" in redacted
        assert "Server=tcp:db,1433" in redacted

    def test_account_key_and_pwd_masked(self):
        text = "DefaultEndpointsProtocol=https;AccountName=acct;AccountKey=abc123==;PWD=x"

        redacted = redact_text(text)

        assert "abc123" not in redacted
        assert "AccountName=acct" in redacted
        assert "PWD=[REDACTED]" in redacted

    def test_processor_scans_every_string_field(self):
        event = redact_secrets(
            None,
            "error",
            {"event": "failed", "error": "login failed for Password=s3cret;", "attempt": 2},
        )

        assert "s3cret" not in event["error"]
        assert event["attempt"] == 2


@pytest.mark.unit
class TestLoggerSetup:
    def test_setup_and_log_console(self):
        setup_logging(log_level="INFO", log_format="console")
        logger = get_logger("tests.logging")

        logger.info("pool ready", stage="CP.3.1")

    def test_setup_json(self):
        setup_logging(log_level="WARNING", log_format="json")
        logger = get_logger("tests.logging.json")

        log_stage(logger, "DB.ERROR", "query failed", level="warning", error="timeout")
