"""
Unit Tests for Logging Module

Tests structlog processors, thread context, and the stage helper.
"""

from unittest.mock import MagicMock

import pytest

from src.core.config.constants import Stage
from src.core.logging.logger import (
    add_log_level_name,
    add_thread_id,
    clear_thread_id,
    get_logger,
    get_thread_id,
    log_stage,
    redact_secrets,
    set_thread_id,
    setup_logging,
)


@pytest.fixture(autouse=True)
def _reset_thread_id():
    clear_thread_id()
    yield
    clear_thread_id()


@pytest.mark.unit
class TestThreadContext:
    def test_set_and_get(self):
        set_thread_id("req-1")
        assert get_thread_id() == "req-1"

    def test_clear(self):
        set_thread_id("req-1")
        clear_thread_id()
        assert get_thread_id() is None

    def test_processor_injects_thread_id(self):
        set_thread_id("req-2")
        event = add_thread_id(None, "info", {"event": "x"})
        assert event["thread_id"] == "req-2"

    def test_processor_keeps_explicit_thread_id(self):
        set_thread_id("req-2")
        event = add_thread_id(None, "info", {"event": "x", "thread_id": "explicit"})
        assert event["thread_id"] == "explicit"

    def test_processor_without_context(self):
        event = add_thread_id(None, "info", {"event": "x"})
        assert "thread_id" not in event


@pytest.mark.unit
class TestRedaction:
    def test_authorization_header_redacted(self):
        event = redact_secrets(None, "info", {"event": "sent Client-ID abcDEF123_-x"})
        assert event["event"] == "sent Client-ID [REDACTED]"

    def test_query_access_key_redacted(self):
        event = redact_secrets(None, "info", {"url": "https://api/photos?client_id=secret99"})
        assert event["url"] == "https://api/photos?client_id=[REDACTED]"

    def test_email_redacted(self):
        event = redact_secrets(None, "info", {"event": "contact ops@example.com"})
        assert event["event"] == "contact [EMAIL]"

    def test_non_string_values_untouched(self):
        event = redact_secrets(None, "info", {"count": 3, "ok": True})
        assert event == {"count": 3, "ok": True}


@pytest.mark.unit
class TestLogHelpers:
    def test_level_name_uppercased(self):
        assert add_log_level_name(None, "info", {"level": "warning"})["level"] == "WARNING"

    def test_log_stage_passes_stage_value(self):
        logger = MagicMock()

        log_stage(logger, Stage.REFILL, "Refilled", partition="default")

        logger.info.assert_called_once_with(
            "Refilled", stage=Stage.REFILL.value, partition="default"
        )

    def test_log_stage_level(self):
        logger = MagicMock()

        log_stage(logger, Stage.PARTITION_LOAD, "Loaded", level="DEBUG")

        logger.debug.assert_called_once_with("Loaded", stage=Stage.PARTITION_LOAD.value)

    def test_setup_logging_and_log(self):
        setup_logging(log_level="DEBUG", log_format="console")
        logger = get_logger(__name__)

        logger.info("configured", stage=Stage.INITIALIZATION.value)
