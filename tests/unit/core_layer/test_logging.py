"""
Unit Tests for Logging Module

Tests logger creation, request-id context, processors and log_stage.
"""

from unittest.mock import MagicMock

import pytest

from src.core.config.constants import Stage
from src.core.logging.logger import (
    MAX_KEY_LENGTH,
    add_log_level_name,
    add_request_id,
    clear_request_id,
    get_logger,
    get_request_id,
    log_stage,
    redact_pii,
    set_request_id,
    setup_logging,
    shorten_cache_keys,
)


@pytest.mark.unit
class TestLoggerCreation:
    def test_get_logger_has_logging_methods(self):
        logger = get_logger(__name__)

        for method in ("debug", "info", "warning", "error"):
            assert hasattr(logger, method)

    def test_setup_logging_accepts_both_formats(self):
        setup_logging(log_level="WARNING", log_format="console")
        setup_logging(log_level="WARNING", log_format="json")


@pytest.mark.unit
class TestRequestContext:
    def test_set_get_clear(self):
        set_request_id("req-123")
        assert get_request_id() == "req-123"

        clear_request_id()
        assert get_request_id() is None

    def test_request_id_processor(self):
        set_request_id("req-9")
        try:
            assert add_request_id(None, "info", {"event": "x"})["request_id"] == "req-9"
        finally:
            clear_request_id()

    def test_request_id_processor_without_context(self):
        clear_request_id()
        assert "request_id" not in add_request_id(None, "info", {"event": "x"})


@pytest.mark.unit
class TestProcessors:
    def test_redacts_email_and_phone(self):
        event = redact_pii(None, "info", {"event": "order by jane@example.com, call 555-123-4567"})

        assert event["event"] == "order by [EMAIL], call [PHONE]"

    def test_non_string_event_untouched(self):
        assert redact_pii(None, "info", {"event": 42})["event"] == 42

    def test_redacts_search_text_in_cache_keys(self):
        event = redact_pii(
            None,
            "info",
            {
                "event": "Cache set",
                "cache_key": "cache:/api/v1/products/search?q=jane%40example.com",
                "pattern": "search:555.123.4567:",
            },
        )

        assert event["cache_key"] == "cache:/api/v1/products/search?q=[EMAIL]"
        assert event["pattern"] == "search:[PHONE]:"

    def test_long_cache_key_is_shortened(self):
        key = "search:" + "x" * 300

        event = shorten_cache_keys(None, "info", {"cache_key": key, "ttl": 180})

        assert event["cache_key"].startswith(key[:MAX_KEY_LENGTH])
        assert event["cache_key"].endswith(f"...(+{len(key) - MAX_KEY_LENGTH})")
        assert event["ttl"] == 180

    def test_short_cache_key_unchanged(self):
        assert shorten_cache_keys(None, "info", {"key": "product:42"})["key"] == "product:42"

    def test_level_uppercased(self):
        assert add_log_level_name(None, "info", {"level": "warning"})["level"] == "WARNING"


@pytest.mark.unit
class TestLogStage:
    def test_passes_stage_value_and_fields(self):
        logger = MagicMock()

        log_stage(logger, Stage.L1_LOOKUP, "L1 cache hit", cache_key="product:1")

        logger.info.assert_called_once_with("L1 cache hit", stage="2.1_L1_CACHE_LOOKUP", cache_key="product:1")

    def test_plain_string_stage(self):
        logger = MagicMock()

        log_stage(logger, "9.9", "custom", level="debug")

        logger.debug.assert_called_once_with("custom", stage="9.9")

    def test_level_selects_method(self):
        logger = MagicMock()

        log_stage(logger, Stage.CACHE_INVALIDATE, "failed", level="ERROR")

        logger.error.assert_called_once()
        logger.info.assert_not_called()
