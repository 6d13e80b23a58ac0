"""
Unit tests for helpers and logging setup.
"""

import structlog

from oramacore_client import ClientSettings, configure_logging
from oramacore_client.log import add_client_context, get_logger
from oramacore_client.utils import create_random_string, format_duration


class TestFormatDuration:
    def test_milliseconds(self):
        assert format_duration(850) == "850ms"

    def test_whole_seconds(self):
        assert format_duration(2000) == "2s"

    def test_fractional_seconds(self):
        assert format_duration(1500) == "1.5s"


def test_random_string_length():
    assert len(create_random_string(32)) == 32
    assert len(create_random_string(50)) == 50
    assert create_random_string(16) != create_random_string(16)


class TestLogging:
    def test_client_context_added(self):
        event = add_client_context(None, "info", {"logger": "oramacore_client.auth"})
        assert event["component"] == "auth"

    def test_foreign_loggers_untouched(self):
        event = add_client_context(None, "info", {"logger": "httpx"})
        assert "component" not in event

    def test_configure_logging(self):
        settings = ClientSettings(_env_file=None, log_level="debug")
        configure_logging(settings.log_level)
        try:
            logger = get_logger("oramacore_client.test")
            logger.info("configured")
        finally:
            structlog.reset_defaults()
