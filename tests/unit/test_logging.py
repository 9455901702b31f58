"""Tests for structlog configuration and audit loggers."""

from unittest.mock import MagicMock

import orjson
import pytest
import structlog
from structlog.testing import capture_logs

from scalper_app.logging.config import (
    configure_logging,
    get_decision_logger,
    get_state_logger,
    log_decision,
    log_state_transition,
)


@pytest.fixture(autouse=True)
def reset_structlog():
    yield
    structlog.reset_defaults()


class TestConfigureLogging:
    """Processor chain selection."""

    def test_json_renderer(self):
        configure_logging("DEBUG", format_json=True)

        processors = structlog.get_config()["processors"]
        assert structlog.is_configured()
        assert isinstance(processors[-1], structlog.processors.JSONRenderer)

    def test_console_renderer_by_default(self):
        configure_logging("INFO")

        processors = structlog.get_config()["processors"]
        assert isinstance(processors[-1], structlog.dev.ConsoleRenderer)

    def test_json_lines_encoded_with_orjson(self):
        configure_logging("INFO", format_json=True)

        renderer = structlog.get_config()["processors"][-1]
        line = renderer(None, "info", {"event": "Decision signal", "price": 99.0,
                                       "context": {"momentum_index": 0.0}})

        assert isinstance(line, str)
        assert orjson.loads(line) == {"event": "Decision signal", "price": 99.0,
                                      "context": {"momentum_index": 0.0}}

    def test_level_name_case_insensitive(self):
        configure_logging("debug")
        assert structlog.is_configured()

    def test_unknown_level_rejected(self):
        with pytest.raises(ValueError):
            configure_logging("CHATTY")


class TestAuditLoggers:
    """Subsystem-bound loggers."""

    def test_decision_logger_binds_subsystem(self):
        with capture_logs() as logs:
            get_decision_logger("scalper_app.engine").info("Decision signal")

        assert logs[0]["subsystem"] == "decision"
        assert logs[0]["audit_trail"] is True

    def test_state_logger_binds_subsystem(self):
        with capture_logs() as logs:
            get_state_logger("scalper_app.state").info("State transition")

        assert logs[0]["subsystem"] == "state_machine"

    def test_log_decision_fields(self):
        with capture_logs() as logs:
            log_decision(
                get_decision_logger("test"),
                action="buy",
                reason="band_reversion",
                instrument="B-BTC_USDT",
                price=99.0,
                context={"momentum_index": 0.0}
            )

        entry = logs[0]
        assert entry["event"] == "Decision signal"
        assert entry["action"] == "buy"
        assert entry["reason"] == "band_reversion"
        assert entry["context"] == {"momentum_index": 0.0}

    def test_log_state_transition_without_context(self):
        logger = MagicMock()
        log_state_transition(logger, "B-BTC_USDT", "flat", "long", "fill")

        logger.bind.assert_called_once_with(
            instrument="B-BTC_USDT", from_state="flat", to_state="long", trigger="fill"
        )
        bound = logger.bind.return_value
        bound.bind.assert_not_called()
        bound.info.assert_called_once_with("State transition")
