"""Unit tests for infrastructure.logging.setup module.

Tests cover:
- Test environment detection
- configure_logging() in test mode
- build_processors() chain and renderer choice
- get_module_logger() context binding
"""

import pytest
import structlog

from infrastructure.logging.setup import (
    build_processors,
    _is_test_environment,
    configure_logging,
    get_module_logger,
)


@pytest.mark.unit
class TestIsTestEnvironment:
    def test_detects_pytest(self):
        assert _is_test_environment() is True


@pytest.mark.unit
class TestConfigureLogging:
    def test_returns_logger_with_standard_methods(self):
        logger = configure_logging()

        for method in ("debug", "info", "warning", "error", "bind"):
            assert hasattr(logger, method)

    def test_idempotent(self):
        configure_logging()
        configure_logging(log_level="DEBUG", is_production=True)

    def test_logging_calls_do_not_raise(self):
        logger = configure_logging()

        logger.info("notification_dispatched", pushed=1)
        logger.error("dispatch_failed", exc_info=False)


@pytest.mark.unit
class TestGetModuleLogger:
    def test_binds_component_and_module_path(self):
        logger = get_module_logger()

        context = logger.bind()._context

        assert context["module_path"] == __name__
        assert context["component"] == __name__.split(".")[-1]

    def test_no_subsystem_outside_package_roots(self):
        context = get_module_logger().bind()._context

        assert "subsystem" not in context


@pytest.mark.unit
class TestBuildProcessors:
    def test_json_renderer_in_production(self):
        processors = build_processors("abc", json_output=True)

        assert isinstance(processors[-1], structlog.processors.JSONRenderer)

    def test_console_renderer_outside_production(self):
        processors = build_processors("abc", prefix="dev-", json_output=False)

        assert isinstance(processors[-1], structlog.dev.ConsoleRenderer)

    def test_chain_redacts_credentials_before_rendering(self):
        processors = build_processors("abc", json_output=True)[:-1]
        event = {
            "event": "chat_message_failed",
            "bot_token": "xoxb-1",
            "error": "POST https://discord.com/api/webhooks/7/secret",
        }

        # Only the pure event_dict processors; the callsite and stdlib ones need a real logger.
        for processor in processors[-3:]:
            event = processor(None, "error", event)

        assert event["bot_token"] == "***REDACTED***"
        assert event["error"] == "POST https://discord.com/api/webhooks/7/***"
