"""Tests for Hash Sphere structured logging."""

import structlog

from hashsphere.config import Settings
from hashsphere.logging import (
    bind_context,
    bind_tenant,
    clear_context,
    configure_from_settings,
    configure_logging,
    get_logger,
    unbind_context,
)
from hashsphere.models import TenantScope


class TestConfigureLogging:
    """Tests for logging configuration."""

    def test_configure_with_defaults(self):
        """Should configure with INFO level and JSON format by default."""
        configure_logging()
        logger = get_logger("test")
        logger.info("test message")

    def test_configure_with_debug_level(self):
        """Should accept DEBUG level."""
        configure_logging(level="DEBUG")
        logger = get_logger("test")
        logger.debug("debug message")

    def test_configure_with_text_format(self):
        """Should accept text format for development."""
        configure_logging(level="INFO", format="text")
        logger = get_logger("test")
        logger.info("text format message")

    def test_configure_with_invalid_level(self):
        """Unknown level names fall back to INFO instead of raising."""
        configure_logging(level="NOT_A_LEVEL")
        get_logger("test").info("still works")

    def test_configure_from_settings(self):
        """Settings carry the level and format."""
        configure_from_settings(Settings(_env_file=None, log_level="WARNING", log_format="text"))
        get_logger("test").warning("configured from settings")


class TestContextBinding:
    """Tests for context variable binding."""

    def setup_method(self):
        clear_context()

    def teardown_method(self):
        clear_context()

    def test_bind_context(self):
        """Bound values land in the structlog context."""
        bind_context(request_id="req_abc")
        assert structlog.contextvars.get_contextvars()["request_id"] == "req_abc"

    def test_bind_tenant(self):
        """Tenant binding records both ids."""
        bind_tenant(TenantScope(user_id="user_123", org_id="org_9"))
        ctx = structlog.contextvars.get_contextvars()
        assert ctx["user_id"] == "user_123"
        assert ctx["org_id"] == "org_9"

    def test_unbind_specific_context(self):
        """Should unbind specific context keys."""
        bind_context(user_id="user_123", temp="value")
        unbind_context("temp")
        ctx = structlog.contextvars.get_contextvars()
        assert "temp" not in ctx
        assert ctx["user_id"] == "user_123"

    def test_clear_context(self):
        """Should clear all bound context."""
        bind_context(user_id="user_123")
        clear_context()
        assert structlog.contextvars.get_contextvars() == {}


class TestLoggerUsage:
    """Tests for logger usage patterns."""

    def test_log_with_kwargs(self):
        """Should accept keyword arguments for structured data."""
        configure_logging()
        get_logger("test").info("drift_complete", drifted=12, failed=0, batches=1)

    def test_log_with_exception(self):
        """Should handle exception logging."""
        configure_logging()
        logger = get_logger("test")
        try:
            raise ValueError("test error")
        except ValueError:
            logger.exception("caught an error")


class TestModuleLevelLogger:
    """Tests for the pre-configured module-level logger."""

    def test_import_logger(self):
        """Should be able to import pre-configured logger."""
        from hashsphere.logging import logger

        assert logger is not None
        logger.info("using module logger")
