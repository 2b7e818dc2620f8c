"""Tests for logging configuration."""

import structlog

from commerce_insights.core.logging import (
    MASK,
    add_request_id,
    add_service_context,
    build_processors,
    configure_logging,
    get_logger,
    mask_pii,
    request_id_ctx,
)


class TestRequestId:
    """Tests for request correlation."""

    def test_context_variable_defaults_to_none(self):
        assert request_id_ctx.get() is None

    def test_processor_uses_context(self):
        """The processor copies the bound request id into the event."""
        token = request_id_ctx.set("req-42")
        try:
            event = add_request_id(None, "info", {"event": "x"})
        finally:
            request_id_ctx.reset(token)

        assert event["request_id"] == "req-42"

    def test_processor_without_context(self):
        """No request id key is added outside a request."""
        event = add_request_id(None, "info", {"event": "x"})

        assert "request_id" not in event


def test_add_service_context():
    """Events are tagged with service name and environment."""
    event = add_service_context(None, "info", {"event": "x"})

    assert event["service"] == "CommerceInsights"
    assert event["env"] == "development"


def test_add_service_context_keeps_explicit_values():
    event = add_service_context(None, "info", {"event": "x", "service": "worker"})

    assert event["service"] == "worker"


class TestMaskPii:
    """Tests for customer data masking."""

    def test_email_keeps_domain(self):
        event = mask_pii(None, "info", {"event": "x", "email": "anna@example.com"})

        assert event["email"] == f"{MASK}@example.com"

    def test_names_masked(self):
        event = mask_pii(
            None, "info", {"event": "x", "first_name": "Anna", "last_name": "Berg"}
        )

        assert event["first_name"] == MASK
        assert event["last_name"] == MASK

    def test_empty_values_left_alone(self):
        event = mask_pii(None, "info", {"event": "x", "email": "", "last_name": None})

        assert event["email"] == ""
        assert event["last_name"] is None

    def test_other_fields_untouched(self):
        event = mask_pii(None, "info", {"event": "x", "customer_id": "cus_1"})

        assert event == {"event": "x", "customer_id": "cus_1"}


class TestBuildProcessors:
    """Tests for the processor chain."""

    def test_json_renderer_last(self):
        processors = build_processors("json")

        assert isinstance(processors[-1], structlog.processors.JSONRenderer)

    def test_console_renderer_last(self):
        processors = build_processors("console")

        assert isinstance(processors[-1], structlog.dev.ConsoleRenderer)

    def test_masking_runs_before_rendering(self):
        processors = build_processors("json")

        assert processors.index(mask_pii) < len(processors) - 1


def test_configure_logging_and_get_logger():
    """After configuration loggers expose the level methods."""
    configure_logging()
    logger = get_logger("test")

    assert hasattr(logger, "info")
    assert hasattr(logger, "error")
