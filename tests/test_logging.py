"""Tests for logging helpers."""

import structlog

from congestion_recorder.logging import ServiceInfoAdder, bind_context, clear_context


def test_service_info_added_to_events() -> None:
    processor = ServiceInfoAdder("HSL Congestion Recorder", "0.1.0", "production")

    event = processor(None, "info", {"event": "Trip stop recorded"})

    assert event == {
        "event": "Trip stop recorded",
        "service": "HSL Congestion Recorder",
        "version": "0.1.0",
        "environment": "production",
    }


def test_service_info_does_not_override_event_fields() -> None:
    processor = ServiceInfoAdder("HSL Congestion Recorder", "0.1.0", "production")

    event = processor(None, "info", {"event": "x", "environment": "staging"})

    assert event["environment"] == "staging"


def test_bind_and_clear_context() -> None:
    bind_context(message_id=7)
    assert structlog.contextvars.get_contextvars() == {"message_id": 7}

    clear_context()
    assert structlog.contextvars.get_contextvars() == {}
