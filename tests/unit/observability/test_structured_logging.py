"""
forgekit — unit tests for structured logging

File: tests/unit/observability/test_structured_logging.py

Purpose
- Validate JSON/console rendering through the stdlib handler and secret redaction.
"""

from __future__ import annotations

import io
import json
import logging
from collections.abc import Iterator

import pytest
import structlog

from forgekit.observability.logging import configure_logging, redact_event, redact_text


@pytest.fixture
def restore_logging() -> Iterator[None]:
    yield
    structlog.reset_defaults()
    package_logger = logging.getLogger("forgekit")
    for handler in list(package_logger.handlers):
        package_logger.removeHandler(handler)
        handler.close()
    package_logger.propagate = True
    package_logger.setLevel(logging.NOTSET)


def test_json_format_emits_one_sorted_object_per_line(restore_logging: None) -> None:
    stream = io.StringIO()
    configure_logging(level="INFO", fmt="json", stream=stream)

    log = structlog.get_logger("forgekit.codegen.model")
    log.info("codegen_model_started", model="post", columns=2)
    log.debug("hidden_at_info_level")

    lines = stream.getvalue().splitlines()
    assert len(lines) == 1
    payload = json.loads(lines[0])
    assert payload["event"] == "codegen_model_started"
    assert payload["model"] == "post"
    assert payload["columns"] == 2
    assert payload["level"] == "info"
    assert payload["logger"] == "forgekit.codegen.model"
    assert list(payload) == sorted(payload)


def test_sensitive_fields_are_redacted_in_output(restore_logging: None) -> None:
    stream = io.StringIO()
    configure_logging(level="DEBUG", fmt="json", stream=stream)

    structlog.get_logger("forgekit.process").warning(
        "command_started",
        api_key="sk-live-123",
        command=["curl", "-H", "Authorization: Bearer abc.def"],
        detail="password=hunter2 retry",
    )

    payload = json.loads(stream.getvalue().splitlines()[0])
    assert payload["api_key"] == "***REDACTED***"
    assert "abc.def" not in json.dumps(payload)
    assert payload["detail"] == "password=***REDACTED*** retry"


def test_console_format_is_human_readable(restore_logging: None) -> None:
    stream = io.StringIO()
    configure_logging(level="INFO", fmt="console", stream=stream)

    structlog.get_logger("forgekit.ci.runner").info("ci_resource_finished", outcome="pass")

    output = stream.getvalue()
    assert "ci_resource_finished" in output
    assert "outcome=pass" in output
    assert not output.lstrip().startswith("{")


def test_invalid_settings_are_rejected() -> None:
    with pytest.raises(ValueError, match="log format"):
        configure_logging(fmt="xml")
    with pytest.raises(ValueError, match="unknown log level"):
        configure_logging(level="LOUD")


def test_redaction_helpers() -> None:
    assert redact_text("token: abc123, next") == "token:***REDACTED***, next"
    event = redact_event(None, "info", {"event": "x", "nested": {"client_secret": "s"}})
    assert event["nested"] == {"client_secret": "***REDACTED***"}
