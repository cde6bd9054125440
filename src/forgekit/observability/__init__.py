"""Observability helpers: structured logging configuration and redaction."""

from forgekit.observability.logging import configure_logging, redact_event, redact_text

__all__ = ["configure_logging", "redact_event", "redact_text"]
