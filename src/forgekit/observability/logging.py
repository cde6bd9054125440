"""Structured logging setup with JSON-lines or console output and redaction support."""

from __future__ import annotations

import logging
import re
import sys
from collections.abc import Mapping, MutableMapping
from typing import IO, Any, Final

import structlog


_REDACTED_VALUE: Final[str] = "***REDACTED***"
_DEFAULT_LOGGER_NAME: Final[str] = "forgekit"
_LOG_FORMATS: Final[tuple[str, ...]] = ("console", "json")

_SENSITIVE_KEY_TERMS: Final[tuple[str, ...]] = (
    "secret",
    "token",
    "password",
    "passphrase",
    "api_key",
    "apikey",
    "authorization",
    "credential",
    "cookie",
    "private_key",
)

_SENSITIVE_ASSIGNMENT_PATTERN: Final[re.Pattern[str]] = re.compile(
    r"(?i)\b(api[_-]?key|token|password|secret|client_secret|authorization)\b\s*([:=])\s*([^\s,;]+)"
)
_BEARER_TOKEN_PATTERN: Final[re.Pattern[str]] = re.compile(r"(?i)\bbearer\s+[A-Za-z0-9._~+/-]+=*")

_STRUCTLOG_META_KEYS: Final[frozenset[str]] = frozenset(
    {"event", "level", "logger", "timestamp", "_record", "_from_structlog"}
)


def configure_logging(
    *,
    level: int | str = "INFO",
    fmt: str = "console",
    stream: IO[str] | None = None,
    logger_name: str = _DEFAULT_LOGGER_NAME,
) -> logging.Logger:
    """Route structlog events through one stdlib handler and return its logger.

    Parameters
    ----------
    level:
        Log level name or number applied to the package logger.
    fmt:
        ``"json"`` for one canonical JSON object per line, ``"console"`` for
        human-readable key=value lines.
    stream:
        Output stream, stderr by default so command output on stdout stays clean.
    """

    if fmt not in _LOG_FORMATS:
        raise ValueError(f"unsupported log format {fmt!r}; expected one of: console, json")
    resolved_level = _parse_log_level(level)

    shared_processors: list[Any] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        redact_event,
    ]
    renderer: Any
    if fmt == "json":
        renderer = structlog.processors.JSONRenderer(sort_keys=True)
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=False)

    formatter = structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=shared_processors,
        processors=[structlog.stdlib.ProcessorFormatter.remove_processors_meta, renderer],
    )
    handler = logging.StreamHandler(stream if stream is not None else sys.stderr)
    handler.setFormatter(formatter)
    handler.setLevel(resolved_level)

    logger = logging.getLogger(logger_name)
    for existing in list(logger.handlers):
        logger.removeHandler(existing)
        existing.close()
    logger.addHandler(handler)
    logger.setLevel(resolved_level)
    logger.propagate = False

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            *shared_processors,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=False,
    )
    return logger


def redact_event(
    _logger: object, _method_name: str, event_dict: MutableMapping[str, Any]
) -> MutableMapping[str, Any]:
    """structlog processor masking secret-looking fields and inline credentials."""

    for key in list(event_dict):
        if key in _STRUCTLOG_META_KEYS and key != "event":
            continue
        event_dict[key] = _redact_value(event_dict[key], key_context=key)
    return event_dict


def redact_text(text: str) -> str:
    """Mask ``key=value`` credentials and bearer tokens inside free text."""

    redacted = _BEARER_TOKEN_PATTERN.sub(f"Bearer {_REDACTED_VALUE}", text)
    return _SENSITIVE_ASSIGNMENT_PATTERN.sub(
        lambda match: f"{match.group(1)}{match.group(2)}{_REDACTED_VALUE}", redacted
    )


def _redact_value(value: object, *, key_context: str | None) -> object:
    if key_context is not None and _is_sensitive_key(key_context):
        return _REDACTED_VALUE
    if isinstance(value, str):
        return redact_text(value)
    if isinstance(value, Mapping):
        return {
            str(key): _redact_value(item, key_context=str(key)) for key, item in value.items()
        }
    if isinstance(value, (list, tuple)):
        return [_redact_value(item, key_context=None) for item in value]
    return value


def _is_sensitive_key(key: str) -> bool:
    lowered = key.strip().lower().replace("-", "_")
    return any(term in lowered for term in _SENSITIVE_KEY_TERMS)


def _parse_log_level(level: int | str) -> int:
    if isinstance(level, bool):
        raise ValueError("log level must be a level name or number")
    if isinstance(level, int):
        return level
    resolved = logging.getLevelName(level.strip().upper())
    if not isinstance(resolved, int):
        raise ValueError(f"unknown log level {level!r}")
    return resolved


__all__ = ["configure_logging", "redact_event", "redact_text"]
