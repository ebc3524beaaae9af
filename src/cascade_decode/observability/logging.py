"""
cascade-decode — logging setup with JSON-lines output and redaction support.

File: src/cascade_decode/observability/logging.py

Purpose
- Route the decoder's ``structlog`` decision logs through the standard library
  and attach a JSON-lines (or plain text) stream handler.
- Build bounded, secret-redacted previews of model output for log fields.

Functional requirements
- Nothing is configured at import time; ``configure_logging`` is opt-in.
- ``shutdown_logging`` detaches the handler and restores structlog defaults.
"""

from __future__ import annotations

import json
import logging
import math
import re
import sys
import threading
from collections.abc import Mapping
from datetime import UTC, datetime
from typing import IO, Final

import structlog

from cascade_decode.config.schema import LoggingSettings

JSONScalar = str | int | float | bool | None
JSONValue = JSONScalar | list["JSONValue"] | dict[str, "JSONValue"]

LOGGER_NAME: Final[str] = "cascade_decode"

_REDACTED_VALUE: Final[str] = "***REDACTED***"
_TRUNCATION_MARKER: Final[str] = "…"

_SENSITIVE_KEY_TERMS: Final[tuple[str, ...]] = (
    "secret",
    "token",
    "password",
    "api_key",
    "apikey",
    "authorization",
    "credential",
    "private_key",
)

_SENSITIVE_ASSIGNMENT_PATTERN: Final[re.Pattern[str]] = re.compile(
    r"(?i)\b(api[_-]?key|token|password|secret|client_secret|authorization)\b"
    r"(\"?\s*[:=]\s*\"?)([^\s,;\"]+)"
)
_BEARER_TOKEN_PATTERN: Final[re.Pattern[str]] = re.compile(r"(?i)\bbearer\s+[A-Za-z0-9._~+/-]+=*")
_OPENAI_KEY_PATTERN: Final[re.Pattern[str]] = re.compile(r"\bsk-[A-Za-z0-9]{12,}\b")
_ANTHROPIC_KEY_PATTERN: Final[re.Pattern[str]] = re.compile(r"\bsk-ant-[A-Za-z0-9_-]{12,}\b")

_STANDARD_LOG_RECORD_FIELDS: Final[frozenset[str]] = frozenset(
    {
        "args",
        "asctime",
        "created",
        "exc_info",
        "exc_text",
        "filename",
        "funcName",
        "levelname",
        "levelno",
        "lineno",
        "message",
        "module",
        "msecs",
        "msg",
        "name",
        "pathname",
        "process",
        "processName",
        "relativeCreated",
        "stack_info",
        "thread",
        "threadName",
        "taskName",
    }
)

_ACTIVE_LOCK = threading.Lock()
_ACTIVE_HANDLER: logging.Handler | None = None


class _JsonLineFormatter(logging.Formatter):
    """Formatter that emits one canonical JSON object per log line."""

    def __init__(self, *, redact: bool) -> None:
        super().__init__()
        self._redact = redact

    def format(self, record: logging.LogRecord) -> str:
        event: dict[str, JSONValue] = {
            "timestamp": _iso8601z_from_epoch(record.created),
            "level": record.levelname,
            "logger": record.name,
            "event": self._clean(record.getMessage()),
        }
        extras = _extract_extra_fields(record)
        if extras:
            event["fields"] = _redact_value(extras, key_context=None) if self._redact else extras
        if record.exc_info is not None:
            event["exception"] = self._clean(self.formatException(record.exc_info))
        return json.dumps(event, sort_keys=True, separators=(",", ":"), ensure_ascii=False)

    def _clean(self, text: str) -> str:
        return redact_text(text) if self._redact else text


class _TextFormatter(logging.Formatter):
    """``timestamp level logger event key=value ...`` lines for terminals."""

    def __init__(self, *, redact: bool) -> None:
        super().__init__()
        self._redact = redact

    def format(self, record: logging.LogRecord) -> str:
        extras = _extract_extra_fields(record)
        if self._redact:
            extras = _redact_value(extras, key_context=None)
        parts = [
            _iso8601z_from_epoch(record.created),
            record.levelname,
            record.name,
            record.getMessage(),
        ]
        if isinstance(extras, dict):
            parts.extend(
                f"{key}={json.dumps(extras[key], ensure_ascii=False)}" for key in sorted(extras)
            )
        line = " ".join(parts)
        if record.exc_info is not None:
            line = f"{line}\n{self.formatException(record.exc_info)}"
        return redact_text(line) if self._redact else line


def configure_logging(
    settings: LoggingSettings | None = None,
    *,
    stream: IO[str] | None = None,
) -> logging.Handler:
    """Attach a stream handler to the ``cascade_decode`` logger and route structlog to it.

    Calling again replaces the previously attached handler.
    """

    resolved = settings if settings is not None else LoggingSettings()
    shutdown_logging()

    handler = logging.StreamHandler(stream if stream is not None else sys.stderr)
    formatter: logging.Formatter
    if resolved.format == "text":
        formatter = _TextFormatter(redact=resolved.redact_secrets)
    else:
        formatter = _JsonLineFormatter(redact=resolved.redact_secrets)
    handler.setFormatter(formatter)
    handler.setLevel(resolved.level)

    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(resolved.level)
    logger.propagate = False
    logger.addHandler(handler)

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.render_to_log_kwargs,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=False,
    )

    with _ACTIVE_LOCK:
        global _ACTIVE_HANDLER
        _ACTIVE_HANDLER = handler
    return handler


def shutdown_logging() -> None:
    """Detach the active handler, if any, and restore structlog defaults."""

    with _ACTIVE_LOCK:
        global _ACTIVE_HANDLER
        handler = _ACTIVE_HANDLER
        _ACTIVE_HANDLER = None
    if handler is None:
        return

    logger = logging.getLogger(LOGGER_NAME)
    logger.removeHandler(handler)
    logger.propagate = True
    handler.flush()
    handler.close()
    structlog.reset_defaults()


def get_active_handler() -> logging.Handler | None:
    with _ACTIVE_LOCK:
        return _ACTIVE_HANDLER


def redact_text(text: str) -> str:
    """Mask API keys, bearer tokens and ``secret=...`` style assignments."""

    redacted = _BEARER_TOKEN_PATTERN.sub(f"Bearer {_REDACTED_VALUE}", text)
    redacted = _SENSITIVE_ASSIGNMENT_PATTERN.sub(
        lambda match: f"{match.group(1)}{match.group(2)}{_REDACTED_VALUE}", redacted
    )
    redacted = _ANTHROPIC_KEY_PATTERN.sub(_REDACTED_VALUE, redacted)
    return _OPENAI_KEY_PATTERN.sub(_REDACTED_VALUE, redacted)


def preview(text: str, limit: int, *, redact: bool = True) -> str:
    """Truncate ``text`` to ``limit`` characters for a log field, redacting first.

    A ``limit`` of 0 disables previews entirely.
    """

    if limit <= 0:
        return ""
    cleaned = redact_text(text) if redact else text
    if len(cleaned) <= limit:
        return cleaned
    return cleaned[:limit] + _TRUNCATION_MARKER


def _iso8601z_from_epoch(epoch_seconds: float) -> str:
    timestamp = datetime.fromtimestamp(epoch_seconds, tz=UTC)
    return timestamp.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def _extract_extra_fields(record: logging.LogRecord) -> dict[str, JSONValue]:
    fields: dict[str, JSONValue] = {}
    for key, value in record.__dict__.items():
        if key in _STANDARD_LOG_RECORD_FIELDS or key.startswith("_"):
            continue
        fields[key] = _normalize_json_value(value)
    return fields


def _normalize_json_value(value: object) -> JSONValue:
    if value is None or isinstance(value, (bool, int, str)):
        return value
    if isinstance(value, float):
        if math.isfinite(value):
            return value
        return repr(value)
    if isinstance(value, bytes):
        return value.decode("utf-8", errors="replace")
    if isinstance(value, Mapping):
        return {str(key): _normalize_json_value(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [_normalize_json_value(item) for item in value]
    return repr(value)


def _redact_value(value: JSONValue, *, key_context: str | None) -> JSONValue:
    if key_context is not None and any(
        term in key_context.lower() for term in _SENSITIVE_KEY_TERMS
    ):
        return _REDACTED_VALUE
    if isinstance(value, str):
        return redact_text(value)
    if isinstance(value, list):
        return [_redact_value(item, key_context=None) for item in value]
    if isinstance(value, dict):
        return {key: _redact_value(item, key_context=key) for key, item in value.items()}
    return value


__all__ = [
    "LOGGER_NAME",
    "configure_logging",
    "get_active_handler",
    "preview",
    "redact_text",
    "shutdown_logging",
]
