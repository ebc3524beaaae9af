"""Logging setup and log-safe previews."""

from cascade_decode.observability.logging import (
    LOGGER_NAME,
    configure_logging,
    get_active_handler,
    preview,
    redact_text,
    shutdown_logging,
)

__all__ = [
    "LOGGER_NAME",
    "configure_logging",
    "get_active_handler",
    "preview",
    "redact_text",
    "shutdown_logging",
]
