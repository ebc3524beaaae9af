"""Cooperative cancellation for synchronous decode calls."""

from __future__ import annotations

import threading

from cascade_decode.errors import DecodeCancelledError


class CancellationToken:
    """Cooperative cancellation token backed by ``threading.Event``.

    Safe to cancel from another thread while a decode call is running; the
    orchestrator checks it between candidates.
    """

    def __init__(self) -> None:
        self._event = threading.Event()
        self._reason: str | None = None

    def cancel(self, reason: str | None = None) -> None:
        if reason is not None and not self._event.is_set():
            self._reason = reason
        self._event.set()

    @property
    def is_cancelled(self) -> bool:
        return self._event.is_set()

    @property
    def reason(self) -> str | None:
        return self._reason

    def wait(self, timeout_seconds: float | None = None) -> bool:
        return self._event.wait(timeout_seconds)

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            raise DecodeCancelledError(self._reason or "decode cancelled")


__all__ = ["CancellationToken"]
