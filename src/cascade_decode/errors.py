"""
cascade-decode — error taxonomy

File: src/cascade_decode/errors.py

Purpose
- Typed failures raised by the decoder and its collaborators.

Functional requirements
- Sub-strategy failures (repair, unwrap-then-decode, reconcile) are recovered
  inside the orchestrator; only ``PrimitiveParseError``, ``DecodeFailedError``
  and ``DecodeCancelledError`` reach callers of ``decode``.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Sequence

    from cascade_decode.descriptor import Kind
    from cascade_decode.orchestrator import DecodeAttempt

_PREVIEW_CHARS = 200


def _preview(text: str) -> str:
    if len(text) <= _PREVIEW_CHARS:
        return text
    return text[:_PREVIEW_CHARS] + f"... ({len(text)} chars)"


class DecodeError(Exception):
    """Base class for every decode failure."""


class UnsupportedTargetError(TypeError):
    """Raised when a Python type cannot be described as a decode target."""


class PrimitiveParseError(DecodeError, ValueError):
    """Scalar text did not match the target kind's grammar, even after envelope unwrapping."""

    def __init__(self, kind: Kind, raw_text: str, cause: str) -> None:
        self.kind = kind
        self.raw_text = raw_text
        self.cause = cause
        super().__init__(f"failed to parse content as {kind.value}: {cause} ({_preview(raw_text)!r})")


class RepairError(DecodeError):
    """The syntax repairer could not produce valid JSON from a candidate."""

    def __init__(self, text: str, cause: str) -> None:
        self.text = text
        self.cause = cause
        super().__init__(f"failed to repair JSON: {cause}")


class StructuralDecodeError(DecodeError, ValueError):
    """A JSON tree does not fit the target descriptor."""

    def __init__(self, message: str, *, path: str = "$") -> None:
        self.path = path
        self.reason = message
        super().__init__(f"{path}: {message}")


class ReconcileError(StructuralDecodeError):
    """Neither shape-reconciliation heuristic produced a value."""


class DecodeFailedError(DecodeError):
    """Every candidate and every strategy failed for a composite target."""

    def __init__(
        self,
        content: str,
        *,
        last_decode_error: Exception | None,
        last_repair_error: RepairError | None,
        attempts: Sequence[DecodeAttempt] = (),
    ) -> None:
        self.content = content
        self.last_decode_error = last_decode_error
        self.last_repair_error = last_repair_error
        self.attempts = tuple(attempts)
        parts = [f"failed to decode content after {len(self.attempts)} attempts"]
        if last_decode_error is not None:
            parts.append(f"decode error: {last_decode_error}")
        if last_repair_error is not None:
            parts.append(f"repair error: {last_repair_error}")
        parts.append(f"original content: {_preview(content)!r}")
        super().__init__("; ".join(parts))


class DecodeCancelledError(DecodeError):
    """The caller's cancellation token was set between candidates."""


__all__ = [
    "DecodeCancelledError",
    "DecodeError",
    "DecodeFailedError",
    "PrimitiveParseError",
    "ReconcileError",
    "RepairError",
    "StructuralDecodeError",
    "UnsupportedTargetError",
]
