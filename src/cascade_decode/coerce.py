"""Primitive coercion of raw text into scalar kinds, with envelope fallback."""

from __future__ import annotations

import math
import re
from typing import Final

from cascade_decode.descriptor import Kind
from cascade_decode.envelope import unwrap_scalar_text
from cascade_decode.errors import PrimitiveParseError

INT64_MIN: Final[int] = -(2**63)
INT64_MAX: Final[int] = 2**63 - 1
UINT64_MAX: Final[int] = 2**64 - 1

_INT_PATTERN: Final[re.Pattern[str]] = re.compile(r"[+-]?[0-9]+")
_UINT_PATTERN: Final[re.Pattern[str]] = re.compile(r"[0-9]+")
_FLOAT_PATTERN: Final[re.Pattern[str]] = re.compile(
    r"[+-]?(?:[0-9]+(?:\.[0-9]*)?|\.[0-9]+)(?:[eE][+-]?[0-9]+)?"
)
_FLOAT_SPECIAL_PATTERN: Final[re.Pattern[str]] = re.compile(
    r"[+-]?(?:inf|infinity)|nan", re.IGNORECASE
)
_HEX_FLOAT_PATTERN: Final[re.Pattern[str]] = re.compile(
    r"[+-]?0[xX](?:[0-9a-fA-F]+(?:\.[0-9a-fA-F]*)?|\.[0-9a-fA-F]+)[pP][+-]?[0-9]+"
)

_BOOL_TRUE: Final[frozenset[str]] = frozenset({"1", "t", "T", "TRUE", "true", "True"})
_BOOL_FALSE: Final[frozenset[str]] = frozenset({"0", "f", "F", "FALSE", "false", "False"})

Scalar = str | bool | int | float


class _GrammarError(ValueError):
    pass


def coerce_primitive(text: str, kind: Kind, *, unwrap: bool = True) -> Scalar:
    """Convert ``text`` to ``kind`` using the kind's canonical grammar.

    When the grammar rejects the text, the text is tried as a schema envelope
    (``{"type": ..., "value": ...}``) and coercion is retried once on the
    unwrapped value. String targets check for an envelope first, since any
    text is a valid string. ``unwrap=False`` disables the envelope fallback.
    """

    if kind is Kind.STRING:
        if unwrap and text.startswith("{"):
            unwrapped = _try_unwrap(text)
            if unwrapped is not None:
                return unwrapped
        return text

    try:
        return _parse(text, kind)
    except _GrammarError as exc:
        unwrapped = _try_unwrap(text) if unwrap else None
        if unwrapped is not None:
            try:
                return _parse(unwrapped, kind)
            except _GrammarError:
                pass
        raise PrimitiveParseError(kind, text, str(exc)) from None


def parse_int(text: str) -> int:
    if not _INT_PATTERN.fullmatch(text):
        raise _GrammarError("invalid syntax")
    value = int(text)
    if value < INT64_MIN or value > INT64_MAX:
        raise _GrammarError("value out of range")
    return value


def parse_uint(text: str) -> int:
    if not _UINT_PATTERN.fullmatch(text):
        raise _GrammarError("invalid syntax")
    value = int(text)
    if value > UINT64_MAX:
        raise _GrammarError("value out of range")
    return value


def parse_float(text: str) -> float:
    if _FLOAT_SPECIAL_PATTERN.fullmatch(text):
        return float(text)
    if _HEX_FLOAT_PATTERN.fullmatch(text):
        try:
            value = float.fromhex(text)
        except OverflowError:
            raise _GrammarError("value out of range") from None
    elif _FLOAT_PATTERN.fullmatch(text):
        value = float(text)
    else:
        raise _GrammarError("invalid syntax")
    if math.isinf(value):
        raise _GrammarError("value out of range")
    return value


def parse_bool(text: str) -> bool:
    if text in _BOOL_TRUE:
        return True
    if text in _BOOL_FALSE:
        return False
    raise _GrammarError("invalid syntax")


def _parse(text: str, kind: Kind) -> Scalar:
    match kind:
        case Kind.BOOL:
            return parse_bool(text)
        case Kind.INT:
            return parse_int(text)
        case Kind.UINT:
            return parse_uint(text)
        case Kind.FLOAT:
            return parse_float(text)
        case Kind.STRING:
            return text
    raise AssertionError(f"unreachable kind {kind!r}")


def _try_unwrap(text: str) -> str | None:
    try:
        return unwrap_scalar_text(text)
    except (ValueError, RecursionError):
        return None


__all__ = [
    "INT64_MAX",
    "INT64_MIN",
    "UINT64_MAX",
    "Scalar",
    "coerce_primitive",
    "parse_bool",
    "parse_float",
    "parse_int",
    "parse_uint",
]
