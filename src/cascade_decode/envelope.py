"""
cascade-decode — schema envelope detection and unwrapping

File: src/cascade_decode/envelope.py

Purpose
- Collapse ``{"type": T, "value": V}`` wrappers that models emit when they
  confuse a JSON-schema description with the data itself.

Functional requirements
- ``unwrap_envelopes`` is total over any decoded JSON value, pure and idempotent.
- A mapping is an envelope only when its keys are exactly ``type`` and ``value``.
  Legitimate objects with exactly those two keys are indistinguishable; callers
  decode the raw tree first so such targets keep their meaning.
"""

from __future__ import annotations

import json
import math
from collections.abc import Mapping
from typing import Final, NoReturn, TypeAlias

JSONScalar: TypeAlias = str | int | float | bool | None
JSONValue: TypeAlias = JSONScalar | list["JSONValue"] | dict[str, "JSONValue"]

ENVELOPE_TYPE_KEY: Final[str] = "type"
ENVELOPE_VALUE_KEY: Final[str] = "value"
_ENVELOPE_KEYS: Final[frozenset[str]] = frozenset({ENVELOPE_TYPE_KEY, ENVELOPE_VALUE_KEY})

# Integral floats up to this magnitude render without exponent or fraction.
_INTEGRAL_FLOAT_LIMIT: Final[float] = 1e21


class NotAnEnvelopeError(ValueError):
    """Raised when text does not hold a top-level envelope."""


def is_envelope(value: object) -> bool:
    """Return ``True`` for a mapping whose keys are exactly ``type`` and ``value``."""

    return isinstance(value, Mapping) and len(value) == 2 and set(value) == _ENVELOPE_KEYS


def contains_envelope(value: JSONValue) -> bool:
    """Return ``True`` when an envelope appears anywhere in ``value``."""

    pending = [value]
    while pending:
        node = pending.pop()
        if isinstance(node, Mapping):
            if is_envelope(node):
                return True
            pending.extend(node.values())
        elif isinstance(node, list):
            pending.extend(node)
    return False


def unwrap_envelopes(value: JSONValue) -> JSONValue:
    """Replace every envelope with its unwrapped ``value``.

    Nested envelopes collapse in one pass, and envelopes inside ordinary
    object fields or array elements are resolved as well. The walk uses an
    explicit stack, so nesting depth is bounded only by memory.
    """

    root: list[JSONValue] = [None]
    pending: list[tuple[JSONValue, list[JSONValue] | dict[str, JSONValue], int | str]] = [
        (value, root, 0)
    ]
    while pending:
        node, parent, slot = pending.pop()
        while is_envelope(node):
            node = node[ENVELOPE_VALUE_KEY]  # type: ignore[index]
        if isinstance(node, Mapping):
            rebuilt: dict[str, JSONValue] = dict.fromkeys(node)
            pending.extend((item, rebuilt, key) for key, item in node.items())
            node = rebuilt
        elif isinstance(node, list):
            items: list[JSONValue] = [None] * len(node)
            pending.extend((item, items, index) for index, item in enumerate(node))
            node = items
        parent[slot] = node  # type: ignore[index]
    return root[0]


def load_json(text: str) -> JSONValue:
    """``json.loads`` that rejects the non-standard ``NaN`` and ``Infinity`` tokens."""

    return json.loads(text, parse_constant=_reject_constant)


def unwrap_envelope_text(text: str) -> str:
    """Parse ``text``, unwrap every envelope and serialize it back to compact JSON."""

    tree = load_json(text)
    return _dump(unwrap_envelopes(tree))


def unwrap_scalar_text(text: str) -> str:
    """Return the textual form of the value held by a top-level envelope.

    Strings come back verbatim, booleans as ``true``/``false``, integral
    floats without a fraction, ``null`` for null and compact JSON for
    containers. Raises ``NotAnEnvelopeError`` when ``text`` is not an envelope
    and ``ValueError`` (usually ``json.JSONDecodeError``) when it is not
    standard JSON.
    """

    tree = load_json(text)
    if not is_envelope(tree):
        raise NotAnEnvelopeError("not a schema-wrapped value")
    return scalar_text(unwrap_envelopes(tree))


def scalar_text(value: JSONValue) -> str:
    if isinstance(value, str):
        return value
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, int):
        return str(value)
    if isinstance(value, float):
        if math.isfinite(value) and value.is_integer() and abs(value) < _INTEGRAL_FLOAT_LIMIT:
            return str(int(value))
        return repr(value)
    return _dump(value)


def _dump(value: JSONValue) -> str:
    return json.dumps(value, separators=(",", ":"), ensure_ascii=False)


def _reject_constant(name: str) -> NoReturn:
    raise ValueError(f"non-standard JSON constant {name}")


__all__ = [
    "ENVELOPE_TYPE_KEY",
    "ENVELOPE_VALUE_KEY",
    "JSONScalar",
    "JSONValue",
    "NotAnEnvelopeError",
    "contains_envelope",
    "is_envelope",
    "load_json",
    "scalar_text",
    "unwrap_envelope_text",
    "unwrap_envelopes",
]
