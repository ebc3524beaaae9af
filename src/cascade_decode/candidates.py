"""
cascade-decode — JSON candidate extraction from free text

File: src/cascade_decode/candidates.py

Purpose
- Locate balanced ``{...}`` / ``[...]`` spans embedded in model narrative
  ("Here is the result: {...} Hope this helps!").

Functional requirements
- String-literal aware: brackets inside JSON strings and escaped quotes never
  end a span early.
- Candidates are emitted in order of their opening bracket. Openers lying
  inside a string literal of an already emitted candidate are skipped.
- Unterminated openers emit nothing.
- Linear in the text length for runs of unterminated openers: one scan
  resolves every same-kind opener it passes outside a string literal.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Final, TypeAlias

_CLOSERS: Final[dict[str, str]] = {"{": "}", "[": "]"}

# Inclusive end index and the string literals inside the span, or None when unterminated.
_Span: TypeAlias = tuple[int, list[tuple[int, int]]] | None


@dataclass(frozen=True, slots=True)
class Candidate:
    """Inclusive ``text[start:end + 1]`` span opened by ``opener``."""

    start: int
    end: int
    opener: str
    text: str


def extract_candidates(text: str, *, limit: int | None = None) -> list[Candidate]:
    """Return balanced bracket spans of ``text`` in left-to-right order.

    ``limit`` caps the number of candidates returned.
    """

    candidates: list[Candidate] = []
    in_literal = bytearray(len(text))
    spans: dict[int, _Span] = {}

    for start, char in enumerate(text):
        if limit is not None and len(candidates) >= limit:
            break
        if char not in _CLOSERS or in_literal[start]:
            continue
        if start not in spans:
            spans.update(_scan(text, start, char))
        span = spans[start]
        if span is None:
            continue
        end, literal_ranges = span
        for first, last in literal_ranges:
            in_literal[first : last + 1] = b"\x01" * (last - first + 1)
        candidates.append(Candidate(start=start, end=end, opener=char, text=text[start : end + 1]))

    return candidates


def _scan(text: str, start: int, opener: str) -> dict[int, _Span]:
    """Match ``opener`` at ``start`` and every same-kind opener nested in its scan.

    A nested opener outside string literals sees exactly the string state a
    fresh scan from it would see, so its stack match is its own span.
    """

    closer = _CLOSERS[opener]
    spans: dict[int, _Span] = {}
    open_stack: list[tuple[int, int]] = []
    literal_ranges: list[tuple[int, int]] = []
    in_string = False
    escaped = False
    string_start = 0

    for index in range(start, len(text)):
        char = text[index]
        if in_string:
            if escaped:
                escaped = False
            elif char == "\\":
                escaped = True
            elif char == '"':
                in_string = False
                literal_ranges.append((string_start, index))
            continue
        if char == '"':
            in_string = True
            string_start = index
        elif char == opener:
            open_stack.append((index, len(literal_ranges)))
        elif char == closer:
            position, first_literal = open_stack.pop()
            spans[position] = (index, literal_ranges[first_literal:])
            if not open_stack:
                return spans

    for position, _ in open_stack:
        spans[position] = None
    return spans


__all__ = ["Candidate", "extract_candidates"]
