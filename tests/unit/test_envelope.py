"""
cascade-decode — unit tests for schema envelope unwrapping

File: tests/unit/test_envelope.py

Purpose
- Verify detection and recursive removal of ``{"type": ..., "value": ...}`` wrappers.

What this test file should cover
- Exact two-key detection; extra keys disqualify.
- Nested collapse, envelopes inside maps and arrays.
- Scalar text rendering used by the primitive path.
- Envelope search and stack-bounded unwrapping of deep trees.
- Rejection of non-standard NaN and Infinity constants.
- Idempotence of unwrapping (property based).
"""

from __future__ import annotations

import json

import pytest

from cascade_decode.envelope import (
    NotAnEnvelopeError,
    contains_envelope,
    is_envelope,
    load_json,
    scalar_text,
    unwrap_envelope_text,
    unwrap_envelopes,
    unwrap_scalar_text,
)

try:
    from hypothesis import given, settings
    from hypothesis import strategies as st

    HYPOTHESIS_AVAILABLE = True
except ModuleNotFoundError:  # pragma: no cover - fallback path
    HYPOTHESIS_AVAILABLE = False


@pytest.mark.parametrize(
    ("value", "expected"),
    [
        ({"type": "string", "value": "John"}, True),
        ({"type": "integer", "value": None}, True),
        ({"value": 1, "type": 2}, True),
        ({"type": "string", "value": "John", "description": "name"}, False),
        ({"type": "string"}, False),
        ({"value": 1}, False),
        ([{"type": "string", "value": "John"}], False),
        ("type", False),
        (None, False),
    ],
)
def test_is_envelope(value: object, expected: bool) -> None:
    assert is_envelope(value) is expected


def test_unwrap_collapses_nested_envelopes() -> None:
    tree = {"type": "object", "value": {"type": "string", "value": "deep"}}

    assert unwrap_envelopes(tree) == "deep"


def test_unwrap_reaches_fields_and_elements() -> None:
    tree = {
        "name": {"type": "string", "value": "John"},
        "age": {"type": "integer", "value": 30},
        "tags": [{"type": "string", "value": "a"}, "b"],
        "meta": {"type": "string", "value": "kept", "extra": True},
    }

    assert unwrap_envelopes(tree) == {
        "name": "John",
        "age": 30,
        "tags": ["a", "b"],
        "meta": {"type": "string", "value": "kept", "extra": True},
    }


def test_unwrap_does_not_mutate_input() -> None:
    tree = {"name": {"type": "string", "value": "John"}}
    snapshot = json.loads(json.dumps(tree))

    unwrap_envelopes(tree)

    assert tree == snapshot


def test_unwrap_envelope_text_reserializes_compactly() -> None:
    text = '{"items": [{"type": "integer", "value": 1}, {"type": "integer", "value": 2}]}'

    assert unwrap_envelope_text(text) == '{"items":[1,2]}'


@pytest.mark.parametrize(
    ("text", "expected"),
    [
        ('{"type": "string", "value": "John"}', "John"),
        ('{"type": "boolean", "value": false}', "false"),
        ('{"type": "integer", "value": 42}', "42"),
        ('{"type": "number", "value": 42.0}', "42"),
        ('{"type": "number", "value": 0.1}', "0.1"),
        ('{"type": "number", "value": 1e300}', "1e+300"),
        ('{"type": "null", "value": null}', "null"),
        ('{"type": "array", "value": [1, "a"]}', '[1,"a"]'),
    ],
)
def test_unwrap_scalar_text_rendering(text: str, expected: str) -> None:
    assert unwrap_scalar_text(text) == expected


def test_unwrap_scalar_text_requires_an_envelope() -> None:
    with pytest.raises(NotAnEnvelopeError):
        unwrap_scalar_text('{"name": "John"}')
    with pytest.raises(json.JSONDecodeError):
        unwrap_scalar_text("not json")


@pytest.mark.parametrize(
    ("value", "expected"),
    [
        ({"type": "string", "value": "John"}, True),
        ({"a": [1, {"b": {"type": "integer", "value": 2}}]}, True),
        ([[[{"value": None, "type": "null"}]]], True),
        ({"type": "string", "value": "John", "extra": 1}, False),
        ({"a": [1, {"b": 2}]}, False),
        ("plain", False),
    ],
)
def test_contains_envelope(value: object, expected: bool) -> None:
    assert contains_envelope(value) is expected  # type: ignore[arg-type]


def test_unwrap_handles_nesting_deeper_than_the_recursion_limit() -> None:
    depth = 5000
    tree: object = 7
    for _ in range(depth):
        tree = [{"type": "array", "value": tree}]

    node = unwrap_envelopes(tree)  # type: ignore[arg-type]

    for _ in range(depth):
        assert isinstance(node, list) and len(node) == 1
        node = node[0]
    assert node == 7
    assert contains_envelope(tree) is True  # type: ignore[arg-type]


@pytest.mark.parametrize("text", ["NaN", "[Infinity]", '{"a": -Infinity}'])
def test_load_json_rejects_non_standard_constants(text: str) -> None:
    with pytest.raises(ValueError, match="non-standard JSON constant"):
        load_json(text)


def test_unwrap_scalar_text_rejects_nan_value() -> None:
    with pytest.raises(ValueError, match="non-standard JSON constant NaN"):
        unwrap_scalar_text('{"type": "number", "value": NaN}')


def test_scalar_text_keeps_large_floats_in_exponent_form() -> None:
    assert scalar_text(1e21) == "1e+21"
    assert scalar_text(-3.0) == "-3"
    assert scalar_text(True) == "true"


if HYPOTHESIS_AVAILABLE:
    _scalars = (
        st.none()
        | st.booleans()
        | st.integers()
        | st.floats(allow_nan=False, allow_infinity=False)
        | st.text(max_size=8)
    )

    def _extend(children: st.SearchStrategy[object]) -> st.SearchStrategy[object]:
        return (
            st.lists(children, max_size=4)
            | st.dictionaries(st.text(max_size=6), children, max_size=4)
            | st.builds(lambda kind, inner: {"type": kind, "value": inner}, st.text(max_size=6), children)
        )

    _trees = st.recursive(_scalars, _extend, max_leaves=20)

    @settings(max_examples=40, deadline=None)
    @given(tree=_trees)
    def test_unwrap_is_idempotent(tree: object) -> None:
        once = unwrap_envelopes(tree)  # type: ignore[arg-type]
        assert unwrap_envelopes(once) == once

    @settings(max_examples=40, deadline=None)
    @given(tree=_trees)
    def test_unwrapped_tree_holds_no_envelopes(tree: object) -> None:
        pending = [unwrap_envelopes(tree)]  # type: ignore[arg-type]
        while pending:
            item = pending.pop()
            assert not is_envelope(item)
            if isinstance(item, dict):
                pending.extend(item.values())
            elif isinstance(item, list):
                pending.extend(item)
