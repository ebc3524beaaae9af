"""
cascade-decode — unit tests for structural decoding

File: tests/unit/test_materialize.py

Purpose
- Verify decoding of generic JSON trees against descriptors.

What this test file should cover
- Field key matching (exact, then case-insensitive) and ``json`` metadata keys.
- Missing fields, ``null`` handling and dataclass defaults.
- Numeric strictness and 64-bit range checks.
- Error paths pointing at the offending element.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

import pytest

from cascade_decode.descriptor import Kind, Primitive, UInt, describe
from cascade_decode.errors import StructuralDecodeError
from cascade_decode.materialize import decode_text, materialize, parse_json, zero_value


@dataclass
class Person:
    name: str
    age: int


@dataclass
class LineItem:
    sku: str
    qty: UInt
    price: float = 0.0


@dataclass
class Order:
    order_id: str = field(metadata={"json": "id"})
    items: list[LineItem] = field(default_factory=list)
    note: str | None = None
    priority: int = 3
    extra: dict[str, Any] = field(default_factory=dict)


@dataclass
class Positive:
    value: int

    def __post_init__(self) -> None:
        if self.value <= 0:
            raise ValueError("value must be positive")


def test_round_trip_person() -> None:
    assert decode_text('{"name":"John","age":30}', describe(Person)) == Person("John", 30)


def test_unknown_keys_are_ignored_and_missing_fields_are_zero() -> None:
    assert materialize({"nickname": "JJ"}, describe(Person)) == Person("", 0)


def test_keys_match_case_insensitively_after_exact_match() -> None:
    tree = {"NAME": "upper", "Age": 5}
    assert materialize(tree, describe(Person)) == Person("upper", 5)

    both = {"Name": "folded", "name": "exact", "age": 1}
    assert materialize(both, describe(Person)).name == "exact"


def test_nested_order_with_metadata_key_and_defaults() -> None:
    tree = {
        "id": "A-1",
        "items": [{"sku": "x", "qty": 2, "price": 1}, {"sku": "y", "qty": 1}],
        "extra": {"gift": True},
    }

    order = materialize(tree, describe(Order))

    assert order == Order(
        order_id="A-1",
        items=[LineItem("x", 2, 1.0), LineItem("y", 1, 0.0)],
        note=None,
        priority=3,
        extra={"gift": True},
    )
    assert isinstance(order.items[0].price, float)


def test_null_keeps_defaults_and_clears_optionals() -> None:
    tree = {"id": "A-2", "items": None, "note": None, "priority": None}

    assert materialize(tree, describe(Order)) == Order(order_id="A-2")


def test_null_on_required_field_yields_zero_value() -> None:
    assert materialize({"name": None, "age": None}, describe(Person)) == Person("", 0)


def test_null_for_optional_top_level() -> None:
    assert materialize(None, describe(Person | None)) is None
    assert materialize(None, describe(list[int])) == []


def test_tuple_container_and_dynamic() -> None:
    assert materialize([1, 2], describe(tuple[int, ...])) == (1, 2)
    tree = {"type": "string", "value": "kept"}
    assert materialize(tree, describe(dict[str, Any])) == tree


@pytest.mark.parametrize(
    ("tree", "descriptor"),
    [
        (1.5, Primitive(Kind.INT)),
        (1.0, Primitive(Kind.INT)),
        (True, Primitive(Kind.INT)),
        (2**63, Primitive(Kind.INT)),
        (-1, Primitive(Kind.UINT)),
        (2**64, Primitive(Kind.UINT)),
        ("1", Primitive(Kind.FLOAT)),
        (1, Primitive(Kind.BOOL)),
        (1, Primitive(Kind.STRING)),
        (10**400, Primitive(Kind.FLOAT)),
    ],
)
def test_scalar_mismatches_raise(tree: object, descriptor: Primitive) -> None:
    with pytest.raises(StructuralDecodeError):
        materialize(tree, descriptor)  # type: ignore[arg-type]


def test_float_accepts_integers() -> None:
    assert materialize(3, Primitive(Kind.FLOAT)) == 3.0


def test_error_path_points_at_element() -> None:
    tree = {"id": "A-3", "items": [{"sku": "x", "qty": 1}, {"sku": "y", "qty": "two"}]}

    with pytest.raises(StructuralDecodeError) as exc_info:
        materialize(tree, describe(Order))

    assert exc_info.value.path == "$.items[1].qty"
    assert exc_info.value.reason == "cannot decode JSON string into uint"


def test_shape_mismatch_message() -> None:
    with pytest.raises(StructuralDecodeError, match=r"\$: cannot decode JSON array into Person"):
        materialize([{"name": "John"}], describe(Person))


def test_dataclass_validation_error_becomes_structural_error() -> None:
    with pytest.raises(StructuralDecodeError, match="cannot construct Positive"):
        materialize({"value": -1}, describe(Positive))


def test_parse_json_wraps_syntax_errors() -> None:
    with pytest.raises(StructuralDecodeError, match="invalid JSON"):
        parse_json("{name: 'John'}")


@pytest.mark.parametrize("text", ["NaN", "[Infinity]", '{"a": -Infinity}'])
def test_parse_json_rejects_non_standard_constants(text: str) -> None:
    with pytest.raises(StructuralDecodeError, match="non-standard JSON constant"):
        parse_json(text)


def test_parse_json_reports_nesting_too_deep() -> None:
    with pytest.raises(StructuralDecodeError):
        parse_json("[" * 100_000 + "]" * 100_000)


def test_zero_values() -> None:
    assert zero_value(describe(Person)) == Person("", 0)
    assert zero_value(describe(tuple[str, ...])) == ()
    assert zero_value(describe(dict[str, int])) == {}
    assert zero_value(describe(int | None)) is None
    assert zero_value(describe(Order)) == Order(order_id="")
