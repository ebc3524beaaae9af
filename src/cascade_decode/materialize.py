"""
cascade-decode — structural decoding of JSON trees into typed values

File: src/cascade_decode/materialize.py

Purpose
- Decode a generic JSON tree against a ``TargetDescriptor`` ("parse against
  the target shape").

Functional requirements
- Unknown object keys are ignored; missing fields use the dataclass default,
  else the zero value of their descriptor.
- Object keys match field keys exactly first, then case-insensitively.
- ``null`` yields the zero value (``None`` for optional targets).
- Integers never accept floats or booleans; floats accept integers.
- Every mismatch raises ``StructuralDecodeError`` with a dotted path.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import TYPE_CHECKING, Any

from cascade_decode.coerce import INT64_MAX, INT64_MIN, UINT64_MAX
from cascade_decode.descriptor import (
    Dynamic,
    Kind,
    Map,
    Pointer,
    Primitive,
    Slice,
    Struct,
    TargetDescriptor,
    type_name,
)
from cascade_decode.envelope import load_json
from cascade_decode.errors import StructuralDecodeError

if TYPE_CHECKING:
    from cascade_decode.envelope import JSONValue


def decode_text(text: str, descriptor: TargetDescriptor) -> Any:
    """Parse ``text`` as strict JSON and materialize it against ``descriptor``."""

    return materialize(parse_json(text), descriptor)


def parse_json(text: str) -> JSONValue:
    try:
        return load_json(text)
    except ValueError as exc:
        raise StructuralDecodeError(f"invalid JSON: {exc}") from exc
    except RecursionError as exc:
        raise StructuralDecodeError("invalid JSON: nesting too deep") from exc


def materialize(tree: JSONValue, descriptor: TargetDescriptor, *, path: str = "$") -> Any:
    """Build a typed value for ``descriptor`` from a decoded JSON tree."""

    match descriptor:
        case Dynamic():
            return tree
        case Pointer(inner):
            if tree is None:
                return None
            return materialize(tree, inner, path=path)
        case Primitive(kind):
            return _materialize_scalar(tree, kind, path)
        case Slice(elem, container):
            if tree is None:
                return container()
            if not isinstance(tree, list):
                raise _mismatch(tree, descriptor, path)
            return container(
                materialize(item, elem, path=f"{path}[{index}]") for index, item in enumerate(tree)
            )
        case Map(value):
            if tree is None:
                return {}
            if not isinstance(tree, Mapping):
                raise _mismatch(tree, descriptor, path)
            return {
                key: materialize(item, value, path=f"{path}.{key}") for key, item in tree.items()
            }
        case Struct():
            if tree is None:
                return zero_value(descriptor, path=path)
            if not isinstance(tree, Mapping):
                raise _mismatch(tree, descriptor, path)
            return _materialize_struct(tree, descriptor, path)
    raise AssertionError(f"unreachable descriptor {descriptor!r}")


def zero_value(descriptor: TargetDescriptor, *, path: str = "$") -> Any:
    """Return the value a missing or ``null`` field decodes to."""

    match descriptor:
        case Primitive(kind):
            return _SCALAR_ZEROS[kind]
        case Slice(_, container):
            return container()
        case Map():
            return {}
        case Pointer() | Dynamic():
            return None
        case Struct(cls, fields):
            kwargs = {
                item.name: zero_value(item.descriptor, path=f"{path}.{item.key}")
                for item in fields
                if not item.has_default
            }
            return _construct(cls, kwargs, path)
    raise AssertionError(f"unreachable descriptor {descriptor!r}")


_SCALAR_ZEROS: dict[Kind, object] = {
    Kind.STRING: "",
    Kind.BOOL: False,
    Kind.INT: 0,
    Kind.UINT: 0,
    Kind.FLOAT: 0.0,
}


def _materialize_struct(tree: Mapping[str, JSONValue], descriptor: Struct, path: str) -> Any:
    folded: dict[str, str] = {}
    for key in tree:
        folded.setdefault(key.casefold(), key)

    kwargs: dict[str, Any] = {}
    for item in descriptor.fields:
        field_path = f"{path}.{item.key}"
        source_key = item.key if item.key in tree else folded.get(item.key.casefold())
        if source_key is None:
            if not item.has_default:
                kwargs[item.name] = zero_value(item.descriptor, path=field_path)
            continue
        raw = tree[source_key]
        if raw is None and item.has_default and not isinstance(item.descriptor, (Pointer, Dynamic)):
            continue
        kwargs[item.name] = materialize(raw, item.descriptor, path=field_path)

    return _construct(descriptor.cls, kwargs, path)


def _construct(cls: type, kwargs: dict[str, Any], path: str) -> Any:
    try:
        return cls(**kwargs)
    except (TypeError, ValueError) as exc:
        raise StructuralDecodeError(f"cannot construct {cls.__name__}: {exc}", path=path) from exc


def _materialize_scalar(tree: JSONValue, kind: Kind, path: str) -> Any:
    if tree is None:
        return _SCALAR_ZEROS[kind]

    match kind:
        case Kind.STRING:
            if isinstance(tree, str):
                return tree
        case Kind.BOOL:
            if isinstance(tree, bool):
                return tree
        case Kind.INT:
            if isinstance(tree, int) and not isinstance(tree, bool):
                if tree < INT64_MIN or tree > INT64_MAX:
                    raise StructuralDecodeError(f"number {tree} overflows int", path=path)
                return tree
        case Kind.UINT:
            if isinstance(tree, int) and not isinstance(tree, bool):
                if tree < 0 or tree > UINT64_MAX:
                    raise StructuralDecodeError(f"number {tree} overflows uint", path=path)
                return tree
        case Kind.FLOAT:
            if isinstance(tree, (int, float)) and not isinstance(tree, bool):
                try:
                    return float(tree)
                except OverflowError as exc:
                    raise StructuralDecodeError(
                        f"number {tree} overflows float", path=path
                    ) from exc

    raise _mismatch(tree, Primitive(kind), path)


def _mismatch(tree: JSONValue, descriptor: TargetDescriptor, path: str) -> StructuralDecodeError:
    return StructuralDecodeError(
        f"cannot decode JSON {json_kind(tree)} into {type_name(descriptor)}", path=path
    )


def json_kind(tree: JSONValue) -> str:
    if tree is None:
        return "null"
    if isinstance(tree, bool):
        return "boolean"
    if isinstance(tree, (int, float)):
        return "number"
    if isinstance(tree, str):
        return "string"
    if isinstance(tree, list):
        return "array"
    return "object"


__all__ = ["decode_text", "json_kind", "materialize", "parse_json", "zero_value"]
